# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from src.api.v1 import activity_logs, auth, rbac, users

api_router = APIRouter()

# Auth routes
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# RBAC routes
api_router.include_router(rbac.router, tags=["rbac"])

# User management routes
api_router.include_router(users.router, tags=["users"])

# Activity log routes
api_router.include_router(
    activity_logs.router, prefix="/activity-logs", tags=["activity-logs"]
)
