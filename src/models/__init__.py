# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from src.models.activity_log import ActivityLog
from src.models.base import Base, TimestampMixin
from src.models.company import Company
from src.models.enums import ActivityAction, ActivityResource
from src.models.permission import Permission
from src.models.role import Role
from src.models.role_permission import RolePermission
from src.models.session import Session
from src.models.user import User

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "ActivityResource",
    "Base",
    "Company",
    "Permission",
    "Role",
    "RolePermission",
    "Session",
    "TimestampMixin",
    "User",
]
