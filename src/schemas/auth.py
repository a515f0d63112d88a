# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from src.schemas.rbac import GrantSchema, RoleSummarySchema


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class SessionUserResponse(BaseModel):
    """The signed-in user with the resolved authorization state."""

    id: str
    email: str
    name: str | None
    company_id: str | None
    role: RoleSummarySchema | None
    permissions: list[GrantSchema]
    is_super_admin: bool
    is_company_admin: bool


class AuthResponse(BaseModel):
    """Authentication response."""

    user: SessionUserResponse
