# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""User administration schemas."""

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.schemas.rbac import RoleSummarySchema


class UserCreate(BaseModel):
    """Schema for creating a user.

    ``company_id`` defaults to the caller's company; only cross-company
    administrators may name another one.
    """

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=200)
    role_id: uuid.UUID
    company_id: uuid.UUID | None = None


class PasswordReset(BaseModel):
    """Schema for an administrator setting a user's password."""

    password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str | None = None
    is_active: bool
    company_id: uuid.UUID | None = None
    role: RoleSummarySchema | None = None
    custom_permissions: list[str] = []
    created_at: datetime.datetime
    updated_at: datetime.datetime
