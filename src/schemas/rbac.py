# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""RBAC schemas."""

import uuid

from pydantic import BaseModel, ConfigDict, Field


class GrantSchema(BaseModel):
    """A permission triple as seen by API clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    resource: str
    action: str
    scope: str
    code: str
    label: str | None = None


class PermissionSchema(BaseModel):
    """Schema representing a stored permission record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    resource: str
    action: str
    scope: str
    code: str
    description: str | None


class PermissionGroupSchema(BaseModel):
    """A module's permissions as shown in the role editor."""

    id: str
    label: str
    description: str
    order: int
    permissions: list[GrantSchema]


class RoleSummarySchema(BaseModel):
    """Schema representing a role without its grants."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    company_id: str | None
    is_system: bool
    description: str | None


class RoleSchema(RoleSummarySchema):
    """Schema representing a role along with its grants."""

    permissions: list[GrantSchema]


class RoleCreateSchema(BaseModel):
    """Schema for creating a new company role."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    permission_ids: list[uuid.UUID] = []


class RolePermissionsUpdateSchema(BaseModel):
    """Schema for replacing a role's grants."""

    permission_ids: list[uuid.UUID]


class UserRoleAssignmentSchema(BaseModel):
    """Schema for assigning a role to a user."""

    role_id: uuid.UUID


class CustomPermissionsSchema(BaseModel):
    """Schema for replacing a user's custom permission references."""

    permission_ids: list[uuid.UUID]


class CapabilityCheckResponse(BaseModel):
    """Outcome of a capability check."""

    resource: str
    action: str
    scope: str
    allowed: bool
