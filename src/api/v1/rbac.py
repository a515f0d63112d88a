# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""RBAC API endpoints: permission catalog, roles and user grants."""

import uuid
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.api.deps import (
    company_filter,
    get_current_context,
    get_db,
    require_capability,
)
from src.api.v1.auth import grant_to_schema
from src.auth.session_context import SessionContext
from src.events import AppEvent, event_bus
from src.models import ActivityAction, ActivityResource, Role, User
from src.rbac.catalog import PERMISSION_GROUPS
from src.rbac.permissions import is_super_admin
from src.schemas.rbac import (
    CapabilityCheckResponse,
    CustomPermissionsSchema,
    PermissionGroupSchema,
    PermissionSchema,
    RoleCreateSchema,
    RolePermissionsUpdateSchema,
    RoleSchema,
    UserRoleAssignmentSchema,
)
from src.services import auth_service, rbac_service
from src.services.activity_service import ActivityEntry, log_activity
from src.services.stores import role_to_domain

router = APIRouter()


def role_to_schema(role: Role) -> RoleSchema:
    domain = role_to_domain(role)
    return RoleSchema(
        id=domain.id,
        name=domain.name,
        company_id=domain.company_id,
        is_system=domain.is_system,
        description=domain.description,
        permissions=[grant_to_schema(p) for p in domain.permissions],
    )


def _get_visible_role(db: Session, context: SessionContext, role_id: uuid.UUID) -> Role:
    role = rbac_service.get_role(db, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    company_id = company_filter(context)
    if company_id is not None and role.company_id not in (None, company_id):
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def _get_company_user(db: Session, context: SessionContext, user_id: uuid.UUID) -> User:
    user = auth_service.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    company_id = company_filter(context)
    if company_id is not None and user.company_id != company_id:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _record(db: Session, context: SessionContext, entry: ActivityEntry) -> None:
    log_activity(
        db,
        replace(entry, user_id=context.identity.id, company_id=context.company_id),
    )


@router.get(
    "/rbac/permission-groups",
    response_model=list[PermissionGroupSchema],
    summary="List permission groups for the role editor",
)
def list_permission_groups(
    context: SessionContext = Depends(get_current_context),
):
    """Retrieve the permission catalog grouped by application module."""
    return [
        PermissionGroupSchema(
            id=group.id,
            label=group.label,
            description=group.description,
            order=group.order,
            permissions=[grant_to_schema(p) for p in group.permissions],
        )
        for group in sorted(PERMISSION_GROUPS, key=lambda g: g.order)
    ]


@router.get(
    "/rbac/permissions",
    response_model=list[PermissionSchema],
    summary="List all stored permissions",
)
def list_permissions(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("roles", "read")),
):
    """Retrieve every permission record.
    Requires roles.read.company.
    """
    return rbac_service.list_permissions(db)


@router.get("/rbac/roles", response_model=list[RoleSchema], summary="List roles")
def list_roles(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("roles", "read")),
):
    """Retrieve global roles and the roles of the caller's company.
    Cross-company administrators see every role.
    """
    company_id = company_filter(context)
    roles = rbac_service.list_roles(
        db, company_id=company_id, all_companies=company_id is None
    )
    return [role_to_schema(role) for role in roles]


@router.post(
    "/rbac/roles",
    response_model=RoleSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new company role",
)
def create_role(
    role_in: RoleCreateSchema,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("roles", "create")),
):
    """Create a role in the caller's company with the given permissions."""
    company_id = uuid.UUID(context.company_id) if context.company_id else None
    try:
        role = rbac_service.create_role(
            db,
            name=role_in.name,
            company_id=company_id,
            permission_ids=role_in.permission_ids,
            description=role_in.description,
        )
    except rbac_service.RoleServiceError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record(
        db,
        context,
        ActivityEntry(
            action_type=ActivityAction.CREATE,
            resource_type=ActivityResource.ROLE,
            resource_id=str(role.id),
            description=f'Role "{role.name}" created',
        ),
    )
    return role_to_schema(role)


@router.put(
    "/rbac/roles/{role_id}/permissions",
    response_model=RoleSchema,
    summary="Replace the permissions of a role",
)
async def update_role_permissions(
    role_id: uuid.UUID,
    data: RolePermissionsUpdateSchema,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("roles", "update")),
):
    """Replace a role's grants. System roles cannot be modified."""
    role = _get_visible_role(db, context, role_id)
    if role.company_id is None and not is_super_admin(context.permissions):
        raise HTTPException(status_code=403, detail="Global roles cannot be modified")

    try:
        role = rbac_service.set_role_permissions(db, role, data.permission_ids)
    except rbac_service.SystemRoleError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except rbac_service.UnknownPermissionError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record(
        db,
        context,
        ActivityEntry(
            action_type=ActivityAction.UPDATE,
            resource_type=ActivityResource.ROLE,
            resource_id=str(role.id),
            description=f'Role "{role.name}" updated',
            changes={"permission_ids": [str(pid) for pid in data.permission_ids]},
        ),
    )
    await event_bus.publish(AppEvent.ROLE_UPDATED, {"role_id": str(role.id)})
    return role_to_schema(role)


@router.put(
    "/rbac/users/{user_id}/role",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Assign a role to a user",
)
async def assign_user_role(
    user_id: uuid.UUID,
    data: UserRoleAssignmentSchema,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "manage")),
):
    """Assign a role to a user of the caller's company."""
    user = _get_company_user(db, context, user_id)
    role = _get_visible_role(db, context, data.role_id)
    if role.is_system and not is_super_admin(context.permissions):
        raise HTTPException(
            status_code=403, detail="Only super administrators can assign this role"
        )

    previous_role_id = str(user.role_id) if user.role_id else None
    try:
        rbac_service.assign_role_to_user(db, user, role)
    except rbac_service.RoleServiceError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record(
        db,
        context,
        ActivityEntry(
            action_type=ActivityAction.ASSIGN,
            resource_type=ActivityResource.USER,
            resource_id=str(user.id),
            description=f'Role "{role.name}" assigned',
            changes={"role_id": {"old": previous_role_id, "new": str(role.id)}},
        ),
    )
    await event_bus.publish(
        AppEvent.USER_ROLE_CHANGED, {"user_id": str(user.id), "role_id": str(role.id)}
    )


@router.put(
    "/rbac/users/{user_id}/custom-permissions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Replace a user's custom permissions",
)
async def set_user_custom_permissions(
    user_id: uuid.UUID,
    data: CustomPermissionsSchema,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "manage")),
):
    """Replace the extra permissions granted to a user on top of their role."""
    user = _get_company_user(db, context, user_id)
    try:
        rbac_service.set_custom_permissions(db, user, data.permission_ids)
    except rbac_service.UnknownPermissionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record(
        db,
        context,
        ActivityEntry(
            action_type=ActivityAction.UPDATE,
            resource_type=ActivityResource.USER,
            resource_id=str(user.id),
            description="Custom permissions updated",
            changes={"custom_permissions": list(user.custom_permissions)},
        ),
    )
    await event_bus.publish(
        AppEvent.USER_PERMISSIONS_CHANGED, {"user_id": str(user.id)}
    )


@router.get(
    "/rbac/check",
    response_model=CapabilityCheckResponse,
    summary="Check a capability for the current user",
)
def check_capability(
    resource: str = Query(..., min_length=1),
    action: str = Query(..., min_length=1),
    scope: str = Query("company"),
    context: SessionContext = Depends(get_current_context),
):
    """Evaluate one capability against the caller's effective permissions."""
    return CapabilityCheckResponse(
        resource=resource,
        action=action,
        scope=scope,
        allowed=context.check_capability(resource, action, scope),
    )
