# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""User management API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.api.deps import company_filter, get_db, require_capability
from src.auth.session_context import SessionContext
from src.events import AppEvent, event_bus
from src.models import ActivityAction, ActivityResource, User
from src.schemas.rbac import RoleSummarySchema
from src.schemas.user import PasswordReset, UserCreate, UserResponse
from src.services import auth_service, rbac_service
from src.services.activity_service import ActivityEntry, log_activity
from src.services.stores import role_to_domain

router = APIRouter()


def _build_user_response(user: User) -> UserResponse:
    role = role_to_domain(user.role) if user.role else None
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        is_active=user.is_active,
        company_id=user.company_id,
        role=RoleSummarySchema(
            id=role.id,
            name=role.name,
            company_id=role.company_id,
            is_system=role.is_system,
            description=role.description,
        )
        if role
        else None,
        custom_permissions=list(user.custom_permissions),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _get_company_user(db: Session, context: SessionContext, user_id: uuid.UUID) -> User:
    user = auth_service.get_user_by_id(db, user_id)
    company_id = company_filter(context)
    if not user or (company_id is not None and user.company_id != company_id):
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _record(
    db: Session,
    context: SessionContext,
    user: User,
    action: ActivityAction,
    description: str,
) -> None:
    log_activity(
        db,
        ActivityEntry(
            action_type=action,
            resource_type=ActivityResource.USER,
            user_id=context.identity.id,
            company_id=context.company_id,
            resource_id=str(user.id),
            description=description,
        ),
    )


@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="List users",
)
def list_users(
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "read")),
) -> list[UserResponse]:
    """Retrieve the users of the caller's company.

    Cross-company administrators see every user.
    """
    users = auth_service.list_users(db, company_filter(context))
    return [_build_user_response(user) for user in users]


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
)
def create_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "create")),
) -> UserResponse:
    """Create a user with a password and a role.

    Requires users.create. Company administrators can only create users in
    their own company.
    """
    own_company = company_filter(context)
    target_company = user_in.company_id or own_company
    if own_company is not None and target_company != own_company:
        raise HTTPException(
            status_code=403,
            detail="Users can only be created in your own company",
        )

    role = rbac_service.get_role(db, user_in.role_id)
    if not role or role.company_id not in (None, target_company):
        raise HTTPException(status_code=400, detail="Role not available")
    if role.is_system and own_company is not None:
        raise HTTPException(
            status_code=403, detail="Only super administrators can assign this role"
        )

    try:
        user = auth_service.create_user(
            db,
            user_in.email,
            user_in.password,
            name=user_in.name,
            company_id=target_company,
            role_id=role.id,
        )
    except auth_service.UserServiceError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record(db, context, user, ActivityAction.CREATE, f'User "{user.email}" created')
    return _build_user_response(user)


@router.put(
    "/users/{user_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset a user's password",
)
async def reset_user_password(
    user_id: uuid.UUID,
    data: PasswordReset,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "update")),
):
    """Set a new password and end the user's open sessions."""
    user = _get_company_user(db, context, user_id)
    auth_service.set_password(db, user, data.password)

    _record(db, context, user, ActivityAction.UPDATE, "Password reset")
    await event_bus.publish(AppEvent.USER_LOGOUT, {"user_id": str(user.id)})


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a user",
)
async def deactivate_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("users", "delete")),
):
    """Deactivate a user. Their sessions end and they can no longer sign in."""
    user = _get_company_user(db, context, user_id)
    if str(user.id) == context.identity.id:
        raise HTTPException(
            status_code=400, detail="Cannot deactivate your own account"
        )

    auth_service.deactivate_user(db, user)

    _record(db, context, user, ActivityAction.DELETE, f'User "{user.email}" deactivated')
    await event_bus.publish(AppEvent.USER_LOGOUT, {"user_id": str(user.id)})
