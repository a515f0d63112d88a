# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from src.api.deps import (
    build_session_context,
    get_current_context,
    get_db,
    get_directory,
    get_session_context,
)
from src.auth.session_context import SessionContext
from src.config import settings
from src.events import AppEvent, event_bus
from src.integrations.postgrest import PostgrestDirectory
from src.rbac.catalog import format_permission_label
from src.rbac.permissions import Permission, is_company_admin, is_super_admin
from src.schemas.auth import AuthResponse, LoginRequest, SessionUserResponse
from src.schemas.common import MessageResponse
from src.schemas.rbac import GrantSchema, RoleSummarySchema
from src.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter()


def grant_to_schema(permission: Permission) -> GrantSchema:
    return GrantSchema(
        id=permission.id,
        resource=permission.resource,
        action=permission.action,
        scope=permission.scope,
        code=permission.code,
        label=format_permission_label(permission),
    )


def build_session_response(context: SessionContext) -> SessionUserResponse:
    """Build the response describing an authenticated session."""
    identity = context.identity
    role = context.role
    return SessionUserResponse(
        id=identity.id,
        email=identity.email,
        name=identity.name,
        company_id=identity.company_id,
        role=RoleSummarySchema(
            id=role.id,
            name=role.name,
            company_id=role.company_id,
            is_system=role.is_system,
            description=role.description,
        )
        if role
        else None,
        permissions=[grant_to_schema(p) for p in context.permissions],
        is_super_admin=is_super_admin(context.permissions),
        is_company_admin=is_company_admin(context.permissions),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    directory: PostgrestDirectory | None = Depends(get_directory),
) -> AuthResponse:
    """Login with email and password."""
    user = auth_service.authenticate(db, data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    user_id = user.id
    token = auth_service.create_session(
        db, user_id, user_agent=request.headers.get("user-agent")
    )

    context = build_session_context(db, directory)
    if not await context.sign_in(str(user_id)):
        auth_service.delete_session(db, token)
        logger.warning(f"Login for {user_id} failed to resolve: {context.last_error}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load user profile",
        )
    await event_bus.publish(AppEvent.USER_LOGIN, {"user_id": str(user_id)})

    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=86400 * settings.SESSION_EXPIRY_DAYS,
    )
    return AuthResponse(user=build_session_response(context))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    session: str | None = Cookie(default=None),
) -> MessageResponse:
    """Logout and clear session."""
    identity = context.identity
    await context.sign_out()
    if session:
        auth_service.delete_session(db, session)
    if identity is not None:
        await event_bus.publish(AppEvent.USER_LOGOUT, {"user_id": identity.id})

    response.delete_cookie(key="session")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AuthResponse)
def get_me(
    context: SessionContext = Depends(get_current_context),
) -> AuthResponse:
    """Get the current user with role and effective permissions."""
    return AuthResponse(user=build_session_response(context))
