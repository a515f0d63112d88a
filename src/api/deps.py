# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

import uuid

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.auth.session_context import SessionContext
from src.config import settings
from src.database import get_db
from src.events import AppEvent, event_bus
from src.integrations.postgrest import PostgrestDirectory
from src.rbac.permissions import is_super_admin
from src.services import auth_service
from src.services.activity_service import ActivityLogSink
from src.services.stores import SqlPermissionStore, SqlProfileStore


def get_directory(request: Request) -> PostgrestDirectory | None:
    """Remote profile directory, when one is configured."""
    return getattr(request.app.state, "directory", None)


def build_session_context(
    db: Session, directory: PostgrestDirectory | None = None
) -> SessionContext:
    """Create an unauthenticated session context.

    Profiles and permissions come from ``directory`` when given, otherwise
    from the local database. Activity is always recorded locally.
    """
    if directory is not None:
        profiles, permissions = directory, directory
    else:
        profiles, permissions = SqlProfileStore(db), SqlPermissionStore(db)
    return SessionContext(
        profiles=profiles,
        permissions=permissions,
        audit=ActivityLogSink(db),
        resolution_timeout=settings.RESOLUTION_TIMEOUT_SECONDS,
    )


async def get_session_context(
    db: Session = Depends(get_db),
    directory: PostgrestDirectory | None = Depends(get_directory),
    session: str | None = Cookie(default=None),
) -> SessionContext:
    """Session context restored from the session cookie, if there is one."""
    context = build_session_context(db, directory)
    if not session:
        return context

    session_obj = auth_service.get_session(db, session)
    if session_obj:
        user_id = str(session_obj.user_id)
        if await context.restore(user_id):
            await event_bus.publish(AppEvent.SESSION_RESTORED, {"user_id": user_id})
    return context


def get_current_context(
    context: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Get the authenticated session context."""
    if not context.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return context


def require_capability(resource: str, action: str, scope: str = "company"):
    """Dependency for permission-based authorization."""

    def dependency(
        context: SessionContext = Depends(get_current_context),
    ) -> SessionContext:
        if not context.check_capability(resource, action, scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {resource}.{action}.{scope}",
            )
        return context

    return dependency


def company_filter(context: SessionContext) -> uuid.UUID | None:
    """Company a query should be limited to; None for cross-company admins."""
    if is_super_admin(context.permissions):
        return None
    if context.company_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No company assigned",
        )
    return uuid.UUID(context.company_id)
