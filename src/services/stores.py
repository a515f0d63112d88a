# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Profile and permission lookups used to resolve a session's permissions.

Two backends implement the same protocols: the SQL stores below, and the
PostgREST client in ``src.integrations.postgrest``.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from src.models import Permission as PermissionModel
from src.models import Role as RoleModel
from src.models import RolePermission, User
from src.rbac.permissions import Identity, Permission, Role

logger = logging.getLogger(__name__)


class ProfileStoreError(Exception):
    """The profile datastore could not be queried."""


class PermissionStoreError(Exception):
    """Custom permission records could not be fetched (e.g. table missing)."""


class ProfileStore(Protocol):
    """Looks up an identity's profile, role and custom permission refs."""

    async def fetch_profile(self, identity_ref: str) -> Identity | None:
        """Return the profile, or None when the identity has none."""
        ...


class PermissionStore(Protocol):
    """Resolves permission ids into permission records."""

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        """Return the records for ``ids``; unknown ids are left out."""
        ...


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def role_to_domain(role: RoleModel) -> Role:
    """Convert a role row with its grants into the immutable domain role."""
    return Role(
        id=str(role.id),
        name=role.name,
        company_id=str(role.company_id) if role.company_id else None,
        description=role.description,
        is_system=role.is_system,
        permissions=tuple(
            Permission.from_record(rp.permission) for rp in role.role_permissions
        ),
    )


def user_to_identity(user: User) -> Identity:
    """Convert a user row into an identity profile."""
    return Identity(
        id=str(user.id),
        email=user.email,
        name=user.name,
        company_id=str(user.company_id) if user.company_id else None,
        role=role_to_domain(user.role) if user.role else None,
        custom_permission_refs=tuple(str(ref) for ref in user.custom_permissions or []),
    )


class SqlProfileStore:
    """Profile lookups against the local database."""

    def __init__(self, db: Session) -> None:
        self.db = db

    async def fetch_profile(self, identity_ref: str) -> Identity | None:
        user_id = _parse_uuid(identity_ref)
        if user_id is None:
            return None

        try:
            user = self.db.scalars(
                select(User)
                .options(
                    joinedload(User.role)
                    .selectinload(RoleModel.role_permissions)
                    .joinedload(RolePermission.permission)
                )
                .where(User.id == user_id)
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Profile lookup failed for {identity_ref}: {e}")
            raise ProfileStoreError(f"Profile lookup failed: {e}") from e

        if user is None or not user.is_active:
            return None
        try:
            return user_to_identity(user)
        except ValueError as e:
            raise ProfileStoreError(f"Malformed profile {identity_ref}: {e}") from e


class SqlPermissionStore:
    """Permission record lookups against the local database."""

    def __init__(self, db: Session) -> None:
        self.db = db

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        return self.get_permissions(ids)

    def get_permissions(self, ids: Sequence[str]) -> list[Permission]:
        """Blocking lookup shared by the async protocol method and request handlers."""
        wanted = [pid for pid in (_parse_uuid(i) for i in ids) if pid is not None]
        if not wanted:
            return []

        try:
            rows = self.db.scalars(
                select(PermissionModel).where(PermissionModel.id.in_(wanted))
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PermissionStoreError(f"Permission lookup failed: {e}") from e

        # Keep the caller's order
        by_id = {row.id: row for row in rows}
        permissions = []
        for pid in wanted:
            if pid not in by_id:
                continue
            try:
                permissions.append(Permission.from_record(by_id[pid]))
            except ValueError as e:
                logger.warning(f"Skipping malformed permission {pid}: {e}")
        return permissions

