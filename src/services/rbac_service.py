# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Role administration and effective permission resolution."""

import logging
import uuid
from collections.abc import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy.orm import Session

from src.models import Permission as PermissionModel
from src.models import Role, RolePermission, User
from src.rbac.evaluator import has_permission
from src.rbac.permissions import Permission
from src.rbac.permissions import Role as DomainRole
from src.services.stores import (
    PermissionStore,
    PermissionStoreError,
    SqlPermissionStore,
    role_to_domain,
)

logger = logging.getLogger(__name__)


class RoleServiceError(Exception):
    """Base exception for role administration errors."""


class SystemRoleError(RoleServiceError):
    """System roles cannot be modified."""


class UnknownPermissionError(RoleServiceError):
    """A referenced permission id does not exist."""


def merge_permissions(
    role_permissions: Iterable[Permission],
    custom_permissions: Iterable[Permission],
) -> tuple[Permission, ...]:
    """Merge role grants with custom grants, role grants first.

    A custom grant is skipped when an entry with the same id is already
    present. Deduplication is by id, so two grants with the same triple but
    different ids are both kept.
    """
    merged = list(role_permissions)
    seen_ids = {perm.id for perm in merged if perm.id is not None}
    for perm in custom_permissions:
        if perm.id is not None and perm.id in seen_ids:
            continue
        merged.append(perm)
        if perm.id is not None:
            seen_ids.add(perm.id)
    return tuple(merged)


async def resolve_effective_permissions(
    role: DomainRole | None,
    custom_permission_refs: Sequence[str],
    store: PermissionStore,
) -> tuple[Permission, ...]:
    """Compute the effective permission set for an identity.

    An identity without a role is authorized for nothing: the result is empty
    and its custom grants are not looked up. A failing custom permission
    lookup is logged and treated as "no custom grants".
    """
    if role is None:
        return ()
    role_permissions = tuple(role.permissions)

    custom: list[Permission] = []
    if custom_permission_refs:
        try:
            custom = await store.fetch_permissions(list(custom_permission_refs))
        except PermissionStoreError as e:
            logger.warning(f"Skipping custom permissions: {e}")
            custom = []

    return merge_permissions(role_permissions, custom)


def get_effective_permissions(db: Session, user: User) -> tuple[Permission, ...]:
    """Synchronous variant for request handlers working on a loaded user."""
    if user.role is None:
        return ()
    role_permissions = role_to_domain(user.role).permissions

    custom: list[Permission] = []
    if user.custom_permissions:
        try:
            custom = SqlPermissionStore(db).get_permissions(user.custom_permissions)
        except PermissionStoreError as e:
            logger.warning(f"Skipping custom permissions for {user.id}: {e}")

    return merge_permissions(role_permissions, custom)


def user_has_permission(
    db: Session,
    user: User,
    resource: str,
    action: str,
    scope: str = "company",
) -> bool:
    """Check if a user holds a capability."""
    if not user.is_active:
        return False
    return has_permission(get_effective_permissions(db, user), resource, action, scope)


def get_role(db: Session, role_id: uuid.UUID) -> Role | None:
    """Get a role by id."""
    return db.query(Role).filter(Role.id == role_id).first()


def get_role_by_name(
    db: Session, name: str, company_id: uuid.UUID | None = None
) -> Role | None:
    """Get a role by its name within a company (or among global roles)."""
    query = db.query(Role).filter(Role.name == name)
    if company_id is None:
        query = query.filter(Role.company_id.is_(None))
    else:
        query = query.filter(Role.company_id == company_id)
    return query.first()


def list_roles(
    db: Session, company_id: uuid.UUID | None = None, all_companies: bool = False
) -> list[Role]:
    """List global roles plus the roles of ``company_id``.

    With ``all_companies`` every role is returned.
    """
    query = db.query(Role)
    if all_companies:
        return query.order_by(Role.name).all()

    if company_id is None:
        query = query.filter(Role.company_id.is_(None))
    else:
        query = query.filter(
            sa.or_(Role.company_id.is_(None), Role.company_id == company_id)
        )
    return query.order_by(Role.name).all()


def list_permissions(db: Session) -> list[PermissionModel]:
    """All stored permission records."""
    return (
        db.query(PermissionModel)
        .order_by(PermissionModel.resource, PermissionModel.action)
        .all()
    )


def register_permission(
    db: Session,
    resource: str,
    action: str,
    scope: str,
    description: str | None = None,
) -> PermissionModel:
    """Register a permission triple if it does not already exist."""
    # Validates the action and scope values
    Permission(resource, action, scope)

    permission = (
        db.query(PermissionModel)
        .filter(
            PermissionModel.resource == resource,
            PermissionModel.action == action,
            PermissionModel.scope == scope,
        )
        .first()
    )
    if not permission:
        permission = PermissionModel(
            resource=resource, action=action, scope=scope, description=description
        )
        db.add(permission)
        db.flush()
    return permission


def _load_permissions(
    db: Session, permission_ids: Sequence[uuid.UUID]
) -> list[PermissionModel]:
    rows = (
        db.query(PermissionModel).filter(PermissionModel.id.in_(permission_ids)).all()
    )
    by_id = {row.id: row for row in rows}
    missing = [str(pid) for pid in permission_ids if pid not in by_id]
    if missing:
        raise UnknownPermissionError(f"Permission not found: {', '.join(missing)}")
    return [by_id[pid] for pid in permission_ids]


def _replace_grants(
    db: Session, role: Role, permissions: Sequence[PermissionModel]
) -> None:
    role.role_permissions.clear()
    db.flush()
    seen: set[uuid.UUID] = set()
    for position, permission in enumerate(permissions):
        if permission.id in seen:
            continue
        seen.add(permission.id)
        role.role_permissions.append(
            RolePermission(permission_id=permission.id, position=position)
        )


def create_role(
    db: Session,
    name: str,
    company_id: uuid.UUID | None,
    permission_ids: Sequence[uuid.UUID] = (),
    description: str | None = None,
) -> Role:
    """Create a custom role."""
    if get_role_by_name(db, name, company_id):
        raise RoleServiceError("Role with this name already exists")

    permissions = _load_permissions(db, list(permission_ids))
    role = Role(
        name=name,
        company_id=company_id,
        description=description,
        is_system=False,
    )
    db.add(role)
    db.flush()
    _replace_grants(db, role, permissions)
    db.commit()
    db.refresh(role)
    logger.info(f"Created role {role.name} ({role.id})")
    return role


def set_role_permissions(
    db: Session, role: Role, permission_ids: Sequence[uuid.UUID]
) -> Role:
    """Replace a role's grants wholesale."""
    if role.is_system:
        raise SystemRoleError("System roles cannot be modified")

    permissions = _load_permissions(db, list(permission_ids))
    _replace_grants(db, role, permissions)
    db.commit()
    db.refresh(role)
    return role


def assign_role_to_user(db: Session, user: User, role: Role) -> User:
    """Give a user a new role.

    Company roles may only be assigned inside their own company.
    """
    if role.company_id is not None and role.company_id != user.company_id:
        raise RoleServiceError("Role belongs to a different company")

    user.role_id = role.id
    db.commit()
    db.refresh(user)
    logger.info(f"Assigned role {role.name} to user {user.id}")
    return user


def set_custom_permissions(
    db: Session, user: User, permission_ids: Sequence[uuid.UUID]
) -> User:
    """Replace the custom permission references of a user."""
    permissions = _load_permissions(db, list(permission_ids))
    user.custom_permissions = list(dict.fromkeys(str(p.id) for p in permissions))
    db.commit()
    db.refresh(user)
    return user
