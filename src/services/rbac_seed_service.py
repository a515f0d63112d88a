# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Seeding of the permission catalog and default roles."""

import logging

from sqlalchemy.orm import Session

from src.models import Role, RolePermission
from src.rbac.catalog import all_catalog_permissions
from src.rbac.permissions import describe_permission
from src.rbac.roles import DEFAULT_ROLES

from . import rbac_service

logger = logging.getLogger(__name__)


def seed_rbac_data(db: Session) -> None:
    """Seeds the database with catalog permissions and global default roles.

    This function is idempotent.
    @param db: SQLAlchemy Session object
    """
    for perm in all_catalog_permissions():
        rbac_service.register_permission(
            db, perm.resource, perm.action, perm.scope, describe_permission(perm)
        )

    for role_data in DEFAULT_ROLES:
        role = rbac_service.get_role_by_name(db, role_data["name"])
        if role:
            continue

        role = Role(
            name=role_data["name"],
            is_system=role_data["is_system"],
            description=role_data["description"],
            company_id=None,
        )
        db.add(role)
        db.flush()  # Flush to get the role ID

        for position, perm in enumerate(role_data["permissions"]):
            permission = rbac_service.register_permission(
                db, perm.resource, perm.action, perm.scope, describe_permission(perm)
            )
            db.add(
                RolePermission(
                    role_id=role.id, permission_id=permission.id, position=position
                )
            )
        logger.info(f"Seeded role {role.name}")
    db.commit()
