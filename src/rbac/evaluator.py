# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Capability check against an effective permission set."""

from collections.abc import Iterable

from src.rbac.permissions import WILDCARD, Permission, PermissionAction, PermissionScope

MANAGE = PermissionAction.MANAGE.value
ALL_SCOPE = PermissionScope.ALL.value


def _grants(perm: Permission, resource: str, action: str, scope: str) -> bool:
    # Pure wildcard grants authorize regardless of the requested scope
    if perm.resource == WILDCARD and perm.action == WILDCARD:
        return True
    if perm.resource == resource and perm.action == WILDCARD:
        return True
    if perm.resource == WILDCARD and perm.action == action:
        return True

    resource_match = perm.resource == resource or perm.resource == WILDCARD
    action_match = perm.action in (action, MANAGE, WILDCARD)
    scope_match = perm.scope == scope or perm.scope == ALL_SCOPE
    return resource_match and action_match and scope_match


def has_permission(
    permissions: Iterable[Permission] | None,
    resource: str,
    action: str,
    scope: str = PermissionScope.COMPANY.value,
) -> bool:
    """Decide whether any held grant authorizes ``resource.action`` at ``scope``.

    Deny by default: an empty or missing set, or entries that are not
    permission-shaped, never authorize anything and never raise.
    """
    if not permissions:
        return False

    for perm in permissions:
        try:
            if _grants(perm, resource, action, scope):
                return True
        except AttributeError:
            continue
    return False
