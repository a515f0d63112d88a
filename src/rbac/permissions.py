# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Permission value objects and helpers.

A permission is a ``(resource, action, scope)`` grant. ``*`` in place of a
resource or action means "any"; the ``manage`` action covers every action on
its resource.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

WILDCARD = "*"


class PermissionScope(str, Enum):
    """Breadth of a grant."""

    OWN = "own"  # Only the acting identity's own records
    COMPANY = "company"  # Every record inside the identity's company
    ALL = "all"  # Cross-company


class PermissionAction(str, Enum):
    """Actions a grant may carry."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"
    ASSIGN = "assign"
    EXPORT = "export"
    ANY = WILDCARD


SCOPES = frozenset(s.value for s in PermissionScope)
ACTIONS = frozenset(a.value for a in PermissionAction)

RESOURCE_NAMES: dict[str, str] = {
    "companies": "Companies",
    "users": "Users",
    "roles": "Roles",
    "projects": "Projects",
    "invoices": "Invoices",
    "informal_payments": "Informal Payments",
    "subcontractors": "Subcontractors",
    "suppliers": "Suppliers",
    "activity_logs": "Activity Logs",
    "reports": "Reports",
}

ACTION_NAMES: dict[str, str] = {
    "create": "Create",
    "read": "View",
    "update": "Update",
    "delete": "Delete",
    "manage": "Full Management",
    "assign": "Assign",
    "export": "Export",
}

SCOPE_NAMES: dict[str, str] = {
    "own": "Own",
    "company": "Company",
    "all": "All",
}


def _value(raw: Any) -> str:
    return raw.value if isinstance(raw, Enum) else raw


@dataclass(frozen=True)
class Permission:
    """A single grant.

    Equality and hashing use the ``(resource, action, scope)`` triple only.
    ``id`` is the identity assigned by the permission store and is what
    merging uses to drop duplicates.
    """

    resource: str
    action: str
    scope: str = PermissionScope.COMPANY.value
    id: str | None = field(default=None, compare=False)
    description: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        resource = _value(self.resource)
        action = _value(self.action)
        scope = _value(self.scope)

        if not isinstance(resource, str) or not resource:
            raise ValueError("Permission resource must be a non-empty string")
        if action not in ACTIONS:
            raise ValueError(f"Unknown permission action: {action!r}")
        if scope not in SCOPES:
            raise ValueError(f"Unknown permission scope: {scope!r}")

        # Normalize enum members to their plain string values
        object.__setattr__(self, "resource", resource)
        object.__setattr__(self, "action", action)
        object.__setattr__(self, "scope", scope)
        if self.id is not None:
            object.__setattr__(self, "id", str(self.id))

    @property
    def code(self) -> str:
        return format_permission(self)

    @classmethod
    def from_record(cls, record: Mapping[str, Any] | Any) -> Permission:
        """Build a permission from a datastore row (mapping or ORM object)."""
        if isinstance(record, Mapping):
            get = record.get
        else:

            def get(key: str, default: Any = None) -> Any:
                return getattr(record, key, default)

        return cls(
            resource=get("resource"),
            action=get("action"),
            scope=get("scope") or PermissionScope.COMPANY.value,
            id=get("id"),
            description=get("description"),
        )


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions.

    ``company_id`` is None for global roles such as the super administrator.
    """

    id: str
    name: str
    permissions: tuple[Permission, ...] = ()
    company_id: str | None = None
    description: str | None = None
    is_system: bool = False

    @property
    def is_global(self) -> bool:
        return self.company_id is None


@dataclass(frozen=True)
class Identity:
    """An authenticated user's profile as resolved from the datastore."""

    id: str
    email: str
    company_id: str | None
    role: Role | None = None
    name: str | None = None
    custom_permission_refs: tuple[str, ...] = ()


def get_accessible_resources(
    permissions: Iterable[Permission], action: str
) -> list[str]:
    """Return resources the grants allow ``action`` on (directly or via manage)."""
    return [
        perm.resource
        for perm in permissions
        if perm.action == action or perm.action == PermissionAction.MANAGE.value
    ]


def is_super_admin(permissions: Iterable[Permission]) -> bool:
    """Check for a cross-company administrator grant."""
    for perm in permissions:
        if perm.resource == WILDCARD and perm.action == WILDCARD:
            return True
        if (
            perm.resource == "companies"
            and perm.action == PermissionAction.MANAGE.value
            and perm.scope == PermissionScope.ALL.value
        ):
            return True
    return False


def is_company_admin(permissions: Iterable[Permission]) -> bool:
    """Check for user or role management inside the own company."""
    return any(
        perm.resource in ("users", "roles")
        and perm.action == PermissionAction.MANAGE.value
        and perm.scope == PermissionScope.COMPANY.value
        for perm in permissions
    )


def format_permission(permission: Permission) -> str:
    """Render a permission as ``resource.action.scope``."""
    return f"{permission.resource}.{permission.action}.{permission.scope}"


def parse_permission_string(permission_string: str) -> Permission | None:
    """Parse ``resource.action.scope`` into a permission.

    Returns None if the string does not have three parts or names an
    unknown action or scope.
    """
    parts = permission_string.split(".")
    if len(parts) != 3:
        return None
    try:
        return Permission(resource=parts[0], action=parts[1], scope=parts[2])
    except ValueError:
        return None


def describe_permission(permission: Permission) -> str:
    """Human readable label, e.g. ``Projects - View (Company)``."""
    resource = RESOURCE_NAMES.get(permission.resource, permission.resource)
    action = ACTION_NAMES.get(permission.action, permission.action)
    scope = SCOPE_NAMES.get(permission.scope, permission.scope)
    return f"{resource} - {action} ({scope})"
