# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Permission groups shown in the role editor, one per application module."""

from dataclasses import dataclass

from src.rbac.permissions import Permission


@dataclass(frozen=True)
class PermissionGroup:
    """A module-level bundle of related permissions."""

    id: str
    label: str
    description: str
    order: int
    permissions: tuple[Permission, ...]


def _company(resource: str, *actions: str) -> tuple[Permission, ...]:
    return tuple(Permission(resource, action, "company") for action in actions)


CRUD = ("read", "create", "update", "delete")

PERMISSION_GROUPS: list[PermissionGroup] = [
    PermissionGroup(
        id="projects",
        label="Projects",
        description="Manage and view projects",
        order=1,
        permissions=_company("projects", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="invoices",
        label="Invoices",
        description="Invoice management, QR import and project assignment",
        order=2,
        permissions=_company("invoices", *CRUD, "assign", "export"),
    ),
    PermissionGroup(
        id="informal_payments",
        label="Informal Payments",
        description="Informal payments and contract management",
        order=3,
        permissions=_company("informal_payments", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="subcontractors",
        label="Subcontractors",
        description="Subcontractor management",
        order=4,
        permissions=_company("subcontractors", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="suppliers",
        label="Suppliers",
        description="Supplier and tax number management",
        order=5,
        permissions=_company("suppliers", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="users",
        label="Users",
        description="User management and authorization",
        order=6,
        permissions=_company("users", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="roles",
        label="Roles",
        description="Create roles and assign permissions",
        order=7,
        permissions=_company("roles", *CRUD, "manage"),
    ),
    PermissionGroup(
        id="activity_logs",
        label="Activity Logs",
        description="View system activity",
        order=8,
        permissions=_company("activity_logs", "read", "export", "manage"),
    ),
    PermissionGroup(
        id="reports",
        label="Reports",
        description="View and create reports",
        order=9,
        permissions=_company("reports", "read", "create", "export"),
    ),
    PermissionGroup(
        id="companies",
        label="Company Settings",
        description="Company details and settings",
        order=10,
        permissions=_company("companies", "read", "update"),
    ),
]

ACTION_LABELS: dict[str, str] = {
    "read": "View",
    "create": "Create",
    "update": "Update",
    "delete": "Delete",
    "manage": "Full Management",
    "assign": "Assign",
    "export": "Export",
}

ACTION_DESCRIPTIONS: dict[str, str] = {
    "read": "Can view records",
    "create": "Can create new records",
    "update": "Can edit existing records",
    "delete": "Can delete records",
    "manage": "Can perform every operation (create, update, delete)",
    "assign": "Can assign records to projects or users",
    "export": "Can export data",
}


def get_group(group_id: str) -> PermissionGroup | None:
    """Look up a permission group by id."""
    for group in PERMISSION_GROUPS:
        if group.id == group_id:
            return group
    return None


def all_catalog_permissions() -> list[Permission]:
    """Every permission of every group, in display order."""
    return [
        perm
        for group in sorted(PERMISSION_GROUPS, key=lambda g: g.order)
        for perm in group.permissions
    ]


def find_permission_group(permission: Permission) -> PermissionGroup | None:
    """Find the group a permission triple belongs to."""
    for group in PERMISSION_GROUPS:
        if permission in group.permissions:
            return group
    return None


def format_permission_label(permission: Permission) -> str:
    """Label such as ``Invoices - Export`` for the role editor."""
    group = find_permission_group(permission)
    action_label = ACTION_LABELS.get(permission.action, permission.action)
    if group:
        return f"{group.label} - {action_label}"
    return f"{permission.resource} - {action_label}"
