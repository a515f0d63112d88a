# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Default role templates seeded on first run."""

from src.rbac.catalog import PERMISSION_GROUPS, all_catalog_permissions, get_group
from src.rbac.permissions import Permission

SUPER_ADMIN_ROLE = "Super Admin"
COMPANY_ADMIN_ROLE = "Company Admin"


def _group(group_id: str) -> list[Permission]:
    group = get_group(group_id)
    return list(group.permissions) if group else []


# Only Super Admin is a system role (is_system=True) and cannot be modified.
# It is global (no company) and holds the full wildcard grant.
DEFAULT_ROLES = [
    {
        "name": SUPER_ADMIN_ROLE,
        "is_system": True,
        "description": "Grants every permission across all companies.",
        "permissions": [Permission("*", "*", "all")],
    },
    {
        "name": COMPANY_ADMIN_ROLE,
        "is_system": False,
        "description": "Company administrator with every module permission.",
        "permissions": all_catalog_permissions(),
    },
    {
        "name": "Accountant",
        "is_system": False,
        "description": "Invoice and payment management.",
        "permissions": [
            *_group("invoices"),
            *_group("informal_payments"),
            *_group("suppliers"),
            Permission("projects", "read", "company"),
            Permission("reports", "read", "company"),
            Permission("reports", "export", "company"),
        ],
    },
    {
        "name": "Project Manager",
        "is_system": False,
        "description": "Project and invoice management.",
        "permissions": [
            *_group("projects"),
            *_group("invoices"),
            Permission("subcontractors", "read", "company"),
            Permission("suppliers", "read", "company"),
            Permission("reports", "read", "company"),
        ],
    },
    {
        "name": "Viewer",
        "is_system": False,
        "description": "Read-only access to every module.",
        "permissions": [
            Permission(group.permissions[0].resource, "read", "company")
            for group in sorted(PERMISSION_GROUPS, key=lambda g: g.order)
        ],
    },
]
