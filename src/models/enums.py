# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Enumeration types for database models."""

from enum import Enum


class ActivityAction(str, Enum):
    """What a user did, as recorded in the activity log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    LOGIN = "login"
    LOGOUT = "logout"
    VIEW = "view"


class ActivityResource(str, Enum):
    """Kind of record an activity log entry refers to."""

    PROJECT = "project"
    INVOICE = "invoice"
    USER = "user"
    ROLE = "role"
    COMPANY = "company"
    SUBCONTRACTOR = "subcontractor"
    INFORMAL_PAYMENT = "informal_payment"
    PAYMENT = "payment"
    FILE = "file"
    INVOICE_PROJECT_LINK = "invoice_project_link"
    SUPPLIER = "supplier"
    SYSTEM = "system"
