# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Activity log: recording user actions and querying them back."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from src.models import ActivityAction, ActivityLog, ActivityResource
from src.models.base import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class ActivityEntry:
    """One activity to record."""

    action_type: ActivityAction
    resource_type: ActivityResource
    user_id: str | None = None
    company_id: str | None = None
    resource_id: str | None = None
    description: str | None = None
    changes: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    """Receives activity entries. Callers never wait on or inspect the outcome."""

    def record(self, entry: ActivityEntry) -> None: ...


@dataclass
class ActivityLogFilters:
    """Filters for :func:`get_activity_logs`."""

    user_id: uuid.UUID | None = None
    company_id: uuid.UUID | None = None
    action_type: ActivityAction | None = None
    resource_type: ActivityResource | None = None
    resource_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0


def _as_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(value)


def log_activity(db: Session, entry: ActivityEntry) -> uuid.UUID | None:
    """Persist an activity entry.

    Returns the new log id, or None if it could not be written. Never raises
    for database errors.
    """
    try:
        log = ActivityLog(
            user_id=_as_uuid(entry.user_id),
            company_id=_as_uuid(entry.company_id),
            action_type=ActivityAction(entry.action_type).value,
            resource_type=ActivityResource(entry.resource_type).value,
            resource_id=entry.resource_id,
            description=entry.description
            or generate_description(entry.action_type, entry.resource_type),
            changes=entry.changes,
            meta={**entry.metadata, "timestamp": utcnow().isoformat()},
        )
        db.add(log)
        db.commit()
        return log.id
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error logging activity: {e}")
        return None


class ActivityLogSink:
    """Audit sink writing to the ``activity_logs`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(self, entry: ActivityEntry) -> None:
        log_activity(self.db, entry)


def _filtered(db: Session, filters: ActivityLogFilters):
    query = db.query(ActivityLog)
    if filters.user_id:
        query = query.filter(ActivityLog.user_id == filters.user_id)
    if filters.company_id:
        query = query.filter(ActivityLog.company_id == filters.company_id)
    if filters.action_type:
        query = query.filter(
            ActivityLog.action_type == ActivityAction(filters.action_type).value
        )
    if filters.resource_type:
        query = query.filter(
            ActivityLog.resource_type == ActivityResource(filters.resource_type).value
        )
    if filters.resource_id:
        query = query.filter(ActivityLog.resource_id == filters.resource_id)
    if filters.start_date:
        query = query.filter(ActivityLog.created_at >= filters.start_date)
    if filters.end_date:
        query = query.filter(ActivityLog.created_at <= filters.end_date)
    if filters.search:
        query = query.filter(ActivityLog.description.ilike(f"%{filters.search}%"))
    return query


def get_activity_logs(
    db: Session, filters: ActivityLogFilters | None = None
) -> tuple[list[ActivityLog], int]:
    """Get activity logs, newest first, with the total matching count."""
    filters = filters or ActivityLogFilters()
    query = _filtered(db, filters)
    total = query.count()
    logs = (
        query.options(joinedload(ActivityLog.user))
        .order_by(ActivityLog.created_at.desc())
        .offset(filters.offset)
        .limit(filters.limit)
        .all()
    )
    return logs, total


def get_resource_activity_logs(
    db: Session,
    resource_type: ActivityResource,
    resource_id: str,
    limit: int = 20,
) -> list[ActivityLog]:
    """History of one record, for detail pages."""
    logs, _ = get_activity_logs(
        db,
        ActivityLogFilters(
            resource_type=resource_type, resource_id=resource_id, limit=limit
        ),
    )
    return logs


def get_activity_stats(
    db: Session,
    company_id: uuid.UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict[str, Any]:
    """Count activities by action type and by resource type."""
    filters = ActivityLogFilters(
        company_id=company_id, start_date=start_date, end_date=end_date
    )
    base = _filtered(db, filters)

    by_action = dict(
        base.with_entities(ActivityLog.action_type, func.count(ActivityLog.id))
        .group_by(ActivityLog.action_type)
        .all()
    )
    by_resource = dict(
        base.with_entities(ActivityLog.resource_type, func.count(ActivityLog.id))
        .group_by(ActivityLog.resource_type)
        .all()
    )
    return {
        "by_action": by_action,
        "by_resource": by_resource,
        "total": sum(by_action.values()),
    }


def get_recent_activities(
    db: Session, limit: int = 10, company_id: uuid.UUID | None = None
) -> list[ActivityLog]:
    """Activities from the last 24 hours."""
    logs, _ = get_activity_logs(
        db,
        ActivityLogFilters(
            company_id=company_id,
            start_date=utcnow() - timedelta(days=1),
            limit=limit,
        ),
    )
    return logs


_RESOURCE_LABELS = {
    ActivityResource.PROJECT: "project",
    ActivityResource.INVOICE: "invoice",
    ActivityResource.USER: "user",
    ActivityResource.ROLE: "role",
    ActivityResource.SUBCONTRACTOR: "subcontractor",
    ActivityResource.SUPPLIER: "supplier",
    ActivityResource.INFORMAL_PAYMENT: "informal payment",
    ActivityResource.PAYMENT: "payment",
    ActivityResource.FILE: "file",
}


def generate_description(
    action: ActivityAction,
    resource: ActivityResource,
    resource_name: str | None = None,
) -> str:
    """Human readable description, e.g. ``Project "Villa" created``."""
    action = ActivityAction(action)
    resource = ActivityResource(resource)

    if action == ActivityAction.LOGIN:
        return "Signed in"
    if action == ActivityAction.LOGOUT:
        return "Signed out"
    if action == ActivityAction.ASSIGN:
        return "Assignment made"
    if action == ActivityAction.UNASSIGN:
        return "Assignment removed"

    label = _RESOURCE_LABELS.get(resource, "record")
    verbs = {
        ActivityAction.CREATE: "created",
        ActivityAction.UPDATE: "updated",
        ActivityAction.DELETE: "deleted",
        ActivityAction.UPLOAD: "uploaded",
        ActivityAction.DOWNLOAD: "downloaded",
        ActivityAction.VIEW: "viewed",
    }
    verb = verbs.get(action, "changed")
    if resource_name:
        return f'{label.capitalize()} "{resource_name}" {verb}'
    return f"{label.capitalize()} {verb}"
