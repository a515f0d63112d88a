# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Activity log API endpoints."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.deps import company_filter, get_db, require_capability
from src.auth.session_context import SessionContext
from src.models import ActivityAction, ActivityResource
from src.schemas.activity import (
    ActivityLogListResponse,
    ActivityLogSchema,
    ActivityStatsResponse,
)
from src.services import activity_service
from src.services.activity_service import ActivityLogFilters

router = APIRouter()


@router.get("", response_model=ActivityLogListResponse)
def list_activity_logs(
    user_id: uuid.UUID | None = None,
    action_type: ActivityAction | None = None,
    resource_type: ActivityResource | None = None,
    resource_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("activity_logs", "read")),
) -> ActivityLogListResponse:
    """List activity logs of the caller's company, newest first."""
    logs, total = activity_service.get_activity_logs(
        db,
        ActivityLogFilters(
            user_id=user_id,
            company_id=company_filter(context),
            action_type=action_type,
            resource_type=resource_type,
            resource_id=resource_id,
            start_date=start_date,
            end_date=end_date,
            search=search,
            limit=limit,
            offset=offset,
        ),
    )
    return ActivityLogListResponse(
        logs=[ActivityLogSchema.model_validate(log) for log in logs],
        total=total,
    )


@router.get("/stats", response_model=ActivityStatsResponse)
def get_activity_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("activity_logs", "read")),
) -> ActivityStatsResponse:
    """Count activities by action and by resource type."""
    stats = activity_service.get_activity_stats(
        db,
        company_id=company_filter(context),
        start_date=start_date,
        end_date=end_date,
    )
    return ActivityStatsResponse(**stats)


@router.get("/recent", response_model=list[ActivityLogSchema])
def get_recent_activities(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    context: SessionContext = Depends(require_capability("activity_logs", "read")),
) -> list[ActivityLogSchema]:
    """Activities of the last 24 hours."""
    logs = activity_service.get_recent_activities(
        db, limit=limit, company_id=company_filter(context)
    )
    return [ActivityLogSchema.model_validate(log) for log in logs]
