# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Activity log schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ActivityUserSchema(BaseModel):
    """Short user reference embedded in a log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str | None
    email: str


class ActivityLogSchema(BaseModel):
    """One activity log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID | None
    company_id: uuid.UUID | None
    action_type: str
    resource_type: str
    resource_id: str | None
    description: str | None
    changes: dict[str, Any]
    meta: dict[str, Any]
    created_at: datetime
    user: ActivityUserSchema | None = None


class ActivityLogListResponse(BaseModel):
    """A page of activity logs."""

    logs: list[ActivityLogSchema]
    total: int


class ActivityStatsResponse(BaseModel):
    """Activity counts."""

    by_action: dict[str, int]
    by_resource: dict[str, int]
    total: int
