# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Permission record model."""

import uuid as uuid_lib

from sqlalchemy import String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class Permission(Base, TimestampMixin):
    """A stored ``(resource, action, scope)`` grant.

    Roles reference these through ``role_permissions``; users may reference
    additional ones by id in ``users.custom_permissions``.
    """

    __tablename__ = "permissions"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    resource: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("resource", "action", "scope", name="_permission_triple_uc"),
    )

    @property
    def code(self) -> str:
        return f"{self.resource}.{self.action}.{self.scope}"
