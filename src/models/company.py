# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Company (tenant) model."""

from __future__ import annotations

import uuid as uuid_lib
from typing import TYPE_CHECKING

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.role import Role
    from src.models.user import User


class Company(Base, TimestampMixin):
    """A tenant. The ``company`` permission scope stops at this boundary."""

    __tablename__ = "companies"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Relationships
    users: Mapped[list[User]] = relationship("User", back_populates="company")
    roles: Mapped[list[Role]] = relationship(
        "Role",
        back_populates="company",
        cascade="all, delete-orphan",
    )
