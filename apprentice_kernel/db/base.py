"""
Module: apprentice_kernel.db.base
Responsibility: Declarative base for every ORM model in the kernel.
Architecture position: Kernel > DB.  Lowest import target inside the
    kernel; must not import models, services, selectors or domain.

Column conventions:
    - Primary keys, learner ids and actor ids are UUIDs stored as
      String(36) so the same schema runs on PostgreSQL and SQLite.
    - Training hours are ``Decimal`` mapped to Numeric(9, 2), never float.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, 36-character string in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(9, 2),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Base for learner-owned records and profiles.

    ``created_by_id`` is the actor who inserted the row and is required;
    ``updated_by_id`` is the actor behind the latest status change or edit.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
