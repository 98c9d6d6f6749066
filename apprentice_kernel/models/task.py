"""
Module: apprentice_kernel.models.task
Responsibility: ORM persistence for tasks assigned to learners.  Tasks are
    owned by their assignee for access decisions.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from apprentice_kernel.domain.dtos import TaskInfo


class Task(TrackedBase):
    __tablename__ = "tasks"

    __table_args__ = (
        Index("ix_tasks_assigned_to", "assigned_to_id", "status"),
    )

    assigned_to_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    assigned_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    def __repr__(self) -> str:
        return f"<Task {self.id} assigned_to={self.assigned_to_id}>"

    def to_dto(self) -> TaskInfo:
        from apprentice_kernel.domain.dtos import TaskInfo

        return TaskInfo(
            id=self.id,
            assigned_to_id=self.assigned_to_id,
            assigned_by_id=self.assigned_by_id,
            title=self.title,
            status=self.status,
            due_date=self.due_date,
        )
