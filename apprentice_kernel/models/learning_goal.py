"""
Module: apprentice_kernel.models.learning_goal
Responsibility: ORM persistence for learner goals.  Owned by the learner for
    access decisions.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from apprentice_kernel.domain.dtos import LearningGoalInfo


class LearningGoal(TrackedBase):
    __tablename__ = "learning_goals"

    __table_args__ = (
        Index("ix_learning_goals_learner", "learner_id"),
    )

    learner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="in_progress",
    )

    def __repr__(self) -> str:
        return f"<LearningGoal {self.id} learner={self.learner_id}>"

    def to_dto(self) -> LearningGoalInfo:
        from apprentice_kernel.domain.dtos import LearningGoalInfo

        return LearningGoalInfo(
            id=self.id,
            learner_id=self.learner_id,
            title=self.title,
            status=self.status,
            description=self.description,
            target_date=self.target_date,
        )
