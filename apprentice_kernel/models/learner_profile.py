"""
Module: apprentice_kernel.models.learner_profile
Responsibility: ORM persistence for learner profiles, the single source of
    learner-to-staff associations.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One profile per learner: UNIQUE(learner_id).
    - At most one tutor, IQA and training provider per learner (one column
      each).
    - Profiles are never deleted: ORM delete raises
      ImmutabilityViolationError.

Failure modes:
    - IntegrityError on a second profile for the same learner.
    - ImmutabilityViolationError on DELETE.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import TrackedBase, UUIDString
from apprentice_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from apprentice_kernel.domain.access import LearnerAssociations
    from apprentice_kernel.domain.dtos import LearnerProfileInfo


class LearnerProfile(TrackedBase):
    """Learner profile carrying the learner's tutor, IQA and provider links."""

    __tablename__ = "learner_profiles"

    __table_args__ = (
        Index("ix_learner_profiles_tutor", "tutor_id"),
        Index("ix_learner_profiles_iqa", "iqa_id"),
        Index("ix_learner_profiles_training_provider", "training_provider_id"),
    )

    learner_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    tutor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    iqa_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    training_provider_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    standard_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<LearnerProfile learner={self.learner_id}>"

    def to_associations(self) -> LearnerAssociations:
        from apprentice_kernel.domain.access import LearnerAssociations

        return LearnerAssociations(
            learner_id=self.learner_id,
            tutor_id=self.tutor_id,
            iqa_id=self.iqa_id,
            training_provider_id=self.training_provider_id,
        )

    def to_dto(self) -> LearnerProfileInfo:
        """Convert ORM model to frozen domain DTO."""
        from apprentice_kernel.domain.dtos import LearnerProfileInfo

        return LearnerProfileInfo(
            id=self.id,
            learner_id=self.learner_id,
            tutor_id=self.tutor_id,
            iqa_id=self.iqa_id,
            training_provider_id=self.training_provider_id,
            standard_code=self.standard_code,
            start_date=self.start_date,
        )


@event.listens_for(LearnerProfile, "before_delete")
def prevent_profile_delete(mapper, connection, target):
    """Prevent deletion of learner profiles."""
    raise ImmutabilityViolationError(
        entity_type="LearnerProfile",
        entity_id=str(target.learner_id),
        reason="Learner profiles are never deleted",
    )
