"""
Module: apprentice_kernel.models.otj_log
Responsibility: ORM persistence for off-the-job training log entries.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (backed by CHECK constraints):
    - status is one of draft, submitted, approved, rejected.
    - category is one of otj, enrichment.
    - 0 < hours <= 24.
    - The IQA stamp exists only on an approved entry with a first-tier
      verifier.
    - Neither verifier is the learner who owns the entry.

Failure modes:
    - IntegrityError when a write breaks one of the constraints above.  The
      service layer checks the same rules first, so this only fires on a
      bypass.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from apprentice_kernel.domain.dtos import OtjLogEntryInfo


class OtjLogEntry(TrackedBase):
    """One learner-recorded block of training hours."""

    __tablename__ = "otj_log_entries"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_otj_log_entries_valid_status",
        ),
        CheckConstraint(
            "category IN ('otj', 'enrichment')",
            name="ck_otj_log_entries_valid_category",
        ),
        CheckConstraint(
            "hours > 0 AND hours <= 24",
            name="ck_otj_log_entries_hours_range",
        ),
        CheckConstraint(
            "iqa_verifier_id IS NULL OR "
            "(verifier_id IS NOT NULL AND status = 'approved')",
            name="ck_otj_log_entries_iqa_after_first_tier",
        ),
        CheckConstraint(
            "verifier_id IS NULL OR verifier_id <> learner_id",
            name="ck_otj_log_entries_no_self_verify",
        ),
        CheckConstraint(
            "iqa_verifier_id IS NULL OR iqa_verifier_id <> learner_id",
            name="ck_otj_log_entries_no_self_iqa_verify",
        ),
        Index("ix_otj_log_entries_learner_status", "learner_id", "status"),
        Index("ix_otj_log_entries_activity_date", "activity_date"),
    )

    learner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="otj")
    ksb_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    verifier_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    iqa_verifier_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    iqa_verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<OtjLogEntry {self.id} learner={self.learner_id} "
            f"hours={self.hours} status={self.status}>"
        )

    def to_dto(self) -> OtjLogEntryInfo:
        """Convert ORM model to frozen domain DTO."""
        from apprentice_kernel.domain.dtos import OtjLogEntryInfo

        return OtjLogEntryInfo(
            id=self.id,
            learner_id=self.learner_id,
            activity_date=self.activity_date,
            hours=Decimal(self.hours),
            description=self.description,
            category=self.category,
            status=self.status,
            ksb_code=self.ksb_code,
            submitted_at=self.submitted_at,
            verifier_id=self.verifier_id,
            verification_date=self.verification_date,
            iqa_verifier_id=self.iqa_verifier_id,
            iqa_verification_date=self.iqa_verification_date,
            rejected_at=self.rejected_at,
        )
