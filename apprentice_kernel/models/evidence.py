"""
Module: apprentice_kernel.models.evidence
Responsibility: ORM persistence for learner evidence items.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status is one of draft, submitted, in_review, approved,
      needs_revision (CHECK constraint).
    - A reviewer is never the learner who owns the item (CHECK constraint).
    - Content lock after approval is enforced by EvidenceService.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from apprentice_kernel.domain.dtos import EvidenceItemInfo

# Fields the owning learner may edit.
EVIDENCE_CONTENT_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "evidence_type", "reflection", "external_link"}
)


class EvidenceItem(TrackedBase):
    """A piece of learner evidence submitted for review."""

    __tablename__ = "evidence_items"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'in_review', 'approved', "
            "'needs_revision')",
            name="ck_evidence_items_valid_status",
        ),
        CheckConstraint(
            "reviewer_id IS NULL OR reviewer_id <> learner_id",
            name="ck_evidence_items_no_self_review",
        ),
        Index("ix_evidence_items_learner_status", "learner_id", "status"),
    )

    learner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidence_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reflection: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_link: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    reviewer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    review_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    revision_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<EvidenceItem {self.id} '{self.title}' status={self.status}>"

    def to_dto(self) -> EvidenceItemInfo:
        """Convert ORM model to frozen domain DTO."""
        from apprentice_kernel.domain.dtos import EvidenceItemInfo

        return EvidenceItemInfo(
            id=self.id,
            learner_id=self.learner_id,
            title=self.title,
            evidence_type=self.evidence_type,
            status=self.status,
            description=self.description,
            reflection=self.reflection,
            external_link=self.external_link,
            submitted_at=self.submitted_at,
            reviewer_id=self.reviewer_id,
            review_started_at=self.review_started_at,
            approved_at=self.approved_at,
            revision_requested_at=self.revision_requested_at,
        )
