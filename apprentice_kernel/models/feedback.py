"""
Module: apprentice_kernel.models.feedback
Responsibility: ORM persistence for feedback items written by rejecting
    transitions.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: ORM UPDATE and DELETE raise ImmutabilityViolationError.
    - Message is never blank (CHECK constraint on trimmed length).
    - related_item_type is one of otj_log, evidence.

Audit relevance:
    Feedback items are the learner-visible record of why work was sent
    back.  They are never auto-deleted.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from apprentice_kernel.db.base import Base, UUIDString
from apprentice_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from apprentice_kernel.domain.dtos import FeedbackItemInfo


class FeedbackItem(Base):
    """Persistent feedback record. Append-only."""

    __tablename__ = "feedback_items"

    __table_args__ = (
        CheckConstraint(
            "related_item_type IN ('otj_log', 'evidence')",
            name="ck_feedback_items_valid_item_type",
        ),
        CheckConstraint(
            "length(trim(message)) > 0",
            name="ck_feedback_items_message_not_blank",
        ),
        Index("ix_feedback_items_recipient", "recipient_id", "date"),
        Index("ix_feedback_items_related", "related_item_type", "related_item_id"),
    )

    sender_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    recipient_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    related_item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<FeedbackItem {self.id} "
            f"{self.related_item_type}={self.related_item_id}>"
        )

    def to_dto(self) -> FeedbackItemInfo:
        """Convert ORM model to frozen domain DTO."""
        from apprentice_kernel.domain.dtos import FeedbackItemInfo

        return FeedbackItemInfo(
            id=self.id,
            sender_id=self.sender_id,
            recipient_id=self.recipient_id,
            message=self.message,
            related_item_type=self.related_item_type,
            related_item_id=self.related_item_id,
            date=self.date,
        )


# =============================================================================
# ORM-Level Immutability for Feedback (Append-Only)
# =============================================================================


@event.listens_for(FeedbackItem, "before_update")
def prevent_feedback_update(mapper, connection, target):
    """Prevent updates to feedback records."""
    raise ImmutabilityViolationError(
        entity_type="FeedbackItem",
        entity_id=str(target.id),
        reason="Feedback is immutable -- cannot modify",
    )


@event.listens_for(FeedbackItem, "before_delete")
def prevent_feedback_delete(mapper, connection, target):
    """Prevent deletion of feedback records."""
    raise ImmutabilityViolationError(
        entity_type="FeedbackItem",
        entity_id=str(target.id),
        reason="Feedback is immutable -- cannot delete",
    )
