"""
Module: apprentice_kernel.selectors.feedback_selector
Responsibility: Read-side queries over feedback items.
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from apprentice_kernel.domain.dtos import FeedbackItemInfo
from apprentice_kernel.domain.review_workflows import RelatedItemType
from apprentice_kernel.models.feedback import FeedbackItem
from apprentice_kernel.selectors.base import BaseSelector


class FeedbackSelector(BaseSelector[FeedbackItem]):

    def get(self, feedback_id: UUID) -> FeedbackItemInfo:
        return self._get_dto(FeedbackItem, "feedback", feedback_id)

    def list_for_recipient(self, recipient_id: UUID) -> list[FeedbackItemInfo]:
        """Feedback addressed to ``recipient_id``, newest first."""
        stmt = (
            select(FeedbackItem)
            .where(FeedbackItem.recipient_id == recipient_id)
            .order_by(FeedbackItem.date.desc(), FeedbackItem.id)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def list_for_item(
        self,
        related_item_type: RelatedItemType | str,
        related_item_id: UUID,
    ) -> list[FeedbackItemInfo]:
        """Feedback about one OTJ entry or evidence item, oldest first."""
        stmt = (
            select(FeedbackItem)
            .where(
                FeedbackItem.related_item_type
                == RelatedItemType(related_item_type).value,
                FeedbackItem.related_item_id == related_item_id,
            )
            .order_by(FeedbackItem.date, FeedbackItem.id)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]
