"""
apprentice_kernel.services.feedback_service -- Rejection feedback protocol.

Responsibility:
    Write the single FeedbackItem that accompanies every rejecting
    transition, hand it to the notification collaborator, and serve
    access-checked feedback reads.

Architecture position:
    Kernel > Services.  Called by OtjLogService.reject and
    EvidenceService.request_revision inside their transaction.

Invariants enforced:
    - Message is non-empty after trimming (EmptyFeedbackError otherwise).
    - The row is flushed into the caller's transaction, never committed
      here.  A notifier failure propagates so the caller rolls back the
      status change with the feedback row.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from apprentice_kernel.domain.clock import Clock, SystemClock
from apprentice_kernel.domain.dtos import FeedbackItemInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.domain.review_workflows import RelatedItemType
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.exceptions import EmptyFeedbackError
from apprentice_kernel.logging_config import get_logger
from apprentice_kernel.models.feedback import FeedbackItem
from apprentice_kernel.selectors.feedback_selector import FeedbackSelector
from apprentice_kernel.selectors.resource_selector import ResourceSelector
from apprentice_kernel.services.access_policy_service import AccessPolicyService
from apprentice_kernel.services.base import BaseService
from apprentice_kernel.services.notification import LoggingNotifier, Notifier

logger = get_logger("services.feedback")

_RELATED_KINDS: dict[RelatedItemType, ResourceKind] = {
    RelatedItemType.OTJ_LOG: ResourceKind.OTJ_LOG,
    RelatedItemType.EVIDENCE: ResourceKind.EVIDENCE,
}


class FeedbackService(BaseService[FeedbackItem]):
    """Records rejection feedback and serves feedback reads."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        policy: AccessPolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._notifier = notifier or LoggingNotifier()
        self._access = AccessPolicyService(session, policy)
        self._selector = FeedbackSelector(session)

    @staticmethod
    def require_message(
        related_item_type: RelatedItemType | str,
        related_item_id: UUID,
        message: str | None,
    ) -> str:
        """Return ``message`` trimmed, or raise EmptyFeedbackError if blank.

        Rejecting transitions call this before any status change so a blank
        message leaves nothing applied.
        """
        text = (message or "").strip()
        if not text:
            raise EmptyFeedbackError(
                RelatedItemType(related_item_type).value, str(related_item_id),
            )
        return text

    def record_rejection(
        self,
        sender_id: UUID,
        recipient_id: UUID,
        related_item_type: RelatedItemType | str,
        related_item_id: UUID,
        message: str,
    ) -> FeedbackItemInfo:
        """Create the feedback row for a rejecting transition.

        Preconditions:
            Called once, after the status swap, in the same session.
            Callers validate the message with ``require_message`` first.

        Raises:
            EmptyFeedbackError: if ``message`` is blank after trimming.
            Anything the notifier raises.
        """
        related_item_type = RelatedItemType(related_item_type)
        text = self.require_message(related_item_type, related_item_id, message)

        model = FeedbackItem(
            sender_id=sender_id,
            recipient_id=recipient_id,
            message=text,
            related_item_type=related_item_type.value,
            related_item_id=related_item_id,
            date=self._clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        feedback = model.to_dto()
        logger.info(
            "feedback_recorded",
            extra={
                "feedback_id": str(feedback.id),
                "sender_id": str(sender_id),
                "recipient_id": str(recipient_id),
                "related_item_type": related_item_type.value,
                "related_item_id": str(related_item_id),
            },
        )

        self._notifier.notify(feedback)
        return feedback

    def get_feedback(self, actor: Actor, feedback_id: UUID) -> FeedbackItemInfo:
        """Raises EntityNotFoundError or AccessDeniedError."""
        feedback = self._selector.get(feedback_id)
        self._access.require_access(actor, ResourceKind.FEEDBACK, feedback)
        return feedback

    def list_for_recipient(
        self,
        actor: Actor,
        recipient_id: UUID,
    ) -> list[FeedbackItemInfo]:
        self._access.require_owner_access(actor, ResourceKind.FEEDBACK, recipient_id)
        return self._selector.list_for_recipient(recipient_id)

    def list_for_item(
        self,
        actor: Actor,
        related_item_type: RelatedItemType | str,
        related_item_id: UUID,
    ) -> list[FeedbackItemInfo]:
        """Feedback about one item; the actor must be able to see the item."""
        kind = _RELATED_KINDS[RelatedItemType(related_item_type)]
        item = ResourceSelector(self.session).get(kind, related_item_id)
        self._access.require_access(actor, kind, item)
        return self._selector.list_for_item(related_item_type, related_item_id)
