"""
Notification collaborator for the feedback protocol.

The kernel hands each new FeedbackItem to a ``Notifier`` after the row is
flushed and before the caller commits.  Delivery (email, in-app) is the
implementor's concern.  A notifier that raises aborts the rejecting
transition; the caller's transaction rolls back.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from apprentice_kernel.domain.dtos import FeedbackItemInfo
from apprentice_kernel.logging_config import get_logger

logger = get_logger("services.notification")


@runtime_checkable
class Notifier(Protocol):
    def notify(self, feedback: FeedbackItemInfo) -> None:
        """Surface ``feedback`` to its recipient."""
        ...


class LoggingNotifier:
    """Default notifier: records the hand-off as a structured log event."""

    def notify(self, feedback: FeedbackItemInfo) -> None:
        logger.info(
            "feedback_notification_queued",
            extra={
                "feedback_id": str(feedback.id),
                "recipient_id": str(feedback.recipient_id),
                "related_item_type": feedback.related_item_type,
                "related_item_id": str(feedback.related_item_id),
            },
        )
