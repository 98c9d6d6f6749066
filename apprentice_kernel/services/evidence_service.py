"""
apprentice_kernel.services.evidence_service -- Evidence review lifecycle.

Responsibility:
    Learner-owned evidence items: creation, content edits, submission, and
    single-tier review (start review, approve, request revision).

Architecture position:
    Kernel > Services.  Same collaborators as OtjLogService.

Invariants enforced:
    - Only learners create evidence; the creator owns it.
    - Approved evidence is locked: owner content edits raise
      ResourceLockedError.
    - Reviewers never review their own evidence.
    - request_revision writes exactly one FeedbackItem in the same
      transaction.
    - Only the owner deletes, and only while draft.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from apprentice_kernel.domain.clock import Clock
from apprentice_kernel.domain.dtos import EvidenceItemInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.domain.review_workflows import (
    APPROVE,
    DELETE,
    EDIT,
    EVIDENCE_DELETABLE_STATES,
    EVIDENCE_LOCKED_STATES,
    EVIDENCE_WORKFLOW,
    REQUEST_REVISION,
    START_REVIEW,
    SUBMIT,
    EvidenceStatus,
    RelatedItemType,
)
from apprentice_kernel.domain.roles import Actor, Role
from apprentice_kernel.exceptions import (
    ForbiddenTransitionError,
    ResourceLockedError,
    ValidationError,
)
from apprentice_kernel.logging_config import get_logger
from apprentice_kernel.models.evidence import EVIDENCE_CONTENT_FIELDS, EvidenceItem
from apprentice_kernel.selectors.association_resolver import AssociationResolver
from apprentice_kernel.selectors.evidence_selector import EvidenceSelector
from apprentice_kernel.services.access_policy_service import AccessPolicyService
from apprentice_kernel.services.base import ReviewServiceBase
from apprentice_kernel.services.feedback_service import FeedbackService
from apprentice_kernel.services.notification import Notifier

logger = get_logger("services.evidence")

_REQUIRED_CONTENT = frozenset({"title", "evidence_type"})


class EvidenceService(ReviewServiceBase[EvidenceItem]):
    """Evidence item lifecycle for one request-scoped session."""

    model = EvidenceItem
    workflow = EVIDENCE_WORKFLOW
    resource_kind = ResourceKind.EVIDENCE

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: AccessPolicy | None = None,
        notifier: Notifier | None = None,
    ):
        super().__init__(session, clock, policy)
        self._access = AccessPolicyService(session, self._policy)
        self._feedback = FeedbackService(session, self._clock, notifier, self._policy)
        self._resolver = AssociationResolver(session)
        self._selector = EvidenceSelector(session)

    # -----------------------------------------------------------------
    # Content
    # -----------------------------------------------------------------

    def create_evidence(
        self,
        actor: Actor,
        title: str,
        evidence_type: str,
        description: str | None = None,
        reflection: str | None = None,
        external_link: str | None = None,
    ) -> EvidenceItemInfo:
        """Create a draft evidence item owned by ``actor``.

        Raises:
            ForbiddenTransitionError: actor is not a learner.
            ValidationError: blank title or evidence type.
        """
        with self._bind_log_context(actor, self.resource_kind, None):
            if actor.role is not Role.LEARNER:
                raise ForbiddenTransitionError(
                    self.entity_type, "new", "create",
                    str(actor.actor_id), "only learners create evidence",
                )
            values = self._validated_changes({
                "title": title,
                "evidence_type": evidence_type,
                "description": description,
                "reflection": reflection,
                "external_link": external_link,
            })

            item = EvidenceItem(
                learner_id=actor.actor_id,
                status=EvidenceStatus.DRAFT.value,
                created_by_id=actor.actor_id,
                **values,
            )
            self.session.add(item)
            self.session.flush()

            logger.info(
                "evidence_created",
                extra={"evidence_id": str(item.id), "evidence_type": item.evidence_type},
            )
            return item.to_dto()

    def update_content(
        self,
        actor: Actor,
        evidence_id: UUID,
        **changes: Any,
    ) -> EvidenceItemInfo:
        """Edit content fields of the actor's own evidence.

        Raises:
            ForbiddenTransitionError: actor is not the owner.
            ResourceLockedError: the item has been approved.
            ValidationError: unknown field or blank required value.
        """
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)

            if actor.actor_id != item.learner_id:
                raise ForbiddenTransitionError(
                    self.entity_type, str(item.id), EDIT,
                    str(actor.actor_id), "only the owner may edit evidence content",
                )
            if item.status in EVIDENCE_LOCKED_STATES:
                raise ResourceLockedError(self.entity_type, str(item.id), item.status)

            values = self._validated_changes(changes)
            if values:
                self._update_content(actor, item, values)

            logger.info(
                "evidence_updated",
                extra={"evidence_id": str(item.id), "fields": sorted(values)},
            )
            return item.to_dto()

    def delete_evidence(self, actor: Actor, evidence_id: UUID) -> None:
        """Owner deletes their own draft; everything else is forbidden."""
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)

            if actor.actor_id != item.learner_id:
                raise ForbiddenTransitionError(
                    self.entity_type, str(item.id), DELETE,
                    str(actor.actor_id), "only the owner may delete evidence",
                )
            if item.status not in EVIDENCE_DELETABLE_STATES:
                raise ForbiddenTransitionError(
                    self.entity_type, str(item.id), DELETE,
                    str(actor.actor_id),
                    f"evidence in state '{item.status}' cannot be deleted",
                )

            self._delete_if_status(item, EvidenceStatus.DRAFT.value)
            logger.info("evidence_deleted", extra={"evidence_id": str(evidence_id)})

    # -----------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------

    def submit(self, actor: Actor, evidence_id: UUID) -> EvidenceItemInfo:
        """draft or needs_revision -> submitted, owner only."""
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)
            transition = self._resolve(actor, item, SUBMIT)

            self._swap(actor, item, transition, {"submitted_at": self._clock.now()})

            logger.info(
                "evidence_submitted",
                extra={"evidence_id": str(item.id), "from_state": transition.from_state},
            )
            return item.to_dto()

    def start_review(self, actor: Actor, evidence_id: UUID) -> EvidenceItemInfo:
        """submitted -> in_review, recording the reviewer."""
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)
            transition = self._resolve(actor, item, START_REVIEW)

            self._swap(
                actor, item, transition,
                {"reviewer_id": actor.actor_id, "review_started_at": self._clock.now()},
            )

            logger.info(
                "evidence_review_started",
                extra={"evidence_id": str(item.id), "reviewer_id": str(actor.actor_id)},
            )
            return item.to_dto()

    def approve(self, actor: Actor, evidence_id: UUID) -> EvidenceItemInfo:
        """in_review -> approved.  Locks content against owner edits."""
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)
            transition = self._resolve(actor, item, APPROVE)

            self._swap(
                actor, item, transition,
                {"reviewer_id": actor.actor_id, "approved_at": self._clock.now()},
            )

            logger.info(
                "evidence_approved",
                extra={"evidence_id": str(item.id), "reviewer_id": str(actor.actor_id)},
            )
            return item.to_dto()

    def request_revision(
        self,
        actor: Actor,
        evidence_id: UUID,
        feedback_message: str,
    ) -> EvidenceItemInfo:
        """submitted or in_review -> needs_revision, with one FeedbackItem."""
        with self._bind_log_context(actor, self.resource_kind, evidence_id):
            item = self._load_for_update(evidence_id)
            self._access.require_access(actor, self.resource_kind, item)
            transition = self._resolve(actor, item, REQUEST_REVISION)
            message = self._feedback.require_message(
                RelatedItemType.EVIDENCE, item.id, feedback_message,
            )

            self._swap(
                actor, item, transition,
                {
                    "reviewer_id": actor.actor_id,
                    "revision_requested_at": self._clock.now(),
                },
            )
            feedback = self._feedback.record_rejection(
                sender_id=actor.actor_id,
                recipient_id=item.learner_id,
                related_item_type=RelatedItemType.EVIDENCE,
                related_item_id=item.id,
                message=message,
            )

            logger.info(
                "evidence_revision_requested",
                extra={
                    "evidence_id": str(item.id),
                    "reviewer_id": str(actor.actor_id),
                    "feedback_id": str(feedback.id),
                },
            )
            return item.to_dto()

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def get_evidence(self, actor: Actor, evidence_id: UUID) -> EvidenceItemInfo:
        item = self._selector.get(evidence_id)
        self._access.require_access(actor, self.resource_kind, item)
        return item

    def list_for_learner(
        self,
        actor: Actor,
        learner_id: UUID,
        status: EvidenceStatus | str | None = None,
    ) -> list[EvidenceItemInfo]:
        self._access.require_owner_access(actor, self.resource_kind, learner_id)
        return self._selector.list_for_learner(learner_id, status)

    def review_queue(self, actor: Actor) -> list[EvidenceItemInfo]:
        """Submitted and in-review items of the learners ``actor`` may review."""
        learner_ids = [
            learner_id
            for learner_id in self._resolver.learner_ids_for(actor, self._policy)
            if learner_id != actor.actor_id
        ]
        return self._selector.review_queue(learner_ids)

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    @staticmethod
    def _validated_changes(changes: dict[str, Any]) -> dict[str, Any]:
        unknown = set(changes) - EVIDENCE_CONTENT_FIELDS
        if unknown:
            raise ValidationError(
                ", ".join(sorted(unknown)), "not an editable evidence field",
            )
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name in _REQUIRED_CONTENT:
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(name, "must not be blank")
                value = value.strip()
            values[name] = value
        return values
