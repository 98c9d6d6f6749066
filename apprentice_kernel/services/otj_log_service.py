"""
apprentice_kernel.services.otj_log_service -- OTJ log verification lifecycle.

Responsibility:
    Create and edit draft OTJ log entries for a learner, and drive the
    two-tier verification workflow: learner submit, tutor/provider verify
    or reject, then IQA sign-off.

Architecture position:
    Kernel > Services.  Delegates visibility to AccessPolicyService,
    transition legality to the pure review engine, and rejection feedback
    to FeedbackService.

Invariants enforced:
    - Every operation checks visibility before the state machine runs.
    - No self-verification at either tier.
    - IQA sign-off only on an approved entry that has a first-tier
      verifier and no IQA stamp yet; status stays approved.
    - Content edits and deletion only while draft, owner only.
    - reject writes exactly one FeedbackItem in the same transaction.

Failure modes:
    - AccessDeniedError: actor may not see the entry.
    - ForbiddenTransitionError: role or ownership ineligible.
    - InvalidStateError: wrong source state, or a concurrent caller won.
    - ResourceLockedError: owner edit after the entry left draft.
    - ValidationError: malformed hours, category or field names.
    - EmptyFeedbackError: reject without a message.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from apprentice_kernel.domain.clock import Clock
from apprentice_kernel.domain.dtos import OtjHoursSummary, OtjLogEntryInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.domain.review_workflows import (
    DELETE,
    EDIT,
    IQA_STAMP_OPEN,
    IQA_VERIFY,
    OTJ_DELETABLE_STATES,
    OTJ_EDITABLE_STATES,
    OTJ_LOG_WORKFLOW,
    REJECT,
    SUBMIT,
    VERIFY,
    OtjCategory,
    OtjLogStatus,
    RelatedItemType,
)
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.exceptions import (
    ForbiddenTransitionError,
    ProfileNotFoundError,
    ResourceLockedError,
    ValidationError,
)
from apprentice_kernel.logging_config import get_logger
from apprentice_kernel.models.otj_log import OtjLogEntry
from apprentice_kernel.selectors.association_resolver import AssociationResolver
from apprentice_kernel.selectors.otj_log_selector import (
    DEFAULT_MINIMUM_WEEKLY_HOURS,
    DEFAULT_PAGE_SIZE,
    OtjLogSelector,
)
from apprentice_kernel.services.access_policy_service import AccessPolicyService
from apprentice_kernel.services.base import ReviewServiceBase
from apprentice_kernel.services.feedback_service import FeedbackService
from apprentice_kernel.services.notification import Notifier

logger = get_logger("services.otj_log")

MAX_HOURS_PER_ENTRY = Decimal("24")

OTJ_CONTENT_FIELDS: frozenset[str] = frozenset(
    {"activity_date", "hours", "description", "category", "ksb_code"}
)


def _validate_hours(hours: Any) -> Decimal:
    try:
        value = Decimal(str(hours))
    except (InvalidOperation, ValueError):
        raise ValidationError("hours", f"not a number: {hours!r}") from None
    if not value.is_finite() or value <= 0 or value > MAX_HOURS_PER_ENTRY:
        raise ValidationError("hours", f"must be > 0 and <= {MAX_HOURS_PER_ENTRY}")
    return value


def _validate_category(category: Any) -> str:
    try:
        return OtjCategory(category).value
    except ValueError:
        raise ValidationError("category", f"unknown category: {category!r}") from None


def _validate_description(description: Any) -> str:
    if not isinstance(description, str) or not description.strip():
        raise ValidationError("description", "must not be blank")
    return description.strip()


def _validate_activity_date(activity_date: Any) -> date:
    if not isinstance(activity_date, date):
        raise ValidationError("activity_date", "must be a date")
    return activity_date


_VALIDATORS = {
    "activity_date": _validate_activity_date,
    "hours": _validate_hours,
    "description": _validate_description,
    "category": _validate_category,
    "ksb_code": lambda v: v or None,
}


class OtjLogService(ReviewServiceBase[OtjLogEntry]):
    """OTJ log entry lifecycle for one request-scoped session."""

    model = OtjLogEntry
    workflow = OTJ_LOG_WORKFLOW
    resource_kind = ResourceKind.OTJ_LOG

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
        self._selector = OtjLogSelector(session)

    # -----------------------------------------------------------------
    # Content
    # -----------------------------------------------------------------

    def create_entry(
        self,
        actor: Actor,
        learner_id: UUID,
        activity_date: date,
        hours: Decimal | str | int,
        description: str,
        category: OtjCategory | str = OtjCategory.OTJ,
        ksb_code: str | None = None,
    ) -> OtjLogEntryInfo:
        """Create a draft entry for ``learner_id``.

        The learner may log their own hours; an associated elevated actor
        or a superuser may log on the learner's behalf.
        """
        with self._bind_log_context(actor, self.resource_kind, None):
            if actor.actor_id != learner_id:
                self._access.require_owner_access(actor, ResourceKind.PROFILE, learner_id)

            entry = OtjLogEntry(
                learner_id=learner_id,
                activity_date=_validate_activity_date(activity_date),
                hours=_validate_hours(hours),
                description=_validate_description(description),
                category=_validate_category(category),
                ksb_code=ksb_code or None,
                status=OtjLogStatus.DRAFT.value,
                created_by_id=actor.actor_id,
            )
            self.session.add(entry)
            self.session.flush()

            logger.info(
                "otj_log_created",
                extra={
                    "entry_id": str(entry.id),
                    "learner_id": str(learner_id),
                    "hours": str(entry.hours),
                    "category": entry.category,
                },
            )
            return entry.to_dto()

    def update_entry(
        self,
        actor: Actor,
        entry_id: UUID,
        **changes: Any,
    ) -> OtjLogEntryInfo:
        """Edit content fields of the actor's own draft entry.

        Raises:
            ForbiddenTransitionError: actor is not the owner.
            ResourceLockedError: entry is no longer a draft.
            ValidationError: unknown field or bad value.
        """
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)

            if actor.actor_id != entry.learner_id:
                raise ForbiddenTransitionError(
                    self.entity_type, str(entry.id), EDIT,
                    str(actor.actor_id), "only the owner may edit an entry",
                )
            if entry.status not in OTJ_EDITABLE_STATES:
                raise ResourceLockedError(self.entity_type, str(entry.id), entry.status)

            values = self._validated_changes(changes)
            if values:
                self._update_content(actor, entry, values)

            logger.info(
                "otj_log_updated",
                extra={"entry_id": str(entry.id), "fields": sorted(values)},
            )
            return entry.to_dto()

    def delete_entry(self, actor: Actor, entry_id: UUID) -> None:
        """Delete the actor's own draft entry.

        Raises:
            ForbiddenTransitionError: not the owner, or not a draft.
        """
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)

            if actor.actor_id != entry.learner_id:
                raise ForbiddenTransitionError(
                    self.entity_type, str(entry.id), DELETE,
                    str(actor.actor_id), "only the owner may delete an entry",
                )
            if entry.status not in OTJ_DELETABLE_STATES:
                raise ForbiddenTransitionError(
                    self.entity_type, str(entry.id), DELETE,
                    str(actor.actor_id),
                    f"entry in state '{entry.status}' cannot be deleted",
                )

            self._delete_if_status(entry, OtjLogStatus.DRAFT.value)
            logger.info("otj_log_deleted", extra={"entry_id": str(entry_id)})

    # -----------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------

    def submit(self, actor: Actor, entry_id: UUID) -> OtjLogEntryInfo:
        """draft -> submitted, owner only."""
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)
            transition = self._resolve(actor, entry, SUBMIT)

            self._swap(actor, entry, transition, {"submitted_at": self._clock.now()})

            logger.info("otj_log_submitted", extra={"entry_id": str(entry.id)})
            return entry.to_dto()

    def verify(self, actor: Actor, entry_id: UUID) -> OtjLogEntryInfo:
        """submitted -> approved, stamping the first-tier verifier."""
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)
            transition = self._resolve(actor, entry, VERIFY)

            self._swap(
                actor, entry, transition,
                {
                    "verifier_id": actor.actor_id,
                    "verification_date": self._clock.now(),
                },
            )

            logger.info(
                "otj_log_verified",
                extra={
                    "entry_id": str(entry.id),
                    "verifier_id": str(actor.actor_id),
                    "learner_id": str(entry.learner_id),
                },
            )
            return entry.to_dto()

    def iqa_verify(self, actor: Actor, entry_id: UUID) -> OtjLogEntryInfo:
        """IQA sign-off of an approved entry; status stays approved.

        A non-superuser must be the IQA named on the learner's profile.
        """
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)
            self._require_eligible(actor, entry, IQA_VERIFY)
            if not actor.is_superuser:
                self._require_designated_iqa(actor, entry)

            transition = self._resolve(
                actor, entry, IQA_VERIFY,
                guard_results={
                    IQA_STAMP_OPEN.name: (
                        entry.verifier_id is not None
                        and entry.iqa_verifier_id is None
                    ),
                },
            )

            self._swap(
                actor, entry, transition,
                {
                    "iqa_verifier_id": actor.actor_id,
                    "iqa_verification_date": self._clock.now(),
                },
                OtjLogEntry.verifier_id.is_not(None),
                OtjLogEntry.iqa_verifier_id.is_(None),
            )

            logger.info(
                "otj_log_iqa_verified",
                extra={
                    "entry_id": str(entry.id),
                    "iqa_verifier_id": str(actor.actor_id),
                    "verifier_id": str(entry.verifier_id),
                },
            )
            return entry.to_dto()

    def reject(
        self,
        actor: Actor,
        entry_id: UUID,
        feedback_message: str,
    ) -> OtjLogEntryInfo:
        """submitted -> rejected, with exactly one FeedbackItem to the learner."""
        with self._bind_log_context(actor, self.resource_kind, entry_id):
            entry = self._load_for_update(entry_id)
            self._access.require_access(actor, self.resource_kind, entry)
            transition = self._resolve(actor, entry, REJECT)
            message = self._feedback.require_message(
                RelatedItemType.OTJ_LOG, entry.id, feedback_message,
            )

            self._swap(actor, entry, transition, {"rejected_at": self._clock.now()})
            feedback = self._feedback.record_rejection(
                sender_id=actor.actor_id,
                recipient_id=entry.learner_id,
                related_item_type=RelatedItemType.OTJ_LOG,
                related_item_id=entry.id,
                message=message,
            )

            logger.info(
                "otj_log_rejected",
                extra={
                    "entry_id": str(entry.id),
                    "rejected_by": str(actor.actor_id),
                    "feedback_id": str(feedback.id),
                },
            )
            return entry.to_dto()

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def get_entry(self, actor: Actor, entry_id: UUID) -> OtjLogEntryInfo:
        entry = self._selector.get(entry_id)
        self._access.require_access(actor, self.resource_kind, entry)
        return entry

    def list_visible(
        self,
        actor: Actor,
        status: OtjLogStatus | str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[OtjLogEntryInfo]:
        return self._selector.list_for_actor(
            actor, self._policy, status=status, page=page, page_size=page_size,
        )

    def list_for_learner(
        self,
        actor: Actor,
        learner_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        status: OtjLogStatus | str | None = None,
    ) -> list[OtjLogEntryInfo]:
        """One learner's entries with activity dates in the inclusive range.

        Raises:
            AccessDeniedError: actor may not see the learner's records.
            ValidationError: ``start_date`` is after ``end_date``.
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError("start_date", "must not be after end_date")
        self._access.require_owner_access(actor, self.resource_kind, learner_id)
        return self._selector.list_for_learner(learner_id, status, start_date, end_date)

    def hours_summary(
        self,
        actor: Actor,
        learner_id: UUID,
        minimum_weekly_hours: Decimal | str | int = DEFAULT_MINIMUM_WEEKLY_HOURS,
    ) -> OtjHoursSummary:
        """Hours totals plus weekly progress since the profile start date.

        Weeks run from the learner's ``start_date`` through today on the
        service clock.  No start date means no weekly buckets.
        """
        self._access.require_owner_access(actor, ResourceKind.PROFILE, learner_id)
        try:
            minimum = Decimal(str(minimum_weekly_hours))
        except (InvalidOperation, ValueError):
            raise ValidationError(
                "minimum_weekly_hours", f"not a number: {minimum_weekly_hours!r}",
            ) from None
        if not minimum.is_finite() or minimum < 0:
            raise ValidationError("minimum_weekly_hours", "must be a non-negative number")

        profile = self._resolver.find_profile(learner_id)
        return self._selector.summarize_hours(
            learner_id,
            start_date=profile.start_date if profile is not None else None,
            as_of=self._clock.today(),
            minimum_weekly_hours=minimum,
        )

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _require_designated_iqa(self, actor: Actor, entry: OtjLogEntry) -> None:
        try:
            iqa_id = self._resolver.resolve_associations(entry.learner_id).iqa_id
        except ProfileNotFoundError:
            iqa_id = None
        if iqa_id != actor.actor_id:
            raise ForbiddenTransitionError(
                self.entity_type, str(entry.id), IQA_VERIFY,
                str(actor.actor_id), "actor is not the learner's designated IQA",
            )

    @staticmethod
    def _validated_changes(changes: dict[str, Any]) -> dict[str, Any]:
        unknown = set(changes) - OTJ_CONTENT_FIELDS
        if unknown:
            raise ValidationError(
                ", ".join(sorted(unknown)), "not an editable entry field",
            )
        return {name: _VALIDATORS[name](value) for name, value in changes.items()}
