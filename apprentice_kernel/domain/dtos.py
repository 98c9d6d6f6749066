"""
Read-side record types (``apprentice_kernel.domain.dtos``).

Frozen snapshots returned by services and selectors.  ORM models convert
into these with ``to_dto()`` so callers never hold a live session object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class LearnerProfileInfo:
    id: UUID
    learner_id: UUID
    tutor_id: UUID | None = None
    iqa_id: UUID | None = None
    training_provider_id: UUID | None = None
    standard_code: str | None = None
    start_date: date | None = None


@dataclass(frozen=True)
class OtjLogEntryInfo:
    """Snapshot of an OTJ log entry.

    ``is_iqa_verified`` is derived; an IQA-stamped entry has status
    ``approved`` and a populated ``iqa_verifier_id``.
    """

    id: UUID
    learner_id: UUID
    activity_date: date
    hours: Decimal
    description: str
    category: str
    status: str
    ksb_code: str | None = None
    submitted_at: datetime | None = None
    verifier_id: UUID | None = None
    verification_date: datetime | None = None
    iqa_verifier_id: UUID | None = None
    iqa_verification_date: datetime | None = None
    rejected_at: datetime | None = None

    @property
    def is_iqa_verified(self) -> bool:
        return self.iqa_verifier_id is not None


@dataclass(frozen=True)
class EvidenceItemInfo:
    id: UUID
    learner_id: UUID
    title: str
    evidence_type: str
    status: str
    description: str | None = None
    reflection: str | None = None
    external_link: str | None = None
    submitted_at: datetime | None = None
    reviewer_id: UUID | None = None
    review_started_at: datetime | None = None
    approved_at: datetime | None = None
    revision_requested_at: datetime | None = None


@dataclass(frozen=True)
class FeedbackItemInfo:
    id: UUID
    sender_id: UUID
    recipient_id: UUID
    message: str
    related_item_type: str
    related_item_id: UUID
    date: datetime


@dataclass(frozen=True)
class TaskInfo:
    id: UUID
    assigned_to_id: UUID
    assigned_by_id: UUID
    title: str
    status: str
    due_date: date | None = None


@dataclass(frozen=True)
class LearningGoalInfo:
    id: UUID
    learner_id: UUID
    title: str
    status: str
    description: str | None = None
    target_date: date | None = None


@dataclass(frozen=True)
class OtjWeeklyProgress:
    """Logged hours for one week counted from the learner's start date.

    ``hours`` excludes rejected entries; ``approved_hours`` is the verified
    share of it.
    """

    week_number: int
    week_start: date
    week_end: date
    hours: Decimal
    approved_hours: Decimal
    meets_minimum: bool


@dataclass(frozen=True)
class OtjHoursSummary:
    """Hours per status for one learner, split by category.

    ``weekly`` is empty when the learner has no profile start date.
    """

    learner_id: UUID
    total_hours: Decimal
    draft_hours: Decimal
    submitted_hours: Decimal
    approved_hours: Decimal
    rejected_hours: Decimal
    iqa_verified_hours: Decimal
    enrichment_hours: Decimal
    entry_count: int
    hours_by_ksb: tuple[tuple[str, Decimal], ...] = ()
    minimum_weekly_hours: Decimal | None = None
    weekly: tuple[OtjWeeklyProgress, ...] = ()

    @property
    def weeks_below_minimum(self) -> int:
        return sum(1 for week in self.weekly if not week.meets_minimum)
