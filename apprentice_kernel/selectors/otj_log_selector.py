"""
Module: apprentice_kernel.selectors.otj_log_selector
Responsibility: Read-side queries over OTJ log entries: per-learner lists
    (optionally bounded by activity date), actor-scoped listings and hours
    summaries with weekly progress.
Architecture position: Kernel > Selectors.  Read-only.

Access is the caller's concern except in ``list_for_actor``, which scopes
its result to the learners the actor may see.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from apprentice_kernel.domain.dtos import (
    OtjHoursSummary,
    OtjLogEntryInfo,
    OtjWeeklyProgress,
)
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.review_workflows import OtjCategory, OtjLogStatus
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.models.otj_log import OtjLogEntry
from apprentice_kernel.selectors.association_resolver import AssociationResolver
from apprentice_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50

DEFAULT_MINIMUM_WEEKLY_HOURS = Decimal("6")

_ZERO = Decimal("0")


def weekly_progress(
    entries: list[OtjLogEntryInfo],
    start_date: date,
    as_of: date,
    minimum_weekly_hours: Decimal,
) -> tuple[OtjWeeklyProgress, ...]:
    """Bucket entries into seven-day weeks from ``start_date`` through ``as_of``.

    Weeks with no entries are reported with zero hours.  Rejected entries
    and entries outside the window are ignored.
    """
    if as_of < start_date:
        return ()

    week_count = (as_of - start_date).days // 7 + 1
    hours = [_ZERO] * week_count
    approved = [_ZERO] * week_count

    for entry in entries:
        if entry.status == OtjLogStatus.REJECTED.value:
            continue
        if not start_date <= entry.activity_date <= as_of:
            continue
        index = (entry.activity_date - start_date).days // 7
        hours[index] += entry.hours
        if entry.status == OtjLogStatus.APPROVED.value:
            approved[index] += entry.hours

    return tuple(
        OtjWeeklyProgress(
            week_number=index + 1,
            week_start=start_date + timedelta(weeks=index),
            week_end=start_date + timedelta(weeks=index, days=6),
            hours=hours[index],
            approved_hours=approved[index],
            meets_minimum=hours[index] >= minimum_weekly_hours,
        )
        for index in range(week_count)
    )


class OtjLogSelector(BaseSelector[OtjLogEntry]):

    def get(self, entry_id: UUID) -> OtjLogEntryInfo:
        return self._get_dto(OtjLogEntry, "otj_log", entry_id)

    def list_for_learner(
        self,
        learner_id: UUID,
        status: OtjLogStatus | str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[OtjLogEntryInfo]:
        """Entries for one learner, newest activity first.

        ``start_date`` and ``end_date`` bound the activity date, inclusive.
        """
        stmt = (
            select(OtjLogEntry)
            .where(OtjLogEntry.learner_id == learner_id)
            .order_by(OtjLogEntry.activity_date.desc(), OtjLogEntry.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(OtjLogEntry.status == OtjLogStatus(status).value)
        if start_date is not None:
            stmt = stmt.where(OtjLogEntry.activity_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(OtjLogEntry.activity_date <= end_date)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def list_for_actor(
        self,
        actor: Actor,
        policy: AccessPolicy | None = None,
        status: OtjLogStatus | str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[OtjLogEntryInfo]:
        """One page of the entries visible to ``actor``.

        Superusers see every entry.  Everyone else sees their own entries
        plus those of learners associated with them.
        """
        stmt = select(OtjLogEntry).order_by(
            OtjLogEntry.activity_date.desc(), OtjLogEntry.id,
        )
        if status is not None:
            stmt = stmt.where(OtjLogEntry.status == OtjLogStatus(status).value)

        if not actor.is_superuser:
            learner_ids = set(
                AssociationResolver(self.session).learner_ids_for(actor, policy)
            )
            learner_ids.add(actor.actor_id)
            stmt = stmt.where(OtjLogEntry.learner_id.in_(learner_ids))

        stmt = stmt.limit(page_size).offset((max(page, 1) - 1) * page_size)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def summarize_hours(
        self,
        learner_id: UUID,
        start_date: date | None = None,
        as_of: date | None = None,
        minimum_weekly_hours: Decimal = DEFAULT_MINIMUM_WEEKLY_HOURS,
    ) -> OtjHoursSummary:
        """Hours per status and per KSB for one learner.

        With both ``start_date`` and ``as_of`` the summary also carries
        weekly progress against ``minimum_weekly_hours``.
        """
        entries = self.list_for_learner(learner_id)

        by_status: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        by_ksb: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        iqa_verified = _ZERO
        enrichment = _ZERO

        for entry in entries:
            by_status[entry.status] += entry.hours
            if entry.ksb_code:
                by_ksb[entry.ksb_code] += entry.hours
            if entry.is_iqa_verified:
                iqa_verified += entry.hours
            if entry.category == OtjCategory.ENRICHMENT.value:
                enrichment += entry.hours

        weekly: tuple[OtjWeeklyProgress, ...] = ()
        if start_date is not None and as_of is not None:
            weekly = weekly_progress(entries, start_date, as_of, minimum_weekly_hours)

        return OtjHoursSummary(
            learner_id=learner_id,
            total_hours=sum((e.hours for e in entries), _ZERO),
            draft_hours=by_status[OtjLogStatus.DRAFT.value],
            submitted_hours=by_status[OtjLogStatus.SUBMITTED.value],
            approved_hours=by_status[OtjLogStatus.APPROVED.value],
            rejected_hours=by_status[OtjLogStatus.REJECTED.value],
            iqa_verified_hours=iqa_verified,
            enrichment_hours=enrichment,
            entry_count=len(entries),
            hours_by_ksb=tuple(sorted(by_ksb.items())),
            minimum_weekly_hours=minimum_weekly_hours,
            weekly=weekly,
        )
