"""
Tests for OtjLogService -- OTJ log verification lifecycle.

Covers:
- create/update/delete of draft entries: validation, owner-only edits,
  lock after submission
- submit, verify, iqa_verify, reject: happy paths and stamps
- No self-verification at either tier
- IQA sign-off: designated IQA only, first tier required, replay refused
- Rejection writes exactly one feedback item; a blank message changes nothing
- Concurrent transition loser gets InvalidStateError
- Notifier failure rolls back status and feedback together
- Hours summary, weekly progress, date-range and paged listings
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select, text

from apprentice_kernel.domain.dtos import FeedbackItemInfo, OtjLogEntryInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.review_workflows import OtjLogStatus
from apprentice_kernel.domain.roles import Actor, Role
from apprentice_kernel.exceptions import (
    AccessDeniedError,
    EmptyFeedbackError,
    EntityNotFoundError,
    ForbiddenTransitionError,
    InvalidStateError,
    ResourceLockedError,
    ValidationError,
)
from apprentice_kernel.models.feedback import FeedbackItem
from apprentice_kernel.models.otj_log import OtjLogEntry
from apprentice_kernel.selectors.otj_log_selector import weekly_progress
from apprentice_kernel.services.otj_log_service import OtjLogService


class FailingNotifier:
    def notify(self, feedback: FeedbackItemInfo) -> None:
        raise RuntimeError("notification channel unavailable")


def feedback_count(session, entry_id) -> int:
    return session.execute(
        select(func.count()).select_from(FeedbackItem)
        .where(FeedbackItem.related_item_id == entry_id)
    ).scalar_one()


# ---------------------------------------------------------------------------
# Draft content
# ---------------------------------------------------------------------------


class TestCreateEntry:
    def test_learner_creates_draft(self, draft_entry, learner):
        assert draft_entry.status == OtjLogStatus.DRAFT.value
        assert draft_entry.learner_id == learner.actor_id
        assert draft_entry.hours == Decimal("7.5")
        assert draft_entry.category == "otj"
        assert draft_entry.verifier_id is None

    @pytest.mark.parametrize("hours", ["0", "-1", "24.5", "abc"])
    def test_hours_out_of_range_rejected(self, otj_service, learner, learner_profile, hours):
        with pytest.raises(ValidationError) as exc_info:
            otj_service.create_entry(
                learner, learner.actor_id, date(2026, 1, 5), hours, "Workshop",
            )
        assert exc_info.value.field == "hours"

    def test_full_day_accepted(self, otj_service, learner, learner_profile):
        entry = otj_service.create_entry(
            learner, learner.actor_id, date(2026, 1, 5), 24, "Residential block",
        )
        assert entry.hours == Decimal("24")

    def test_unknown_category_rejected(self, otj_service, learner, learner_profile):
        with pytest.raises(ValidationError):
            otj_service.create_entry(
                learner, learner.actor_id, date(2026, 1, 5), 2, "Reading",
                category="leisure",
            )

    def test_blank_description_rejected(self, otj_service, learner, learner_profile):
        with pytest.raises(ValidationError):
            otj_service.create_entry(learner, learner.actor_id, date(2026, 1, 5), 2, "   ")

    def test_tutor_may_log_for_associated_learner(self, otj_service, tutor, learner, learner_profile):
        entry = otj_service.create_entry(
            tutor, learner.actor_id, date(2026, 1, 6), 3, "Coached on site",
        )
        assert entry.learner_id == learner.actor_id

    def test_unassociated_assessor_may_not_log(
        self, otj_service, outsider_assessor, learner, learner_profile,
    ):
        with pytest.raises(AccessDeniedError) as exc_info:
            otj_service.create_entry(
                outsider_assessor, learner.actor_id, date(2026, 1, 6), 3, "Coached",
            )
        assert exc_info.value.decision_code == "deny_not_associated"


class TestUpdateEntry:
    def test_owner_edits_draft(self, otj_service, learner, draft_entry):
        updated = otj_service.update_entry(
            learner, draft_entry.id, hours="6", description="Half day shadowing",
        )
        assert updated.hours == Decimal("6")
        assert updated.description == "Half day shadowing"

    def test_edit_after_submit_is_locked(self, otj_service, learner, submitted_entry):
        with pytest.raises(ResourceLockedError) as exc_info:
            otj_service.update_entry(learner, submitted_entry.id, hours="6")
        assert exc_info.value.status == "submitted"

    def test_tutor_may_not_edit_learner_entry(self, otj_service, tutor, draft_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.update_entry(tutor, draft_entry.id, hours="1")

    def test_status_is_not_an_editable_field(self, otj_service, learner, draft_entry):
        with pytest.raises(ValidationError):
            otj_service.update_entry(learner, draft_entry.id, status="approved")


class TestDeleteEntry:
    def test_owner_deletes_draft(self, otj_service, learner, draft_entry):
        otj_service.delete_entry(learner, draft_entry.id)
        with pytest.raises(EntityNotFoundError):
            otj_service.get_entry(learner, draft_entry.id)

    def test_submitted_entry_cannot_be_deleted(self, otj_service, learner, submitted_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.delete_entry(learner, submitted_entry.id)

    def test_admin_cannot_delete_learner_entry(self, otj_service, admin, draft_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.delete_entry(admin, draft_entry.id)


# ---------------------------------------------------------------------------
# Verification lifecycle
# ---------------------------------------------------------------------------


class TestSubmit:
    def test_submit_stamps_time(self, submitted_entry, deterministic_clock):
        assert submitted_entry.status == "submitted"
        assert submitted_entry.submitted_at == deterministic_clock.now()

    def test_only_owner_submits(self, otj_service, tutor, draft_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.submit(tutor, draft_entry.id)

    def test_double_submit_is_invalid_state(self, otj_service, learner, submitted_entry):
        with pytest.raises(InvalidStateError) as exc_info:
            otj_service.submit(learner, submitted_entry.id)
        assert exc_info.value.current_state == "submitted"
        assert exc_info.value.expected_states == ("draft",)


class TestVerify:
    def test_tutor_verifies(self, approved_entry, tutor, deterministic_clock):
        assert approved_entry.status == "approved"
        assert approved_entry.verifier_id == tutor.actor_id
        assert approved_entry.verification_date == deterministic_clock.now()
        assert not approved_entry.is_iqa_verified

    def test_training_provider_verifies(self, otj_service, provider, submitted_entry):
        entry = otj_service.verify(provider, submitted_entry.id)
        assert entry.verifier_id == provider.actor_id

    def test_iqa_cannot_first_tier_verify(self, otj_service, iqa, submitted_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.verify(iqa, submitted_entry.id)

    def test_unassociated_assessor_denied_before_state_machine(
        self, otj_service, outsider_assessor, draft_entry,
    ):
        # Draft would be an invalid state; access is decided first.
        with pytest.raises(AccessDeniedError):
            otj_service.verify(outsider_assessor, draft_entry.id)

    def test_verify_draft_is_invalid_state(self, otj_service, tutor, draft_entry):
        with pytest.raises(InvalidStateError):
            otj_service.verify(tutor, draft_entry.id)

    def test_verify_missing_entry(self, otj_service, tutor):
        with pytest.raises(EntityNotFoundError):
            otj_service.verify(tutor, uuid4())

    def test_trace_logged(self, otj_service, tutor, submitted_entry, captured_logs):
        otj_service.verify(tutor, submitted_entry.id)
        traces = [
            r for r in captured_logs()
            if r["message"] == "workflow_transition" and r["action"] == "verify"
        ]
        assert traces[-1]["outcome"] == "success"
        assert traces[-1]["from_state"] == "submitted"
        assert traces[-1]["to_state"] == "approved"
        assert traces[-1]["actor_id"] == str(tutor.actor_id)


class TestNoSelfVerification:
    def test_assessor_cannot_verify_own_entry(
        self, otj_service, make_actor, make_profile, admin,
    ):
        # An assessor who is also recorded as a learner with a profile.
        dual = make_actor(Role.ASSESSOR)
        make_profile(dual.actor_id)
        as_learner = Actor(actor_id=dual.actor_id, role=Role.LEARNER)
        entry = otj_service.create_entry(
            as_learner, dual.actor_id, date(2026, 1, 8), 2, "Self study",
        )
        otj_service.submit(as_learner, entry.id)

        with pytest.raises(ForbiddenTransitionError) as exc_info:
            otj_service.verify(dual, entry.id)
        assert "own" in exc_info.value.reason

    def test_admin_cannot_iqa_verify_own_entry(self, otj_service, admin, make_profile, tutor):
        make_profile(admin.actor_id, tutor_id=tutor.actor_id)
        entry = otj_service.create_entry(
            admin, admin.actor_id, date(2026, 1, 9), 1, "Compliance refresher",
        )
        otj_service.submit(admin, entry.id)
        otj_service.verify(tutor, entry.id)

        with pytest.raises(ForbiddenTransitionError):
            otj_service.iqa_verify(admin, entry.id)


class TestIqaVerify:
    def test_designated_iqa_stamps_approved_entry(
        self, otj_service, iqa, tutor, approved_entry, deterministic_clock,
    ):
        entry = otj_service.iqa_verify(iqa, approved_entry.id)
        assert entry.status == "approved"
        assert entry.is_iqa_verified
        assert entry.iqa_verifier_id == iqa.actor_id
        assert entry.iqa_verification_date == deterministic_clock.now()
        assert entry.verifier_id == tutor.actor_id

    def test_replay_is_invalid_state(self, otj_service, iqa, approved_entry):
        otj_service.iqa_verify(iqa, approved_entry.id)
        with pytest.raises(InvalidStateError):
            otj_service.iqa_verify(iqa, approved_entry.id)

    def test_submitted_entry_cannot_be_iqa_verified(self, otj_service, iqa, submitted_entry):
        with pytest.raises(InvalidStateError):
            otj_service.iqa_verify(iqa, submitted_entry.id)

    def test_unassociated_iqa_denied(self, otj_service, make_actor, approved_entry):
        with pytest.raises(AccessDeniedError):
            otj_service.iqa_verify(make_actor(Role.IQA), approved_entry.id)

    def test_visible_but_not_designated_iqa_forbidden(
        self, session, deterministic_clock, policy, make_actor, make_profile,
        tutor, iqa,
    ):
        # A deployment that lets an IQA see learners through the provider link.
        wide = AccessPolicy(
            association_fields={
                **policy.association_fields,
                Role.IQA: ("iqa_id", "training_provider_id"),
            },
            transition_roles=policy.transition_roles,
            profile_admin_roles=policy.profile_admin_roles,
        )
        other_iqa = make_actor(Role.IQA)
        learner = make_actor(Role.LEARNER)
        make_profile(
            learner.actor_id,
            tutor_id=tutor.actor_id,
            iqa_id=iqa.actor_id,
            training_provider_id=other_iqa.actor_id,
        )
        service = OtjLogService(session, deterministic_clock, wide)
        entry = service.create_entry(learner, learner.actor_id, date(2026, 1, 12), 4, "Lab")
        service.submit(learner, entry.id)
        service.verify(tutor, entry.id)

        with pytest.raises(ForbiddenTransitionError) as exc_info:
            service.iqa_verify(other_iqa, entry.id)
        assert "designated" in exc_info.value.reason

    def test_assessor_cannot_iqa_verify(self, otj_service, tutor, approved_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.iqa_verify(tutor, approved_entry.id)

    def test_superuser_may_iqa_verify_without_designation(
        self, otj_service, admin, approved_entry,
    ):
        entry = otj_service.iqa_verify(admin, approved_entry.id)
        assert entry.iqa_verifier_id == admin.actor_id

    def test_replay_logs_guard_failure(self, otj_service, iqa, approved_entry, captured_logs):
        otj_service.iqa_verify(iqa, approved_entry.id)
        with pytest.raises(InvalidStateError):
            otj_service.iqa_verify(iqa, approved_entry.id)
        outcomes = [
            r["outcome"] for r in captured_logs()
            if r["message"] == "workflow_transition" and r["action"] == "iqa_verify"
        ]
        assert outcomes[-1] == "guard_failed"


class TestReject:
    def test_reject_writes_one_feedback(
        self, otj_service, session, tutor, learner, submitted_entry, notifier,
        deterministic_clock,
    ):
        entry = otj_service.reject(tutor, submitted_entry.id, "  Add the KSB mapping  ")

        assert entry.status == "rejected"
        assert entry.rejected_at == deterministic_clock.now()
        assert feedback_count(session, entry.id) == 1

        (delivered,) = notifier.delivered
        assert delivered.message == "Add the KSB mapping"
        assert delivered.sender_id == tutor.actor_id
        assert delivered.recipient_id == learner.actor_id
        assert delivered.related_item_type == "otj_log"
        assert delivered.related_item_id == entry.id

    def test_blank_feedback_leaves_entry_untouched(
        self, otj_service, session, tutor, submitted_entry, notifier,
    ):
        session.commit()
        with pytest.raises(EmptyFeedbackError):
            otj_service.reject(tutor, submitted_entry.id, "   ")
        session.commit()

        session.expire_all()
        entry = session.get(OtjLogEntry, submitted_entry.id)
        assert entry.status == "submitted"
        assert entry.rejected_at is None
        assert feedback_count(session, submitted_entry.id) == 0
        assert notifier.delivered == []

    def test_rejected_is_terminal(self, otj_service, tutor, learner, submitted_entry):
        otj_service.reject(tutor, submitted_entry.id, "Wrong date")
        with pytest.raises(InvalidStateError):
            otj_service.verify(tutor, submitted_entry.id)
        with pytest.raises(InvalidStateError):
            otj_service.submit(learner, submitted_entry.id)

    def test_iqa_may_not_reject_approved_entry(self, otj_service, iqa, approved_entry):
        with pytest.raises(InvalidStateError):
            otj_service.reject(iqa, approved_entry.id, "Does not meet standard")

    def test_learner_cannot_reject(self, otj_service, learner, submitted_entry):
        with pytest.raises(ForbiddenTransitionError):
            otj_service.reject(learner, submitted_entry.id, "Never mind")


# ---------------------------------------------------------------------------
# Concurrency and atomicity
# ---------------------------------------------------------------------------


class TestCompareAndSwap:
    def test_loser_of_concurrent_transition_gets_invalid_state(
        self, otj_service, session, tutor, submitted_entry, monkeypatch, captured_logs,
    ):
        load = OtjLogService._load_for_update

        def load_then_lose_race(service, entry_id):
            entity = load(service, entry_id)
            # Another reviewer rejects between our snapshot and our swap.
            session.execute(
                text("UPDATE otj_log_entries SET status = 'rejected' WHERE id = :id"),
                {"id": str(entry_id)},
            )
            return entity

        monkeypatch.setattr(OtjLogService, "_load_for_update", load_then_lose_race)

        with pytest.raises(InvalidStateError) as exc_info:
            otj_service.verify(tutor, submitted_entry.id)

        assert exc_info.value.current_state == "rejected"
        assert session.get(OtjLogEntry, submitted_entry.id).verifier_id is None
        outcomes = [
            r["outcome"] for r in captured_logs()
            if r["message"] == "workflow_transition"
        ]
        assert outcomes[-1] == "concurrent_conflict"


class TestAtomicity:
    def test_notifier_failure_rolls_back_reject(
        self, session, deterministic_clock, policy, tutor, submitted_entry,
    ):
        failing = OtjLogService(session, deterministic_clock, policy, FailingNotifier())
        session.commit()

        with pytest.raises(RuntimeError):
            failing.reject(tutor, submitted_entry.id, "Missing evidence")
        session.rollback()

        assert session.get(OtjLogEntry, submitted_entry.id).status == "submitted"
        assert feedback_count(session, submitted_entry.id) == 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    def test_hours_summary(self, otj_service, learner, tutor, iqa, learner_profile):
        def log(hours, category="otj", ksb="K1"):
            return otj_service.create_entry(
                learner, learner.actor_id, date(2026, 1, 20), hours, "Work",
                category=category, ksb_code=ksb,
            )

        a = log("3")
        b = log("2", category="enrichment", ksb="S2")
        log("1.5")
        for entry in (a, b):
            otj_service.submit(learner, entry.id)
            otj_service.verify(tutor, entry.id)
        otj_service.iqa_verify(iqa, a.id)

        summary = otj_service.hours_summary(tutor, learner.actor_id)
        assert summary.total_hours == Decimal("6.5")
        assert summary.approved_hours == Decimal("5")
        assert summary.draft_hours == Decimal("1.5")
        assert summary.iqa_verified_hours == Decimal("3")
        assert summary.enrichment_hours == Decimal("2")
        assert summary.entry_count == 3
        assert dict(summary.hours_by_ksb) == {"K1": Decimal("4.5"), "S2": Decimal("2")}

    def test_hours_summary_denied_to_outsider(
        self, otj_service, outsider_assessor, learner, learner_profile,
    ):
        with pytest.raises(AccessDeniedError):
            otj_service.hours_summary(outsider_assessor, learner.actor_id)

    def test_list_visible_scopes_to_associations(
        self, otj_service, tutor, outsider_assessor, admin, draft_entry,
    ):
        assert [e.id for e in otj_service.list_visible(tutor)] == [draft_entry.id]
        assert otj_service.list_visible(outsider_assessor) == []
        assert [e.id for e in otj_service.list_visible(admin)] == [draft_entry.id]

    def test_get_entry_denied_to_other_learner(self, otj_service, make_actor, draft_entry):
        with pytest.raises(AccessDeniedError):
            otj_service.get_entry(make_actor(Role.LEARNER), draft_entry.id)

    def test_list_visible_pages_scoped_listing(
        self, otj_service, tutor, learner, learner_profile,
    ):
        created = [
            otj_service.create_entry(
                learner, learner.actor_id, date(2026, 1, day), "2", "Work",
            )
            for day in (5, 6, 7)
        ]
        newest_first = [e.id for e in reversed(created)]

        first = otj_service.list_visible(tutor, page=1, page_size=2)
        second = otj_service.list_visible(tutor, page=2, page_size=2)
        assert [e.id for e in first] == newest_first[:2]
        assert [e.id for e in second] == newest_first[2:]


class TestDateRange:
    @pytest.fixture
    def spread_entries(self, otj_service, learner, draft_entry):
        december = otj_service.create_entry(
            learner, learner.actor_id, date(2025, 12, 1), "3", "Induction",
        )
        late_january = otj_service.create_entry(
            learner, learner.actor_id, date(2026, 1, 25), "4", "Site visit",
        )
        return december, draft_entry, late_january

    def test_filters_by_activity_date(self, otj_service, tutor, learner, spread_entries):
        _, mid_january, _ = spread_entries
        entries = otj_service.list_for_learner(
            tutor, learner.actor_id, date(2026, 1, 1), date(2026, 1, 20),
        )
        assert [e.id for e in entries] == [mid_january.id]

    def test_bounds_are_inclusive(self, otj_service, learner, spread_entries):
        _, mid_january, late_january = spread_entries
        entries = otj_service.list_for_learner(
            learner, learner.actor_id, date(2026, 1, 15), date(2026, 1, 25),
        )
        assert [e.id for e in entries] == [late_january.id, mid_january.id]

    def test_open_ended_range(self, otj_service, iqa, learner, spread_entries):
        december, _, _ = spread_entries
        entries = otj_service.list_for_learner(
            iqa, learner.actor_id, end_date=date(2025, 12, 31),
        )
        assert [e.id for e in entries] == [december.id]

    def test_denied_to_unassociated_assessor(
        self, otj_service, outsider_assessor, learner, spread_entries,
    ):
        with pytest.raises(AccessDeniedError):
            otj_service.list_for_learner(
                outsider_assessor, learner.actor_id, date(2026, 1, 1), date(2026, 1, 31),
            )

    def test_inverted_range_rejected(self, otj_service, tutor, learner, learner_profile):
        with pytest.raises(ValidationError) as exc_info:
            otj_service.list_for_learner(
                tutor, learner.actor_id, date(2026, 2, 1), date(2026, 1, 1),
            )
        assert exc_info.value.field == "start_date"


class TestWeeklyProgress:
    """Profile start date is 2025-09-01 and the clock reads 2026-02-01."""

    def test_weeks_from_profile_start(self, otj_service, learner, tutor, learner_profile):
        def log(day, hours):
            return otj_service.create_entry(learner, learner.actor_id, day, hours, "Work")

        verified = log(date(2025, 9, 2), "3")
        otj_service.submit(learner, verified.id)
        otj_service.verify(tutor, verified.id)
        log(date(2025, 9, 7), "4")
        log(date(2025, 9, 9), "2")
        rejected = log(date(2025, 9, 10), "5")
        otj_service.submit(learner, rejected.id)
        otj_service.reject(tutor, rejected.id, "Duplicate of Tuesday")

        summary = otj_service.hours_summary(tutor, learner.actor_id)

        assert summary.minimum_weekly_hours == Decimal("6")
        assert len(summary.weekly) == 22
        first, second = summary.weekly[:2]
        assert (first.week_number, first.week_start, first.week_end) == (
            1, date(2025, 9, 1), date(2025, 9, 7),
        )
        assert first.hours == Decimal("7")
        assert first.approved_hours == Decimal("3")
        assert first.meets_minimum
        assert second.hours == Decimal("2")
        assert not second.meets_minimum
        assert summary.weekly[-1].week_start == date(2026, 1, 26)
        assert summary.weeks_below_minimum == 21

    def test_custom_minimum(self, otj_service, learner, learner_profile):
        otj_service.create_entry(learner, learner.actor_id, date(2025, 9, 8), "2", "Work")

        summary = otj_service.hours_summary(
            learner, learner.actor_id, minimum_weekly_hours="2",
        )
        assert summary.weekly[1].meets_minimum
        assert not summary.weekly[0].meets_minimum

    def test_negative_minimum_rejected(self, otj_service, learner, learner_profile):
        with pytest.raises(ValidationError):
            otj_service.hours_summary(learner, learner.actor_id, minimum_weekly_hours="-1")

    def test_no_profile_means_no_weeks(self, otj_service, make_actor):
        solo = make_actor(Role.LEARNER)
        otj_service.create_entry(solo, solo.actor_id, date(2026, 1, 5), "3", "Reading")

        summary = otj_service.hours_summary(solo, solo.actor_id)
        assert summary.entry_count == 1
        assert summary.weekly == ()

    def test_as_of_before_start_has_no_weeks(self):
        entry = OtjLogEntryInfo(
            id=uuid4(), learner_id=uuid4(), activity_date=date(2026, 1, 5),
            hours=Decimal("3"), description="Reading", category="otj", status="draft",
        )
        assert weekly_progress(
            [entry], date(2026, 3, 1), date(2026, 2, 1), Decimal("6"),
        ) == ()
