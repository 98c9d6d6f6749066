"""
Tests for the pure review transition engine.

Tests cover:
- check_eligibility: owner-only actions, policy roles, self-review ban
- resolve_transition: state matching, guard evaluation, verdict codes
- Forbidden vs invalid-state classification
"""

from uuid import uuid4

import pytest

from apprentice_engines.review import (
    VerdictCode,
    check_eligibility,
    resolve_transition,
)
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.review_workflows import (
    EVIDENCE_WORKFLOW,
    IQA_STAMP_OPEN,
    OTJ_LOG_WORKFLOW,
)
from apprentice_kernel.domain.roles import Actor, Role

POLICY = AccessPolicy.default()


@pytest.fixture
def owner():
    return Actor(actor_id=uuid4(), role=Role.LEARNER)


def resolve(workflow, action, state, actor, owner_id, guard_results=None):
    return resolve_transition(
        workflow=workflow,
        action=action,
        current_state=state,
        actor=actor,
        owner_id=owner_id,
        policy=POLICY,
        guard_results=guard_results,
    )


class TestEligibility:
    def test_owner_may_submit(self, owner):
        verdict = check_eligibility(
            OTJ_LOG_WORKFLOW, "submit", owner, owner.actor_id, POLICY,
        )
        assert verdict.allowed

    def test_admin_may_not_submit_for_learner(self, owner):
        admin = Actor(actor_id=uuid4(), role=Role.ADMIN)
        verdict = check_eligibility(
            OTJ_LOG_WORKFLOW, "submit", admin, owner.actor_id, POLICY,
        )
        assert verdict.code == VerdictCode.NOT_OWNER
        assert verdict.is_forbidden

    def test_learner_may_not_verify(self, owner):
        other = Actor(actor_id=uuid4(), role=Role.LEARNER)
        verdict = check_eligibility(
            OTJ_LOG_WORKFLOW, "verify", other, owner.actor_id, POLICY,
        )
        assert verdict.code == VerdictCode.ROLE_NOT_PERMITTED

    def test_iqa_may_not_first_tier_verify(self, owner):
        iqa = Actor(actor_id=uuid4(), role=Role.IQA)
        verdict = check_eligibility(
            OTJ_LOG_WORKFLOW, "verify", iqa, owner.actor_id, POLICY,
        )
        assert verdict.code == VerdictCode.ROLE_NOT_PERMITTED

    def test_self_review_forbidden_even_for_superuser(self):
        admin = Actor(actor_id=uuid4(), role=Role.ADMIN)
        verdict = check_eligibility(
            EVIDENCE_WORKFLOW, "approve", admin, admin.actor_id, POLICY,
        )
        assert verdict.code == VerdictCode.SELF_REVIEW
        assert verdict.is_forbidden

    def test_unknown_action(self, owner):
        verdict = check_eligibility(
            OTJ_LOG_WORKFLOW, "archive", owner, owner.actor_id, POLICY,
        )
        assert verdict.code == VerdictCode.UNKNOWN_ACTION


class TestResolveTransition:
    def test_verify_from_submitted(self, owner):
        assessor = Actor(actor_id=uuid4(), role=Role.ASSESSOR)
        verdict = resolve(OTJ_LOG_WORKFLOW, "verify", "submitted", assessor, owner.actor_id)
        assert verdict.allowed
        assert verdict.transition.to_state == "approved"

    def test_verify_from_draft_is_invalid_state(self, owner):
        assessor = Actor(actor_id=uuid4(), role=Role.ASSESSOR)
        verdict = resolve(OTJ_LOG_WORKFLOW, "verify", "draft", assessor, owner.actor_id)
        assert verdict.code == VerdictCode.INVALID_STATE
        assert not verdict.is_forbidden
        assert verdict.expected_states == ("submitted",)

    def test_eligibility_checked_before_state(self, owner):
        learner = Actor(actor_id=uuid4(), role=Role.LEARNER)
        verdict = resolve(OTJ_LOG_WORKFLOW, "verify", "draft", learner, owner.actor_id)
        assert verdict.code == VerdictCode.ROLE_NOT_PERMITTED

    def test_iqa_verify_guard_holds(self, owner):
        iqa = Actor(actor_id=uuid4(), role=Role.IQA)
        verdict = resolve(
            OTJ_LOG_WORKFLOW, "iqa_verify", "approved", iqa, owner.actor_id,
            guard_results={IQA_STAMP_OPEN.name: True},
        )
        assert verdict.allowed
        assert verdict.transition.to_state == "approved"

    def test_iqa_verify_guard_fails(self, owner):
        iqa = Actor(actor_id=uuid4(), role=Role.IQA)
        verdict = resolve(
            OTJ_LOG_WORKFLOW, "iqa_verify", "approved", iqa, owner.actor_id,
            guard_results={IQA_STAMP_OPEN.name: False},
        )
        assert verdict.code == VerdictCode.GUARD_FAILED
        assert not verdict.is_forbidden
        assert verdict.transition is not None

    def test_missing_guard_result_counts_as_failed(self, owner):
        iqa = Actor(actor_id=uuid4(), role=Role.IQA)
        verdict = resolve(OTJ_LOG_WORKFLOW, "iqa_verify", "approved", iqa, owner.actor_id)
        assert verdict.code == VerdictCode.GUARD_FAILED

    def test_resubmit_from_needs_revision(self, owner):
        verdict = resolve(
            EVIDENCE_WORKFLOW, "submit", "needs_revision", owner, owner.actor_id,
        )
        assert verdict.allowed
        assert verdict.transition.from_state == "needs_revision"

    def test_nothing_leaves_rejected(self, owner):
        assessor = Actor(actor_id=uuid4(), role=Role.ASSESSOR)
        for action in ("verify", "reject"):
            verdict = resolve(OTJ_LOG_WORKFLOW, action, "rejected", assessor, owner.actor_id)
            assert verdict.code == VerdictCode.INVALID_STATE
