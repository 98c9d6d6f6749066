"""
Pytest fixtures for the apprentice governance kernel test suite.

Provides:
- A fresh SQLite in-memory database per test (all tables created)
- A deterministic clock and a recording notifier
- Actor and learner-profile factories
- Captured structured logs

Environment Variables:
- DATABASE_URL: run the suite against another database (e.g. PostgreSQL).
  If not set, uses SQLite in memory.
"""

import json
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from apprentice_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from apprentice_kernel.domain.clock import DeterministicClock
from apprentice_kernel.domain.dtos import FeedbackItemInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.roles import Actor, Role
from apprentice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from apprentice_kernel.services.evidence_service import EvidenceService
from apprentice_kernel.services.feedback_service import FeedbackService
from apprentice_kernel.services.otj_log_service import OtjLogService
from apprentice_kernel.services.profile_service import ProfileService

DEFAULT_DATABASE_URL = "sqlite://"

# Naive: SQLite drops tzinfo on round trip, so stored timestamps compare
# equal to the clock only without it.
FIXED_NOW = datetime(2026, 2, 1, 12, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture apprentice_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, otj_service):
            otj_service.verify(assessor, entry.id)
            logs = captured_logs()
            assert any(r["message"] == "otj_log_verified" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("apprentice_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_engine():
    """Engine with every table created; dropped and disposed after the test."""
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session for one test.  Nothing is committed unless the test commits."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Collaborators
# =============================================================================


class RecordingNotifier:
    """Notifier that keeps every feedback item it is handed."""

    def __init__(self):
        self.delivered: list[FeedbackItemInfo] = []

    def notify(self, feedback: FeedbackItemInfo) -> None:
        self.delivered.append(feedback)


class FailingNotifier:
    """Notifier whose delivery always fails."""

    def notify(self, feedback: FeedbackItemInfo) -> None:
        raise RuntimeError("notification channel unavailable")


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def policy() -> AccessPolicy:
    return AccessPolicy.default()


# =============================================================================
# Actors and profiles
# =============================================================================


@pytest.fixture
def make_actor():
    """Factory: ``make_actor(Role.ASSESSOR)`` -> Actor with a fresh id."""

    def _make(role: Role | str, actor_id: UUID | None = None) -> Actor:
        return Actor(actor_id=actor_id or uuid4(), role=role)

    return _make


@pytest.fixture
def learner(make_actor) -> Actor:
    return make_actor(Role.LEARNER)


@pytest.fixture
def tutor(make_actor) -> Actor:
    """Assessor linked to ``learner`` through tutor_id."""
    return make_actor(Role.ASSESSOR)


@pytest.fixture
def iqa(make_actor) -> Actor:
    """IQA linked to ``learner`` through iqa_id."""
    return make_actor(Role.IQA)


@pytest.fixture
def provider(make_actor) -> Actor:
    """Training provider linked to ``learner``."""
    return make_actor(Role.TRAINING_PROVIDER)


@pytest.fixture
def admin(make_actor) -> Actor:
    return make_actor(Role.ADMIN)


@pytest.fixture
def outsider_assessor(make_actor) -> Actor:
    """Assessor with no link to ``learner``."""
    return make_actor(Role.ASSESSOR)


@pytest.fixture
def profile_service(session, policy) -> ProfileService:
    return ProfileService(session, policy)


@pytest.fixture
def make_profile(profile_service, admin):
    """Factory: provision a learner profile as ``admin``."""

    def _make(
        learner_id: UUID,
        tutor_id: UUID | None = None,
        iqa_id: UUID | None = None,
        training_provider_id: UUID | None = None,
    ):
        return profile_service.provision_profile(
            admin,
            learner_id,
            tutor_id=tutor_id,
            iqa_id=iqa_id,
            training_provider_id=training_provider_id,
            standard_code="ST0116",
            start_date=date(2025, 9, 1),
        )

    return _make


@pytest.fixture
def learner_profile(make_profile, learner, tutor, iqa, provider):
    """Profile linking ``learner`` to ``tutor``, ``iqa`` and ``provider``."""
    return make_profile(
        learner.actor_id,
        tutor_id=tutor.actor_id,
        iqa_id=iqa.actor_id,
        training_provider_id=provider.actor_id,
    )


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def otj_service(session, deterministic_clock, policy, notifier) -> OtjLogService:
    return OtjLogService(session, deterministic_clock, policy, notifier)


@pytest.fixture
def evidence_service(session, deterministic_clock, policy, notifier) -> EvidenceService:
    return EvidenceService(session, deterministic_clock, policy, notifier)


@pytest.fixture
def feedback_service(session, deterministic_clock, notifier, policy) -> FeedbackService:
    return FeedbackService(session, deterministic_clock, notifier, policy)


# =============================================================================
# Records in a given state
# =============================================================================


@pytest.fixture
def draft_entry(otj_service, learner, learner_profile):
    """A 7.5 hour draft OTJ entry owned by ``learner``."""
    return otj_service.create_entry(
        learner,
        learner.actor_id,
        activity_date=date(2026, 1, 15),
        hours=Decimal("7.5"),
        description="Shadowed senior engineer on network rollout",
        ksb_code="K1",
    )


@pytest.fixture
def submitted_entry(otj_service, learner, draft_entry):
    return otj_service.submit(learner, draft_entry.id)


@pytest.fixture
def approved_entry(otj_service, tutor, submitted_entry):
    return otj_service.verify(tutor, submitted_entry.id)


@pytest.fixture
def draft_evidence(evidence_service, learner, learner_profile):
    return evidence_service.create_evidence(
        learner,
        title="Firewall change record",
        evidence_type="work_product",
        description="Change ticket and rollback plan",
    )


@pytest.fixture
def submitted_evidence(evidence_service, learner, draft_evidence):
    return evidence_service.submit(learner, draft_evidence.id)


@pytest.fixture
def in_review_evidence(evidence_service, tutor, submitted_evidence):
    return evidence_service.start_review(tutor, submitted_evidence.id)
