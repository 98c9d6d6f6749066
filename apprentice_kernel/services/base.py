"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer, plus the compare-and-swap and
    workflow-trace machinery shared by the review services.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    May import domain/, models/, selectors/, and apprentice_engines.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.
    - Snapshot then swap: a review transition loads one row snapshot
      (SELECT ... FOR UPDATE), decides on it, then applies
      ``UPDATE ... WHERE id = :id AND status = :expected``.  A swap that
      matches no row means another caller moved the resource first; that
      caller wins and this one gets InvalidStateError.

Failure modes:
    - If a subclass calls ``session.commit()`` the status change and its
      feedback record are no longer atomic.
"""

from __future__ import annotations

import time
from abc import ABC
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from apprentice_engines.review import TransitionVerdict, check_eligibility, resolve_transition
from apprentice_kernel.db.base import Base
from apprentice_kernel.domain.clock import Clock, SystemClock
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.domain.workflow import Transition, Workflow
from apprentice_kernel.exceptions import (
    EntityNotFoundError,
    ForbiddenTransitionError,
    InvalidStateError,
)
from apprentice_kernel.logging_config import LogContext, get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.workflow")

# Trace message and outcome codes for structured logging
TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_FORBIDDEN = "forbidden"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_CONCURRENT_CONFLICT = "concurrent_conflict"


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: UUID,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    if outcome == OUTCOME_SUCCESS:
        logger.info("workflow_transition", extra=record)
    else:
        logger.warning("workflow_transition", extra=record)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide plain query methods -- those belong in
          ``apprentice_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session


class ReviewServiceBase(BaseService[ModelType]):
    """Shared machinery for services that drive a review workflow.

    Subclasses set ``model``, ``workflow`` and ``resource_kind``.
    """

    model: ClassVar[type[Base]]
    workflow: ClassVar[Workflow]
    resource_kind: ClassVar[ResourceKind]

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: AccessPolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._policy = policy or AccessPolicy.default()

    @property
    def entity_type(self) -> str:
        return self.resource_kind.value

    def _load_for_update(self, entity_id: UUID) -> ModelType:
        """Load one fresh, row-locked snapshot.

        Raises:
            EntityNotFoundError: if no row has ``entity_id``.
        """
        entity = self.session.execute(
            select(self.model)
            .where(self.model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entity is None:
            raise EntityNotFoundError(self.entity_type, str(entity_id))
        return entity

    def _require_eligible(
        self,
        actor: Actor,
        entity: ModelType,
        action: str,
    ) -> None:
        """Role and ownership check for ``action`` without looking at state."""
        verdict = check_eligibility(
            self.workflow, action, actor, entity.learner_id, self._policy,
        )
        if not verdict.allowed:
            self._refuse(actor, entity, action, verdict, time.monotonic())

    def _resolve(
        self,
        actor: Actor,
        entity: ModelType,
        action: str,
        guard_results: dict[str, bool] | None = None,
    ) -> Transition:
        """Run the review engine on the snapshot and raise on refusal."""
        t0 = time.monotonic()
        verdict = resolve_transition(
            workflow=self.workflow,
            action=action,
            current_state=entity.status,
            actor=actor,
            owner_id=entity.learner_id,
            policy=self._policy,
            guard_results=guard_results,
        )
        if not verdict.allowed:
            self._refuse(actor, entity, action, verdict, t0)
        return verdict.transition

    def _refuse(
        self,
        actor: Actor,
        entity: ModelType,
        action: str,
        verdict: TransitionVerdict,
        t0: float,
    ) -> None:
        outcome = (
            OUTCOME_FORBIDDEN if verdict.is_forbidden
            else OUTCOME_GUARD_FAILED if verdict.transition is not None
            else OUTCOME_NO_TRANSITION
        )
        _emit_workflow_trace(
            workflow_name=self.workflow.name,
            action=action,
            entity_type=self.entity_type,
            entity_id=entity.id,
            from_state=entity.status,
            outcome=outcome,
            reason=verdict.reason,
            duration_ms=(time.monotonic() - t0) * 1000,
        )
        if verdict.is_forbidden:
            raise ForbiddenTransitionError(
                self.entity_type, str(entity.id), action,
                str(actor.actor_id), verdict.reason,
            )
        raise InvalidStateError(
            self.entity_type, str(entity.id), action,
            entity.status, verdict.expected_states,
        )

    def _swap(
        self,
        actor: Actor,
        entity: ModelType,
        transition: Transition,
        values: dict[str, Any],
        *extra_criteria: Any,
    ) -> None:
        """Apply ``transition`` as a compare-and-swap update.

        Raises:
            InvalidStateError: if the row is no longer in
                ``transition.from_state`` (or an extra criterion fails).
        """
        t0 = time.monotonic()
        result = self.session.execute(
            update(self.model)
            .where(
                self.model.id == entity.id,
                self.model.status == transition.from_state,
                *extra_criteria,
            )
            .values(
                status=transition.to_state,
                updated_by_id=actor.actor_id,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.refresh(entity)
            _emit_workflow_trace(
                workflow_name=self.workflow.name,
                action=transition.action,
                entity_type=self.entity_type,
                entity_id=entity.id,
                from_state=transition.from_state,
                outcome=OUTCOME_CONCURRENT_CONFLICT,
                reason="resource left the source state before the update",
                duration_ms=(time.monotonic() - t0) * 1000,
            )
            raise InvalidStateError(
                self.entity_type, str(entity.id), transition.action,
                entity.status, (transition.from_state,),
            )

        self.session.refresh(entity)
        _emit_workflow_trace(
            workflow_name=self.workflow.name,
            action=transition.action,
            entity_type=self.entity_type,
            entity_id=entity.id,
            from_state=transition.from_state,
            outcome=OUTCOME_SUCCESS,
            reason="",
            duration_ms=(time.monotonic() - t0) * 1000,
            to_state=transition.to_state,
        )

    def _update_content(
        self,
        actor: Actor,
        entity: ModelType,
        values: dict[str, Any],
    ) -> None:
        """Write content fields, guarded on the status seen in the snapshot."""
        expected = entity.status
        result = self.session.execute(
            update(self.model)
            .where(self.model.id == entity.id, self.model.status == expected)
            .values(updated_by_id=actor.actor_id, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.refresh(entity)
            raise InvalidStateError(
                self.entity_type, str(entity.id), "edit",
                entity.status, (expected,),
            )
        self.session.refresh(entity)

    def _delete_if_status(self, entity: ModelType, expected: str) -> None:
        """Delete the row only if it is still in ``expected`` status."""
        result = self.session.execute(
            delete(self.model)
            .where(self.model.id == entity.id, self.model.status == expected)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.refresh(entity)
            raise InvalidStateError(
                self.entity_type, str(entity.id), "delete",
                entity.status, (expected,),
            )
        self.session.expunge(entity)

    @staticmethod
    def _bind_log_context(actor: Actor, kind: ResourceKind, entity_id: UUID | None):
        return LogContext.bind(
            actor_id=str(actor.actor_id),
            actor_role=actor.role.value,
            resource_kind=kind.value,
            resource_id=str(entity_id) if entity_id is not None else None,
        )
