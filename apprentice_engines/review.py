"""
apprentice_engines.review -- Pure review transition resolution.

Responsibility:
    Given a workflow, an action, the resource's current state and the
    actor, decide whether the transition may fire.  Services raise on the
    returned verdict; this module never raises for a refused transition.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import apprentice_kernel/domain types.

Checks, in order:
    1. The action exists in the workflow.
    2. Eligibility: owner-only transitions need the owner; reviewer
       transitions need a policy role and an actor who is not the owner.
    3. A transition from ``current_state`` exists.
    4. The transition's guard, if any, holds in ``guard_results``.

Eligibility failures are FORBIDDEN_* verdicts.  State and guard failures
are INVALID_STATE verdicts, so replaying a transition against a resource
already past it is reported as a state error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from apprentice_engines.tracer import traced_engine
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.domain.workflow import Transition, Workflow


class VerdictCode(str, Enum):
    ALLOWED = "allowed"
    UNKNOWN_ACTION = "unknown_action"
    NOT_OWNER = "not_owner"
    ROLE_NOT_PERMITTED = "role_not_permitted"
    SELF_REVIEW = "self_review"
    INVALID_STATE = "invalid_state"
    GUARD_FAILED = "guard_failed"


FORBIDDEN_CODES: frozenset[VerdictCode] = frozenset({
    VerdictCode.UNKNOWN_ACTION,
    VerdictCode.NOT_OWNER,
    VerdictCode.ROLE_NOT_PERMITTED,
    VerdictCode.SELF_REVIEW,
})


@dataclass(frozen=True)
class TransitionVerdict:
    """Outcome of resolving one transition request."""

    code: VerdictCode
    reason: str = ""
    transition: Transition | None = None
    expected_states: tuple[str, ...] = ()

    @property
    def allowed(self) -> bool:
        return self.code == VerdictCode.ALLOWED

    @property
    def is_forbidden(self) -> bool:
        return self.code in FORBIDDEN_CODES


def check_eligibility(
    workflow: Workflow,
    action: str,
    actor: Actor,
    owner_id: UUID,
    policy: AccessPolicy,
) -> TransitionVerdict:
    """Role and ownership check for ``action``, independent of state."""
    candidates = [t for t in workflow.transitions if t.action == action]
    if not candidates:
        return TransitionVerdict(
            VerdictCode.UNKNOWN_ACTION,
            f"'{action}' is not an action of workflow '{workflow.name}'",
        )

    if candidates[0].owner_only:
        if actor.actor_id != owner_id:
            return TransitionVerdict(
                VerdictCode.NOT_OWNER,
                f"only the owner may {action}",
            )
        return TransitionVerdict(VerdictCode.ALLOWED)

    if not policy.role_may(actor.role, workflow.name, action):
        return TransitionVerdict(
            VerdictCode.ROLE_NOT_PERMITTED,
            f"role '{actor.role.value}' may not {action} {workflow.name}",
        )

    if actor.actor_id == owner_id:
        return TransitionVerdict(
            VerdictCode.SELF_REVIEW,
            f"actor may not {action} their own {workflow.name}",
        )

    return TransitionVerdict(VerdictCode.ALLOWED)


@traced_engine(
    "review", "1.0",
    fingerprint_fields=("action", "current_state", "actor", "owner_id"),
)
def resolve_transition(
    *,
    workflow: Workflow,
    action: str,
    current_state: str,
    actor: Actor,
    owner_id: UUID,
    policy: AccessPolicy,
    guard_results: dict[str, bool] | None = None,
) -> TransitionVerdict:
    """Resolve ``action`` on a resource in ``current_state``.

    Args:
        guard_results: Guard name -> whether it holds on the current
            snapshot.  A guard missing from the dict counts as failed.

    Returns:
        TransitionVerdict; ``verdict.transition`` is set when allowed.
    """
    eligibility = check_eligibility(workflow, action, actor, owner_id, policy)
    if not eligibility.allowed:
        return eligibility

    expected = workflow.source_states(action)
    transition = next(
        (t for t in workflow.transitions
         if t.action == action and t.from_state == current_state),
        None,
    )
    if transition is None:
        return TransitionVerdict(
            VerdictCode.INVALID_STATE,
            f"cannot {action} from '{current_state}'",
            expected_states=expected,
        )

    if transition.guard is not None:
        results = guard_results or {}
        if not results.get(transition.guard.name, False):
            return TransitionVerdict(
                VerdictCode.GUARD_FAILED,
                f"guard '{transition.guard.name}' not satisfied: "
                f"{transition.guard.description}",
                transition=transition,
                expected_states=expected,
            )

    return TransitionVerdict(VerdictCode.ALLOWED, transition=transition)
