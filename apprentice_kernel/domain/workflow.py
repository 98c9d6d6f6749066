"""
Canonical workflow types (``apprentice_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for review state machines.  Both the OTJ log and the
evidence lifecycles are declared with these types so that Guard,
Transition, and Workflow are defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``terminal_states`` have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the review engine does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``owner_only=True`` means only the resource owner may fire it; otherwise
    the access policy names the roles allowed to fire it.
    ``requires_feedback=True`` marks a rejecting transition, which must
    produce exactly one feedback record.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    owner_only: bool = False
    requires_feedback: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a reviewable record.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions)

    def source_states(self, action: str) -> tuple[str, ...]:
        """States from which ``action`` may fire, in declaration order."""
        return tuple(t.from_state for t in self.transitions if t.action == action)
