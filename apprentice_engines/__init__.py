"""
Module: apprentice_engines
Responsibility:
    Pure decision engines for access and review transitions.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import apprentice_kernel.domain (and sibling engine modules).

Invariants enforced:
    - Engines never read the clock or the database; callers pass in the
      snapshot, the actor and the policy.
    - Determinism: identical inputs always produce identical verdicts.
"""

from apprentice_engines.access import evaluate_access, is_associated
from apprentice_engines.review import (
    TransitionVerdict,
    VerdictCode,
    check_eligibility,
    resolve_transition,
)
from apprentice_engines.tracer import traced_engine

__all__ = [
    "TransitionVerdict",
    "VerdictCode",
    "check_eligibility",
    "evaluate_access",
    "is_associated",
    "resolve_transition",
    "traced_engine",
]
