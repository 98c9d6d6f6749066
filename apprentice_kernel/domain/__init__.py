"""
Apprentice kernel domain layer.

Pure value objects: roles, actors, resource kinds, access decisions, the
access policy, workflow definitions, and read-side record types.  Nothing
here touches the database; only SystemClock reads the wall clock.
"""

from apprentice_kernel.domain.access import (
    AccessDecision,
    AccessDecisionCode,
    LearnerAssociations,
)
from apprentice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import (
    RESOURCE_OWNER_FIELDS,
    ResourceKind,
    owner_of,
)
from apprentice_kernel.domain.roles import (
    Actor,
    Role,
    is_elevated,
    is_superuser,
    parse_role,
    privilege_rank,
)
from apprentice_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "AccessDecision",
    "AccessDecisionCode",
    "AccessPolicy",
    "Actor",
    "Clock",
    "DeterministicClock",
    "Guard",
    "LearnerAssociations",
    "RESOURCE_OWNER_FIELDS",
    "ResourceKind",
    "Role",
    "SystemClock",
    "Transition",
    "Workflow",
    "is_elevated",
    "is_superuser",
    "owner_of",
    "parse_role",
    "privilege_rank",
]
