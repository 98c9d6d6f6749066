"""
Resource kinds (``apprentice_kernel.domain.resources``).

Responsibility
--------------
Closed set of resource-kind tags the access evaluator understands, and the
single table naming which field of each kind supplies its owner.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Every ``ResourceKind`` has exactly one owner field.
* Owner lookup works on DTOs and ORM models alike (attribute access only).
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID


class ResourceKind(str, Enum):
    """Resource kinds subject to access decisions."""

    EVIDENCE = "evidence"
    OTJ_LOG = "otj_log"
    FEEDBACK = "feedback"
    TASK = "task"
    LEARNING_GOAL = "learning_goal"
    PROFILE = "profile"


RESOURCE_OWNER_FIELDS: dict[ResourceKind, str] = {
    ResourceKind.EVIDENCE: "learner_id",
    ResourceKind.OTJ_LOG: "learner_id",
    ResourceKind.FEEDBACK: "recipient_id",
    ResourceKind.TASK: "assigned_to_id",
    ResourceKind.LEARNING_GOAL: "learner_id",
    ResourceKind.PROFILE: "learner_id",
}


def owner_of(kind: ResourceKind, resource: Any) -> UUID:
    """Return the owner identity of ``resource`` for its kind.

    Raises:
        AttributeError: if the resource lacks the kind's owner field.
    """
    return getattr(resource, RESOURCE_OWNER_FIELDS[ResourceKind(kind)])


def resource_id_of(resource: Any) -> UUID | None:
    """Best-effort identifier of a resource for logs and errors."""
    return getattr(resource, "id", None)
