"""
Module: apprentice_kernel.selectors.resource_selector
Responsibility: Generic ``get(kind, id)`` over every resource kind the access
    evaluator understands.
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from apprentice_kernel.db.base import Base
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.models import (
    EvidenceItem,
    FeedbackItem,
    LearnerProfile,
    LearningGoal,
    OtjLogEntry,
    Task,
)
from apprentice_kernel.selectors.base import BaseSelector

RESOURCE_MODELS: dict[ResourceKind, type[Base]] = {
    ResourceKind.EVIDENCE: EvidenceItem,
    ResourceKind.OTJ_LOG: OtjLogEntry,
    ResourceKind.FEEDBACK: FeedbackItem,
    ResourceKind.TASK: Task,
    ResourceKind.LEARNING_GOAL: LearningGoal,
    ResourceKind.PROFILE: LearnerProfile,
}


class ResourceSelector(BaseSelector[Base]):
    """Load any governed resource by kind and primary key."""

    def get(self, kind: ResourceKind | str, resource_id: UUID) -> Any:
        """Return the resource DTO.

        Raises:
            ValueError: if ``kind`` is not a ResourceKind.
            EntityNotFoundError: if no row has ``resource_id``.
        """
        kind = ResourceKind(kind)
        return self._get_dto(RESOURCE_MODELS[kind], kind.value, resource_id)
