"""
Module: apprentice_kernel.selectors.evidence_selector
Responsibility: Read-side queries over evidence items.
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from apprentice_kernel.domain.dtos import EvidenceItemInfo
from apprentice_kernel.domain.review_workflows import EvidenceStatus
from apprentice_kernel.models.evidence import EvidenceItem
from apprentice_kernel.selectors.base import BaseSelector


class EvidenceSelector(BaseSelector[EvidenceItem]):

    def get(self, evidence_id: UUID) -> EvidenceItemInfo:
        return self._get_dto(EvidenceItem, "evidence", evidence_id)

    def list_for_learner(
        self,
        learner_id: UUID,
        status: EvidenceStatus | str | None = None,
    ) -> list[EvidenceItemInfo]:
        stmt = (
            select(EvidenceItem)
            .where(EvidenceItem.learner_id == learner_id)
            .order_by(EvidenceItem.created_at.desc(), EvidenceItem.id)
        )
        if status is not None:
            stmt = stmt.where(EvidenceItem.status == EvidenceStatus(status).value)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def review_queue(self, learner_ids: list[UUID]) -> list[EvidenceItemInfo]:
        """Submitted or in-review items for the given learners, oldest first."""
        if not learner_ids:
            return []
        stmt = (
            select(EvidenceItem)
            .where(
                EvidenceItem.learner_id.in_(learner_ids),
                EvidenceItem.status.in_((
                    EvidenceStatus.SUBMITTED.value,
                    EvidenceStatus.IN_REVIEW.value,
                )),
            )
            .order_by(EvidenceItem.submitted_at, EvidenceItem.id)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]
