"""
Module: apprentice_kernel.selectors.association_resolver
Responsibility: Read a learner's tutor, IQA and training-provider links from
    the LearnerProfile table and answer association questions against them.
Architecture position: Kernel > Selectors.  Read-only.

Failure modes:
    - ProfileNotFoundError when the learner has no profile.  Callers treat
      this as "visibility denied", never as a server fault.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from apprentice_engines.access import is_associated as _is_associated
from apprentice_kernel.domain.access import LearnerAssociations
from apprentice_kernel.domain.dtos import LearnerProfileInfo
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.roles import ASSOCIABLE_ROLES, Actor, Role, parse_role
from apprentice_kernel.exceptions import ProfileNotFoundError
from apprentice_kernel.models.learner_profile import LearnerProfile
from apprentice_kernel.selectors.base import BaseSelector


class AssociationResolver(BaseSelector[LearnerProfile]):
    """Association lookups over learner profiles."""

    def _lookup(self, learner_id: UUID) -> LearnerProfile | None:
        return self.session.execute(
            select(LearnerProfile).where(LearnerProfile.learner_id == learner_id)
        ).scalar_one_or_none()

    def find_profile(self, learner_id: UUID) -> LearnerProfileInfo | None:
        profile = self._lookup(learner_id)
        return profile.to_dto() if profile is not None else None

    def find_associations(self, learner_id: UUID) -> LearnerAssociations | None:
        """Like ``resolve_associations`` but returns None for a missing profile."""
        profile = self._lookup(learner_id)
        return profile.to_associations() if profile is not None else None

    def resolve_associations(self, learner_id: UUID) -> LearnerAssociations:
        """Return the learner's tutor, IQA and training-provider links.

        Raises:
            ProfileNotFoundError: if the learner has no profile.
        """
        profile = self._lookup(learner_id)
        if profile is None:
            raise ProfileNotFoundError(str(learner_id))
        return profile.to_associations()

    def is_associated(
        self,
        actor_id: UUID,
        role: Role | str,
        learner_id: UUID,
        policy: AccessPolicy | None = None,
    ) -> bool:
        """True iff ``role`` is associable and ``actor_id`` is linked to the learner.

        Raises:
            UnknownRoleError: if ``role`` is outside the closed set.
            ProfileNotFoundError: if the learner has no profile.
        """
        role = parse_role(role)
        associations = self.resolve_associations(learner_id)
        return _is_associated(
            actor_id, role, associations, policy or AccessPolicy.default(),
        )

    def learner_ids_for(
        self,
        actor: Actor,
        policy: AccessPolicy | None = None,
    ) -> list[UUID]:
        """Learners whose records ``actor`` may see by association.

        Superusers get every learner with a profile; a learner gets
        themself if they have a profile; an associable role gets the
        learners whose profile links them through the policy's fields.
        """
        policy = policy or AccessPolicy.default()
        stmt = select(LearnerProfile.learner_id).order_by(LearnerProfile.learner_id)

        if actor.is_superuser:
            return list(self.session.execute(stmt).scalars())

        if actor.role not in ASSOCIABLE_ROLES:
            stmt = stmt.where(LearnerProfile.learner_id == actor.actor_id)
            return list(self.session.execute(stmt).scalars())

        fields = policy.fields_for(actor.role)
        if not fields:
            return []
        stmt = stmt.where(
            or_(*(getattr(LearnerProfile, f) == actor.actor_id for f in fields))
        )
        return list(self.session.execute(stmt).scalars())
