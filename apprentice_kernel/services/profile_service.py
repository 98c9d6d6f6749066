"""
apprentice_kernel.services.profile_service -- Learner profile administration.

Responsibility:
    Provision a learner's profile and maintain its tutor, IQA and
    training-provider links.

Invariants enforced:
    - One profile per learner.
    - Only superusers provision profiles.
    - Association fields are changed only by the policy's profile-admin
      roles; a non-superuser admin must be able to see the profile.
    - Profiles are never deleted (see models.learner_profile).
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from apprentice_kernel.domain.dtos import LearnerProfileInfo
from apprentice_kernel.domain.policy import ASSOCIATION_FIELD_NAMES, AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.exceptions import (
    ForbiddenTransitionError,
    ProfileNotFoundError,
    ValidationError,
)
from apprentice_kernel.logging_config import get_logger
from apprentice_kernel.models.learner_profile import LearnerProfile
from apprentice_kernel.services.access_policy_service import AccessPolicyService
from apprentice_kernel.services.base import BaseService

logger = get_logger("services.profile")


class _Unchanged:
    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED: Any = _Unchanged()


class ProfileService(BaseService[LearnerProfile]):
    """Learner profile provisioning and association maintenance."""

    def __init__(self, session: Session, policy: AccessPolicy | None = None):
        super().__init__(session)
        self._policy = policy or AccessPolicy.default()
        self._access = AccessPolicyService(session, self._policy)

    def provision_profile(
        self,
        actor: Actor,
        learner_id: UUID,
        tutor_id: UUID | None = None,
        iqa_id: UUID | None = None,
        training_provider_id: UUID | None = None,
        standard_code: str | None = None,
        start_date: date | None = None,
    ) -> LearnerProfileInfo:
        """Create the profile for a newly provisioned learner account.

        Raises:
            ForbiddenTransitionError: actor is not a superuser.
            ValidationError: the learner already has a profile.
        """
        if not actor.is_superuser:
            raise ForbiddenTransitionError(
                ResourceKind.PROFILE.value, str(learner_id), "provision",
                str(actor.actor_id), "only superusers provision profiles",
            )
        if self._find(learner_id) is not None:
            raise ValidationError("learner_id", f"profile already exists for {learner_id}")
        self._check_not_self_linked(learner_id, tutor_id, iqa_id, training_provider_id)

        profile = LearnerProfile(
            learner_id=learner_id,
            tutor_id=tutor_id,
            iqa_id=iqa_id,
            training_provider_id=training_provider_id,
            standard_code=standard_code,
            start_date=start_date,
            created_by_id=actor.actor_id,
        )
        self.session.add(profile)
        self.session.flush()

        logger.info(
            "learner_profile_provisioned",
            extra={
                "learner_id": str(learner_id),
                "tutor_id": str(tutor_id) if tutor_id else None,
                "iqa_id": str(iqa_id) if iqa_id else None,
                "training_provider_id": (
                    str(training_provider_id) if training_provider_id else None
                ),
            },
        )
        return profile.to_dto()

    def assign_associations(
        self,
        actor: Actor,
        learner_id: UUID,
        tutor_id: UUID | None = UNCHANGED,
        iqa_id: UUID | None = UNCHANGED,
        training_provider_id: UUID | None = UNCHANGED,
    ) -> LearnerProfileInfo:
        """Set or clear association links.  Omitted arguments stay as they are.

        Raises:
            ForbiddenTransitionError: role may not administer profiles.
            AccessDeniedError: a non-superuser admin cannot see the profile.
            ProfileNotFoundError: the learner has no profile.
        """
        if actor.role not in self._policy.profile_admin_roles:
            raise ForbiddenTransitionError(
                ResourceKind.PROFILE.value, str(learner_id), "assign_associations",
                str(actor.actor_id),
                f"role '{actor.role.value}' may not change associations",
            )

        profile = self._find(learner_id, for_update=True)
        if profile is None:
            raise ProfileNotFoundError(str(learner_id))
        if not actor.is_superuser:
            self._access.require_access(actor, ResourceKind.PROFILE, profile)

        requested = {
            "tutor_id": tutor_id,
            "iqa_id": iqa_id,
            "training_provider_id": training_provider_id,
        }
        changes = {k: v for k, v in requested.items() if v is not UNCHANGED}
        merged = {f: getattr(profile, f) for f in ASSOCIATION_FIELD_NAMES} | changes
        self._check_not_self_linked(learner_id, **merged)

        before = {f: getattr(profile, f) for f in changes}
        for field, value in changes.items():
            setattr(profile, field, value)
        profile.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "learner_associations_updated",
            extra={
                "learner_id": str(learner_id),
                "changed_by": str(actor.actor_id),
                "before": {k: str(v) if v else None for k, v in before.items()},
                "after": {k: str(v) if v else None for k, v in changes.items()},
            },
        )
        return profile.to_dto()

    def _find(self, learner_id: UUID, for_update: bool = False) -> LearnerProfile | None:
        stmt = select(LearnerProfile).where(LearnerProfile.learner_id == learner_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _check_not_self_linked(
        learner_id: UUID,
        tutor_id: UUID | None = None,
        iqa_id: UUID | None = None,
        training_provider_id: UUID | None = None,
    ) -> None:
        for field, value in (
            ("tutor_id", tutor_id),
            ("iqa_id", iqa_id),
            ("training_provider_id", training_provider_id),
        ):
            if value is not None and value == learner_id:
                raise ValidationError(field, "a learner cannot be linked to themself")
