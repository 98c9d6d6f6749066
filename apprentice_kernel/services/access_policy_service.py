"""
apprentice_kernel.services.access_policy_service -- Visibility decisions.

Responsibility:
    Decide whether an actor may see or target a governed resource.  Owner
    lookup goes through ``RESOURCE_OWNER_FIELDS``; association data comes
    from the AssociationResolver; the decision itself is made by the pure
    access engine.

Architecture position:
    Kernel > Services.  Read-only: never flushes.

Invariants enforced:
    - Superusers are always allowed.
    - Owners are allowed to see, which is not a licence to mutate; the
      review services gate mutation separately.
    - A missing learner profile denies visibility with
      DENY_PROFILE_NOT_FOUND; it is never raised as a fault.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from apprentice_engines.access import evaluate_access
from apprentice_kernel.domain.access import AccessDecision, LearnerAssociations
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.resources import ResourceKind, owner_of, resource_id_of
from apprentice_kernel.domain.roles import Actor
from apprentice_kernel.exceptions import AccessDeniedError
from apprentice_kernel.logging_config import get_logger
from apprentice_kernel.selectors.association_resolver import AssociationResolver
from apprentice_kernel.selectors.resource_selector import ResourceSelector

logger = get_logger("services.access_policy")


class AccessPolicyService:
    """Resource-kind agnostic access checks for one request."""

    def __init__(self, session: Session, policy: AccessPolicy | None = None):
        self._resolver = AssociationResolver(session)
        self._resources = ResourceSelector(session)
        self._policy = policy or AccessPolicy.default()

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    def decide_for_owner(
        self,
        actor: Actor,
        kind: ResourceKind | str,
        owner_id: UUID,
        resource_id: UUID | None = None,
    ) -> AccessDecision:
        """Decide visibility of a ``kind`` resource owned by ``owner_id``."""
        kind = ResourceKind(kind)
        associations: LearnerAssociations | None = None
        if not actor.is_superuser and actor.actor_id != owner_id:
            associations = self._resolver.find_associations(owner_id)

        decision = evaluate_access(
            actor=actor,
            owner_id=owner_id,
            associations=associations,
            policy=self._policy,
        )

        logger.debug(
            "access_evaluated",
            extra={
                "actor_id": str(actor.actor_id),
                "actor_role": actor.role.value,
                "resource_kind": kind.value,
                "resource_id": str(resource_id) if resource_id else None,
                "owner_id": str(owner_id),
                "allowed": decision.allowed,
                "decision_code": decision.code.value,
            },
        )
        return decision

    def can_access(
        self,
        actor: Actor,
        kind: ResourceKind | str,
        resource: Any,
    ) -> AccessDecision:
        """Allow or Deny(reason) for ``actor`` on ``resource``.

        ``resource`` may be an ORM model or a DTO; only its owner field
        and ``id`` are read.
        """
        kind = ResourceKind(kind)
        return self.decide_for_owner(
            actor, kind, owner_of(kind, resource), resource_id_of(resource),
        )

    def require_access(
        self,
        actor: Actor,
        kind: ResourceKind | str,
        resource: Any,
    ) -> AccessDecision:
        """Like ``can_access`` but raises on Deny.

        Raises:
            AccessDeniedError: carrying the deny reason and decision code.
        """
        kind = ResourceKind(kind)
        decision = self.can_access(actor, kind, resource)
        if not decision.allowed:
            self._deny(actor, kind, resource_id_of(resource), decision)
        return decision

    def require_owner_access(
        self,
        actor: Actor,
        kind: ResourceKind | str,
        owner_id: UUID,
    ) -> AccessDecision:
        """Raise AccessDeniedError unless ``actor`` may see ``owner_id``'s records."""
        kind = ResourceKind(kind)
        decision = self.decide_for_owner(actor, kind, owner_id)
        if not decision.allowed:
            self._deny(actor, kind, None, decision)
        return decision

    def check_by_id(
        self,
        actor: Actor,
        kind: ResourceKind | str,
        resource_id: UUID,
    ) -> AccessDecision:
        """Load the resource by id, then decide.

        Raises:
            EntityNotFoundError: if the resource does not exist.
        """
        resource = self._resources.get(kind, resource_id)
        return self.can_access(actor, kind, resource)

    def _deny(
        self,
        actor: Actor,
        kind: ResourceKind,
        resource_id: UUID | None,
        decision: AccessDecision,
    ) -> None:
        logger.info(
            "access_denied",
            extra={
                "actor_id": str(actor.actor_id),
                "actor_role": actor.role.value,
                "resource_kind": kind.value,
                "resource_id": str(resource_id) if resource_id else None,
                "decision_code": decision.code.value,
                "reason": decision.reason,
            },
        )
        raise AccessDeniedError(
            actor_id=str(actor.actor_id),
            resource_kind=kind.value,
            resource_id=str(resource_id) if resource_id else None,
            reason=decision.reason,
            decision_code=decision.code.value,
        )
