"""
apprentice_engines.access -- Pure access policy evaluation.

Responsibility:
    Decide whether an actor may see a learner-owned resource, given the
    resource owner and the owner's profile associations.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import apprentice_kernel/domain types.

Decision order:
    1. superuser               -> ALLOW_SUPERUSER
    2. actor is the owner      -> ALLOW_OWNER (visibility only)
    3. owner has no profile    -> DENY_PROFILE_NOT_FOUND
    4. elevated and associated -> ALLOW_ASSOCIATED
    5. otherwise               -> DENY_NOT_ASSOCIATED
"""

from __future__ import annotations

from uuid import UUID

from apprentice_engines.tracer import traced_engine
from apprentice_kernel.domain.access import (
    AccessDecision,
    AccessDecisionCode,
    LearnerAssociations,
)
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.roles import ASSOCIABLE_ROLES, Actor, Role, parse_role


def is_associated(
    actor_id: UUID,
    role: Role | str,
    associations: LearnerAssociations,
    policy: AccessPolicy,
) -> bool:
    """True iff ``role`` is associable and ``actor_id`` holds one of its fields.

    Raises:
        UnknownRoleError: if ``role`` is outside the closed set.
    """
    role = parse_role(role)
    if role not in ASSOCIABLE_ROLES:
        return False
    return actor_id in associations.linked_ids(policy.fields_for(role))


@traced_engine("access", "1.0", fingerprint_fields=("actor", "owner_id"))
def evaluate_access(
    *,
    actor: Actor,
    owner_id: UUID,
    associations: LearnerAssociations | None,
    policy: AccessPolicy,
) -> AccessDecision:
    """Evaluate visibility of a resource owned by ``owner_id``.

    Args:
        actor: The caller.
        owner_id: Identity in the resource's owner field.
        associations: The owner's profile links, or None when the owner
            has no profile.
        policy: Association mapping to apply.
    """
    if actor.is_superuser:
        return AccessDecision.allow(AccessDecisionCode.ALLOW_SUPERUSER)

    if actor.actor_id == owner_id:
        return AccessDecision.allow(AccessDecisionCode.ALLOW_OWNER)

    if associations is None:
        return AccessDecision.deny(
            AccessDecisionCode.DENY_PROFILE_NOT_FOUND,
            f"no learner profile for owner {owner_id}",
        )

    if actor.is_elevated and is_associated(
        actor.actor_id, actor.role, associations, policy,
    ):
        return AccessDecision.allow(AccessDecisionCode.ALLOW_ASSOCIATED)

    return AccessDecision.deny(
        AccessDecisionCode.DENY_NOT_ASSOCIATED,
        "not owner or associated",
    )
