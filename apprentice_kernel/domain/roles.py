"""
Role model (``apprentice_kernel.domain.roles``).

Responsibility
--------------
Closed enumeration of actor roles, the single role-rank table, and the
``Actor`` value passed explicitly into every kernel call.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Closed set -- any role outside ``Role`` fails with ``UnknownRoleError``.
* One rank table -- ``is_elevated`` and ``is_superuser`` are derived from
  ``ROLE_RANKS``; nothing else in the codebase tests role membership with
  ad hoc lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from apprentice_kernel.exceptions import UnknownRoleError


class Role(str, Enum):
    """Actor roles."""

    LEARNER = "learner"
    ASSESSOR = "assessor"
    TRAINING_PROVIDER = "training_provider"
    IQA = "iqa"
    ADMIN = "admin"
    OPERATIONS = "operations"


BASE_RANK = 0
ELEVATED_RANK = 1
SUPERUSER_RANK = 2

ROLE_RANKS: dict[Role, int] = {
    Role.LEARNER: BASE_RANK,
    Role.ASSESSOR: ELEVATED_RANK,
    Role.TRAINING_PROVIDER: ELEVATED_RANK,
    Role.IQA: ELEVATED_RANK,
    Role.ADMIN: SUPERUSER_RANK,
    Role.OPERATIONS: SUPERUSER_RANK,
}

# Roles whose visibility comes from a LearnerProfile link.
ASSOCIABLE_ROLES: frozenset[Role] = frozenset(
    role for role, rank in ROLE_RANKS.items() if rank == ELEVATED_RANK
)


def parse_role(value: Role | str) -> Role:
    """Coerce a raw role value into ``Role``.

    Raises:
        UnknownRoleError: if ``value`` is not one of the closed set.
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise UnknownRoleError(value) from None


def privilege_rank(role: Role | str) -> int:
    """Return the privilege rank of ``role`` (learner 0, elevated 1, superuser 2)."""
    return ROLE_RANKS[parse_role(role)]


def is_elevated(role: Role | str) -> bool:
    """True for every role ranked above learner."""
    return privilege_rank(role) >= ELEVATED_RANK


def is_superuser(role: Role | str) -> bool:
    """True only for admin and operations; bypasses association checks."""
    return privilege_rank(role) >= SUPERUSER_RANK


@dataclass(frozen=True)
class Actor:
    """Identity of the caller for one request.

    Never persisted and never read from ambient state; every service
    operation takes it as an explicit argument.
    """

    actor_id: UUID
    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", parse_role(self.role))

    @classmethod
    def from_claims(cls, actor_id: UUID | str, role: Role | str) -> Actor:
        """Build an Actor from identity-collaborator claims."""
        if not isinstance(actor_id, UUID):
            actor_id = UUID(str(actor_id))
        return cls(actor_id=actor_id, role=parse_role(role))

    @property
    def is_superuser(self) -> bool:
        return is_superuser(self.role)

    @property
    def is_elevated(self) -> bool:
        return is_elevated(self.role)
