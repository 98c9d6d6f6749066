"""
Access decision types (``apprentice_kernel.domain.access``).

Pure value objects exchanged between the association resolver, the access
engine, and the access policy service.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class AccessDecisionCode(str, Enum):
    """Why an access decision came out the way it did."""

    ALLOW_SUPERUSER = "allow_superuser"
    ALLOW_OWNER = "allow_owner"
    ALLOW_ASSOCIATED = "allow_associated"
    DENY_NOT_ASSOCIATED = "deny_not_associated"
    DENY_PROFILE_NOT_FOUND = "deny_profile_not_found"


@dataclass(frozen=True)
class LearnerAssociations:
    """A learner's standing links, as recorded on the LearnerProfile."""

    learner_id: UUID
    tutor_id: UUID | None = None
    iqa_id: UUID | None = None
    training_provider_id: UUID | None = None

    def linked_ids(self, fields: tuple[str, ...]) -> frozenset[UUID]:
        """Identities held in the given profile fields, ignoring empty links."""
        return frozenset(
            value for value in (getattr(self, f) for f in fields)
            if value is not None
        )


@dataclass(frozen=True)
class AccessDecision:
    """Allow or Deny(reason).

    ``reason`` is meant for audit logs; callers should not show it verbatim
    to end users.
    """

    allowed: bool
    code: AccessDecisionCode
    reason: str = ""

    @classmethod
    def allow(cls, code: AccessDecisionCode) -> AccessDecision:
        return cls(allowed=True, code=code)

    @classmethod
    def deny(cls, code: AccessDecisionCode, reason: str) -> AccessDecision:
        return cls(allowed=False, code=code, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed
