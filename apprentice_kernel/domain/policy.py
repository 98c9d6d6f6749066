"""
Access policy (``apprentice_kernel.domain.policy``).

Responsibility
--------------
Frozen value naming, for one deployment:

* which LearnerProfile fields link each associable role to a learner, and
* which roles may fire each reviewer-performed workflow action.

Services receive an ``AccessPolicy`` explicitly.  ``AccessPolicy.default()``
is the built-in policy; ``apprentice_config`` compiles YAML into the same
type.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from apprentice_kernel.domain.roles import Role

# Profile columns an association can be read from.
ASSOCIATION_FIELD_NAMES: frozenset[str] = frozenset(
    {"tutor_id", "iqa_id", "training_provider_id"}
)

_REVIEWERS = frozenset(
    {Role.ASSESSOR, Role.TRAINING_PROVIDER, Role.IQA, Role.ADMIN, Role.OPERATIONS}
)


@dataclass(frozen=True)
class AccessPolicy:
    """Association mapping and transition role tables.

    ``name`` and ``checksum`` identify where the policy came from and do not
    take part in equality.
    """

    association_fields: dict[Role, tuple[str, ...]]
    transition_roles: dict[tuple[str, str], frozenset[Role]]
    profile_admin_roles: frozenset[Role]
    name: str = field(default="builtin", compare=False)
    checksum: str | None = field(default=None, compare=False)

    def fields_for(self, role: Role) -> tuple[str, ...]:
        """Profile fields that associate ``role`` with a learner (may be empty)."""
        return self.association_fields.get(role, ())

    def roles_for(self, workflow: str, action: str) -> frozenset[Role]:
        """Roles allowed to fire ``action`` on ``workflow`` (empty if unlisted)."""
        return self.transition_roles.get((workflow, action), frozenset())

    def role_may(self, role: Role, workflow: str, action: str) -> bool:
        return role in self.roles_for(workflow, action)

    @classmethod
    def default(cls) -> AccessPolicy:
        """Strict, typed associations and the standard reviewer tables."""
        return cls(
            association_fields={
                Role.ASSESSOR: ("tutor_id",),
                Role.TRAINING_PROVIDER: ("training_provider_id",),
                Role.IQA: ("iqa_id",),
            },
            transition_roles={
                ("otj_log", "verify"): frozenset(
                    {Role.ASSESSOR, Role.TRAINING_PROVIDER, Role.ADMIN, Role.OPERATIONS}
                ),
                ("otj_log", "iqa_verify"): frozenset(
                    {Role.IQA, Role.ADMIN, Role.OPERATIONS}
                ),
                ("otj_log", "reject"): _REVIEWERS,
                ("evidence", "start_review"): _REVIEWERS,
                ("evidence", "approve"): _REVIEWERS,
                ("evidence", "request_revision"): _REVIEWERS,
            },
            profile_admin_roles=frozenset(
                {Role.TRAINING_PROVIDER, Role.ADMIN, Role.OPERATIONS}
            ),
            name="builtin",
        )
