"""
Configuration Schema (``apprentice_config.schema``).

Responsibility
--------------
Frozen dataclasses describing an access-policy configuration set as it
comes out of YAML, before compilation into a kernel ``AccessPolicy``.
Values stay as plain strings here; the validator checks them against the
kernel's closed role and workflow sets.

Architecture position
---------------------
**Config layer** -- pure data definitions.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AssociationRuleDef:
    """Profile fields that link ``role`` to a learner."""

    role: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class TransitionRuleDef:
    """Roles allowed to fire ``action`` on ``workflow``."""

    workflow: str
    action: str
    roles: tuple[str, ...]


@dataclass(frozen=True)
class AccessConfigurationSet:
    """One assembled configuration set.

    ``checksum`` is the SHA-256 of the canonical JSON of the source
    fragments and identifies the set in trace logs.
    """

    config_id: str
    version: int
    description: str = ""
    association_rules: tuple[AssociationRuleDef, ...] = ()
    transition_rules: tuple[TransitionRuleDef, ...] = ()
    profile_admin_roles: tuple[str, ...] = ()
    checksum: str = ""
