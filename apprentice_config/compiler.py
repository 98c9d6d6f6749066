"""
apprentice_config.compiler -- compiles a validated configuration set.

Responsibility:
    Turn an ``AccessConfigurationSet`` (strings from YAML) into the frozen
    kernel ``AccessPolicy`` that services consume.

Preconditions:
    The set has passed ``validate_configuration``; unknown roles raise
    ``UnknownRoleError`` here.
"""

from __future__ import annotations

from apprentice_config.schema import AccessConfigurationSet
from apprentice_kernel.domain.policy import AccessPolicy
from apprentice_kernel.domain.roles import parse_role


def compile_access_policy(config: AccessConfigurationSet) -> AccessPolicy:
    """Compile ``config`` into an AccessPolicy carrying its checksum."""
    return AccessPolicy(
        association_fields={
            parse_role(rule.role): tuple(rule.fields)
            for rule in config.association_rules
        },
        transition_roles={
            (rule.workflow, rule.action): frozenset(parse_role(r) for r in rule.roles)
            for rule in config.transition_rules
        },
        profile_admin_roles=frozenset(
            parse_role(r) for r in config.profile_admin_roles
        ),
        name=config.config_id,
        checksum=config.checksum,
    )
