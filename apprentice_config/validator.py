"""
Configuration Validator (``apprentice_config.validator``).

Responsibility
--------------
Validates an ``AccessConfigurationSet`` before compilation.

Invariants enforced
-------------------
* Every role named is one of the kernel's closed role set.
* Association rules name only associable (elevated, non-superuser) roles,
  each at most once, and only known profile link fields.
* Transition rules name a known workflow and one of its reviewer actions
  (owner-only actions are not configurable), each pair at most once.
* A reviewer action with no rule is a warning: no role could fire it.

Failure modes
-------------
* Errors -> configuration MUST NOT be compiled.
* Warnings -> configuration may be compiled but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from apprentice_config.schema import AccessConfigurationSet
from apprentice_kernel.domain.policy import ASSOCIATION_FIELD_NAMES
from apprentice_kernel.domain.review_workflows import ALL_WORKFLOWS
from apprentice_kernel.domain.roles import ASSOCIABLE_ROLES, Role

_KNOWN_ROLES = frozenset(r.value for r in Role)
_ASSOCIABLE = frozenset(r.value for r in ASSOCIABLE_ROLES)


def reviewer_actions() -> frozenset[tuple[str, str]]:
    """(workflow, action) pairs whose eligibility comes from policy roles."""
    return frozenset(
        (wf.name, t.action)
        for wf in ALL_WORKFLOWS
        for t in wf.transitions
        if not t.owner_only
    )


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: AccessConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set."""
    result = ConfigValidationResult()
    _validate_associations(config, result)
    _validate_transitions(config, result)
    _validate_profile_admins(config, result)
    return result


def _validate_associations(
    config: AccessConfigurationSet, result: ConfigValidationResult,
) -> None:
    seen: set[str] = set()
    for rule in config.association_rules:
        if rule.role not in _KNOWN_ROLES:
            result.add_error(f"Association rule names unknown role '{rule.role}'")
            continue
        if rule.role not in _ASSOCIABLE:
            result.add_error(
                f"Role '{rule.role}' cannot be associated with learners"
            )
        if rule.role in seen:
            result.add_error(f"Duplicate association rule for role '{rule.role}'")
        seen.add(rule.role)
        if not rule.fields:
            result.add_error(f"Association rule for '{rule.role}' lists no fields")
        for f in rule.fields:
            if f not in ASSOCIATION_FIELD_NAMES:
                result.add_error(
                    f"Association rule for '{rule.role}' names unknown field '{f}'"
                )

    for role in sorted(_ASSOCIABLE - seen):
        result.add_warning(f"Role '{role}' has no association rule")


def _validate_transitions(
    config: AccessConfigurationSet, result: ConfigValidationResult,
) -> None:
    allowed = reviewer_actions()
    seen: set[tuple[str, str]] = set()
    for rule in config.transition_rules:
        key = (rule.workflow, rule.action)
        if key not in allowed:
            result.add_error(
                f"Unknown reviewer action '{rule.action}' on workflow '{rule.workflow}'"
            )
            continue
        if key in seen:
            result.add_error(
                f"Duplicate transition rule for {rule.workflow}/{rule.action}"
            )
        seen.add(key)
        for role in rule.roles:
            if role not in _KNOWN_ROLES:
                result.add_error(
                    f"Transition rule {rule.workflow}/{rule.action} "
                    f"names unknown role '{role}'"
                )
        if Role.LEARNER.value in rule.roles:
            result.add_error(
                f"Learners cannot review: {rule.workflow}/{rule.action}"
            )

    for workflow, action in sorted(allowed - seen):
        result.add_warning(f"No roles configured for {workflow}/{action}")


def _validate_profile_admins(
    config: AccessConfigurationSet, result: ConfigValidationResult,
) -> None:
    for role in config.profile_admin_roles:
        if role not in _KNOWN_ROLES:
            result.add_error(f"Profile admin list names unknown role '{role}'")
        elif role == Role.LEARNER.value:
            result.add_error("Learners cannot administer profiles")
