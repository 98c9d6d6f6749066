"""
apprentice_config.assembler -- composes YAML fragments into one configuration set.

Fragment structure::

    sets/default/
    +-- root.yaml            # config_id, version, description
    +-- access_policy.yaml   # associations, transitions, profile_admin_roles

Invariants enforced:
    - ``root.yaml`` must exist in every fragment directory.
    - A deterministic SHA-256 checksum is computed over all assembled data.

Failure modes:
    - ``AssemblyError`` -- required fragments missing or mandatory fields
      absent.
    - ``yaml.YAMLError`` (propagated from loader) -- invalid YAML syntax.
"""

from __future__ import annotations

from pathlib import Path

from apprentice_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_association_rule,
    parse_role_list,
    parse_transition_rule,
)
from apprentice_config.schema import AccessConfigurationSet
from apprentice_kernel.exceptions import ApprenticeKernelError

POLICY_FRAGMENT = "access_policy.yaml"


class AssemblyError(ApprenticeKernelError):
    """Error during fragment assembly."""

    code: str = "ASSEMBLY_FAILED"


def assemble_from_directory(fragment_dir: Path) -> AccessConfigurationSet:
    """Compose the fragments in ``fragment_dir`` into one configuration set.

    Raises:
        AssemblyError: if ``root.yaml`` or the policy fragment is missing,
            or a mandatory key is absent.
    """
    root_file = fragment_dir / "root.yaml"
    if not root_file.exists():
        raise AssemblyError(f"root.yaml not found in {fragment_dir}")
    policy_file = fragment_dir / POLICY_FRAGMENT
    if not policy_file.exists():
        raise AssemblyError(f"{POLICY_FRAGMENT} not found in {fragment_dir}")

    root = load_yaml_file(root_file)
    policy = load_yaml_file(policy_file)

    try:
        config_id = str(root["config_id"])
        version = int(root.get("version", 1))
        associations = tuple(
            parse_association_rule(d) for d in policy.get("associations", [])
        )
        transitions = tuple(
            parse_transition_rule(d) for d in policy.get("transitions", [])
        )
    except KeyError as e:
        raise AssemblyError(
            f"Missing required key {e} in fragments under {fragment_dir}"
        ) from e

    checksum = compute_checksum({"root": root, "access_policy": policy})

    return AccessConfigurationSet(
        config_id=config_id,
        version=version,
        description=str(root.get("description", "")),
        association_rules=associations,
        transition_rules=transitions,
        profile_admin_roles=parse_role_list(policy.get("profile_admin_roles")),
        checksum=checksum,
    )
