"""
Configuration Loader (``apprentice_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into typed
``apprentice_config.schema`` dataclass instances.  Build/test tooling
only; runtime code calls ``apprentice_config.get_active_policy()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from apprentice_config.schema import AssociationRuleDef, TransitionRuleDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_association_rule(data: dict[str, Any]) -> AssociationRuleDef:
    """Parse an AssociationRuleDef from a dict."""
    return AssociationRuleDef(
        role=str(data["role"]),
        fields=_as_tuple(data["fields"]),
    )


def parse_transition_rule(data: dict[str, Any]) -> TransitionRuleDef:
    """Parse a TransitionRuleDef from a dict."""
    return TransitionRuleDef(
        workflow=str(data["workflow"]),
        action=str(data["action"]),
        roles=_as_tuple(data["roles"]),
    )


def parse_role_list(value: Any) -> tuple[str, ...]:
    return _as_tuple(value)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
