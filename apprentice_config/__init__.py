"""
apprentice_config -- single public entrypoint for access-policy configuration.

Responsibility:
    ``get_active_policy()`` is the ONLY way to obtain a configured
    ``AccessPolicy`` at runtime.  YAML loading, validation and compilation
    are internal.

Architecture position:
    Configuration -- sits above ``apprentice_kernel``.  The kernel never
    imports from this package; callers pass the compiled policy into
    kernel services.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested id.
    - ``ValueError`` -- validation failures.
    - ``AssemblyError`` -- malformed fragments.

Audit relevance:
    Every successful call emits an ``ACCESS_CONFIG_TRACE`` log entry with
    the config id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from apprentice_config.assembler import assemble_from_directory
from apprentice_config.compiler import compile_access_policy
from apprentice_config.schema import AccessConfigurationSet
from apprentice_config.validator import validate_configuration
from apprentice_kernel.domain.policy import AccessPolicy

_logger = logging.getLogger("apprentice_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFAULT_CONFIG_ID = "default"


def get_active_policy(
    config_dir: Path | None = None,
    config_id: str = DEFAULT_CONFIG_ID,
) -> AccessPolicy:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to apprentice_config/sets/.
        config_id: Which set to load.

    Raises:
        FileNotFoundError: no set with ``config_id`` exists.
        ValueError: the set fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    config_set = _find_config(sets_dir, config_id)

    validation = validate_configuration(config_set)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning(
            "access_config_warning",
            extra={"config_set_id": config_set.config_id, "warning": warning},
        )

    policy = compile_access_policy(config_set)

    _logger.info(
        "ACCESS_CONFIG_TRACE",
        extra={
            "trace_type": "ACCESS_CONFIG_TRACE",
            "config_set_id": config_set.config_id,
            "config_set_version": config_set.version,
            "checksum": config_set.checksum,
            "association_rule_count": len(config_set.association_rules),
            "transition_rule_count": len(config_set.transition_rules),
        },
    )
    return policy


def _find_config(sets_dir: Path, config_id: str) -> AccessConfigurationSet:
    """Find the set whose root.yaml declares ``config_id``.

    Falls back to the only available set when exactly one exists.
    """
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Configuration sets directory not found: {sets_dir}")

    available: list[AccessConfigurationSet] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not subdir.is_dir() or not (subdir / "root.yaml").exists():
            continue
        config_set = assemble_from_directory(subdir)
        if config_set.config_id == config_id:
            return config_set
        available.append(config_set)

    if len(available) == 1:
        return available[0]

    raise FileNotFoundError(
        f"No configuration set '{config_id}' in {sets_dir}"
    )


__all__ = ["DEFAULT_CONFIG_ID", "get_active_policy"]
