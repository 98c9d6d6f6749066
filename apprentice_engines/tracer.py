"""
apprentice_engines.tracer -- ENGINE_TRACE records for access and review decisions.

``@traced_engine`` wraps a pure decision function and, after it returns,
logs one ENGINE_TRACE record carrying the engine name and version, a
fingerprint of the inputs that drove the decision, the verdict code and
whether it allowed the request.  Two calls with equal inputs produce equal
fingerprints, so a trace can be matched against a later replay.

The logger lives under ``apprentice_kernel.engines`` so kernel handlers see
it, but nothing here imports the kernel logging module.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import json
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any
from uuid import UUID

_logger = logging.getLogger("apprentice_kernel.engines.tracer")


def _canonical(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """First 16 hex chars of SHA-256 over the named keyword inputs.

    Absent fields hash as null.
    """
    selected = {field: kwargs.get(field) for field in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=_canonical)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Log ENGINE_TRACE after each call of the decorated engine function.

    The result is expected to expose ``code`` and ``allowed``, as
    AccessDecision and TransitionVerdict do.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.monotonic() - started) * 1000, 3)

            code = getattr(result, "code", None)
            _logger.debug(
                "ENGINE_TRACE",
                extra={
                    "trace_type": "ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields else ""
                    ),
                    "verdict": code.value if isinstance(code, Enum) else code,
                    "allowed": getattr(result, "allowed", None),
                    "duration_ms": elapsed_ms,
                },
            )
            return result

        return wrapper

    return decorator
