"""Database layer - engine, base classes, and session scope."""

from apprentice_kernel.db.base import Base, TrackedBase, UUIDString
from apprentice_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_env,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "init_engine_from_env",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
]
