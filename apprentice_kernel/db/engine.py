"""
Module: apprentice_kernel.db.engine
Responsibility: Engine and session factory for the kernel, plus the
    ``session_scope()`` unit of work every caller wraps service calls in.
Architecture position: Kernel > DB.  Imports models only inside
    create_tables/drop_tables so the metadata is complete.

Concurrency:
    PostgreSQL sessions run at READ COMMITTED.  Transitions lock the row
    (FOR UPDATE) and then apply a compare-and-swap UPDATE on the source
    status; the second of two racing transitions touches zero rows and
    fails.  SQLite ignores FOR UPDATE, but the compare-and-swap still holds.

Atomicity:
    Services only flush.  ``session_scope()`` commits once on success and
    rolls back on any exception, so a rejection's status change and its
    feedback row are persisted together or not at all.
"""

import atexit
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from apprentice_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

DATABASE_URL_ENV = "APPRENTICE_DATABASE_URL"

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    Args:
        database_url: ``postgresql://...`` in production; any SQLite URL
            (``sqlite://`` for in-memory) in development and tests.
        echo: Log every SQL statement.
        pool_size, max_overflow, pool_timeout, pool_recycle: QueuePool
            settings, PostgreSQL only.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "postgresql":
        engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    else:
        engine = create_engine(url, echo=echo)

    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "database": url.database,
            "pooled": dialect == "postgresql",
        },
    )
    return engine


def init_engine_from_env(default_url: str | None = None, **kwargs) -> Engine:
    """
    Initialize from ``$APPRENTICE_DATABASE_URL``, falling back to ``default_url``.

    Raises:
        RuntimeError: Neither the variable nor a default is set.
    """
    database_url = os.environ.get(DATABASE_URL_ENV) or default_url
    if not database_url:
        raise RuntimeError(f"{DATABASE_URL_ENV} is not set")
    return init_engine_from_url(database_url, **kwargs)


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """New session from the factory.  The caller owns commit and close."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on normal exit, roll back and re-raise otherwise.

    Usage:
        with session_scope() as session:
            OtjLogService(session).reject(actor, entry_id, "Missing detail")
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from apprentice_kernel.db.base import Base
    import apprentice_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every kernel table.  Tests and local resets only."""
    from apprentice_kernel.db.base import Base
    import apprentice_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()


atexit.register(_dispose_at_exit)
