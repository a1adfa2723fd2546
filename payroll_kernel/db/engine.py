"""
Module: payroll_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory for the
    persistence adapters (time-entry service and SQL stores).
Architecture position: Kernel > DB.  The payroll engines never import this
    module; only the stores wired into a period run do.

Failure modes:
    - RuntimeError from get_engine/get_session/get_session_factory/
      session_scope before init_engine_from_url() has been called.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payroll_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "database engine not initialized; call init_engine_from_url() first"


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    SQLite databases are opened with ``check_same_thread=False`` so the
    period processor's worker threads can use them.  An in-memory SQLite
    database additionally uses a StaticPool: there is one connection, so
    every session sees the same tables.  Other backends get a pre-pinged
    queue pool of ``pool_size`` + ``max_overflow`` connections, which should
    be at least the period processor's ``max_workers``.

    Sessions do not expire on commit; DTOs are built from rows after the
    store's transaction has closed.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        in_memory = url.database in (None, "", ":memory:")
        _engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            **({"poolclass": StaticPool} if in_memory else {}),
        )
    else:
        _engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "url": url.render_as_string(hide_password=True),
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The factory handed to SqlTimeEntryStore / SqlPayrollDetailStore."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back and re-raise on error, always close."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create ``time_entries`` and ``payroll_details`` if they do not exist."""
    from payroll_kernel.db.base import Base
    import payroll_modules.orm  # noqa: F401  registers the payroll tables

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    from payroll_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
