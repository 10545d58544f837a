"""
Database engine and unit-of-work helpers.

One process-wide engine backs every session the ledger opens.  Callers
initialize it once from a URL (``LedgerConfig.database_url``), then either
take raw sessions (tests, which roll back at teardown) or wrap a batch of
service calls in ``session_scope()``, which commits on success and rolls
back on any exception.  A journal entry, its lines and the cached balance
updates it causes therefore land together or not at all.

Backends:
    PostgreSQL runs with a bounded QueuePool and READ COMMITTED.  The
    unique constraints on ``transaction_id``, ``reversal_of_id`` and the
    depreciation schedule carry the concurrency guarantees.

    SQLite is used for tests and the admin CLI's local files.  pysqlite's
    implicit BEGIN is switched off so SAVEPOINTs (``begin_nested``) behave,
    and foreign keys are enforced on every connection.  In-memory URLs
    share one connection through StaticPool.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Ledger database is not initialized; call init_engine_from_url() first."

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def _sqlite_engine(url: URL, echo: bool) -> Engine:
    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if in_memory else None,
    )

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _server_engine(url: URL, echo: bool, pool: dict) -> Engine:
    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        isolation_level="READ COMMITTED",
        **pool,
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Build the ledger's engine and session factory from ``database_url``.

    Calling it again disposes the previous engine first, so the CLI and the
    test suite can point the process at a fresh database.  Pool settings
    only apply to server backends.
    """
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        _engine = _sqlite_engine(url, echo)
        pool_settings = {}
    else:
        pool_settings = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
            "pool_pre_ping": True,
        }
        _engine = _server_engine(url, echo, pool_settings)

    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"backend": backend, "database": url.database, **pool_settings},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """Open a session the caller owns; nothing is committed for it."""
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Run a block of ledger work as one transaction.

        with session_scope() as session:
            JournalService(session, clock).create_journal_entry(...)

    The session is committed when the block exits normally and rolled back
    when it raises; the exception is re-raised.  It is always closed.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _ledger_metadata():
    from ledger_kernel.db.base import Base
    from ledger_modules._orm_registry import import_all_orm_models

    # Sub-ledger tables register on Base.metadata only once imported.
    import_all_orm_models()
    return Base.metadata


def create_tables() -> None:
    """Create kernel and sub-ledger tables that do not exist yet."""
    _ledger_metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every ledger table.  Test teardown only."""
    _ledger_metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None


atexit.register(reset_engine)
