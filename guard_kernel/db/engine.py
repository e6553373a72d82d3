"""
Module: guard_kernel.db.engine
Responsibility: Owns the process-wide async engine and session factory,
    the commit/rollback scope, and schema creation.
Architecture position: Kernel > DB.  Imports db/base.py; ``create_tables``
    additionally loads the module ORM registry so every table is known.

Invariants enforced:
    - All ledger I/O happens on an ``AsyncSession``.
    - Sessions use ``expire_on_commit=False`` and ``autoflush=False``; DTOs
      built after a commit never trigger a lazy reload.
    - Nested transactions (SAVEPOINT) work on both backends.  asyncpg
      handles them itself; aiosqlite gets the connect/begin hooks below so
      SQLAlchemy, not the driver, decides when a transaction starts.
    - SQLite connections enforce foreign keys.

Failure modes:
    - RuntimeError when a session or engine is requested before
      ``init_engine_from_url``.
    - Driver connection errors surface on first use, unchanged.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from guard_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _install_sqlite_hooks(engine: AsyncEngine) -> None:

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> AsyncEngine:
    """
    Create the engine and session factory for ``database_url``.

    The URL must name an async driver: ``postgresql+asyncpg://`` or
    ``sqlite+aiosqlite://``.  Pool settings apply to PostgreSQL only.
    Calling again replaces the previous engine without disposing it.
    """
    global _engine, _session_factory

    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo)
        _install_sqlite_hooks(engine)
    else:
        engine = create_async_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )

    _engine = engine
    _session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False,
    )

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": engine.dialect.name, "echo": echo})
    return engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> AsyncSession:
    """A new, unstarted session from the current factory."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on clean exit, roll back and re-raise otherwise.

    Usage:
        async with session_scope() as session:
            await LedgerSynchronizer(session).sync_payroll_to_monthly_hours(p)
    """
    session = get_session()
    try:
        yield session
        await session.commit()
        logger.debug("transaction_committed")
    except Exception:
        await session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        await session.close()


async def create_tables() -> None:
    from guard_kernel.db.base import Base
    from guard_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


async def drop_tables() -> None:
    """Drop every ledger table. Test and local-reset use only."""
    from guard_kernel.db.base import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("tables_dropped")


async def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
