"""
guard_services.bootstrap -- open the ledger database from configuration.

The kernel's engine functions take plain values; this is the one place a
``LedgerConfig`` database section is turned into a live engine.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from guard_config.schema import LedgerConfig
from guard_kernel.db.engine import create_tables, init_engine_from_url


async def init_ledger_database(config: LedgerConfig, create_schema: bool = True) -> AsyncEngine:
    """Initialize the engine for ``config.database`` and, by default, create missing tables."""
    database = config.database
    engine = init_engine_from_url(
        database.url,
        echo=database.echo_sql,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
    )
    if create_schema:
        await create_tables()
    return engine
