"""
Tests for guard_services.bootstrap and the kernel's session_scope().

These manage their own engine instead of using the ``session`` fixture.
"""

from dataclasses import replace
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from guard_config import get_active_config
from guard_config.schema import DatabaseConfig
from guard_kernel.db.engine import (
    drop_tables,
    get_engine,
    get_session,
    reset_engine,
    session_scope,
)
from guard_modules.payroll.service import LedgerSynchronizer
from guard_services import init_ledger_database


@pytest_asyncio.fixture
async def ledger_config(tmp_path):
    config = replace(
        get_active_config(),
        database=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'boot.db'}"),
    )
    yield config
    await reset_engine()


class TestInitLedgerDatabase:

    @pytest.mark.asyncio
    async def test_engine_and_schema_created(self, ledger_config):
        engine = await init_ledger_database(ledger_config)
        assert engine is get_engine()
        assert engine.dialect.name == "sqlite"

        async with session_scope() as session:
            assert await LedgerSynchronizer(session).list_monthly_hours(2024, 3) == []

    @pytest.mark.asyncio
    async def test_uninitialized_engine(self):
        await reset_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            get_session()


class TestSessionScope:

    @pytest.mark.asyncio
    async def test_commit_on_success(self, ledger_config):
        await init_ledger_database(ledger_config)
        guard = uuid4()

        async with session_scope() as session:
            await LedgerSynchronizer(session).record_monthly_hours(guard, 2024, 3, 12)

        async with session_scope() as session:
            stored = await LedgerSynchronizer(session).get_monthly_hours(guard, 2024, 3)
        assert stored.total_hours == 12

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, ledger_config, captured_logs):
        await init_ledger_database(ledger_config)
        guard = uuid4()

        with pytest.raises(RuntimeError, match="abort"):
            async with session_scope() as session:
                await LedgerSynchronizer(session).record_monthly_hours(guard, 2024, 3, 12)
                raise RuntimeError("abort")

        async with session_scope() as session:
            assert await LedgerSynchronizer(session).get_monthly_hours(guard, 2024, 3) is None
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    @pytest.mark.asyncio
    async def test_drop_tables(self, ledger_config):
        await init_ledger_database(ledger_config)
        await drop_tables()

        with pytest.raises(OperationalError):
            async with session_scope() as session:
                await LedgerSynchronizer(session).list_monthly_hours(2024, 3)
