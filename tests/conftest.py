"""
Pytest fixtures for the guard hours ledger test suite.

Provides:
- A fresh SQLite (aiosqlite) file database per test, with every table
  created, exposed as an ``AsyncSession``
- A ``DeterministicClock``
- Logging fixtures that capture structured JSON log lines
- Small factories for roster rows and guards
"""

import json
import logging
from datetime import UTC, datetime
from io import StringIO
from uuid import uuid4

import pytest
import pytest_asyncio

from guard_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from guard_kernel.domain.clock import DeterministicClock
from guard_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from guard_modules.alerts.service import AlertService
from guard_modules.payroll.service import LedgerSynchronizer
from guard_modules.roster.service import RosterService
from guard_modules.roster.targets import MonthlyTargetService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture guard_kernel logs as parsed JSON dicts.

    Usage::

        async def test_something(captured_logs, ledger):
            await ledger.record_monthly_hours(...)
            logs = captured_logs()
            assert any(r["message"] == "monthly_hours_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("guard_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 3, 15, 9, 0, tzinfo=UTC))


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def session(tmp_path):
    """AsyncSession on a per-test SQLite file with the full schema."""
    init_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_tables()
    s = get_session()
    try:
        yield s
    finally:
        await s.rollback()
        await s.close()
        await reset_engine()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def roster(session, clock):
    return RosterService(session, clock=clock)


@pytest.fixture
def targets(session, clock):
    return MonthlyTargetService(session, clock=clock)


@pytest.fixture
def ledger(session, clock):
    return LedgerSynchronizer(session, clock=clock)


@pytest.fixture
def alerts(session, clock):
    return AlertService(session, clock=clock)


# =============================================================================
# Data helpers
# =============================================================================


@pytest.fixture
def guard_ids():
    """Three fresh guard ids: primary, first associated, second associated."""
    return uuid4(), uuid4(), uuid4()


@pytest_asyncio.fixture
async def row(roster, guard_ids):
    primary, backup, spare = guard_ids
    return await roster.create_row(
        primary_guard_id=primary,
        associated_guard_ids=[backup, spare],
        client_name="Harbour Estates",
        site_name="North Gate",
        guard_name="A. Primary",
    )
