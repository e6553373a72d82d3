"""
Injectable time source.

Services stamp alert creation, alert resolution and record updates from
a ``Clock`` they were handed, never from ``datetime.now()``. Ledger
periods are not read from any clock: sync and reconciliation always take
the year and month as arguments.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """Source of timezone-aware "now" values."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Always answers with the instant it was built with (UTC 2024-01-01 noon by default)."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time
