"""
Payroll Ledger Models (``guard_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for the payroll side: the per-guard monthly
hours aggregate, individual payroll records, and the results returned by
the synchronizer.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``LedgerSynchronizer``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Hours are whole hours plus minutes in [0, 59]; money is ``Decimal``.
* ``MonthlyHoursRecord`` remaining figures are whatever the save hook wrote;
  this module never recomputes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from guard_kernel.domain.hours import HoursMinutes, to_decimal


class SyncState(Enum):
    SYNCED = "SYNCED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class MonthlyHoursRecord:
    """Worked, paid and remaining hours for one guard in one month."""
    id: UUID
    guard_id: UUID
    year: int
    month: int
    total_hours: int = 0
    total_minutes: int = 0
    paid_hours: int = 0
    paid_minutes: int = 0
    remaining_hours: int = 0
    remaining_minutes: int = 0
    notes: str = ""

    @property
    def worked(self) -> HoursMinutes:
        return HoursMinutes.of(self.total_hours, self.total_minutes)

    @property
    def paid(self) -> HoursMinutes:
        return HoursMinutes.of(self.paid_hours, self.paid_minutes)

    def to_contract(self) -> dict[str, Any]:
        return {
            "guardId": str(self.guard_id),
            "year": self.year,
            "month": self.month,
            "totalHours": self.total_hours,
            "totalMinutes": self.total_minutes,
            "paidHours": self.paid_hours,
            "paidMinutes": self.paid_minutes,
            "remainingHours": self.remaining_hours,
            "remainingMinutes": self.remaining_minutes,
        }


@dataclass(frozen=True)
class BankDetails:
    account_holder_name: str = ""
    account_no: str = ""
    sort_code: str = ""


@dataclass(frozen=True)
class PayrollRecord:
    """One payroll line for a guard, keyed to an explicit (year, month)."""
    id: UUID
    guard_id: UUID
    period_year: int
    period_month: int
    total_hours: int = 0
    total_minutes: int = 0
    pay_rate: Decimal = Decimal("0")
    charge_rate: Decimal = Decimal("0")
    pay1: Decimal = Decimal("0")
    pay2: Decimal = Decimal("0")
    pay3: Decimal = Decimal("0")
    guard_name: str = ""
    client_name: str = ""
    site_name: str = ""
    bank: BankDetails = field(default_factory=BankDetails)
    created_at: datetime | None = None

    @property
    def paid_amount(self) -> Decimal:
        return self.pay1 + self.pay2 + self.pay3

    @property
    def total_hours_decimal(self) -> Decimal:
        return to_decimal(self.total_hours, self.total_minutes)

    @property
    def total_pay(self) -> Decimal:
        """Hours worked at the pay rate."""
        return self.total_hours_decimal * self.pay_rate

    @property
    def total_charge(self) -> Decimal:
        return self.total_hours_decimal * self.charge_rate


@dataclass(frozen=True)
class SyncResult:
    records_updated: int
    message: str = ""


@dataclass(frozen=True)
class SyncStatus:
    guard_id: UUID
    year: int
    month: int
    monthly_hours_exists: bool
    payroll_records_count: int
    last_sync_time: datetime | None = None

    @property
    def state(self) -> SyncState:
        if self.monthly_hours_exists and self.payroll_records_count > 0:
            return SyncState.SYNCED
        return SyncState.PENDING

    @property
    def needs_attention(self) -> bool:
        return self.monthly_hours_exists and self.payroll_records_count == 0

    def to_contract(self) -> dict[str, Any]:
        return {
            "monthlyHoursExists": self.monthly_hours_exists,
            "payrollRecordsCount": self.payroll_records_count,
            "lastSyncTime": self.last_sync_time,
            "syncStatus": self.state.value,
            "needsAttention": self.needs_attention,
        }


@dataclass(frozen=True)
class MonthSummary:
    """Aggregate figures for one month.  Decimal fields are display-rounded."""
    year: int
    month: int
    guard_count: int
    worked: HoursMinutes
    paid: HoursMinutes
    remaining: HoursMinutes
    total_payroll_amount: Decimal
    average_hours_per_guard: Decimal
    average_pay_per_guard: Decimal
    average_hourly_rate: Decimal
