"""
guard_services._reconciliation_types -- Result DTOs for ledger reconciliation.

Frozen dataclasses returned by ``LedgerReconciliationService``.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from guard_engines.consistency import ConsistencyReport
from guard_modules.alerts.models import AlertFanoutResult
from guard_modules.payroll.models import MonthlyHoursRecord, PayrollRecord, SyncResult


@dataclass(frozen=True)
class PayrollSyncOutcome:
    """A stored payroll record and, when it synced, the monthly record it produced."""

    payroll: PayrollRecord
    monthly: MonthlyHoursRecord | None = None
    warning: str | None = None

    @property
    def synced(self) -> bool:
        return self.monthly is not None


@dataclass(frozen=True)
class ReconcileOutcome:
    """A stored monthly-hours record and what reconciling it did."""

    monthly: MonthlyHoursRecord
    created: bool
    sync: SyncResult | None = None
    report: ConsistencyReport | None = None
    alerts: AlertFanoutResult | None = None
    warning: str | None = None


@dataclass(frozen=True)
class ValidationOutcome:
    report: ConsistencyReport
    alerts: AlertFanoutResult | None = None
