"""
Payroll Module (``guard_modules.payroll``).

The monthly-hours ledger, payroll records, and the synchronizer that keeps
them in step.
"""

from guard_modules.payroll.models import (
    BankDetails,
    MonthlyHoursRecord,
    MonthSummary,
    PayrollRecord,
    SyncResult,
    SyncState,
    SyncStatus,
)
from guard_modules.payroll.service import LedgerSynchronizer

__all__ = [
    "BankDetails",
    "LedgerSynchronizer",
    "MonthlyHoursRecord",
    "MonthSummary",
    "PayrollRecord",
    "SyncResult",
    "SyncState",
    "SyncStatus",
]
