"""
guard_services -- cross-module orchestration.

Composes the roster, payroll and alert modules with configuration and the
batch executor.  Modules never import from here.
"""

from guard_services._reconciliation_types import (
    PayrollSyncOutcome,
    ReconcileOutcome,
    ValidationOutcome,
)
from guard_services.bootstrap import init_ledger_database
from guard_services.reconciliation_service import LedgerReconciliationService
from guard_services.roster_factory import build_roster_service

__all__ = [
    "LedgerReconciliationService",
    "PayrollSyncOutcome",
    "ReconcileOutcome",
    "ValidationOutcome",
    "build_roster_service",
    "init_ledger_database",
]
