"""
guard_services.reconciliation_service -- Cross-ledger orchestration.

Responsibility:
    The write paths that touch both ledgers: recording a payroll record and
    folding it into monthly hours, recording monthly hours and pushing them
    back onto payroll, validating a period and alerting on findings, and
    the month-wide sweep.

Architecture position:
    Services -- orchestration over ``LedgerSynchronizer``, ``AlertService``
    and ``BatchExecutor``.  Reads alerting and batch settings from
    ``LedgerConfig`` and passes plain values down.

Invariants enforced:
    - The primary write (payroll record, monthly hours) always stands.
      Follow-up sync and validation run in a SAVEPOINT; a failure there
      is rolled back, logged as a warning and reported on the outcome.
    - A payroll record only syncs into monthly hours when it carries
      worked hours.
    - The bulk sweep visits each monthly record of the period once, in its
      own SAVEPOINT.

Failure modes:
    - ValidationError from the primary write propagates.
    - A failure to list the period's monthly records fails ``bulk_sync_month``.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guard_batch.domain.types import BulkSyncResult
from guard_batch.services.executor import BatchExecutor
from guard_batch.tasks.base import default_task_registry
from guard_batch.tasks.consistency_tasks import ConsistencySweepTask
from guard_config.schema import AlertingConfig, LedgerConfig
from guard_kernel.domain.clock import Clock, SystemClock
from guard_kernel.exceptions import GuardLedgerError
from guard_kernel.logging_config import LogContext, get_logger
from guard_modules.alerts.service import AlertService
from guard_modules.payroll.models import BankDetails
from guard_modules.payroll.service import LedgerSynchronizer
from guard_services._reconciliation_types import (
    PayrollSyncOutcome,
    ReconcileOutcome,
    ValidationOutcome,
)

logger = get_logger("services.reconciliation")

_ZERO = Decimal("0")


class LedgerReconciliationService:
    """Keeps the monthly-hours and payroll ledgers reconciled.

    Contract:
        Flushes within the caller's transaction; never commits.

    Non-goals:
        - Does NOT touch the roster ledger.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        alerting: AlertingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._alerting = alerting or AlertingConfig()
        self._ledger = LedgerSynchronizer(session, clock=self._clock)
        self._alerts = AlertService(
            session, clock=self._clock, **self._alerting.service_options(),
        )

    @classmethod
    def from_config(
        cls, session: AsyncSession, config: LedgerConfig, clock: Clock | None = None,
    ) -> LedgerReconciliationService:
        return cls(session, clock=clock, alerting=config.alerting)

    @property
    def ledger(self) -> LedgerSynchronizer:
        return self._ledger

    @property
    def alerts(self) -> AlertService:
        return self._alerts

    # -------------------------------------------------------------------------
    # Payroll -> monthly hours
    # -------------------------------------------------------------------------

    async def record_payroll_and_sync(
        self,
        guard_id: UUID,
        period_year: int,
        period_month: int,
        total_hours: int = 0,
        total_minutes: int = 0,
        pay_rate: Decimal = _ZERO,
        charge_rate: Decimal = _ZERO,
        pay1: Decimal = _ZERO,
        pay2: Decimal = _ZERO,
        pay3: Decimal = _ZERO,
        guard_name: str = "",
        client_name: str = "",
        site_name: str = "",
        bank: BankDetails | None = None,
    ) -> PayrollSyncOutcome:
        payroll = await self._ledger.record_payroll(
            guard_id, period_year, period_month,
            total_hours=total_hours,
            total_minutes=total_minutes,
            pay_rate=pay_rate,
            charge_rate=charge_rate,
            pay1=pay1,
            pay2=pay2,
            pay3=pay3,
            guard_name=guard_name,
            client_name=client_name,
            site_name=site_name,
            bank=bank,
        )
        if not payroll.total_hours:
            return PayrollSyncOutcome(payroll=payroll)

        with LogContext.bind(guard_id=str(guard_id)):
            try:
                monthly = await self._ledger.sync_payroll_to_monthly_hours(payroll)
            except (GuardLedgerError, SQLAlchemyError) as exc:
                logger.warning("payroll_sync_failed", extra={
                    "payroll_id": str(payroll.id),
                    "error": str(exc),
                })
                return PayrollSyncOutcome(payroll=payroll, warning=str(exc))
        return PayrollSyncOutcome(payroll=payroll, monthly=monthly)

    # -------------------------------------------------------------------------
    # Monthly hours -> payroll
    # -------------------------------------------------------------------------

    async def record_monthly_hours_and_reconcile(
        self,
        guard_id: UUID,
        year: int,
        month: int,
        total_hours: int,
        total_minutes: int = 0,
        notes: str = "",
    ) -> ReconcileOutcome:
        existing = await self._ledger.get_monthly_hours(guard_id, year, month)
        monthly = await self._ledger.record_monthly_hours(
            guard_id, year, month, total_hours, total_minutes, notes=notes,
        )

        with LogContext.bind(guard_id=str(guard_id)):
            try:
                async with self._session.begin_nested():
                    sync = await self._ledger.sync_monthly_hours_to_payroll(monthly)
                    report = await self._alerts.validate_data_consistency(
                        guard_id, year, month,
                    )
                    fanout = None
                    if not report.is_consistent:
                        fanout = await self._alerts.create_consistency_alert(
                            guard_id, year, month, report.issues,
                        )
            except (GuardLedgerError, SQLAlchemyError) as exc:
                logger.warning("monthly_hours_reconcile_failed", extra={
                    "year": year,
                    "month": month,
                    "error": str(exc),
                })
                return ReconcileOutcome(
                    monthly=monthly, created=existing is None, warning=str(exc),
                )

        return ReconcileOutcome(
            monthly=monthly,
            created=existing is None,
            sync=sync,
            report=report,
            alerts=fanout,
        )

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def validate_and_alert(self, guard_id: UUID, year: int, month: int) -> ValidationOutcome:
        report = await self._alerts.validate_data_consistency(guard_id, year, month)
        if report.is_consistent:
            return ValidationOutcome(report=report)
        fanout = await self._alerts.create_consistency_alert(
            guard_id, year, month, report.issues,
        )
        return ValidationOutcome(report=report, alerts=fanout)

    async def bulk_sync_month(self, year: int, month: int) -> BulkSyncResult:
        """Validate and alert every guard with monthly hours in the period."""
        registry = default_task_registry(
            clock=self._clock, **self._alerting.service_options(),
        )
        run = await BatchExecutor(self._session, registry, clock=self._clock).run(
            ConsistencySweepTask.TASK_TYPE, {"year": year, "month": month},
        )
        result = BulkSyncResult.from_run(year, month, run)
        logger.info("bulk_sync_completed", extra={
            "year": year,
            "month": month,
            "processed": result.processed,
            "successful": result.successful,
            "failed": result.failed,
        })
        return result
