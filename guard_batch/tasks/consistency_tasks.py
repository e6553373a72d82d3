"""
Batch task: month-wide consistency sweep.

One item per monthly-hours record of the period.  Each item validates the
guard's two ledgers and, when they disagree, writes one alert per issue.
An item whose alert fan-out partly fails is reported FAILED but keeps the
alerts that were written.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from guard_batch.domain.types import BatchItemStatus
from guard_batch.tasks.base import BatchItemInput, BatchTaskResult
from guard_kernel.domain.clock import Clock


class ConsistencySweepTask:
    """Validate every guard with monthly hours in ``parameters`` year/month."""

    TASK_TYPE = "alerts.consistency_sweep"

    def __init__(
        self,
        clock: Clock | None = None,
        alert_types: Mapping[str, str] | None = None,
        severities: Mapping[str, str] | None = None,
        default_type: str = "missing_hours",
        default_severity: str = "warning",
    ):
        self._clock = clock
        self._alert_types = alert_types
        self._severities = severities
        self._default_type = default_type
        self._default_severity = default_severity

    @property
    def task_type(self) -> str:
        return self.TASK_TYPE

    @property
    def description(self) -> str:
        return "Check monthly hours against payroll and raise consistency alerts"

    def _alert_service(self, session: AsyncSession):
        from guard_modules.alerts.service import AlertService

        return AlertService(
            session,
            clock=self._clock,
            alert_types=self._alert_types,
            severities=self._severities,
            default_type=self._default_type,
            default_severity=self._default_severity,
        )

    async def prepare_items(
        self,
        parameters: dict[str, Any],
        session: AsyncSession,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        from guard_modules.payroll.service import LedgerSynchronizer

        records = await LedgerSynchronizer(session).list_monthly_hours(
            parameters["year"], parameters["month"],
        )
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(record.guard_id),
                payload={"guard_id": str(record.guard_id)},
            )
            for i, record in enumerate(records)
        )

    async def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: AsyncSession,
        as_of: datetime,
    ) -> BatchTaskResult:
        year, month = parameters["year"], parameters["month"]
        guard_id = UUID(item.payload["guard_id"])
        alerts = self._alert_service(session)

        report = await alerts.validate_data_consistency(guard_id, year, month)
        if report.is_consistent:
            return BatchTaskResult(
                status=BatchItemStatus.SUCCEEDED,
                result_data={"guard_id": str(guard_id), "alerts_created": 0},
            )

        fanout = await alerts.create_consistency_alert(
            guard_id, year, month, report.issues,
        )
        if fanout.failures:
            # Alerts that were written stay; only the failed ones are missing
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                result_data={
                    "guard_id": str(guard_id),
                    "alerts_created": fanout.alerts_created,
                    "failed_issues": [f.issue for f in fanout.failures],
                },
                error_code="ALERT_WRITE_FAILED",
                error_message="; ".join(f.error for f in fanout.failures),
                keep_writes=True,
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "guard_id": str(guard_id),
                "alerts_created": fanout.alerts_created,
                "issues": [k.value for k in report.kinds()],
            },
        )
