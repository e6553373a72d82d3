"""
Consistency Validator & Alerter (``guard_modules.alerts.service``).

Responsibility
--------------
Fetches one guard's monthly-hours record and payroll records for a period,
runs the pure consistency checks, and turns each finding into a persisted
alert.  Also covers the alert lifecycle: listing, marking read, resolving.

Architecture position
---------------------
**Modules layer** -- ``ConsistencyValidator`` reads both ledgers and
delegates classification to ``guard_engines.consistency``.
``AlertService`` persists ``AlertModel`` rows.

Invariants enforced
-------------------
* One alert per issue.  Each alert is written in its own SAVEPOINT, so a
  failed write is recorded in the result and does not block the others.
* Type and severity come from the supplied maps, falling back to the
  defaults (missing_hours / warning).
* Title and description use a fixed template per issue kind.

Failure modes
-------------
* ValidationError -- bad period.
* AlertNotFoundError -- ``mark_read`` / ``resolve`` on an unknown id.
* Any per-alert error in ``create_consistency_alert`` is captured,
  logged as ``consistency_alert_failed`` and reported, never raised.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guard_engines.consistency import (
    AlertSeverity,
    AlertType,
    ConsistencyIssue,
    ConsistencyReport,
    check_consistency,
    draft_alert,
)
from guard_kernel.domain.clock import Clock
from guard_kernel.domain.period import validate_period
from guard_kernel.exceptions import AlertNotFoundError
from guard_kernel.logging_config import LogContext, get_logger
from guard_kernel.services.base import BaseService
from guard_modules.alerts.models import Alert, AlertFailure, AlertFanoutResult
from guard_modules.alerts.orm import AlertModel
from guard_modules.payroll.orm import MonthlyHoursModel, PayrollRecordModel

logger = get_logger("modules.alerts.service")


class ConsistencyValidator:
    """
    Reads both ledgers for one (guard, year, month) and classifies them.

    Read-only; never writes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def validate(self, guard_id: UUID, year: int, month: int) -> ConsistencyReport:
        validate_period(year, month)
        monthly = (await self.session.execute(
            select(MonthlyHoursModel).where(
                MonthlyHoursModel.guard_id == guard_id,
                MonthlyHoursModel.year == year,
                MonthlyHoursModel.month == month,
            )
        )).scalar_one_or_none()
        payroll = (await self.session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.guard_id == guard_id,
                PayrollRecordModel.period_year == year,
                PayrollRecordModel.period_month == month,
            )
        )).scalars().all()
        return check_consistency(
            monthly, list(payroll), guard_id=guard_id, year=year, month=month,
        )


class AlertService(BaseService[AlertModel]):
    """
    Consistency alerts and alert lifecycle.

    Contract
    --------
    * ``alert_types`` / ``severities`` map issue kind names to alert type
      and severity values; unmapped kinds use the defaults.

    Guarantees
    ----------
    * ``create_consistency_alert`` always returns; every issue is either
      an alert in the result or a failure entry.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        alert_types: Mapping[str, str] | None = None,
        severities: Mapping[str, str] | None = None,
        default_type: str = AlertType.MISSING_HOURS.value,
        default_severity: str = AlertSeverity.WARNING.value,
    ):
        super().__init__(session, clock)
        self._validator = ConsistencyValidator(session)
        self._alert_types = alert_types
        self._severities = severities
        self._default_type = default_type
        self._default_severity = default_severity

    async def validate_data_consistency(
        self, guard_id: UUID, year: int, month: int,
    ) -> ConsistencyReport:
        report = await self._validator.validate(guard_id, year, month)
        logger.info("consistency_validated", extra={
            "guard_id": str(guard_id),
            "year": year,
            "month": month,
            "is_consistent": report.is_consistent,
            "issues": [k.value for k in report.kinds()],
        })
        return report

    async def create_consistency_alert(
        self,
        guard_id: UUID,
        year: int,
        month: int,
        issues: Sequence[ConsistencyIssue],
    ) -> AlertFanoutResult:
        """Persist one alert per issue, each independently."""
        validate_period(year, month)
        created: list[Alert] = []
        failures: list[AlertFailure] = []

        with LogContext.bind(guard_id=str(guard_id)):
            for issue in issues:
                draft = draft_alert(
                    issue, year, month,
                    alert_types=self._alert_types,
                    severities=self._severities,
                    default_type=self._default_type,
                    default_severity=self._default_severity,
                )
                dto = Alert(
                    id=uuid4(),
                    guard_id=guard_id,
                    alert_type=draft.alert_type,
                    severity=draft.severity,
                    title=draft.title,
                    description=draft.description,
                    related_data=draft.related_data,
                )
                try:
                    async with self.session.begin_nested():
                        model = AlertModel.from_dto(dto)
                        now = self.clock.now()
                        model.created_at = now
                        model.updated_at = now
                        self.session.add(model)
                        await self.session.flush()
                except Exception as exc:
                    logger.error("consistency_alert_failed", extra={
                        "issue": issue.kind.value,
                        "year": year,
                        "month": month,
                        "error": str(exc),
                    })
                    failures.append(AlertFailure(issue=issue.kind.value, error=str(exc)))
                    continue
                created.append(model.to_dto())
                logger.info("consistency_alert_created", extra={
                    "alert_id": str(dto.id),
                    "issue": issue.kind.value,
                    "alert_type": dto.alert_type,
                    "severity": dto.severity,
                })

        return AlertFanoutResult(alerts=tuple(created), failures=tuple(failures))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _model(self, alert_id: UUID) -> AlertModel:
        model = await self.session.get(AlertModel, alert_id)
        if model is None:
            raise AlertNotFoundError(str(alert_id))
        return model

    async def get_alert(self, alert_id: UUID) -> Alert:
        return (await self._model(alert_id)).to_dto()

    async def list_alerts(
        self,
        guard_id: UUID | None = None,
        is_resolved: bool | None = None,
        severity: str | None = None,
    ) -> list[Alert]:
        """Newest first, optionally filtered."""
        stmt = select(AlertModel)
        if guard_id is not None:
            stmt = stmt.where(AlertModel.guard_id == guard_id)
        if is_resolved is not None:
            stmt = stmt.where(AlertModel.is_resolved.is_(is_resolved))
        if severity is not None:
            stmt = stmt.where(AlertModel.severity == getattr(severity, "value", severity))
        stmt = stmt.order_by(AlertModel.created_at.desc(), AlertModel.id)
        return [m.to_dto() for m in (await self.session.execute(stmt)).scalars().all()]

    async def mark_read(self, alert_id: UUID) -> Alert:
        model = await self._model(alert_id)
        model.is_read = True
        await self.session.flush()
        return model.to_dto()

    async def resolve(self, alert_id: UUID, notes: str = "") -> Alert:
        model = await self._model(alert_id)
        model.is_resolved = True
        model.resolved_at = self.clock.now()
        model.resolved_notes = notes
        await self.session.flush()
        logger.info("alert_resolved", extra={"alert_id": str(alert_id)})
        return model.to_dto()
