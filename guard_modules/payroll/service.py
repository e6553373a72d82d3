"""
Ledger Synchronizer (``guard_modules.payroll.service``).

Responsibility
--------------
Keeps the monthly-hours ledger and the payroll ledger in step: propagates
worked hours and payments from a payroll record into the guard's monthly
aggregate, pushes corrected monthly totals back onto the period's payroll
records, and reports the sync state of a (guard, year, month).  Also owns
the CRUD both ledgers are synchronized over.

Architecture position
---------------------
**Modules layer** -- flush-only service over ``MonthlyHoursModel`` and
``PayrollRecordModel``.  The remaining-hours computation lives in the
model's save hook, not here.

Invariants enforced
-------------------
* The period of a payroll-to-monthly sync is explicit.  It defaults to the
  payroll record's own ``(period_year, period_month)`` and is never taken
  from the wall clock.
* Payroll records are matched to a month by that explicit period key.
* A sync runs inside a SAVEPOINT: either every derived field is written or
  none is.
* Syncing the same payroll snapshot twice yields the same monthly record.
* Paid hours are ``(pay1 + pay2 + pay3) / pay_rate`` split into floor hours
  and half-up rounded minutes; a rounded 60 carries into the hour.

Failure modes
-------------
* ValidationError -- bad period, negative hours, minutes outside [0, 59].
* MonthlyHoursNotFoundError / PayrollRecordNotFoundError -- missing records.
* Storage errors propagate; the savepoint is rolled back first.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from guard_kernel.domain.hours import (
    HoursMinutes,
    from_decimal,
    quantize_hours,
    sum_hours,
)
from guard_kernel.domain.period import validate_period
from guard_kernel.exceptions import (
    MonthlyHoursNotFoundError,
    PayrollRecordNotFoundError,
    ValidationError,
)
from guard_kernel.logging_config import LogContext, get_logger
from guard_kernel.services.base import BaseService
from guard_modules.alerts.orm import AlertModel
from guard_modules.payroll.models import (
    BankDetails,
    MonthlyHoursRecord,
    MonthSummary,
    PayrollRecord,
    SyncResult,
    SyncStatus,
)
from guard_modules.payroll.orm import MonthlyHoursModel, PayrollRecordModel

logger = get_logger("modules.payroll.service")

_ZERO = Decimal("0")


def _whole_hours(field: str, hours: int, minutes: int) -> HoursMinutes:
    """Validate a stored (hours, minutes) pair."""
    if isinstance(hours, bool) or not isinstance(hours, int):
        raise ValidationError(field, hours, "hours must be an integer")
    if hours < 0:
        raise ValidationError(field, hours, "hours cannot be negative")
    return HoursMinutes(hours, int(minutes or 0))


def _money(field: str, value) -> Decimal:
    amount = Decimal(str(value or 0))
    if amount < _ZERO:
        raise ValidationError(field, value, "cannot be negative")
    return amount


def paid_hours_from_payments(payroll: PayrollRecord) -> HoursMinutes | None:
    """Hours covered by the record's payments, or None when there is no pay rate."""
    if payroll.pay_rate <= _ZERO:
        return None
    return from_decimal(payroll.paid_amount / payroll.pay_rate)


class LedgerSynchronizer(BaseService[MonthlyHoursModel]):
    """
    Bidirectional sync between payroll records and monthly hours.

    Contract
    --------
    * Every method is awaitable and flushes within the caller's
      transaction.
    * ``sync_payroll_to_monthly_hours`` and
      ``sync_monthly_hours_to_payroll`` isolate their writes in a SAVEPOINT.

    Guarantees
    ----------
    * Worked hours are only overwritten by nonzero payroll values.
    * Paid hours are left alone when the payroll record has no pay rate.

    Non-goals
    ---------
    * Does NOT validate consistency or raise alerts; see ``AlertService``.
    """

    # =========================================================================
    # Payroll records
    # =========================================================================

    async def record_payroll(
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
    ) -> PayrollRecord:
        validate_period(period_year, period_month)
        worked = _whole_hours("total_hours", total_hours, total_minutes)
        dto = PayrollRecord(
            id=uuid4(),
            guard_id=guard_id,
            period_year=period_year,
            period_month=period_month,
            total_hours=worked.hours,
            total_minutes=worked.minutes,
            pay_rate=_money("pay_rate", pay_rate),
            charge_rate=_money("charge_rate", charge_rate),
            pay1=_money("pay1", pay1),
            pay2=_money("pay2", pay2),
            pay3=_money("pay3", pay3),
            guard_name=guard_name,
            client_name=client_name,
            site_name=site_name,
            bank=bank or BankDetails(),
        )
        model = PayrollRecordModel.from_dto(dto)
        now = self.clock.now()
        model.created_at = now
        model.updated_at = now
        self.session.add(model)
        await self.session.flush()
        logger.info("payroll_recorded", extra={
            "payroll_id": str(dto.id),
            "guard_id": str(guard_id),
            "year": period_year,
            "month": period_month,
            "total_hours": worked.hours,
            "total_minutes": worked.minutes,
        })
        return model.to_dto()

    async def get_payroll_record(self, record_id: UUID) -> PayrollRecord:
        model = await self.session.get(PayrollRecordModel, record_id)
        if model is None:
            raise PayrollRecordNotFoundError(str(record_id))
        return model.to_dto()

    async def _payroll_models(self, guard_id: UUID, year: int, month: int) -> list[PayrollRecordModel]:
        return list((await self.session.execute(
            select(PayrollRecordModel)
            .where(
                PayrollRecordModel.guard_id == guard_id,
                PayrollRecordModel.period_year == year,
                PayrollRecordModel.period_month == month,
            )
            .order_by(PayrollRecordModel.created_at, PayrollRecordModel.id)
        )).scalars().all())

    async def get_payroll_records(self, guard_id: UUID, year: int, month: int) -> list[PayrollRecord]:
        validate_period(year, month)
        return [m.to_dto() for m in await self._payroll_models(guard_id, year, month)]

    # =========================================================================
    # Monthly hours
    # =========================================================================

    async def _find_monthly(self, guard_id: UUID, year: int, month: int) -> MonthlyHoursModel | None:
        return (await self.session.execute(
            select(MonthlyHoursModel).where(
                MonthlyHoursModel.guard_id == guard_id,
                MonthlyHoursModel.year == year,
                MonthlyHoursModel.month == month,
            )
        )).scalar_one_or_none()

    async def _get_or_create_monthly(
        self, guard_id: UUID, year: int, month: int, worked: HoursMinutes,
    ) -> tuple[MonthlyHoursModel, bool]:
        """
        Find the (guard, year, month) record or insert one with ``worked``.

        Returns (model, created).  A concurrent insert that wins the race
        is re-read and returned as existing.
        """
        existing = await self._find_monthly(guard_id, year, month)
        if existing is not None:
            return existing, False

        model = MonthlyHoursModel(
            id=uuid4(),
            guard_id=guard_id,
            year=year,
            month=month,
            total_hours=worked.hours,
            total_minutes=worked.minutes,
            paid_hours=0,
            paid_minutes=0,
            notes="",
        )
        try:
            async with self.session.begin_nested():
                self.session.add(model)
                await self.session.flush()
        except IntegrityError:
            logger.warning("monthly_hours_insert_race", extra={
                "guard_id": str(guard_id), "year": year, "month": month,
            })
            winner = await self._find_monthly(guard_id, year, month)
            if winner is None:
                raise
            return winner, False
        return model, True

    async def record_monthly_hours(
        self,
        guard_id: UUID,
        year: int,
        month: int,
        total_hours: int,
        total_minutes: int = 0,
        paid_hours: int | None = None,
        paid_minutes: int | None = None,
        notes: str | None = None,
    ) -> MonthlyHoursRecord:
        """
        Create or update the worked (and optionally paid) hours for a month.

        Paid hours are only changed when ``paid_hours`` is given.
        """
        validate_period(year, month)
        worked = _whole_hours("total_hours", total_hours, total_minutes)
        paid = (
            _whole_hours("paid_hours", paid_hours, paid_minutes or 0)
            if paid_hours is not None else None
        )

        model, created = await self._get_or_create_monthly(guard_id, year, month, worked)
        model.total_hours = worked.hours
        model.total_minutes = worked.minutes
        if paid is not None:
            model.paid_hours = paid.hours
            model.paid_minutes = paid.minutes
        if notes is not None:
            model.notes = notes
        await self.session.flush()

        logger.info("monthly_hours_recorded", extra={
            "guard_id": str(guard_id),
            "year": year,
            "month": month,
            "record_created": created,
            "total_hours": model.total_hours,
            "total_minutes": model.total_minutes,
            "remaining_hours": model.remaining_hours,
            "remaining_minutes": model.remaining_minutes,
        })
        return model.to_dto()

    async def get_monthly_hours(self, guard_id: UUID, year: int, month: int) -> MonthlyHoursRecord | None:
        validate_period(year, month)
        model = await self._find_monthly(guard_id, year, month)
        return model.to_dto() if model else None

    async def list_monthly_hours(self, year: int, month: int) -> list[MonthlyHoursRecord]:
        validate_period(year, month)
        models = (await self.session.execute(
            select(MonthlyHoursModel)
            .where(MonthlyHoursModel.year == year, MonthlyHoursModel.month == month)
            .order_by(MonthlyHoursModel.created_at, MonthlyHoursModel.id)
        )).scalars().all()
        return [m.to_dto() for m in models]

    async def delete_monthly_hours(self, guard_id: UUID, year: int, month: int) -> None:
        validate_period(year, month)
        model = await self._find_monthly(guard_id, year, month)
        if model is None:
            raise MonthlyHoursNotFoundError(str(guard_id), year, month)
        await self.session.delete(model)
        await self.session.flush()
        logger.info("monthly_hours_deleted", extra={
            "guard_id": str(guard_id), "year": year, "month": month,
        })

    # =========================================================================
    # Synchronization
    # =========================================================================

    async def sync_payroll_to_monthly_hours(
        self,
        payroll: PayrollRecord,
        year: int | None = None,
        month: int | None = None,
    ) -> MonthlyHoursRecord:
        """
        Fold one payroll record into the guard's monthly-hours record.

        Worked hours are overwritten only by nonzero payroll values.  Paid
        hours are derived from the payments when the pay rate is positive.
        The save hook then recomputes remaining.
        """
        year = payroll.period_year if year is None else year
        month = payroll.period_month if month is None else month
        validate_period(year, month)

        with LogContext.bind(guard_id=str(payroll.guard_id)):
            async with self.session.begin_nested():
                worked = HoursMinutes(payroll.total_hours or 0, payroll.total_minutes or 0)
                model, created = await self._get_or_create_monthly(
                    payroll.guard_id, year, month, worked,
                )
                if not created:
                    if payroll.total_hours:
                        model.total_hours = payroll.total_hours
                    if payroll.total_minutes:
                        model.total_minutes = payroll.total_minutes

                paid = paid_hours_from_payments(payroll)
                if paid is not None:
                    model.paid_hours = paid.hours
                    model.paid_minutes = paid.minutes
                await self.session.flush()

            logger.info("payroll_synced_to_monthly_hours", extra={
                "payroll_id": str(payroll.id),
                "year": year,
                "month": month,
                "record_created": created,
                "paid_hours": model.paid_hours,
                "paid_minutes": model.paid_minutes,
                "remaining_hours": model.remaining_hours,
                "remaining_minutes": model.remaining_minutes,
            })
        return model.to_dto()

    async def sync_monthly_hours_to_payroll(self, monthly: MonthlyHoursRecord) -> SyncResult:
        """
        Overwrite worked hours on every payroll record of the period.

        Zero matching records is a successful sync of nothing.
        """
        validate_period(monthly.year, monthly.month)
        async with self.session.begin_nested():
            records = await self._payroll_models(monthly.guard_id, monthly.year, monthly.month)
            for record in records:
                record.total_hours = monthly.total_hours
                record.total_minutes = monthly.total_minutes or 0
            await self.session.flush()

        logger.info("monthly_hours_synced_to_payroll", extra={
            "guard_id": str(monthly.guard_id),
            "year": monthly.year,
            "month": monthly.month,
            "records_updated": len(records),
        })
        return SyncResult(
            records_updated=len(records),
            message=f"Synced {len(records)} payroll records with monthly hours",
        )

    async def get_sync_status(self, guard_id: UUID, year: int, month: int) -> SyncStatus:
        validate_period(year, month)
        monthly = await self._find_monthly(guard_id, year, month)
        payroll_count = (await self.session.execute(
            select(func.count()).select_from(PayrollRecordModel).where(
                PayrollRecordModel.guard_id == guard_id,
                PayrollRecordModel.period_year == year,
                PayrollRecordModel.period_month == month,
            )
        )).scalar_one()
        last_alert_at = (await self.session.execute(
            select(AlertModel.created_at)
            .where(
                AlertModel.guard_id == guard_id,
                AlertModel.period_year == year,
                AlertModel.period_month == month,
            )
            .order_by(AlertModel.created_at.desc())
            .limit(1)
        )).scalar_one_or_none()
        return SyncStatus(
            guard_id=guard_id,
            year=year,
            month=month,
            monthly_hours_exists=monthly is not None,
            payroll_records_count=int(payroll_count),
            last_sync_time=last_alert_at,
        )

    # =========================================================================
    # Reporting
    # =========================================================================

    async def month_summary(self, year: int, month: int) -> MonthSummary:
        """Totals over every monthly record and payroll record of the period."""
        records = await self.list_monthly_hours(year, month)
        payments = (await self.session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.period_year == year,
                PayrollRecordModel.period_month == month,
            )
        )).scalars().all()

        worked = sum_hours((r.total_hours, r.total_minutes) for r in records)
        paid = sum_hours((r.paid_hours, r.paid_minutes) for r in records)
        remaining = sum_hours((r.remaining_hours, r.remaining_minutes) for r in records)
        total_pay = sum((p.pay1 + p.pay2 + p.pay3 for p in payments), _ZERO)

        guards = len(records)
        worked_hours = worked.as_decimal
        return MonthSummary(
            year=year,
            month=month,
            guard_count=guards,
            worked=worked,
            paid=paid,
            remaining=remaining,
            total_payroll_amount=quantize_hours(total_pay),
            average_hours_per_guard=quantize_hours(worked_hours / guards) if guards else _ZERO,
            average_pay_per_guard=(
                quantize_hours(total_pay / len(payments)) if payments else _ZERO
            ),
            average_hourly_rate=(
                quantize_hours(total_pay / worked_hours) if worked_hours > _ZERO else _ZERO
            ),
        )
