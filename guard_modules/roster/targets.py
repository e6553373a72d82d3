"""
Monthly Target Tracker (``guard_modules.roster.targets``).

Responsibility
--------------
Stores and retrieves the planned primary/associated hours per
(row, year, month), and supplies the "remaining primary hours in the
month" figure used by month-granularity allocation.

Architecture position
---------------------
**Modules layer** -- flush-only service over ``MonthlyTargetModel`` and
``RosterEntryModel``.

Invariants enforced
-------------------
* ``total_hours`` is recomputed from primary plus associated on every write;
  a caller-supplied total is never accepted.
* One target per (row, year, month): find-or-create upsert, backed by the
  ``uq_roster_target_row_period`` constraint.  A concurrent insert that
  loses the race re-reads and updates inside a SAVEPOINT.
* Associated slots with zero hours are dropped on write.
* A write whose total is zero clears the target.

Failure modes
-------------
* ValidationError on negative hours or an invalid period.
* GuardRowNotFoundError when the row does not exist.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from guard_kernel.domain.period import validate_period
from guard_kernel.domain.values import ZERO_HOURS, GuardAssignment, to_hours
from guard_kernel.exceptions import GuardRowNotFoundError
from guard_kernel.logging_config import get_logger
from guard_kernel.services.base import BaseService
from guard_modules.roster.models import MonthlyTarget
from guard_modules.roster.orm import GuardRowModel, MonthlyTargetModel, RosterEntryModel

logger = get_logger("modules.roster.targets")


class MonthlyTargetService(BaseService[MonthlyTargetModel]):
    """
    Lookup and update of monthly targets.

    Contract:
        Every method is awaitable and flushes within the caller's
        transaction.
    Guarantees:
        - ``remaining()`` returns None (unconstrained) when no positive
          primary target is set; a missing target is not a cap of zero.
    """

    async def _find(self, row_id: UUID, year: int, month: int) -> MonthlyTargetModel | None:
        return (await self.session.execute(
            select(MonthlyTargetModel).where(
                MonthlyTargetModel.row_id == row_id,
                MonthlyTargetModel.year == year,
                MonthlyTargetModel.month == month,
            )
        )).scalar_one_or_none()

    async def get_target(self, row_id: UUID, year: int, month: int) -> MonthlyTarget | None:
        validate_period(year, month)
        model = await self._find(row_id, year, month)
        return model.to_dto() if model else None

    async def set_target(
        self,
        row_id: UUID,
        year: int,
        month: int,
        primary_hours: Decimal,
        associated: Sequence[GuardAssignment] = (),
        notes: str = "",
    ) -> MonthlyTarget | None:
        """
        Create or replace the target for (row, year, month).

        Returns the stored target, or None when the new total is zero and
        the target was cleared.
        """
        validate_period(year, month)
        primary = to_hours(primary_hours, field="primary_hours")
        slots = tuple(a for a in associated if a.hours > ZERO_HOURS)

        row = await self.session.get(GuardRowModel, row_id)
        if row is None:
            raise GuardRowNotFoundError(str(row_id))

        existing = await self._find(row_id, year, month)
        dto = MonthlyTarget(
            id=existing.id if existing else uuid4(),
            row_id=row_id,
            year=year,
            month=month,
            primary_hours=primary,
            associated=slots,
            notes=notes or "",
        )

        if dto.total_hours <= ZERO_HOURS:
            await self.clear_target(row_id, year, month)
            return None

        if existing is not None:
            existing.apply_dto(dto)
            await self.session.flush()
        else:
            await self._insert_or_update(dto)

        logger.info("monthly_target_set", extra={
            "row_id": str(row_id),
            "year": year,
            "month": month,
            "primary_hours": str(dto.primary_hours),
            "total_hours": str(dto.total_hours),
        })
        return dto

    async def _insert_or_update(self, dto: MonthlyTarget) -> None:
        try:
            async with self.session.begin_nested():
                self.session.add(MonthlyTargetModel.from_dto(dto))
                await self.session.flush()
        except IntegrityError:
            logger.warning("monthly_target_insert_race", extra={
                "row_id": str(dto.row_id), "year": dto.year, "month": dto.month,
            })
            winner = await self._find(dto.row_id, dto.year, dto.month)
            if winner is None:
                raise
            winner.apply_dto(dto)
            await self.session.flush()

    async def clear_target(self, row_id: UUID, year: int, month: int) -> bool:
        """Delete the target; True if one existed."""
        validate_period(year, month)
        result = await self.session.execute(
            delete(MonthlyTargetModel).where(
                MonthlyTargetModel.row_id == row_id,
                MonthlyTargetModel.year == year,
                MonthlyTargetModel.month == month,
            )
        )
        cleared = (result.rowcount or 0) > 0
        if cleared:
            logger.info("monthly_target_cleared", extra={
                "row_id": str(row_id), "year": year, "month": month,
            })
        return cleared

    async def primary_hours_in_month(self, row_id: UUID, year: int, month: int) -> Decimal:
        """Primary hours already rostered for the row in the month."""
        validate_period(year, month)
        hours = (await self.session.execute(
            select(RosterEntryModel.primary_hours).where(
                RosterEntryModel.row_id == row_id,
                RosterEntryModel.year == year,
                RosterEntryModel.month == month,
            )
        )).scalars().all()
        return sum((Decimal(h) for h in hours), ZERO_HOURS)

    async def remaining(self, row_id: UUID, year: int, month: int) -> Decimal | None:
        """
        ``max(primary target - primary hours in month, 0)``, or None when
        no positive primary target is set.
        """
        target = await self.get_target(row_id, year, month)
        if target is None or target.primary_hours <= ZERO_HOURS:
            return None
        accumulated = await self.primary_hours_in_month(row_id, year, month)
        return max(target.primary_hours - accumulated, ZERO_HOURS)
