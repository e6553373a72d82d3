"""
Roster Module Service (``guard_modules.roster.service``).

Responsibility
--------------
Guard-row maintenance, roster-entry persistence and the allocation entry
points.  Reads targets and prior entries from the ledger and delegates the
primary/associated split to ``RosterAllocationEngine``.

Architecture position
---------------------
**Modules layer** -- thin async glue.  ``RosterService`` composes the
pure ``RosterAllocationEngine`` with ``MonthlyTargetService`` and the roster
ORM models.

Invariants enforced
-------------------
* Flush-only: the caller owns the outer transaction.
* A roster entry's stored ``total_hours`` is always recomputed from its
  parts.  Zero-hour associated slots are dropped.  A zero total removes the
  entry.
* One entry per (row, date_string): find-or-create upsert backed by
  ``uq_roster_entry_row_date``; a losing concurrent insert re-reads and
  updates inside a SAVEPOINT.
* Deleting a row deletes its entries and targets.
* Saved primary hours never exceed the remaining target for the day.

Failure modes
-------------
* ValidationError  -- negative hours, bad period, unknown explicit status.
* GuardRowNotFoundError / RosterEntryNotFoundError -- missing anchors.

Usage::

    roster = RosterService(session, clock=clock)
    row = await roster.create_row(primary_guard_id=g1, associated_guard_ids=[g2])
    await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("160"))
    proposal = await roster.compute_allocation(row.id, date(2024, 3, 4), Decimal("12"))
    await roster.save_entry(
        row.id, date(2024, 3, 4),
        primary_hours=proposal.primary_hours,
        associated=proposal.associated,
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guard_engines.allocation import (
    UNCONSTRAINED,
    AllocationMode,
    AllocationResult,
    PriorAssignment,
    RosterAllocationEngine,
)
from guard_kernel.domain.clock import Clock
from guard_kernel.domain.period import date_string, days_between
from guard_kernel.domain.values import (
    ZERO_HOURS,
    GuardAssignment,
    sum_assignment_hours,
    to_hours,
)
from guard_kernel.exceptions import (
    GuardRowNotFoundError,
    RosterEntryNotFoundError,
    ValidationError,
)
from guard_kernel.logging_config import LogContext, get_logger
from guard_kernel.services.base import BaseService
from guard_modules.roster.models import (
    EntryStatus,
    GuardRow,
    RosterCell,
    RosterEntry,
    RosterRowView,
    RosterView,
    ShiftCounts,
)
from guard_modules.roster.orm import GuardRowModel, MonthlyTargetModel, RosterEntryModel
from guard_modules.roster.targets import MonthlyTargetService

logger = get_logger("modules.roster.service")


def _unique_ids(ids: Sequence[UUID]) -> tuple[UUID, ...]:
    seen: dict[UUID, None] = {}
    for guard_id in ids:
        seen.setdefault(guard_id, None)
    return tuple(seen)


class RosterService(BaseService[RosterEntryModel]):
    """
    Roster rows, entries and allocation.

    Contract
    --------
    * Allocation methods (``remaining_primary_target``,
      ``compute_allocation``) read only; they never write an entry.
    * ``save_entry`` is the only writer of roster entries.

    Guarantees
    ----------
    * ``get_entry_status`` reports UNASSIGNED for a day with no entry.
    * Status changes are explicit and not time-gated.

    Non-goals
    ---------
    * Does NOT sync anything into the payroll ledger; roster hours and
      monthly hours are reconciled by the collaborator that records them.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        engine: RosterAllocationEngine | None = None,
        targets: MonthlyTargetService | None = None,
    ):
        super().__init__(session, clock)
        self._engine = engine or RosterAllocationEngine()
        self._targets = targets or MonthlyTargetService(session, clock=self.clock)

    @property
    def targets(self) -> MonthlyTargetService:
        return self._targets

    # =========================================================================
    # Guard rows
    # =========================================================================

    async def create_row(
        self,
        primary_guard_id: UUID | None,
        associated_guard_ids: Sequence[UUID] = (),
        client_id: UUID | None = None,
        client_name: str = "",
        site_name: str = "",
        guard_name: str = "",
        notes: str = "",
    ) -> GuardRow:
        dto = GuardRow(
            id=uuid4(),
            primary_guard_id=primary_guard_id,
            associated_guard_ids=_unique_ids(associated_guard_ids),
            client_id=client_id,
            client_name=client_name,
            site_name=site_name,
            guard_name=guard_name,
            notes=notes,
        )
        self.session.add(GuardRowModel.from_dto(dto))
        await self.session.flush()
        logger.info("roster_row_created", extra={
            "row_id": str(dto.id),
            "primary_guard_id": str(primary_guard_id) if primary_guard_id else None,
            "associated_count": len(dto.associated_guard_ids),
        })
        return dto

    async def _row_model(self, row_id: UUID) -> GuardRowModel:
        model = await self.session.get(GuardRowModel, row_id)
        if model is None:
            raise GuardRowNotFoundError(str(row_id))
        return model

    async def get_row(self, row_id: UUID) -> GuardRow:
        return (await self._row_model(row_id)).to_dto()

    async def update_row(
        self,
        row_id: UUID,
        *,
        primary_guard_id: UUID | None = None,
        associated_guard_ids: Sequence[UUID] | None = None,
        client_name: str | None = None,
        site_name: str | None = None,
        guard_name: str | None = None,
        active: bool | None = None,
        notes: str | None = None,
    ) -> GuardRow:
        """Change only the fields that are given."""
        model = await self._row_model(row_id)
        if primary_guard_id is not None:
            model.primary_guard_id = primary_guard_id
        if associated_guard_ids is not None:
            model.associated_guard_ids = [str(g) for g in _unique_ids(associated_guard_ids)]
        if client_name is not None:
            model.client_name = client_name
        if site_name is not None:
            model.site_name = site_name
        if guard_name is not None:
            model.guard_name = guard_name
        if active is not None:
            model.active = active
        if notes is not None:
            model.notes = notes
        await self.session.flush()
        return model.to_dto()

    async def delete_row(self, row_id: UUID) -> None:
        """Delete a row together with every entry and target it owns."""
        model = await self._row_model(row_id)
        entries = await self.session.execute(
            delete(RosterEntryModel).where(RosterEntryModel.row_id == row_id)
        )
        targets = await self.session.execute(
            delete(MonthlyTargetModel).where(MonthlyTargetModel.row_id == row_id)
        )
        await self.session.delete(model)
        await self.session.flush()
        logger.info("roster_row_deleted", extra={
            "row_id": str(row_id),
            "entries_deleted": entries.rowcount or 0,
            "targets_deleted": targets.rowcount or 0,
        })

    async def list_active_rows(self) -> list[GuardRow]:
        rows = (await self.session.execute(
            select(GuardRowModel)
            .where(GuardRowModel.active.is_(True))
            .order_by(
                GuardRowModel.client_name,
                GuardRowModel.site_name,
                GuardRowModel.guard_name,
            )
        )).scalars().all()
        return [r.to_dto() for r in rows]

    # =========================================================================
    # Allocation
    # =========================================================================

    async def _month_entries(self, row_id: UUID, year: int, month: int) -> list[RosterEntryModel]:
        return list((await self.session.execute(
            select(RosterEntryModel)
            .where(
                RosterEntryModel.row_id == row_id,
                RosterEntryModel.year == year,
                RosterEntryModel.month == month,
            )
            .order_by(RosterEntryModel.entry_date)
        )).scalars().all())

    async def _primary_target(self, row_id: UUID, year: int, month: int) -> Decimal:
        target = await self._targets.get_target(row_id, year, month)
        return target.primary_hours if target else ZERO_HOURS

    async def remaining_primary_target(
        self,
        row_id: UUID,
        as_of: date,
        hours_before_range: Decimal = ZERO_HOURS,
    ) -> Decimal:
        """
        Remaining primary hours for the row on ``as_of``.

        Counts the month's entries strictly before ``as_of``.  Returns
        ``UNCONSTRAINED`` when the month has no positive primary target.
        """
        await self._row_model(row_id)
        entries = await self._month_entries(row_id, as_of.year, as_of.month)
        target = await self._primary_target(row_id, as_of.year, as_of.month)
        return self._engine.remaining_primary_target(
            target,
            [PriorAssignment(e.entry_date, e.primary_hours) for e in entries],
            as_of,
            hours_before_range=hours_before_range,
        )

    async def compute_allocation(
        self,
        row_id: UUID,
        as_of: date,
        requested_total: Decimal,
        mode: AllocationMode = AllocationMode.DAY,
        hours_before_range: Decimal = ZERO_HOURS,
    ) -> AllocationResult:
        """
        Propose a split of ``requested_total`` for the cell on ``as_of``.

        DAY mode starts from the existing entry's associated slots (or the
        row's first associated guard).  MONTH mode starts from the monthly
        target's associated slots and caps primary at the month's remaining
        target.
        """
        row = await self.get_row(row_id)
        year, month = as_of.year, as_of.month
        target = await self._targets.get_target(row_id, year, month)
        entries = await self._month_entries(row_id, year, month)

        if mode is AllocationMode.MONTH:
            existing_associated = target.associated if target else ()
        else:
            current = next(
                (e for e in entries if e.date_string == date_string(as_of)), None,
            )
            existing_associated = current.associated_assignments() if current else ()
        if not existing_associated and row.default_associated_guard_id:
            existing_associated = (GuardAssignment(row.default_associated_guard_id),)

        result = self._engine.compute_allocation(
            requested_total=requested_total,
            primary_target_hours=target.primary_hours if target else ZERO_HOURS,
            prior_assignments=[
                PriorAssignment(e.entry_date, e.primary_hours) for e in entries
            ],
            as_of=as_of,
            mode=mode,
            existing_associated=existing_associated,
            default_guard_id=row.default_associated_guard_id,
            primary_guard_id=row.primary_guard_id,
            hours_before_range=hours_before_range,
        )
        with LogContext.bind(row_id=str(row_id)):
            logger.info("allocation_computed", extra={
                "date": date_string(as_of),
                "mode": mode.value,
                "requested_total": str(requested_total),
                "primary_hours": str(result.primary_hours),
                "associated_hours": str(result.associated_hours),
                "unconstrained": result.remaining_target == UNCONSTRAINED,
            })
        return result

    # =========================================================================
    # Entries
    # =========================================================================

    async def _find_entry(self, row_id: UUID, key: str) -> RosterEntryModel | None:
        return (await self.session.execute(
            select(RosterEntryModel).where(
                RosterEntryModel.row_id == row_id,
                RosterEntryModel.date_string == key,
            )
        )).scalar_one_or_none()

    async def get_entry(self, row_id: UUID, on: date) -> RosterEntry | None:
        model = await self._find_entry(row_id, date_string(on))
        return model.to_dto() if model else None

    async def save_entry(
        self,
        row_id: UUID,
        on: date,
        primary_hours: Decimal,
        associated: Sequence[GuardAssignment] = (),
        status: EntryStatus | str | None = None,
        notes: str = "",
    ) -> RosterEntry | None:
        """
        Create or replace the entry for (row, on).

        Primary hours above the remaining target are clamped and the excess
        is moved onto the associated slots by the overflow policy, so the
        stored total equals what was entered.  Returns the stored entry, or
        None when the total is zero and the entry was removed.
        """
        primary = to_hours(primary_hours, field="primary_hours")
        slots = tuple(a for a in associated if a.hours > ZERO_HOURS)

        row = await self.get_row(row_id)
        remaining = await self.remaining_primary_target(row_id, on)
        clamped = self._engine.reverse_from_primary(
            primary_edited=primary,
            remaining=remaining,
            associated=slots,
            primary_guard_id=row.primary_guard_id,
        )
        excess = primary - clamped.primary_hours
        associated_out = clamped.associated
        if excess > ZERO_HOURS:
            associated_out = self._engine.redirect_excess(
                excess, slots, default_guard_id=row.default_associated_guard_id,
            )

        key = date_string(on)
        existing = await self._find_entry(row_id, key)
        if clamped.primary_hours + sum_assignment_hours(associated_out) <= ZERO_HOURS:
            if existing is not None:
                await self.session.delete(existing)
                await self.session.flush()
                logger.info("roster_entry_cleared", extra={
                    "row_id": str(row_id), "date": key,
                })
            return None

        dto = RosterEntry(
            id=existing.id if existing else uuid4(),
            row_id=row_id,
            on=on,
            status=EntryStatus.coerce(status),
            primary=clamped.primary,
            associated=associated_out,
            notes=notes or "",
        )
        if existing is not None:
            existing.apply_dto(dto)
            await self.session.flush()
        else:
            await self._insert_or_update(dto)

        logger.info("roster_entry_saved", extra={
            "row_id": str(row_id),
            "date": key,
            "status": dto.status.value,
            "primary_hours": str(dto.primary.hours),
            "total_hours": str(dto.total_hours),
            "primary_clamped": excess > ZERO_HOURS,
            "redirected_hours": str(max(excess, ZERO_HOURS)),
        })
        return dto

    async def _insert_or_update(self, dto: RosterEntry) -> None:
        try:
            async with self.session.begin_nested():
                self.session.add(RosterEntryModel.from_dto(dto))
                await self.session.flush()
        except IntegrityError:
            logger.warning("roster_entry_insert_race", extra={
                "row_id": str(dto.row_id), "date": dto.date_string,
            })
            winner = await self._find_entry(dto.row_id, dto.date_string)
            if winner is None:
                raise
            winner.apply_dto(dto)
            await self.session.flush()

    async def set_entry_status(
        self, row_id: UUID, on: date, status: EntryStatus | str,
    ) -> RosterEntry:
        """
        Explicitly set an entry's status.

        Raises:
            ValidationError: Unknown status value.
            RosterEntryNotFoundError: No entry on that day.
        """
        new_status = EntryStatus.parse(status)
        key = date_string(on)
        model = await self._find_entry(row_id, key)
        if model is None:
            raise RosterEntryNotFoundError(str(row_id), key)
        previous = model.status
        model.status = new_status.value
        await self.session.flush()
        logger.info("roster_entry_status_changed", extra={
            "row_id": str(row_id),
            "date": key,
            "from_status": previous,
            "to_status": new_status.value,
        })
        return model.to_dto()

    async def get_entry_status(self, row_id: UUID, on: date) -> EntryStatus:
        entry = await self.get_entry(row_id, on)
        return entry.status if entry else EntryStatus.UNASSIGNED

    async def delete_entry(self, row_id: UUID, on: date) -> bool:
        """Remove the entry for (row, on); True if one existed."""
        model = await self._find_entry(row_id, date_string(on))
        if model is None:
            return False
        await self.session.delete(model)
        await self.session.flush()
        logger.info("roster_entry_deleted", extra={
            "row_id": str(row_id), "date": date_string(on),
        })
        return True

    # =========================================================================
    # Roster view
    # =========================================================================

    async def roster_view(self, start: date, end: date) -> RosterView:
        """
        Read-side grid for ``start``..``end`` (both inclusive).

        Targets and month totals come from the month of ``start``.
        Cumulative primary hours include the month's entries before the
        range, so ``target_reached`` matches what allocation would cap.
        """
        days = days_between(start, end)
        if (start.year, start.month) != (end.year, end.month):
            raise ValidationError("end", end, "range must stay within one month")

        counts = {status: 0 for status in EntryStatus}
        total_hours = ZERO_HOURS
        row_views: list[RosterRowView] = []

        for row in await self.list_active_rows():
            entries = [e.to_dto() for e in await self._month_entries(row.id, start.year, start.month)]
            by_day = {e.on: e for e in entries}
            target = await self._targets.get_target(row.id, start.year, start.month)
            primary_target = target.primary_hours if target else ZERO_HOURS

            before_range = sum(
                (e.primary.hours for e in entries if e.on < start), ZERO_HOURS,
            )
            month_primary = sum((e.primary.hours for e in entries), ZERO_HOURS)

            cumulative = before_range
            cells: list[RosterCell] = []
            for day in days:
                entry = by_day.get(day)
                if entry is not None:
                    cumulative += entry.primary.hours
                    total_hours += entry.total_hours
                    if entry.total_hours > ZERO_HOURS:
                        counts[entry.status] += 1
                cells.append(RosterCell(
                    on=day,
                    entry=entry,
                    cumulative_primary_hours=cumulative,
                    target_reached=primary_target > ZERO_HOURS and cumulative >= primary_target,
                ))

            row_views.append(RosterRowView(
                row=row,
                cells=tuple(cells),
                primary_target_hours=primary_target,
                total_hours_target=target.total_hours if target else ZERO_HOURS,
                associated_targets=target.associated if target else (),
                primary_hours_before_range=before_range,
                primary_hours_month=month_primary,
                remaining_in_month=(
                    max(primary_target - month_primary, ZERO_HOURS)
                    if primary_target > ZERO_HOURS else None
                ),
            ))

        filled = sum(counts.values())
        empty_cells = max(len(row_views) * len(days) - filled, 0)
        return RosterView(
            start=start,
            end=end,
            rows=tuple(row_views),
            total_hours=total_hours,
            shifts=ShiftCounts(
                confirmed=counts[EntryStatus.CONFIRMED],
                unconfirmed=counts[EntryStatus.UNCONFIRMED],
                in_progress=counts[EntryStatus.IN_PROGRESS],
                incomplete=counts[EntryStatus.INCOMPLETE],
                unassigned=counts[EntryStatus.UNASSIGNED] + empty_cells,
            ),
        )
