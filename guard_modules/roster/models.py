"""
Roster Domain Models (``guard_modules.roster.models``).

Responsibility
--------------
Frozen dataclass value objects for the roster ledger: guard rows, daily
roster entries, monthly targets, and the read-side roster view.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``RosterService`` and ``MonthlyTargetService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Hours are ``Decimal`` -- NEVER ``float``.
* ``total_hours`` is a derived property on entries and targets, so it is
  always the exact sum of primary plus associated hours.
* ``GuardRow.associated_guard_ids`` holds no duplicates.

Failure modes
-------------
* Construction with duplicate associated guard ids raises ``ValidationError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from guard_kernel.domain.period import date_string
from guard_kernel.domain.values import ZERO_HOURS, GuardAssignment, sum_assignment_hours
from guard_kernel.exceptions import ValidationError


class EntryStatus(Enum):
    """Roster entry states.  Any state can be set from any other."""
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"
    UNASSIGNED = "unassigned"
    IN_PROGRESS = "in-progress"
    INCOMPLETE = "incomplete"

    @classmethod
    def coerce(cls, value: EntryStatus | str | None) -> EntryStatus:
        """Lenient parse used on save: unknown or missing means unconfirmed."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNCONFIRMED

    @classmethod
    def parse(cls, value: EntryStatus | str) -> EntryStatus:
        """Strict parse used for explicit status changes."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "status", value,
                f"must be one of {[s.value for s in cls]}",
            ) from None


@dataclass(frozen=True)
class GuardRow:
    """A (client, site, primary guard, associated guards) line of the roster."""
    id: UUID
    primary_guard_id: UUID | None
    associated_guard_ids: tuple[UUID, ...] = ()
    client_id: UUID | None = None
    client_name: str = ""
    site_name: str = ""
    guard_name: str = ""
    active: bool = True
    notes: str = ""

    def __post_init__(self) -> None:
        if len(set(self.associated_guard_ids)) != len(self.associated_guard_ids):
            raise ValidationError(
                "associated_guard_ids", self.associated_guard_ids,
                "associated guards must not repeat",
            )

    @property
    def default_associated_guard_id(self) -> UUID | None:
        return self.associated_guard_ids[0] if self.associated_guard_ids else None


@dataclass(frozen=True)
class RosterEntry:
    """One day's allocation for a guard row."""
    id: UUID
    row_id: UUID
    on: date
    status: EntryStatus
    primary: GuardAssignment
    associated: tuple[GuardAssignment, ...] = ()
    notes: str = ""

    @property
    def date_string(self) -> str:
        return date_string(self.on)

    @property
    def year(self) -> int:
        return self.on.year

    @property
    def month(self) -> int:
        return self.on.month

    @property
    def total_hours(self) -> Decimal:
        return self.primary.hours + sum_assignment_hours(self.associated)

    def to_contract(self) -> dict[str, Any]:
        return {
            "rowId": str(self.row_id),
            "dateString": self.date_string,
            "status": self.status.value,
            "primary": self.primary.to_contract(),
            "associated": [a.to_contract() for a in self.associated],
            "totalHours": self.total_hours,
        }


@dataclass(frozen=True)
class MonthlyTarget:
    """Planned primary/associated hours for a row in one month."""
    id: UUID
    row_id: UUID
    year: int
    month: int
    primary_hours: Decimal
    associated: tuple[GuardAssignment, ...] = ()
    notes: str = ""

    @property
    def associated_hours(self) -> Decimal:
        return sum_assignment_hours(self.associated)

    @property
    def total_hours(self) -> Decimal:
        return self.primary_hours + self.associated_hours

    def to_contract(self) -> dict[str, Any]:
        return {
            "rowId": str(self.row_id),
            "year": self.year,
            "month": self.month,
            "primaryHours": self.primary_hours,
            "associated": [a.to_contract() for a in self.associated],
            "totalHours": self.total_hours,
        }


# ---------------------------------------------------------------------------
# Read-side roster view
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RosterCell:
    """One (row, day) cell.  ``entry`` is None for an empty cell."""
    on: date
    entry: RosterEntry | None
    cumulative_primary_hours: Decimal
    target_reached: bool

    @property
    def status(self) -> EntryStatus:
        return self.entry.status if self.entry else EntryStatus.UNASSIGNED


@dataclass(frozen=True)
class RosterRowView:
    row: GuardRow
    cells: tuple[RosterCell, ...]
    primary_target_hours: Decimal = ZERO_HOURS
    total_hours_target: Decimal = ZERO_HOURS
    associated_targets: tuple[GuardAssignment, ...] = ()
    primary_hours_before_range: Decimal = ZERO_HOURS
    primary_hours_month: Decimal = ZERO_HOURS
    remaining_in_month: Decimal | None = None


@dataclass(frozen=True)
class ShiftCounts:
    confirmed: int = 0
    unconfirmed: int = 0
    in_progress: int = 0
    incomplete: int = 0
    unassigned: int = 0


@dataclass(frozen=True)
class RosterView:
    start: date
    end: date
    rows: tuple[RosterRowView, ...] = ()
    total_hours: Decimal = ZERO_HOURS
    shifts: ShiftCounts = field(default_factory=ShiftCounts)
