"""
Roster ORM Persistence Models (``guard_modules.roster.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the roster DTOs defined in
    ``guard_modules.roster.models``.  Each ORM class mirrors a DTO and
    provides ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK), created_at, updated_at.

Invariants enforced:
    - At most one roster entry per (row_id, date_string)
      (uq_roster_entry_row_date).
    - At most one monthly target per (row_id, year, month)
      (uq_roster_target_row_period).
    - Hours use Decimal (Numeric(38,9)); associated slots are stored as JSON
      lists with hours kept as exact strings.
    - Entries and targets reference their row with ON DELETE CASCADE.  The
      roster service also deletes them explicitly, so the ownership rule
      holds on backends that do not enforce foreign keys.
    - No ORM relationships: every read is an explicit awaited query, so an
      async session never lazy-loads.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from guard_kernel.db.base import TrackedBase, UUIDString
from guard_kernel.domain.values import GuardAssignment

# ---------------------------------------------------------------------------
# GuardRowModel
# ---------------------------------------------------------------------------

class GuardRowModel(TrackedBase):
    """
    ORM model for ``GuardRow``.

    Guarantees:
        - ``associated_guard_ids`` is an ordered JSON list of UUID strings.
    """

    __tablename__ = "roster_rows"

    client_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    client_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    site_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    primary_guard_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    guard_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    associated_guard_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    __table_args__ = (
        Index("idx_roster_row_active", "active"),
        Index("idx_roster_row_primary_guard", "primary_guard_id"),
    )

    def to_dto(self):
        from guard_modules.roster.models import GuardRow
        return GuardRow(
            id=self.id,
            primary_guard_id=self.primary_guard_id,
            associated_guard_ids=tuple(UUID(g) for g in (self.associated_guard_ids or [])),
            client_id=self.client_id,
            client_name=self.client_name or "",
            site_name=self.site_name or "",
            guard_name=self.guard_name or "",
            active=self.active,
            notes=self.notes or "",
        )

    @classmethod
    def from_dto(cls, dto) -> "GuardRowModel":
        return cls(
            id=dto.id,
            client_id=dto.client_id,
            client_name=dto.client_name,
            site_name=dto.site_name,
            primary_guard_id=dto.primary_guard_id,
            guard_name=dto.guard_name,
            associated_guard_ids=[str(g) for g in dto.associated_guard_ids],
            active=dto.active,
            notes=dto.notes,
        )

    def __repr__(self) -> str:
        return f"<GuardRowModel {self.client_name}/{self.site_name}: {self.guard_name}>"


# ---------------------------------------------------------------------------
# RosterEntryModel
# ---------------------------------------------------------------------------

class RosterEntryModel(TrackedBase):
    """
    ORM model for ``RosterEntry`` -- one day's allocation for a row.

    Guarantees:
        - ``date_string`` is the ISO ``YYYY-MM-DD`` form of ``entry_date``.
        - ``total_hours`` is written by the service from the parts on every
          save; ``to_dto()`` never reads it back.
    """

    __tablename__ = "roster_entries"

    row_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("roster_rows.id", ondelete="CASCADE"), nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    date_string: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="unconfirmed", nullable=False)
    primary_guard_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    primary_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    associated: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("row_id", "date_string", name="uq_roster_entry_row_date"),
        Index("idx_roster_entry_row_period", "row_id", "year", "month"),
        Index("idx_roster_entry_date", "entry_date"),
    )

    def associated_assignments(self) -> tuple[GuardAssignment, ...]:
        return tuple(GuardAssignment.from_json(a) for a in (self.associated or []))

    def to_dto(self):
        from guard_modules.roster.models import EntryStatus, RosterEntry
        return RosterEntry(
            id=self.id,
            row_id=self.row_id,
            on=self.entry_date,
            status=EntryStatus.coerce(self.status),
            primary=GuardAssignment(self.primary_guard_id, self.primary_hours),
            associated=self.associated_assignments(),
            notes=self.notes or "",
        )

    @classmethod
    def from_dto(cls, dto) -> "RosterEntryModel":
        return cls(
            id=dto.id,
            row_id=dto.row_id,
            entry_date=dto.on,
            date_string=dto.date_string,
            year=dto.year,
            month=dto.month,
            status=dto.status.value,
            primary_guard_id=dto.primary.guard_id,
            primary_hours=dto.primary.hours,
            associated=[a.to_json() for a in dto.associated],
            total_hours=dto.total_hours,
            notes=dto.notes,
        )

    def apply_dto(self, dto) -> None:
        """Overwrite the mutable fields from ``dto`` (used by upserts)."""
        self.status = dto.status.value
        self.primary_guard_id = dto.primary.guard_id
        self.primary_hours = dto.primary.hours
        self.associated = [a.to_json() for a in dto.associated]
        self.total_hours = dto.total_hours
        self.notes = dto.notes

    def __repr__(self) -> str:
        return f"<RosterEntryModel {self.row_id} {self.date_string}: {self.total_hours}h>"


# ---------------------------------------------------------------------------
# MonthlyTargetModel
# ---------------------------------------------------------------------------

class MonthlyTargetModel(TrackedBase):
    """
    ORM model for ``MonthlyTarget``.

    Guarantees:
        - ``total_hours`` is recomputed from the parts on every write.
    """

    __tablename__ = "roster_monthly_targets"

    row_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("roster_rows.id", ondelete="CASCADE"), nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    primary_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    associated: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("row_id", "year", "month", name="uq_roster_target_row_period"),
        Index("idx_roster_target_period", "year", "month"),
    )

    def to_dto(self):
        from guard_modules.roster.models import MonthlyTarget
        return MonthlyTarget(
            id=self.id,
            row_id=self.row_id,
            year=self.year,
            month=self.month,
            primary_hours=self.primary_hours,
            associated=tuple(GuardAssignment.from_json(a) for a in (self.associated or [])),
            notes=self.notes or "",
        )

    @classmethod
    def from_dto(cls, dto) -> "MonthlyTargetModel":
        return cls(
            id=dto.id,
            row_id=dto.row_id,
            year=dto.year,
            month=dto.month,
            primary_hours=dto.primary_hours,
            associated=[a.to_json() for a in dto.associated],
            total_hours=dto.total_hours,
            notes=dto.notes,
        )

    def apply_dto(self, dto) -> None:
        self.primary_hours = dto.primary_hours
        self.associated = [a.to_json() for a in dto.associated]
        self.total_hours = dto.total_hours
        self.notes = dto.notes

    def __repr__(self) -> str:
        return (
            f"<MonthlyTargetModel {self.row_id} {self.year}-{self.month:02d}: "
            f"{self.total_hours}h>"
        )
