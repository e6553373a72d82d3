"""
Payroll ORM Persistence Models (``guard_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models for the monthly-hours ledger and payroll records,
    plus the save-time hook that derives remaining hours.

Architecture position:
    **Modules layer** -- persistence companions to
    ``guard_modules.payroll.models``.  Inherits from ``TrackedBase``.

Invariants enforced:
    - At most one monthly-hours record per (guard_id, year, month)
      (uq_monthly_hours_guard_period).
    - ``remaining_hours`` / ``remaining_minutes`` are recomputed from total
      and paid on every insert and update.  When the remainder would be
      negative, BOTH fields are reset to zero together.
    - Payroll records carry an explicit (period_year, period_month).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from guard_kernel.db.base import TrackedBase, UUIDString
from guard_kernel.domain.hours import HoursMinutes, from_minutes, to_minutes


def remaining_after_payment(
    total_hours: int, total_minutes: int, paid_hours: int, paid_minutes: int,
) -> HoursMinutes:
    """Worked minus paid, reset to 0h 00m as a whole when negative."""
    remaining = to_minutes(total_hours, total_minutes) - to_minutes(paid_hours, paid_minutes)
    if remaining < 0:
        return HoursMinutes.zero()
    return from_minutes(remaining)


# ---------------------------------------------------------------------------
# MonthlyHoursModel
# ---------------------------------------------------------------------------

class MonthlyHoursModel(TrackedBase):
    """ORM model for ``MonthlyHoursRecord``."""

    __tablename__ = "payroll_monthly_hours"

    guard_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    paid_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    paid_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remaining_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remaining_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("guard_id", "year", "month", name="uq_monthly_hours_guard_period"),
        Index("idx_monthly_hours_period", "year", "month"),
    )

    def recompute_remaining(self) -> None:
        remaining = remaining_after_payment(
            self.total_hours or 0, self.total_minutes or 0,
            self.paid_hours or 0, self.paid_minutes or 0,
        )
        self.remaining_hours = remaining.hours
        self.remaining_minutes = remaining.minutes

    def to_dto(self):
        from guard_modules.payroll.models import MonthlyHoursRecord
        return MonthlyHoursRecord(
            id=self.id,
            guard_id=self.guard_id,
            year=self.year,
            month=self.month,
            total_hours=self.total_hours or 0,
            total_minutes=self.total_minutes or 0,
            paid_hours=self.paid_hours or 0,
            paid_minutes=self.paid_minutes or 0,
            remaining_hours=self.remaining_hours or 0,
            remaining_minutes=self.remaining_minutes or 0,
            notes=self.notes or "",
        )

    def __repr__(self) -> str:
        return (
            f"<MonthlyHoursModel {self.guard_id} {self.year}-{self.month:02d}: "
            f"{self.total_hours}h{self.total_minutes:02d}m>"
        )


@event.listens_for(MonthlyHoursModel, "before_insert")
@event.listens_for(MonthlyHoursModel, "before_update")
def _recompute_remaining_on_save(mapper, connection, target):
    """Derive remaining hours from total and paid on every write."""
    target.recompute_remaining()


# ---------------------------------------------------------------------------
# PayrollRecordModel
# ---------------------------------------------------------------------------

class PayrollRecordModel(TrackedBase):
    """ORM model for ``PayrollRecord``."""

    __tablename__ = "payroll_records"

    guard_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pay_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    charge_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    pay1: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    pay2: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    pay3: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    guard_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    client_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    site_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    account_holder_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    account_no: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    sort_code: Mapped[str] = mapped_column(String(10), default="", nullable=False)

    __table_args__ = (
        Index("idx_payroll_guard_period", "guard_id", "period_year", "period_month"),
    )

    def to_dto(self):
        from guard_modules.payroll.models import BankDetails, PayrollRecord
        return PayrollRecord(
            id=self.id,
            guard_id=self.guard_id,
            period_year=self.period_year,
            period_month=self.period_month,
            total_hours=self.total_hours or 0,
            total_minutes=self.total_minutes or 0,
            pay_rate=self.pay_rate,
            charge_rate=self.charge_rate,
            pay1=self.pay1,
            pay2=self.pay2,
            pay3=self.pay3,
            guard_name=self.guard_name or "",
            client_name=self.client_name or "",
            site_name=self.site_name or "",
            bank=BankDetails(
                account_holder_name=self.account_holder_name or "",
                account_no=self.account_no or "",
                sort_code=self.sort_code or "",
            ),
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto) -> "PayrollRecordModel":
        return cls(
            id=dto.id,
            guard_id=dto.guard_id,
            period_year=dto.period_year,
            period_month=dto.period_month,
            total_hours=dto.total_hours,
            total_minutes=dto.total_minutes,
            pay_rate=dto.pay_rate,
            charge_rate=dto.charge_rate,
            pay1=dto.pay1,
            pay2=dto.pay2,
            pay3=dto.pay3,
            guard_name=dto.guard_name,
            client_name=dto.client_name,
            site_name=dto.site_name,
            account_holder_name=dto.bank.account_holder_name,
            account_no=dto.bank.account_no,
            sort_code=dto.bank.sort_code,
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollRecordModel {self.guard_id} "
            f"{self.period_year}-{self.period_month:02d}: {self.total_hours}h>"
        )
