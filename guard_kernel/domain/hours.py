"""
Hours -- Hour/minute arithmetic for both ledgers.

Responsibility:
    Normalizes (hours, minutes) pairs to integer minutes and decimal hours
    and back.  Every other component that adds, subtracts or compares worked
    or paid time goes through this module.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``HoursMinutes.minutes`` is always in [0, 59]; overflow is carried into
      ``hours``.
    - Summation happens in integer minutes, never in rounded decimals, so no
      drift accumulates across many pairs.
    - Negative results are NOT clamped here.  Clamping (for example the
      remaining-hours floor on monthly records) is a caller policy.
    - Two-decimal rounding happens only in ``quantize_hours``, which is meant
      for presentation boundaries.

Failure modes:
    - ValidationError when a ``HoursMinutes`` is built with minutes outside
      [0, 59].

Audit relevance:
    Paid hours are derived from currency amounts divided by a pay rate; the
    split into whole hours and rounded minutes performed by ``from_decimal``
    is the single place where that rounding happens.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from guard_kernel.exceptions import ValidationError

MINUTES_PER_HOUR = 60

_SIXTY = Decimal(MINUTES_PER_HOUR)
_CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class HoursMinutes:
    """
    A duration expressed as whole hours plus minutes.

    Contract:
        Build through ``of()`` or ``from_minutes()`` when the input may carry
        minute overflow; the constructor itself rejects minutes outside
        [0, 59].

    Guarantees:
        - Immutable and hashable.
        - ``minutes`` in [0, 59].  A negative duration has negative ``hours``
          and non-negative ``minutes`` (for example -30 minutes is -1h 30m).
    """

    hours: int
    minutes: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_HOUR:
            raise ValidationError("minutes", self.minutes, "must be in [0, 59]")

    @classmethod
    def of(cls, hours: int, minutes: int = 0) -> HoursMinutes:
        """Build from a pair that may carry minute overflow."""
        return from_minutes(to_minutes(hours, minutes))

    @classmethod
    def zero(cls) -> HoursMinutes:
        return cls(0, 0)

    @property
    def total_minutes(self) -> int:
        return to_minutes(self.hours, self.minutes)

    @property
    def as_decimal(self) -> Decimal:
        return to_decimal(self.hours, self.minutes)

    @property
    def is_negative(self) -> bool:
        return self.total_minutes < 0

    @property
    def is_zero(self) -> bool:
        return self.total_minutes == 0

    def __add__(self, other: HoursMinutes) -> HoursMinutes:
        if not isinstance(other, HoursMinutes):
            return NotImplemented
        return from_minutes(self.total_minutes + other.total_minutes)

    def __sub__(self, other: HoursMinutes) -> HoursMinutes:
        if not isinstance(other, HoursMinutes):
            return NotImplemented
        return from_minutes(self.total_minutes - other.total_minutes)

    def __lt__(self, other: HoursMinutes) -> bool:
        return self.total_minutes < other.total_minutes

    def __le__(self, other: HoursMinutes) -> bool:
        return self.total_minutes <= other.total_minutes

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes:02d}m"


def to_minutes(hours: int, minutes: int = 0) -> int:
    """Total integer minutes of an (hours, minutes) pair."""
    return int(hours) * MINUTES_PER_HOUR + int(minutes)


def from_minutes(total: int) -> HoursMinutes:
    """Normalize integer minutes, carrying overflow into hours."""
    hours, minutes = divmod(int(total), MINUTES_PER_HOUR)
    return HoursMinutes(hours, minutes)


def to_decimal(hours: int, minutes: int = 0) -> Decimal:
    """Full-precision decimal hours; no rounding applied."""
    return Decimal(to_minutes(hours, minutes)) / _SIXTY


def from_decimal(value: Decimal | int | str) -> HoursMinutes:
    """Split decimal hours into whole hours and rounded minutes.

    Hours are floored, the fractional part is converted to minutes with
    half-up rounding, and a rounded 60 is carried into the hour.
    """
    value = Decimal(value)
    whole = value.to_integral_value(rounding=ROUND_FLOOR)
    minutes = ((value - whole) * _SIXTY).to_integral_value(rounding=ROUND_HALF_UP)
    return from_minutes(to_minutes(int(whole), int(minutes)))


def sum_hours(
    pairs: Iterable[HoursMinutes | tuple[int, int]],
) -> HoursMinutes:
    """Sum pairs in integer minutes, then normalize once."""
    total = 0
    for pair in pairs:
        if isinstance(pair, HoursMinutes):
            total += pair.total_minutes
        else:
            hours, minutes = pair
            total += to_minutes(hours, minutes)
    return from_minutes(total)


def quantize_hours(value: Decimal) -> Decimal:
    """Two-decimal rounding for display; infinities pass through."""
    value = Decimal(value)
    if not value.is_finite():
        return value
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)
