"""
Values -- Immutable roster value objects.

Responsibility:
    ``GuardAssignment`` pairs a guard with a number of decimal hours.  It is
    the unit used by roster entries, monthly targets and allocation results
    for both the primary slot and every associated slot.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Hours are ``Decimal`` and never negative.

Failure modes:
    - ValidationError on negative or non-numeric hours.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from guard_kernel.exceptions import ValidationError

ZERO_HOURS = Decimal("0")


def to_hours(value: Decimal | int | str, field: str = "hours") -> Decimal:
    """Coerce to ``Decimal`` hours, rejecting non-numbers and negatives."""
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(field, value, "not a number") from None
    if not hours.is_finite():
        raise ValidationError(field, value, "must be finite")
    if hours < ZERO_HOURS:
        raise ValidationError(field, value, "hours cannot be negative")
    return hours


@dataclass(frozen=True, slots=True)
class GuardAssignment:
    """
    Hours assigned to one guard in one roster slot.

    Contract:
        ``guard_id`` may be None for a slot that has not been given a guard
        yet (the roster allows typing hours before picking a guard).

    Guarantees:
        - ``hours`` is a non-negative finite Decimal.
    """

    guard_id: UUID | None
    hours: Decimal = ZERO_HOURS

    def __post_init__(self) -> None:
        object.__setattr__(self, "hours", to_hours(self.hours))

    def with_hours(self, hours: Decimal) -> GuardAssignment:
        return GuardAssignment(self.guard_id, hours)

    def to_contract(self) -> dict[str, Any]:
        return {
            "guardId": str(self.guard_id) if self.guard_id else None,
            "hours": self.hours,
        }

    def to_json(self) -> dict[str, Any]:
        """Storage form for JSON columns (hours kept as an exact string)."""
        return {
            "guard_id": str(self.guard_id) if self.guard_id else None,
            "hours": str(self.hours),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> GuardAssignment:
        guard_id = data.get("guard_id")
        return cls(
            guard_id=UUID(guard_id) if guard_id else None,
            hours=Decimal(str(data.get("hours", "0"))),
        )


def sum_assignment_hours(assignments: Iterable[GuardAssignment]) -> Decimal:
    return sum((a.hours for a in assignments), ZERO_HOURS)
