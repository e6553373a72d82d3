"""
Tests for guard_kernel.domain.values and guard_kernel.domain.period.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from guard_kernel.domain.period import (
    date_string,
    days_between,
    month_bounds,
    validate_period,
)
from guard_kernel.domain.values import GuardAssignment, sum_assignment_hours, to_hours
from guard_kernel.exceptions import ValidationError


class TestToHours:

    def test_coerces_ints_and_strings(self):
        assert to_hours(8) == Decimal("8")
        assert to_hours("7.25") == Decimal("7.25")

    def test_rejects_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            to_hours(Decimal("-1"), field="primary_hours")
        assert exc_info.value.field == "primary_hours"

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError):
            to_hours(value)


class TestGuardAssignment:

    def test_json_round_trip_keeps_exact_hours(self):
        slot = GuardAssignment(uuid4(), Decimal("3.33"))
        assert GuardAssignment.from_json(slot.to_json()) == slot
        assert slot.to_json()["hours"] == "3.33"

    def test_unassigned_slot(self):
        slot = GuardAssignment(None, Decimal("2"))
        assert slot.to_contract() == {"guardId": None, "hours": Decimal("2")}
        assert GuardAssignment.from_json(slot.to_json()).guard_id is None

    def test_negative_hours_rejected(self):
        with pytest.raises(ValidationError):
            GuardAssignment(uuid4(), Decimal("-0.5"))

    def test_with_hours_keeps_guard(self):
        guard = uuid4()
        assert GuardAssignment(guard, Decimal("1")).with_hours(Decimal("4")) == GuardAssignment(
            guard, Decimal("4"),
        )

    def test_sum(self):
        slots = [GuardAssignment(uuid4(), Decimal("1.5")), GuardAssignment(None, Decimal("2"))]
        assert sum_assignment_hours(slots) == Decimal("3.5")


class TestPeriod:

    def test_validate_period_accepts_valid(self):
        assert validate_period(2024, 2) == (2024, 2)

    @pytest.mark.parametrize("year,month", [(2024, 0), (2024, 13), (1999, 5), ("2024", 5), (2024, True)])
    def test_validate_period_rejects_invalid(self, year, month):
        with pytest.raises(ValidationError):
            validate_period(year, month)

    def test_month_bounds_leap_year(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_date_string(self):
        assert date_string(date(2024, 3, 4)) == "2024-03-04"

    def test_days_between_inclusive(self):
        assert days_between(date(2024, 3, 30), date(2024, 4, 1)) == [
            date(2024, 3, 30), date(2024, 3, 31), date(2024, 4, 1),
        ]

    def test_days_between_rejects_reversed_range(self):
        with pytest.raises(ValidationError):
            days_between(date(2024, 3, 2), date(2024, 3, 1))
