"""
Tests for guard_modules.roster.targets.MonthlyTargetService.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from guard_kernel.domain.values import GuardAssignment
from guard_kernel.exceptions import GuardRowNotFoundError, ValidationError


class TestSetTarget:

    @pytest.mark.asyncio
    async def test_set_and_get(self, targets, row, guard_ids):
        _, backup, _ = guard_ids
        stored = await targets.set_target(
            row.id, 2024, 3,
            primary_hours=Decimal("160"),
            associated=[GuardAssignment(backup, Decimal("20"))],
        )
        loaded = await targets.get_target(row.id, 2024, 3)

        assert stored.total_hours == Decimal("180")
        assert loaded.primary_hours == Decimal("160")
        assert loaded.associated == (GuardAssignment(backup, Decimal("20")),)
        assert loaded.total_hours == Decimal("180")

    @pytest.mark.asyncio
    async def test_set_twice_updates_in_place(self, targets, row):
        first = await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("100"))
        second = await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("120"))
        assert second.id == first.id
        assert (await targets.get_target(row.id, 2024, 3)).primary_hours == Decimal("120")

    @pytest.mark.asyncio
    async def test_zero_associated_slots_dropped(self, targets, row, guard_ids):
        _, backup, _ = guard_ids
        stored = await targets.set_target(
            row.id, 2024, 3,
            primary_hours=Decimal("10"),
            associated=[GuardAssignment(backup, Decimal("0"))],
        )
        assert stored.associated == ()

    @pytest.mark.asyncio
    async def test_zero_total_clears_target(self, targets, row):
        await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("10"))
        assert await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("0")) is None
        assert await targets.get_target(row.id, 2024, 3) is None

    @pytest.mark.asyncio
    async def test_targets_are_per_month(self, targets, row):
        await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("10"))
        assert await targets.get_target(row.id, 2024, 4) is None

    @pytest.mark.asyncio
    async def test_unknown_row(self, targets):
        with pytest.raises(GuardRowNotFoundError):
            await targets.set_target(uuid4(), 2024, 3, primary_hours=Decimal("10"))

    @pytest.mark.asyncio
    async def test_invalid_period(self, targets, row):
        with pytest.raises(ValidationError):
            await targets.set_target(row.id, 2024, 13, primary_hours=Decimal("10"))

    @pytest.mark.asyncio
    async def test_negative_primary(self, targets, row):
        with pytest.raises(ValidationError):
            await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("-10"))

    @pytest.mark.asyncio
    async def test_clear_missing_target(self, targets, row):
        assert await targets.clear_target(row.id, 2024, 3) is False


class TestRemaining:

    @pytest.mark.asyncio
    async def test_no_target_is_unconstrained(self, targets, row):
        assert await targets.remaining(row.id, 2024, 3) is None

    @pytest.mark.asyncio
    async def test_remaining_counts_whole_month(self, roster, targets, row):
        await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("40"))
        await roster.save_entry(row.id, date(2024, 3, 5), primary_hours=Decimal("10"))
        await roster.save_entry(row.id, date(2024, 3, 25), primary_hours=Decimal("12"))
        await roster.save_entry(row.id, date(2024, 4, 1), primary_hours=Decimal("8"))

        assert await targets.primary_hours_in_month(row.id, 2024, 3) == Decimal("22")
        assert await targets.remaining(row.id, 2024, 3) == Decimal("18")

    @pytest.mark.asyncio
    async def test_remaining_floors_at_zero(self, roster, targets, row):
        await roster.save_entry(row.id, date(2024, 3, 5), primary_hours=Decimal("30"))
        await targets.set_target(row.id, 2024, 3, primary_hours=Decimal("20"))
        assert await targets.remaining(row.id, 2024, 3) == Decimal("0")
