"""
Module: guard_engines.allocation
Responsibility:
    Split a requested number of roster hours between a row's primary guard
    and its associated guards without letting the primary guard exceed the
    remaining monthly target.  Also computes that remaining target from
    prior roster assignments.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import guard_kernel.domain and guard_kernel.exceptions.

Invariants enforced:
    - ``total_hours == primary.hours + sum(associated hours)`` exactly for
      every result (Decimal arithmetic, no rounding in the first-slot path).
    - Primary hours never exceed the remaining target.
    - A target <= 0 means "no cap": the remaining target is
      ``UNCONSTRAINED`` (Decimal infinity), whatever was assigned before.
    - Purity: no clock access, no I/O.  Allocation mode is an explicit
      argument.

Failure modes:
    - ValidationError on negative requested totals or negative primary edits.
    - ValueError on an unknown overflow policy name.
    - Over-target requests never fail: primary is capped and the overflow
      goes to associated guards, so any total a user enters can be saved.

Usage:
    from guard_engines.allocation import RosterAllocationEngine

    engine = RosterAllocationEngine()
    remaining = engine.remaining_primary_target(
        primary_target_hours=Decimal("160"),
        prior_assignments=[PriorAssignment(date(2024, 3, 1), Decimal("12"))],
        as_of=date(2024, 3, 2),
    )
    result = engine.allocate(
        total_requested=Decimal("12"),
        remaining=remaining,
        existing_associated=(),
        default_guard_id=backup_guard_id,
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from guard_engines.tracer import traced_engine
from guard_kernel.domain.values import (
    ZERO_HOURS,
    GuardAssignment,
    sum_assignment_hours,
    to_hours,
)
from guard_kernel.exceptions import ValidationError
from guard_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")

UNCONSTRAINED = Decimal("Infinity")

_CENT = Decimal("0.01")


class AllocationMode(str, Enum):
    """Granularity of a roster cell."""

    DAY = "day"  # One calendar day, capped by the cumulative remaining target
    MONTH = "month"  # The whole month, capped by the monthly target, no carry-in


@dataclass(frozen=True)
class PriorAssignment:
    """Primary-guard hours already rostered on a given day."""

    on: date
    primary_hours: Decimal


@dataclass(frozen=True)
class AllocationResult:
    """
    A proposed primary/associated split for one roster cell.

    Contract:
        Frozen dataclass returned by every allocation entry point.
    Guarantees:
        - ``total_hours`` is derived, never stored, so it is always the exact
          sum of its parts.
    Non-goals:
        - Does not persist itself; the roster service saves entries.
    """

    primary: GuardAssignment
    associated: tuple[GuardAssignment, ...]
    remaining_target: Decimal
    mode: AllocationMode = AllocationMode.DAY

    @property
    def primary_hours(self) -> Decimal:
        return self.primary.hours

    @property
    def associated_hours(self) -> Decimal:
        return sum_assignment_hours(self.associated)

    @property
    def total_hours(self) -> Decimal:
        return self.primary.hours + self.associated_hours

    @property
    def is_unconstrained(self) -> bool:
        return self.remaining_target == UNCONSTRAINED

    def to_contract(self) -> dict[str, Any]:
        return {
            "primary": self.primary.to_contract(),
            "associated": [a.to_contract() for a in self.associated],
            "totalHours": self.total_hours,
        }


# =============================================================================
# Overflow policies
# =============================================================================


@runtime_checkable
class OverflowPolicy(Protocol):
    """How hours the primary guard cannot take are spread over associated slots."""

    @property
    def name(self) -> str: ...

    def distribute(
        self,
        overflow: Decimal,
        slots: Sequence[GuardAssignment],
        default_guard_id: UUID | None,
    ) -> tuple[GuardAssignment, ...]:
        """Return the new associated slots; their hours must sum to ``overflow``."""
        ...


class FirstSlotOverflowPolicy:
    """
    All overflow goes to the first associated slot; every other slot is zeroed.

    When the row has no slot yet, one is created for ``default_guard_id``
    (the row's first associated guard).  With zero overflow, existing slots
    are zeroed and kept, and no slot is created.
    """

    name = "first_slot"

    def distribute(
        self,
        overflow: Decimal,
        slots: Sequence[GuardAssignment],
        default_guard_id: UUID | None,
    ) -> tuple[GuardAssignment, ...]:
        if not slots:
            if overflow > ZERO_HOURS:
                return (GuardAssignment(default_guard_id, overflow),)
            return ()
        first = slots[0].with_hours(overflow)
        rest = tuple(slot.with_hours(ZERO_HOURS) for slot in slots[1:])
        return (first,) + rest


class ProportionalOverflowPolicy:
    """
    Overflow is split across existing slots in proportion to their current hours.

    Slots with no hours yet share equally.  Shares are rounded down to the
    cent and the rounding residue goes to the first slot, so the shares sum
    to the overflow exactly.
    """

    name = "proportional"

    def distribute(
        self,
        overflow: Decimal,
        slots: Sequence[GuardAssignment],
        default_guard_id: UUID | None,
    ) -> tuple[GuardAssignment, ...]:
        if not slots:
            return FirstSlotOverflowPolicy().distribute(overflow, slots, default_guard_id)

        weights = [slot.hours for slot in slots]
        total_weight = sum(weights, ZERO_HOURS)
        if total_weight == ZERO_HOURS:
            weights = [Decimal("1")] * len(slots)
            total_weight = Decimal(len(slots))

        shares = [
            (overflow * weight / total_weight).quantize(_CENT, rounding=ROUND_DOWN)
            for weight in weights
        ]
        shares[0] += overflow - sum(shares, ZERO_HOURS)
        return tuple(slot.with_hours(share) for slot, share in zip(slots, shares))


_POLICIES: dict[str, type] = {
    FirstSlotOverflowPolicy.name: FirstSlotOverflowPolicy,
    ProportionalOverflowPolicy.name: ProportionalOverflowPolicy,
}


def overflow_policy_for(name: str) -> OverflowPolicy:
    """Resolve a configured policy name.

    Raises:
        ValueError: If no policy is registered under ``name``.
    """
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown overflow policy '{name}'. Available: {sorted(_POLICIES)}"
        ) from None


# =============================================================================
# Engine
# =============================================================================


class RosterAllocationEngine:
    """
    Primary/associated hour split for roster cells.

    Contract:
        Pure functions over plain values.  No I/O, no database access.
    Guarantees:
        - Results always satisfy total == primary + sum(associated).
        - The overflow policy is the only place where distribution across
          associated slots is decided.
    Non-goals:
        - Does not look up targets or prior entries; callers pass them in.
        - Does not persist results.
    """

    def __init__(self, overflow_policy: OverflowPolicy | None = None):
        self._policy = overflow_policy or FirstSlotOverflowPolicy()

    @property
    def overflow_policy(self) -> OverflowPolicy:
        return self._policy

    def remaining_primary_target(
        self,
        primary_target_hours: Decimal,
        prior_assignments: Iterable[PriorAssignment],
        as_of: date,
        hours_before_range: Decimal = ZERO_HOURS,
    ) -> Decimal:
        """
        Primary hours still available before the target is reached on ``as_of``.

        Sums primary hours of every prior assignment strictly before
        ``as_of`` plus the carry-in ``hours_before_range``, subtracts from
        the target and floors at zero.  A target <= 0 returns
        ``UNCONSTRAINED``.
        """
        target = Decimal(primary_target_hours or 0)
        if target <= ZERO_HOURS:
            return UNCONSTRAINED

        assigned = Decimal(hours_before_range or 0)
        for prior in prior_assignments:
            if prior.on < as_of:
                assigned += prior.primary_hours
        return max(target - assigned, ZERO_HOURS)

    def remaining_in_month(
        self,
        primary_target_hours: Decimal,
        prior_assignments: Iterable[PriorAssignment],
    ) -> Decimal:
        """Month-granularity remaining: every assignment counts, no carry-in."""
        target = Decimal(primary_target_hours or 0)
        if target <= ZERO_HOURS:
            return UNCONSTRAINED
        assigned = sum((p.primary_hours for p in prior_assignments), ZERO_HOURS)
        return max(target - assigned, ZERO_HOURS)

    @traced_engine(
        "allocation", "1.0",
        fingerprint_fields=("total_requested", "remaining"),
    )
    def allocate(
        self,
        total_requested: Decimal,
        remaining: Decimal,
        existing_associated: Sequence[GuardAssignment] = (),
        default_guard_id: UUID | None = None,
        primary_guard_id: UUID | None = None,
        mode: AllocationMode = AllocationMode.DAY,
    ) -> AllocationResult:
        """
        Split ``total_requested`` between primary and associated guards.

        primary = min(total, remaining); the remainder goes to associated
        slots through the overflow policy.

        Raises:
            ValidationError: If ``total_requested`` is negative.
        """
        total = to_hours(total_requested, field="total_requested")
        remaining = Decimal(remaining)
        if remaining < ZERO_HOURS:
            remaining = ZERO_HOURS

        primary_hours = min(total, remaining)
        overflow = max(total - primary_hours, ZERO_HOURS)
        associated = self._policy.distribute(
            overflow, tuple(existing_associated), default_guard_id,
        )

        result = AllocationResult(
            primary=GuardAssignment(primary_guard_id, primary_hours),
            associated=associated,
            remaining_target=remaining,
            mode=mode,
        )
        logger.debug("allocation_computed", extra={
            "mode": mode.value,
            "total_requested": str(total),
            "remaining": str(remaining),
            "primary_hours": str(primary_hours),
            "overflow": str(overflow),
            "policy": self._policy.name,
        })
        return result

    @traced_engine(
        "allocation_reverse", "1.0",
        fingerprint_fields=("primary_edited", "remaining"),
    )
    def reverse_from_primary(
        self,
        primary_edited: Decimal,
        remaining: Decimal,
        associated: Sequence[GuardAssignment] = (),
        primary_guard_id: UUID | None = None,
        mode: AllocationMode = AllocationMode.DAY,
    ) -> AllocationResult:
        """
        Clamp a user-edited primary value to the remaining target.

        Associated slots are left exactly as given; only the total is
        re-derived from the clamped primary plus the associated sum.

        Raises:
            ValidationError: If ``primary_edited`` is negative.
        """
        primary = to_hours(primary_edited, field="primary_hours")
        remaining = max(Decimal(remaining), ZERO_HOURS)
        clamped = min(primary, remaining)
        if clamped != primary:
            logger.info("primary_hours_clamped", extra={
                "requested": str(primary),
                "clamped": str(clamped),
            })
        return AllocationResult(
            primary=GuardAssignment(primary_guard_id, clamped),
            associated=tuple(associated),
            remaining_target=remaining,
            mode=mode,
        )

    def redirect_excess(
        self,
        excess: Decimal,
        associated: Sequence[GuardAssignment] = (),
        default_guard_id: UUID | None = None,
    ) -> tuple[GuardAssignment, ...]:
        """
        Add ``excess`` hours on top of the associated slots.

        The overflow policy decides the split; hours the slots already
        carry are kept.  With no slot, one is created for
        ``default_guard_id``.  The result always sums to the slots' hours
        plus ``excess``.
        """
        slots = tuple(associated)
        if excess <= ZERO_HOURS:
            return slots
        shares = self._policy.distribute(excess, slots, default_guard_id)
        if not slots:
            return shares
        return tuple(
            slot.with_hours(slot.hours + share.hours)
            for slot, share in zip(slots, shares)
        )

    def compute_allocation(
        self,
        requested_total: Decimal,
        primary_target_hours: Decimal,
        prior_assignments: Sequence[PriorAssignment],
        as_of: date,
        mode: AllocationMode = AllocationMode.DAY,
        existing_associated: Sequence[GuardAssignment] = (),
        default_guard_id: UUID | None = None,
        primary_guard_id: UUID | None = None,
        hours_before_range: Decimal = ZERO_HOURS,
    ) -> AllocationResult:
        """
        Remaining-target lookup and split in one call.

        DAY mode caps primary at the cumulative remaining target on
        ``as_of``.  MONTH mode treats the month as the cell: every prior
        assignment of the month counts and no carry-in applies.
        """
        match mode:
            case AllocationMode.DAY:
                remaining = self.remaining_primary_target(
                    primary_target_hours, prior_assignments, as_of,
                    hours_before_range=hours_before_range,
                )
            case AllocationMode.MONTH:
                remaining = self.remaining_in_month(
                    primary_target_hours, prior_assignments,
                )
            case _:
                raise ValueError(f"Unknown allocation mode: {mode}")

        return self.allocate(
            total_requested=requested_total,
            remaining=remaining,
            existing_associated=existing_associated,
            default_guard_id=default_guard_id,
            primary_guard_id=primary_guard_id,
            mode=mode,
        )
