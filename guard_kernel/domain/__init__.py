"""
Pure domain layer.

Contains value objects and arithmetic with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time (except the injectable Clock)
- I/O
"""

from guard_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from guard_kernel.domain.hours import (
    HoursMinutes,
    from_decimal,
    from_minutes,
    quantize_hours,
    sum_hours,
    to_decimal,
    to_minutes,
)
from guard_kernel.domain.values import (
    ZERO_HOURS,
    GuardAssignment,
    sum_assignment_hours,
    to_hours,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "HoursMinutes",
    "from_decimal",
    "from_minutes",
    "quantize_hours",
    "sum_hours",
    "to_decimal",
    "to_minutes",
    "ZERO_HOURS",
    "GuardAssignment",
    "sum_assignment_hours",
    "to_hours",
]
