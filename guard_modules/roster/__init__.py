"""
Roster Module (``guard_modules.roster``).

Guard rows, daily roster entries and monthly targets.  Hour splitting is
delegated to ``guard_engines.allocation``.
"""

from guard_modules.roster.models import (
    EntryStatus,
    GuardRow,
    MonthlyTarget,
    RosterCell,
    RosterEntry,
    RosterRowView,
    RosterView,
    ShiftCounts,
)
from guard_modules.roster.service import RosterService
from guard_modules.roster.targets import MonthlyTargetService

__all__ = [
    "EntryStatus",
    "GuardRow",
    "MonthlyTarget",
    "MonthlyTargetService",
    "RosterCell",
    "RosterEntry",
    "RosterRowView",
    "RosterService",
    "RosterView",
    "ShiftCounts",
]
