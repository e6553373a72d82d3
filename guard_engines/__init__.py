"""
Module: guard_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for higher
    layers (guard_modules, guard_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import guard_kernel.domain, guard_kernel.exceptions and
    guard_kernel.logging_config.  MUST NOT import guard_modules or
    guard_services.

Invariants enforced:
    - Purity: engines never read the clock.  Dates are explicit parameters.
    - Decimal-only arithmetic for roster hours; floats are forbidden.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``guard_engines.tracer``), emitting GUARD_ENGINE_TRACE log records.
"""

from guard_engines.allocation import (
    UNCONSTRAINED,
    AllocationMode,
    AllocationResult,
    FirstSlotOverflowPolicy,
    OverflowPolicy,
    PriorAssignment,
    ProportionalOverflowPolicy,
    RosterAllocationEngine,
    overflow_policy_for,
)
from guard_engines.consistency import (
    AlertDraft,
    AlertSeverity,
    AlertType,
    ConsistencyIssue,
    ConsistencyReport,
    IssueKind,
    check_consistency,
    draft_alert,
)
from guard_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "UNCONSTRAINED",
    "AllocationMode",
    "AllocationResult",
    "FirstSlotOverflowPolicy",
    "OverflowPolicy",
    "PriorAssignment",
    "ProportionalOverflowPolicy",
    "RosterAllocationEngine",
    "overflow_policy_for",
    "AlertDraft",
    "AlertSeverity",
    "AlertType",
    "ConsistencyIssue",
    "ConsistencyReport",
    "IssueKind",
    "check_consistency",
    "draft_alert",
    "compute_input_fingerprint",
    "traced_engine",
]
