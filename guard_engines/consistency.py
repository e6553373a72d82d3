"""
Module: guard_engines.consistency
Responsibility:
    Compare a guard's monthly-hours record with the payroll records of the
    same (guard, year, month), classify any divergence, and render the
    alert text for each finding.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The alert service fetches both ledgers and persists the alerts; this
    module only decides what is wrong and how to describe it.

Invariants enforced:
    - Hours are compared by exact integer equality; there is no tolerance
      band.
    - Findings are values, never exceptions.  ``check_consistency`` always
      returns a report.
    - ``is_consistent`` is True exactly when ``issues`` is empty.

Checks (in order):
    1. HOURS_MISMATCH  -- a monthly record exists and the payroll total
       differs.  ``difference = payroll_total - monthly_hours`` (signed).
    2. OVERPAID        -- ``remaining_hours < 0`` on the monthly record
       (only reachable through direct data edits, since saves clamp
       remaining at zero).
    3. MISSING_PAYROLL -- ``total_hours > 0`` and no payroll records.

    A guard with hours but no payroll therefore reports both 1 and 3.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from guard_engines.tracer import traced_engine


class IssueKind(str, Enum):
    """Kinds of divergence between the two ledgers."""

    HOURS_MISMATCH = "HOURS_MISMATCH"
    OVERPAID = "OVERPAID"
    MISSING_PAYROLL = "MISSING_PAYROLL"


class AlertType(str, Enum):
    """Alert categories raised by reconciliation. Configured maps may name others."""

    MISSING_HOURS = "missing_hours"
    OVERPAYMENT_RISK = "overpayment_risk"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


DEFAULT_ALERT_TYPES: Mapping[str, AlertType] = {
    IssueKind.HOURS_MISMATCH.value: AlertType.MISSING_HOURS,
    IssueKind.OVERPAID.value: AlertType.OVERPAYMENT_RISK,
    IssueKind.MISSING_PAYROLL.value: AlertType.MISSING_HOURS,
}

DEFAULT_SEVERITIES: Mapping[str, AlertSeverity] = {
    IssueKind.HOURS_MISMATCH.value: AlertSeverity.WARNING,
    IssueKind.OVERPAID.value: AlertSeverity.CRITICAL,
    IssueKind.MISSING_PAYROLL.value: AlertSeverity.WARNING,
}


class MonthlyHoursLike(Protocol):
    total_hours: int
    remaining_hours: int


class PayrollHoursLike(Protocol):
    total_hours: int


@dataclass(frozen=True)
class ConsistencyIssue:
    """
    One finding, with the numbers that prove it.

    Only the evidence fields relevant to ``kind`` are set.
    """

    kind: IssueKind
    monthly_hours: int | None = None
    payroll_total: int | None = None
    difference: int | None = None
    overpaid_hours: int | None = None
    hours_worked: int | None = None

    def evidence(self) -> dict[str, Any]:
        """camelCase evidence fields that are set, as stored on alerts."""
        fields = {
            "monthlyHours": self.monthly_hours,
            "payrollTotal": self.payroll_total,
            "difference": self.difference,
            "overpaidHours": self.overpaid_hours,
            "hoursWorked": self.hours_worked,
        }
        return {k: v for k, v in fields.items() if v is not None}

    def to_contract(self) -> dict[str, Any]:
        return {"type": self.kind.value, **self.evidence()}


@dataclass(frozen=True)
class ConsistencyReport:
    guard_id: Any
    year: int
    month: int
    issues: tuple[ConsistencyIssue, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.issues

    def kinds(self) -> tuple[IssueKind, ...]:
        return tuple(issue.kind for issue in self.issues)

    def to_contract(self) -> dict[str, Any]:
        return {
            "isConsistent": self.is_consistent,
            "issues": [issue.to_contract() for issue in self.issues],
        }


@dataclass(frozen=True)
class AlertDraft:
    """Everything needed to persist one alert for one issue."""

    alert_type: str
    severity: str
    title: str
    description: str
    related_data: dict[str, Any]


@traced_engine("consistency", "1.0")
def check_consistency(
    monthly: MonthlyHoursLike | None,
    payroll_records: Sequence[PayrollHoursLike],
    guard_id: Any = None,
    year: int = 0,
    month: int = 0,
) -> ConsistencyReport:
    """Classify divergence between one monthly record and its payroll records."""
    issues: list[ConsistencyIssue] = []
    payroll_total = sum(int(p.total_hours or 0) for p in payroll_records)

    if monthly is not None:
        monthly_hours = int(monthly.total_hours or 0)

        if payroll_total != monthly_hours:
            issues.append(ConsistencyIssue(
                kind=IssueKind.HOURS_MISMATCH,
                monthly_hours=monthly_hours,
                payroll_total=payroll_total,
                difference=payroll_total - monthly_hours,
            ))

        remaining = int(monthly.remaining_hours or 0)
        if remaining < 0:
            issues.append(ConsistencyIssue(
                kind=IssueKind.OVERPAID,
                overpaid_hours=abs(remaining),
            ))

        if monthly_hours > 0 and not payroll_records:
            issues.append(ConsistencyIssue(
                kind=IssueKind.MISSING_PAYROLL,
                hours_worked=monthly_hours,
            ))

    return ConsistencyReport(
        guard_id=guard_id, year=year, month=month, issues=tuple(issues),
    )


def _messages(issue: ConsistencyIssue) -> tuple[str, str]:
    match issue.kind:
        case IssueKind.HOURS_MISMATCH:
            return (
                "Hours Mismatch Detected",
                f"Hours mismatch detected. Monthly hours: {issue.monthly_hours}h, "
                f"Payroll total: {issue.payroll_total}h. "
                f"Difference: {issue.difference}h",
            )
        case IssueKind.OVERPAID:
            return (
                "Potential Overpayment",
                f"Warning: Guard has been paid for {issue.overpaid_hours} "
                f"more hours than worked",
            )
        case IssueKind.MISSING_PAYROLL:
            return (
                "Missing Payroll Entry",
                f"{issue.hours_worked} hours recorded in monthly hours "
                f"but no payroll entry found",
            )
    return (
        "Data Inconsistency Detected",
        "A data consistency issue was detected between monthly hours and payroll",
    )


def draft_alert(
    issue: ConsistencyIssue,
    year: int,
    month: int,
    alert_types: Mapping[str, str] | None = None,
    severities: Mapping[str, str] | None = None,
    default_type: str = AlertType.MISSING_HOURS.value,
    default_severity: str = AlertSeverity.WARNING.value,
) -> AlertDraft:
    """Render the fixed title/description template and type/severity for an issue."""
    alert_types = DEFAULT_ALERT_TYPES if alert_types is None else alert_types
    severities = DEFAULT_SEVERITIES if severities is None else severities

    alert_type = alert_types.get(issue.kind.value, default_type)
    severity = severities.get(issue.kind.value, default_severity)
    title, description = _messages(issue)

    related: dict[str, Any] = {
        "year": year,
        "month": month,
        "issue": issue.kind.value,
        "unpaidHours": issue.monthly_hours or issue.hours_worked or 0,
        "unpaidMinutes": 0,
    }
    related.update(issue.evidence())

    return AlertDraft(
        alert_type=getattr(alert_type, "value", alert_type),
        severity=getattr(severity, "value", severity),
        title=title,
        description=description,
        related_data=related,
    )
