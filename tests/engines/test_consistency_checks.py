"""
Tests for guard_engines.consistency -- ledger divergence classification.

Pure tests over lightweight stand-ins for the monthly and payroll records.
"""

from dataclasses import dataclass
from uuid import uuid4

import pytest

from guard_engines.consistency import (
    DEFAULT_ALERT_TYPES,
    AlertSeverity,
    AlertType,
    ConsistencyIssue,
    IssueKind,
    check_consistency,
    draft_alert,
)


@dataclass
class Monthly:
    total_hours: int
    remaining_hours: int = 0


@dataclass
class Payroll:
    total_hours: int


# =============================================================================
# check_consistency
# =============================================================================


class TestCheckConsistency:

    def test_matching_totals_are_consistent(self):
        report = check_consistency(Monthly(160), [Payroll(100), Payroll(60)])
        assert report.is_consistent
        assert report.issues == ()
        assert report.to_contract() == {"isConsistent": True, "issues": []}

    def test_hours_mismatch_reports_signed_difference(self):
        report = check_consistency(Monthly(160), [Payroll(150)])
        assert report.kinds() == (IssueKind.HOURS_MISMATCH,)
        issue = report.issues[0]
        assert issue.monthly_hours == 160
        assert issue.payroll_total == 150
        assert issue.difference == -10

    def test_hours_without_payroll_reports_mismatch_and_missing(self):
        report = check_consistency(Monthly(80), [])
        assert report.kinds() == (IssueKind.HOURS_MISMATCH, IssueKind.MISSING_PAYROLL)
        assert report.issues[1].hours_worked == 80
        assert not report.is_consistent

    def test_negative_remaining_reports_overpaid(self):
        report = check_consistency(Monthly(100, remaining_hours=-20), [Payroll(100)])
        assert report.kinds() == (IssueKind.OVERPAID,)
        assert report.issues[0].overpaid_hours == 20

    def test_no_monthly_record_is_consistent(self):
        report = check_consistency(None, [Payroll(40)])
        assert report.is_consistent

    def test_zero_hours_without_payroll_is_consistent(self):
        assert check_consistency(Monthly(0), []).is_consistent

    def test_report_carries_period(self):
        guard = uuid4()
        report = check_consistency(Monthly(1), [], guard_id=guard, year=2024, month=3)
        assert (report.guard_id, report.year, report.month) == (guard, 2024, 3)

    def test_issue_contract_only_lists_set_evidence(self):
        issue = ConsistencyIssue(kind=IssueKind.MISSING_PAYROLL, hours_worked=80)
        assert issue.to_contract() == {"type": "MISSING_PAYROLL", "hoursWorked": 80}


# =============================================================================
# draft_alert
# =============================================================================


class TestDraftAlert:

    def test_mismatch_text_and_defaults(self):
        issue = ConsistencyIssue(
            kind=IssueKind.HOURS_MISMATCH, monthly_hours=160, payroll_total=150, difference=-10,
        )
        draft = draft_alert(issue, 2024, 3)
        assert draft.title == "Hours Mismatch Detected"
        assert draft.description == (
            "Hours mismatch detected. Monthly hours: 160h, Payroll total: 150h. "
            "Difference: -10h"
        )
        assert draft.alert_type == AlertType.MISSING_HOURS.value
        assert draft.severity == AlertSeverity.WARNING.value
        assert draft.related_data["year"] == 2024
        assert draft.related_data["month"] == 3
        assert draft.related_data["difference"] == -10
        assert draft.related_data["unpaidHours"] == 160

    def test_overpaid_is_critical(self):
        draft = draft_alert(ConsistencyIssue(kind=IssueKind.OVERPAID, overpaid_hours=5), 2024, 3)
        assert draft.title == "Potential Overpayment"
        assert draft.alert_type == AlertType.OVERPAYMENT_RISK.value
        assert draft.severity == AlertSeverity.CRITICAL.value
        assert "5 more hours than worked" in draft.description

    def test_missing_payroll_text(self):
        draft = draft_alert(ConsistencyIssue(kind=IssueKind.MISSING_PAYROLL, hours_worked=80), 2024, 3)
        assert draft.title == "Missing Payroll Entry"
        assert draft.description == "80 hours recorded in monthly hours but no payroll entry found"

    def test_unmapped_kind_uses_defaults(self):
        issue = ConsistencyIssue(kind=IssueKind.OVERPAID, overpaid_hours=1)
        draft = draft_alert(
            issue, 2024, 3,
            alert_types={}, severities={},
            default_type="unpaid_hours", default_severity="info",
        )
        assert draft.alert_type == "unpaid_hours"
        assert draft.severity == "info"

    @pytest.mark.parametrize("kind", list(IssueKind))
    def test_every_kind_has_a_title(self, kind):
        draft = draft_alert(ConsistencyIssue(kind=kind), 2024, 1)
        assert draft.title
        assert draft.related_data["issue"] == kind.value

    def test_alert_types_are_the_ones_raised_by_default(self):
        assert set(AlertType) == set(DEFAULT_ALERT_TYPES.values())
