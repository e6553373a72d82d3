"""
Typed Exception Hierarchy for the Guard Hours Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the allocation, synchronization and reconciliation paths must be
able to react to a failure without parsing its message:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        await roster.save_entry(row_id, on, primary_hours=hours)
    except ValidationError as e:
        api_response(code=e.code, field=e.field, reason=e.reason)
    except GuardRowNotFoundError as e:
        api_response(code=e.code, row_id=e.row_id)

Consistency findings (hours mismatch, overpayment, missing payroll) are NOT
exceptions.  They are returned as ``ConsistencyIssue`` values by
``guard_engines.consistency`` and turned into alerts.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GuardLedgerError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- GuardRowNotFoundError
    |   +-- RosterEntryNotFoundError
    |   +-- MonthlyHoursNotFoundError
    |   +-- PayrollRecordNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- BatchError
        +-- TaskNotRegisteredError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                     | When Raised
------------|--------------------------|------------------------------------------
Validation  | VALIDATION_ERROR         | Negative hours, bad month/year, missing id
------------|--------------------------|------------------------------------------
Not found   | GUARD_ROW_NOT_FOUND      | Roster row id does not exist
            | ROSTER_ENTRY_NOT_FOUND   | No entry for (row, date)
            | MONTHLY_HOURS_NOT_FOUND  | No monthly-hours record for the period
            | PAYROLL_RECORD_NOT_FOUND | Payroll record id does not exist
            | ALERT_NOT_FOUND          | Alert id does not exist
------------|--------------------------|------------------------------------------
Batch       | TASK_NOT_REGISTERED      | Unknown batch task type

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError is never retried; it is surfaced to the caller as-is.

2. Storage errors (sqlalchemy.exc.*) propagate unchanged from single-record
   operations.  Only the batch executor and the alert fan-out catch them,
   record them per item, and continue.

3. Absence of *targets* is not an error: syncing monthly hours onto zero
   payroll records is a zero-count success.  Only absence of a required
   anchor record raises a NotFoundError.

===============================================================================
"""


class GuardLedgerError(Exception):
    """
    Base exception for all guard hours ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GUARD_LEDGER_ERROR"


# Validation


class ValidationError(GuardLedgerError):
    """Malformed input to an allocation, target or sync call."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# Not found


class NotFoundError(GuardLedgerError):
    """Base exception for a required anchor record that does not exist."""

    code: str = "NOT_FOUND"


class GuardRowNotFoundError(NotFoundError):
    """Roster row with given ID was not found."""

    code: str = "GUARD_ROW_NOT_FOUND"

    def __init__(self, row_id: str):
        self.row_id = row_id
        super().__init__(f"Guard row not found: {row_id}")


class RosterEntryNotFoundError(NotFoundError):
    """No roster entry exists for the row on the given day."""

    code: str = "ROSTER_ENTRY_NOT_FOUND"

    def __init__(self, row_id: str, date_string: str):
        self.row_id = row_id
        self.date_string = date_string
        super().__init__(f"Roster entry not found: row {row_id} on {date_string}")


class MonthlyHoursNotFoundError(NotFoundError):
    """No monthly-hours record exists for the guard and period."""

    code: str = "MONTHLY_HOURS_NOT_FOUND"

    def __init__(self, guard_id: str, year: int, month: int):
        self.guard_id = guard_id
        self.year = year
        self.month = month
        super().__init__(
            f"Monthly hours not found for guard {guard_id} in {year}-{month:02d}"
        )


class PayrollRecordNotFoundError(NotFoundError):
    """Payroll record with given ID was not found."""

    code: str = "PAYROLL_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Payroll record not found: {record_id}")


class AlertNotFoundError(NotFoundError):
    """Alert with given ID was not found."""

    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


# Batch


class BatchError(GuardLedgerError):
    """Base exception for batch processing errors."""

    code: str = "BATCH_ERROR"


class TaskNotRegisteredError(BatchError):
    """Batch task type is not registered."""

    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: tuple[str, ...] = ()):
        self.task_type = task_type
        self.available = available
        super().__init__(
            f"No batch task registered for '{task_type}'. "
            f"Available: {list(available)}"
        )
