"""
Typed Exception Hierarchy for the Payroll Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll runs touch legal obligations. Callers must be able to tell a
configuration problem (abort the whole period) from a bad time entry
(reject one day) without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        processor.process(period, registry)
    except Exception as e:
        if "rate table" in str(e):  # FRAGILE - message might change
            abort_period()

Example - RIGHT way (what this module enables):
    try:
        processor.process(period, registry)
    except RateTableNotFoundError as e:
        log.error("no legal parameters", extra={"year": e.year})
        api_response(code=e.code, year=e.year)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PayrollEngineError:

    PayrollEngineError (base)
    |
    +-- ConfigurationError          fatal for the whole period
    |   +-- RateTableNotFoundError
    |   +-- InvalidRateTableError
    |
    +-- ValidationError             rejects a single input
    |   +-- ShiftValidationError
    |   +-- CompensationBasisError
    |   +-- InvalidPeriodError
    |
    +-- TimeEntryError
        +-- TimeEntryLockedError
        +-- TimeEntryNotFoundError
        +-- InvalidTimeEntryTransitionError
    |
    +-- ComplianceBlockedError      validator violations under fail_on_violation

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | RATE_TABLE_NOT_FOUND        | No Rate Table for the period's year
                | INVALID_RATE_TABLE          | Rate Table file fails validation
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_SHIFT               | arrival == departure, malformed times
                | INVALID_COMPENSATION_BASIS  | No usable salary/daily rate
                | INVALID_PERIOD              | Period start after end
----------------|-----------------------------|-----------------------------------------
Time entry      | TIME_ENTRY_LOCKED           | Editing an entry consumed by payroll
                | TIME_ENTRY_NOT_FOUND        | Unknown time entry id
                | INVALID_TIME_ENTRY_TRANSITION | Status change outside the lifecycle
----------------|-----------------------------|-----------------------------------------
Compliance      | COMPLIANCE_BLOCKED          | Violations with fail_on_violation set

===============================================================================
NON-EXCEPTIONS
===============================================================================

Legal-limit warnings (more than 12 hours in a day) and compliance
violations reported by the legal validator are NOT exceptions. They are
value objects in ``payroll_modules.models`` and never interrupt a
computation; deciding to halt is the orchestrator's business.
"""


class PayrollEngineError(Exception):
    """
    Base exception for all payroll engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_ENGINE_ERROR"


# Configuration exceptions


class ConfigurationError(PayrollEngineError):
    """Base exception for configuration errors. Fatal for a period run."""

    code: str = "CONFIGURATION_ERROR"


class RateTableNotFoundError(ConfigurationError):
    """No Rate Table is registered for the requested calendar year."""

    code: str = "RATE_TABLE_NOT_FOUND"

    def __init__(self, year: int, available_years: tuple[int, ...] = ()):
        self.year = year
        self.available_years = tuple(available_years)
        available = ", ".join(str(y) for y in self.available_years) or "none"
        super().__init__(
            f"No rate table configured for year {year} (available: {available})"
        )


class InvalidRateTableError(ConfigurationError):
    """A Rate Table document is structurally or legally inconsistent."""

    code: str = "INVALID_RATE_TABLE"

    def __init__(self, source: str, problems: list[str]):
        self.source = source
        self.problems = list(problems)
        super().__init__(
            f"Invalid rate table {source}: {'; '.join(self.problems)}"
        )


# Validation exceptions


class ValidationError(PayrollEngineError):
    """Base exception for malformed or degenerate input."""

    code: str = "VALIDATION_ERROR"


class ShiftValidationError(ValidationError):
    """
    A single day's clock times cannot be decomposed.

    Rejects only that day's entry; the employee and the period continue.
    """

    code: str = "INVALID_SHIFT"

    def __init__(self, arrival: str, departure: str, reason: str):
        self.arrival = arrival
        self.departure = departure
        self.reason = reason
        super().__init__(
            f"Invalid shift {arrival}-{departure}: {reason}"
        )


class CompensationBasisError(ValidationError):
    """An employee record carries no usable compensation basis."""

    code: str = "INVALID_COMPENSATION_BASIS"

    def __init__(self, employee_id: str, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(
            f"Employee {employee_id} has no usable compensation basis: {reason}"
        )


class InvalidPeriodError(ValidationError):
    """A payroll period's date range is inverted."""

    code: str = "INVALID_PERIOD"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Period start {start} is after period end {end}")


# Time entry exceptions


class TimeEntryError(PayrollEngineError):
    """Base exception for time-entry lifecycle errors."""

    code: str = "TIME_ENTRY_ERROR"


class TimeEntryLockedError(TimeEntryError):
    """
    Time entry was consumed by a payroll run and can no longer change.
    """

    code: str = "TIME_ENTRY_LOCKED"

    def __init__(self, entry_id: str, payroll_period_id: str | None = None):
        self.entry_id = entry_id
        self.payroll_period_id = payroll_period_id
        super().__init__(
            f"Time entry {entry_id} is locked by payroll period "
            f"{payroll_period_id or 'unknown'}"
        )


class TimeEntryNotFoundError(TimeEntryError):
    """No time entry with the given id."""

    code: str = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Time entry {entry_id} not found")


class InvalidTimeEntryTransitionError(TimeEntryError):
    """A status change the time-entry lifecycle does not allow."""

    code: str = "INVALID_TIME_ENTRY_TRANSITION"

    def __init__(self, entry_id: str, from_status: str, to_status: str):
        self.entry_id = entry_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Time entry {entry_id} cannot move from {from_status} to {to_status}"
        )


# Compliance


class ComplianceBlockedError(PayrollEngineError):
    """
    A period run configured with ``fail_on_violation`` met a breakdown the
    legal validator flagged.  Nothing is persisted or locked for the employee.
    """

    code: str = "COMPLIANCE_BLOCKED"

    def __init__(self, employee_id: str, rules: tuple[str, ...]):
        self.employee_id = employee_id
        self.rules = tuple(rules)
        super().__init__(
            f"Payroll for {employee_id} blocked by compliance violations: "
            f"{', '.join(self.rules)}"
        )
