"""
payroll_batch.domain.types -- Pure frozen dataclasses for period runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections, returned by ``PeriodProcessor.process()``.

Invariants enforced:
    - All DTOs are frozen (immutable once the run returns).
    - Results and failures are ordered by employee id, never by
      completion order, so two runs over the same inputs compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import ZERO
from payroll_modules.models import PayrollBreakdown, PeriodTotals, ValidationResult


# =============================================================================
# Status enums
# =============================================================================


class PeriodRunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # Every employee processed
    PARTIALLY_COMPLETED = "partially_completed"  # Some employees failed
    FAILED = "failed"  # No employee succeeded


class AlertKind(str, Enum):
    """Review flags raised in the run summary."""

    BELOW_MINIMUM_WAGE = "below_minimum_wage"
    HIGH_BENEFIT_FACTOR = "high_benefit_factor"
    COMPLIANCE_VIOLATION = "compliance_violation"
    LOCK_FAILED = "lock_failed"


# =============================================================================
# Per-employee DTOs
# =============================================================================


@dataclass(frozen=True)
class EmployeeResult:
    """A computed and persisted employee.

    ``lock_error`` is the error code of a failed lock request; the detail is
    saved but the time entries are still editable.
    """

    employee_id: str
    department: str
    totals: PeriodTotals
    breakdown: PayrollBreakdown
    validation: ValidationResult
    locked_entries: int = 0
    lock_error: str | None = None
    duration_ms: float = 0.0

    @property
    def lock_failed(self) -> bool:
        return self.lock_error is not None


@dataclass(frozen=True)
class EmployeeFailure:
    """An employee whose computation failed; nothing was locked for them."""

    employee_id: str
    error_code: str
    error_message: str
    error_type: str = ""


# =============================================================================
# Summary DTOs
# =============================================================================


@dataclass(frozen=True)
class DepartmentTotals:
    department: str
    employee_count: int = 0
    total_income: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    total_employer_cost: Decimal = ZERO


@dataclass(frozen=True)
class RunAlert:
    kind: AlertKind
    employee_id: str
    message: str


@dataclass(frozen=True)
class PayrollRunSummary:
    employee_count: int = 0
    failure_count: int = 0
    total_income: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    total_employer_contributions: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    departments: tuple[DepartmentTotals, ...] = ()
    alerts: tuple[RunAlert, ...] = ()


@dataclass(frozen=True)
class PeriodRunResult:
    """Immutable result of processing one payroll period.

    Returned by ``PeriodProcessor.process()``.
    """

    period_id: str
    rate_table_year: int
    status: PeriodRunStatus
    results: tuple[EmployeeResult, ...] = ()
    failures: tuple[EmployeeFailure, ...] = ()
    summary: PayrollRunSummary = field(default_factory=PayrollRunSummary)
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def result_for(self, employee_id: str) -> EmployeeResult | None:
        for result in self.results:
            if result.employee_id == employee_id:
                return result
        return None
