"""
Payroll Domain Models (``payroll_modules.models``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of Colombian
payroll: employees and their compensation basis, daily hour buckets,
payroll periods and their totals, the payroll breakdown, and the legal
validator's findings.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced and
consumed by ``payroll_engines`` and ``payroll_batch``.  No dependency on
the database, the config loader, or the engines.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All hour and money fields use ``Decimal`` -- NEVER ``float``.
* Optional numeric fields default to ``Decimal("0")`` here, once, so the
  engines never re-apply default-filling.
* ``PayrollPeriod`` rejects an inverted date range.
* ``CompensationBasis`` always resolves to exactly one positive amount.

Failure modes
-------------
* Construction with negative hours raises ``ValueError``.
* ``PayrollPeriod`` with start > end raises ``InvalidPeriodError``.
* ``CompensationBasis.from_employee_fields`` with no usable amount raises
  ``CompensationBasisError``.

Audit relevance
---------------
* ``PayrollBreakdown`` carries the Rate Table year and checksum it was
  computed with, and every line needed to re-derive its totals.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import ZERO, to_decimal
from payroll_kernel.exceptions import CompensationBasisError, InvalidPeriodError
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.models")

COMMERCIAL_MONTH_DAYS = 30
LEGACY_MONTHLY_HOURS = Decimal("192")


class EmploymentStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    TERMINATED = "terminated"


class ArlRiskClass(Enum):
    """Workplace-risk insurance class, I (office) to V (high-risk trades)."""
    I = "I"  # noqa: E741
    II = "II"
    III = "III"
    IV = "IV"
    V = "V"


class TimeEntryStatus(Enum):
    """Time entry lifecycle states."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PAYROLL_LOCKED = "payroll_locked"
    REJECTED = "rejected"


class BasisKind(Enum):
    MONTHLY = "monthly"
    DAILY = "daily"


# ---------------------------------------------------------------------------
# Employee and compensation basis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompensationBasis:
    """The contractual amount an employee is paid against.

    ``amount`` is a monthly salary for ``BasisKind.MONTHLY`` and a daily
    rate for ``BasisKind.DAILY``.
    """
    kind: BasisKind
    amount: Decimal
    source: str = "salary_base"

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("compensation basis amount must be positive")

    @property
    def monthly_equivalent(self) -> Decimal:
        if self.kind is BasisKind.DAILY:
            return self.amount * COMMERCIAL_MONTH_DAYS
        return self.amount

    @classmethod
    def monthly(cls, amount) -> CompensationBasis:
        return cls(BasisKind.MONTHLY, to_decimal(amount))

    @classmethod
    def daily(cls, amount) -> CompensationBasis:
        return cls(BasisKind.DAILY, to_decimal(amount), source="daily_rate")

    @classmethod
    def from_employee_fields(
        cls,
        employee_id: str,
        *,
        salary_base=None,
        daily_rate=None,
        monthly_salary=None,
        hourly_rate=None,
    ) -> CompensationBasis:
        """
        Normalize the current and legacy compensation fields into one basis.

        Precedence: ``daily_rate`` > ``salary_base`` > legacy
        ``monthly_salary`` > legacy ``hourly_rate`` x 192.  Zero and absent
        values are skipped.

        Raises:
            CompensationBasisError: if no field carries a positive amount.
        """
        candidates = (
            ("daily_rate", BasisKind.DAILY, daily_rate, Decimal("1")),
            ("salary_base", BasisKind.MONTHLY, salary_base, Decimal("1")),
            ("monthly_salary", BasisKind.MONTHLY, monthly_salary, Decimal("1")),
            ("hourly_rate", BasisKind.MONTHLY, hourly_rate, LEGACY_MONTHLY_HOURS),
        )
        present = []
        for name, kind, raw, factor in candidates:
            try:
                value = to_decimal(raw)
            except (TypeError, ValueError) as exc:
                raise CompensationBasisError(employee_id, f"{name}: {exc}") from exc
            if value < 0:
                raise CompensationBasisError(employee_id, f"{name} is negative")
            if value > 0:
                present.append((name, kind, value * factor))

        if not present:
            raise CompensationBasisError(
                employee_id, "no salary_base, daily_rate, monthly_salary or hourly_rate"
            )

        name, kind, amount = present[0]
        if len(present) > 1:
            logger.debug(
                "compensation_basis_precedence_applied",
                extra={
                    "employee_id": employee_id,
                    "chosen": name,
                    "ignored": [p[0] for p in present[1:]],
                },
            )
        return cls(kind, amount, source=name)


@dataclass(frozen=True)
class Employee:
    """An employee as supplied by the personnel provider (read-only)."""
    id: str
    name: str
    basis: CompensationBasis
    arl_risk_class: ArlRiskClass = ArlRiskClass.I
    status: EmploymentStatus = EmploymentStatus.ACTIVE
    position: str = ""
    department: str = ""
    telework: bool = False

    @property
    def is_active(self) -> bool:
        return self.status is EmploymentStatus.ACTIVE


@dataclass(frozen=True)
class EmployerProfile:
    """Employer facts that change contribution rules."""
    name: str = ""
    law_1141_eligible: bool = False


@dataclass(frozen=True)
class BonusLine:
    """An ad hoc bonus passed through unchanged into income.

    Salary bonuses (``salary_component=True``) also enter the employee
    deduction base; non-salary bonuses do not.
    """
    name: str
    amount: Decimal
    salary_component: bool = True

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"bonus {self.name!r} cannot be negative")


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegalLimitWarning:
    """Non-fatal finding that needs human review."""
    code: str  # "daily_limit_exceeded", "overtime_generated"
    message: str
    hours: Decimal = ZERO


@dataclass(frozen=True)
class ShiftDecomposition:
    """One day's clock times classified into hour buckets."""
    arrival: time
    departure: time
    lunch_deducted: bool
    elapsed_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    night_hours: Decimal
    crosses_midnight: bool
    late_minutes: int = 0
    warnings: tuple[LegalLimitWarning, ...] = ()

    @property
    def exceeds_daily_limit(self) -> bool:
        return any(w.code == "daily_limit_exceeded" for w in self.warnings)


@dataclass(frozen=True)
class DailyHourBucket:
    """Hours for one employee-day; immutable once produced."""
    employee_id: str
    work_date: date
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    night_hours: Decimal = ZERO
    elapsed_hours: Decimal = ZERO
    late_minutes: int = 0
    crosses_midnight: bool = False
    entry_id: str | None = None
    entry_status: TimeEntryStatus = TimeEntryStatus.APPROVED

    def __post_init__(self):
        for name in ("regular_hours", "overtime_hours", "night_hours", "elapsed_hours"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        if self.late_minutes < 0:
            raise ValueError("late_minutes cannot be negative")


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------


def _is_month_end(d: date) -> bool:
    return d.day == calendar.monthrange(d.year, d.month)[1]


@dataclass(frozen=True)
class PayrollPeriod:
    """Inclusive date range paid together, e.g. a month or a half-month."""
    start: date
    end: date
    period_id: str | None = None

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidPeriodError(self.start.isoformat(), self.end.isoformat())

    @property
    def year(self) -> int:
        return self.start.year

    @property
    def key(self) -> str:
        return self.period_id or f"{self.start.isoformat()}_{self.end.isoformat()}"

    @property
    def commercial_days(self) -> int:
        """Days under the 30-day commercial month.

        A full calendar month counts 30 whatever its length; each
        half-month counts 15.
        """
        d1 = COMMERCIAL_MONTH_DAYS if _is_month_end(self.start) else min(self.start.day, 30)
        d2 = COMMERCIAL_MONTH_DAYS if _is_month_end(self.end) else min(self.end.day, 30)
        return (
            (self.end.year - self.start.year) * 360
            + (self.end.month - self.start.month) * 30
            + (d2 - d1)
            + 1
        )

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class PeriodTotals:
    """Sums of approved daily buckets for one employee over one period."""
    employee_id: str
    period_start: date
    period_end: date
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    night_hours: Decimal = ZERO
    elapsed_hours: Decimal = ZERO
    late_minutes: int = 0
    days_worked: int = 0
    entry_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def worked_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours


# ---------------------------------------------------------------------------
# Breakdown
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayrollBreakdown:
    """Full payroll result for one employee and one period.

    Two bases are kept apart throughout: realized pay (``total_income``)
    drives employee deductions, while the contractual
    ``contribution_base`` drives every employer-funded line.
    """
    employee_id: str
    period_start: date
    period_end: date
    rate_table_year: int
    rate_table_checksum: str

    # Basis
    basis_kind: BasisKind
    basis_amount: Decimal
    monthly_equivalent_base: Decimal
    hourly_rate: Decimal
    commercial_days: int
    contribution_base: Decimal
    deduction_base: Decimal

    # Hours
    regular_hours: Decimal
    overtime_hours: Decimal
    night_hours: Decimal

    # Income
    regular_pay: Decimal
    overtime_pay: Decimal
    night_pay: Decimal
    transport_allowance: Decimal
    connectivity_allowance: Decimal
    bonuses: Decimal
    total_income: Decimal

    # Employee deductions
    health_deduction: Decimal
    pension_deduction: Decimal
    solidarity_contribution: Decimal
    total_deductions: Decimal

    # Employer contributions
    employer_health: Decimal
    employer_pension: Decimal
    arl: Decimal
    arl_risk_class: str
    arl_rate: Decimal
    severance: Decimal
    severance_interest: Decimal
    service_bonus: Decimal
    vacation: Decimal
    sena: Decimal
    icbf: Decimal
    compensation_fund: Decimal
    employer_contributions: Decimal

    # Totals
    employer_total_cost: Decimal
    net_pay: Decimal

    # Flags and indicators
    law_1141_applied: bool = False
    benefit_factor: Decimal = ZERO
    real_hourly_cost: Decimal = ZERO
    bonus_lines: tuple[BonusLine, ...] = field(default_factory=tuple)

    def income_lines(self) -> dict[str, Decimal]:
        return {
            "regular_pay": self.regular_pay,
            "overtime_pay": self.overtime_pay,
            "night_pay": self.night_pay,
            "transport_allowance": self.transport_allowance,
            "connectivity_allowance": self.connectivity_allowance,
            "bonuses": self.bonuses,
        }

    def deduction_lines(self) -> dict[str, Decimal]:
        return {
            "health_deduction": self.health_deduction,
            "pension_deduction": self.pension_deduction,
            "solidarity_contribution": self.solidarity_contribution,
        }

    def employer_lines(self) -> dict[str, Decimal]:
        return {
            "employer_health": self.employer_health,
            "employer_pension": self.employer_pension,
            "arl": self.arl,
            "severance": self.severance,
            "severance_interest": self.severance_interest,
            "service_bonus": self.service_bonus,
            "vacation": self.vacation,
            "sena": self.sena,
            "icbf": self.icbf,
            "compensation_fund": self.compensation_fund,
        }

    def recompute_net_pay(self) -> Decimal:
        """Net pay re-derived from the listed lines alone."""
        return sum(self.income_lines().values(), ZERO) - sum(
            self.deduction_lines().values(), ZERO
        )

    def recompute_employer_total_cost(self) -> Decimal:
        return sum(self.income_lines().values(), ZERO) + sum(
            self.employer_lines().values(), ZERO
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComplianceViolation:
    """Advisory finding from the legal validator; never raised."""
    rule: str
    message: str
    expected: Decimal | None = None
    actual: Decimal | None = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    violations: tuple[ComplianceViolation, ...] = field(default_factory=tuple)

    @property
    def rules(self) -> tuple[str, ...]:
        return tuple(v.rule for v in self.violations)

    def messages(self) -> list[str]:
        return [v.message for v in self.violations]
