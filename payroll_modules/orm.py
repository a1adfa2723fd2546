"""
Payroll ORM Persistence Models (``payroll_modules.orm``).

Responsibility:
    SQLAlchemy ORM models that persist time entries and computed payroll
    details.  Each ORM class converts to and from the frozen dataclasses
    in ``payroll_modules.models``.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at.

Invariants enforced:
    - Hours and money use Decimal (maps to Numeric(38,9)) -- NEVER float.
      Values are re-quantized on load, so backends that store Numeric as
      binary floating point (SQLite) still round-trip exact cents.
    - Enum fields stored as String(50) containing the enum .value string.
    - One time entry per employee per day; one payroll detail per
      employee per period.

Audit relevance:
    A ``payroll_details`` row keeps every breakdown line together with the
    Rate Table year and checksum, so net pay can be re-derived from the
    row alone.
"""

import json
from datetime import date, time
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.domain.values import quantize_hours, quantize_money, quantize_rate

_ARL_RATE_QUANTUM = Decimal("0.00001")

# ---------------------------------------------------------------------------
# TimeEntryModel
# ---------------------------------------------------------------------------


class TimeEntryModel(TrackedBase):
    """
    ORM model for one employee-day of clock times and its hour buckets.

    Contract:
        The hour columns are written once from ``decompose_shift`` and
        change only while the entry is editable.  Once ``status`` is
        ``payroll_locked`` the row belongs to ``payroll_period_id``.
    """

    __tablename__ = "time_entries"

    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    expected_arrival_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    lunch_deducted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")

    regular_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    night_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    elapsed_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    late_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    crosses_midnight: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    exceeds_daily_limit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    payroll_period_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_time_entry_employee_date"),
        Index("idx_time_entry_employee_date", "employee_id", "work_date"),
        Index("idx_time_entry_status", "status"),
        Index("idx_time_entry_period", "payroll_period_id"),
    )

    def apply_decomposition(self, decomposition) -> None:
        """Copy clock times and hour buckets from a ``ShiftDecomposition``."""
        self.arrival_time = decomposition.arrival
        self.departure_time = decomposition.departure
        self.lunch_deducted = decomposition.lunch_deducted
        self.regular_hours = decomposition.regular_hours
        self.overtime_hours = decomposition.overtime_hours
        self.night_hours = decomposition.night_hours
        self.elapsed_hours = decomposition.elapsed_hours
        self.late_minutes = decomposition.late_minutes
        self.crosses_midnight = decomposition.crosses_midnight
        self.exceeds_daily_limit = decomposition.exceeds_daily_limit

    def to_dto(self):
        from payroll_modules.models import DailyHourBucket, TimeEntryStatus
        return DailyHourBucket(
            employee_id=self.employee_id,
            work_date=self.work_date,
            regular_hours=quantize_hours(self.regular_hours),
            overtime_hours=quantize_hours(self.overtime_hours),
            night_hours=quantize_hours(self.night_hours),
            elapsed_hours=quantize_hours(self.elapsed_hours),
            late_minutes=self.late_minutes,
            crosses_midnight=self.crosses_midnight,
            entry_id=str(self.id),
            entry_status=TimeEntryStatus(self.status),
        )

    def __repr__(self) -> str:
        return (
            f"<TimeEntryModel {self.employee_id} {self.work_date}: "
            f"{self.arrival_time}-{self.departure_time} ({self.status})>"
        )


# ---------------------------------------------------------------------------
# PayrollDetailModel
# ---------------------------------------------------------------------------

_MONEY_COLUMNS = (
    "basis_amount",
    "monthly_equivalent_base",
    "contribution_base",
    "deduction_base",
    "regular_pay",
    "overtime_pay",
    "night_pay",
    "transport_allowance",
    "connectivity_allowance",
    "bonuses",
    "total_income",
    "health_deduction",
    "pension_deduction",
    "solidarity_contribution",
    "total_deductions",
    "employer_health",
    "employer_pension",
    "arl",
    "severance",
    "severance_interest",
    "service_bonus",
    "vacation",
    "sena",
    "icbf",
    "compensation_fund",
    "employer_contributions",
    "employer_total_cost",
    "net_pay",
    "real_hourly_cost",
)

_HOUR_COLUMNS = ("regular_hours", "overtime_hours", "night_hours")


class PayrollDetailModel(TrackedBase):
    """
    ORM model for ``PayrollBreakdown`` -- one employee, one period.

    Contract:
        Recomputing a period overwrites the employee's row in place
        (unique on period and employee).  ``violations`` holds the legal
        validator's findings as JSON text.
    """

    __tablename__ = "payroll_details"

    payroll_period_id: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    rate_table_year: Mapped[int] = mapped_column(Integer, nullable=False)
    rate_table_checksum: Mapped[str] = mapped_column(String(64), nullable=False)

    basis_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    basis_amount: Mapped[Decimal] = mapped_column(nullable=False)
    monthly_equivalent_base: Mapped[Decimal] = mapped_column(nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(nullable=False)
    commercial_days: Mapped[int] = mapped_column(Integer, nullable=False)
    contribution_base: Mapped[Decimal] = mapped_column(nullable=False)
    deduction_base: Mapped[Decimal] = mapped_column(nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    night_hours: Mapped[Decimal] = mapped_column(nullable=False)

    regular_pay: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(nullable=False)
    night_pay: Mapped[Decimal] = mapped_column(nullable=False)
    transport_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    connectivity_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    bonuses: Mapped[Decimal] = mapped_column(nullable=False)
    total_income: Mapped[Decimal] = mapped_column(nullable=False)

    health_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    pension_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    solidarity_contribution: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)

    employer_health: Mapped[Decimal] = mapped_column(nullable=False)
    employer_pension: Mapped[Decimal] = mapped_column(nullable=False)
    arl: Mapped[Decimal] = mapped_column(nullable=False)
    arl_risk_class: Mapped[str] = mapped_column(String(5), nullable=False)
    arl_rate: Mapped[Decimal] = mapped_column(nullable=False)
    severance: Mapped[Decimal] = mapped_column(nullable=False)
    severance_interest: Mapped[Decimal] = mapped_column(nullable=False)
    service_bonus: Mapped[Decimal] = mapped_column(nullable=False)
    vacation: Mapped[Decimal] = mapped_column(nullable=False)
    sena: Mapped[Decimal] = mapped_column(nullable=False)
    icbf: Mapped[Decimal] = mapped_column(nullable=False)
    compensation_fund: Mapped[Decimal] = mapped_column(nullable=False)
    employer_contributions: Mapped[Decimal] = mapped_column(nullable=False)

    employer_total_cost: Mapped[Decimal] = mapped_column(nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)

    law_1141_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    benefit_factor: Mapped[Decimal] = mapped_column(nullable=False)
    real_hourly_cost: Mapped[Decimal] = mapped_column(nullable=False)

    is_valid: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    violations: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    __table_args__ = (
        UniqueConstraint(
            "payroll_period_id", "employee_id",
            name="uq_payroll_detail_period_employee",
        ),
        Index("idx_payroll_detail_period", "payroll_period_id"),
        Index("idx_payroll_detail_employee", "employee_id"),
    )

    def update_from_breakdown(self, breakdown, validation) -> None:
        for name in _MONEY_COLUMNS + _HOUR_COLUMNS:
            setattr(self, name, getattr(breakdown, name))
        self.employee_id = breakdown.employee_id
        self.period_start = breakdown.period_start
        self.period_end = breakdown.period_end
        self.rate_table_year = breakdown.rate_table_year
        self.rate_table_checksum = breakdown.rate_table_checksum
        self.basis_kind = breakdown.basis_kind.value
        self.hourly_rate = breakdown.hourly_rate
        self.commercial_days = breakdown.commercial_days
        self.arl_risk_class = breakdown.arl_risk_class
        self.arl_rate = breakdown.arl_rate
        self.law_1141_applied = breakdown.law_1141_applied
        self.benefit_factor = breakdown.benefit_factor
        self.is_valid = validation.is_valid
        self.violations = json.dumps(
            [{"rule": v.rule, "message": v.message} for v in validation.violations]
        )

    @classmethod
    def from_breakdown(cls, period_id: str, breakdown, validation) -> "PayrollDetailModel":
        model = cls(payroll_period_id=period_id)
        model.update_from_breakdown(breakdown, validation)
        return model

    def to_dto(self):
        from payroll_modules.models import BasisKind, PayrollBreakdown
        values = {name: quantize_money(getattr(self, name)) for name in _MONEY_COLUMNS}
        values.update({name: quantize_hours(getattr(self, name)) for name in _HOUR_COLUMNS})
        return PayrollBreakdown(
            employee_id=self.employee_id,
            period_start=self.period_start,
            period_end=self.period_end,
            rate_table_year=self.rate_table_year,
            rate_table_checksum=self.rate_table_checksum,
            basis_kind=BasisKind(self.basis_kind),
            hourly_rate=quantize_rate(self.hourly_rate),
            commercial_days=self.commercial_days,
            arl_risk_class=self.arl_risk_class,
            arl_rate=self.arl_rate.quantize(_ARL_RATE_QUANTUM),
            law_1141_applied=self.law_1141_applied,
            benefit_factor=quantize_rate(self.benefit_factor),
            **values,
        )

    def violation_rules(self) -> list[str]:
        return [v["rule"] for v in json.loads(self.violations or "[]")]

    def __repr__(self) -> str:
        return (
            f"<PayrollDetailModel {self.payroll_period_id} {self.employee_id}: "
            f"net {self.net_pay}>"
        )
