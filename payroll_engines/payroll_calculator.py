"""
payroll_engines.payroll_calculator -- Gross-to-net payroll and employer cost.

Responsibility:
    Turn an employee's compensation basis, the period's hour totals and
    the year's Rate Table into a full ``PayrollBreakdown``: income lines,
    statutory employee deductions, employer contributions, net pay and
    employer total cost.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Receives the Rate Table as an argument; never looks one up.

Invariants enforced:
    - Two bases stay apart.  Realized pay (regular, overtime, night and
      salary bonuses) drives employee deductions; the contractual
      contribution base drives every employer-funded line, so overtime
      and night surcharges never inflate benefits.
    - Every money line is quantized to 0.01 (ROUND_HALF_UP) before any
      total is summed, so net_pay == total_income - total_deductions and
      employer_total_cost == total_income + employer_contributions hold
      exactly.
    - employer_total_cost >= total_income: every rate is non-negative.
    - Replay safety: identical inputs give identical breakdowns.

Failure modes:
    - KeyError from the Rate Table when the employee's ARL class has no
      rate (prevented by Rate Table validation).

Audit relevance:
    Each breakdown records the Rate Table year and checksum it used and
    the invocation is traced via ``@traced_engine``.

Formulas (per period, commercial_days under the 30-day month):
    hourly_rate        = daily_rate / legal_daily_hours   (daily basis)
                       = monthly_base / monthly_divisor   (monthly basis)
    regular_pay        = hourly_rate x regular_hours
    overtime_pay       = hourly_rate x overtime_hours x overtime_multiplier
    night_pay          = hourly_rate x night_hours x night_surcharge
    transport          = allowance x days/30 when monthly base <= 2 SMMLV
    contribution_base  = monthly base x days/30, within [1, 25] SMMLV x days/30
    deduction_base     = salary income, capped at 25 SMMLV x days/30
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from payroll_config.schema import RateTable
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import (
    ZERO,
    quantize_money,
    quantize_rate,
)
from payroll_kernel.logging_config import get_logger
from payroll_modules.models import (
    BasisKind,
    BonusLine,
    CompensationBasis,
    Employee,
    EmployerProfile,
    PayrollBreakdown,
    PayrollPeriod,
    PeriodTotals,
)

logger = get_logger("engines.payroll_calculator")


def hourly_rate_for(basis: CompensationBasis, rate_table: RateTable) -> Decimal:
    """Hourly rate derived from the contractual basis, to four places."""
    if basis.kind is BasisKind.DAILY:
        return quantize_rate(basis.amount / rate_table.hours.legal_daily_hours)
    return quantize_rate(basis.amount / rate_table.hours.monthly_hours_divisor)


class HourTotals(Protocol):
    regular_hours: Decimal
    overtime_hours: Decimal
    night_hours: Decimal


@dataclass(frozen=True)
class PayLines:
    regular_pay: Decimal
    overtime_pay: Decimal
    night_pay: Decimal

    @property
    def total(self) -> Decimal:
        return self.regular_pay + self.overtime_pay + self.night_pay


def pay_lines_for(hourly_rate: Decimal, hours: HourTotals, rate_table: RateTable) -> PayLines:
    """Hour-based pay for a period's totals or a single shift's decomposition."""
    rules = rate_table.hours
    return PayLines(
        regular_pay=quantize_money(hourly_rate * hours.regular_hours),
        overtime_pay=quantize_money(
            hourly_rate * hours.overtime_hours * rules.overtime_multiplier
        ),
        night_pay=quantize_money(hourly_rate * hours.night_hours * rules.night_surcharge),
    )


def proration_factor(commercial_days: int, rate_table: RateTable) -> Decimal:
    return Decimal(commercial_days) / Decimal(rate_table.hours.commercial_days_per_month)


def contribution_base_for(
    monthly_equivalent: Decimal, commercial_days: int, rate_table: RateTable
) -> Decimal:
    """Employer contribution base: prorated basis clamped to the legal floor and cap."""
    factor = proration_factor(commercial_days, rate_table)
    floor = quantize_money(rate_table.minimum_wage * rate_table.caps.floor_multiple * factor)
    cap = quantize_money(rate_table.minimum_wage * rate_table.caps.cap_multiple * factor)
    base = quantize_money(monthly_equivalent * factor)
    return min(max(base, floor), cap)


def transport_eligible(monthly_equivalent: Decimal, rate_table: RateTable) -> bool:
    return monthly_equivalent <= rate_table.transport_ceiling


def law_1141_applies(
    monthly_equivalent: Decimal,
    rate_table: RateTable,
    employer: EmployerProfile | None,
) -> bool:
    """Employer qualifies and the base is below the exemption ceiling."""
    if employer is None or not employer.law_1141_eligible:
        return False
    exemption = rate_table.law_1141
    if not exemption.enabled:
        return False
    return monthly_equivalent < rate_table.minimum_wage * exemption.max_base_multiple


def _line(base: Decimal, rate: Decimal) -> Decimal:
    return quantize_money(base * rate)


@traced_engine(
    "payroll_calculator", "1.0",
    fingerprint_fields=("employee", "totals", "rate_table", "employer", "bonuses"),
)
def calculate_payroll(
    employee: Employee,
    totals: PeriodTotals,
    rate_table: RateTable,
    employer: EmployerProfile | None = None,
    bonuses: Sequence[BonusLine] = (),
) -> PayrollBreakdown:
    """
    Compute the payroll breakdown for one employee and one period.

    Preconditions:
        ``rate_table.year`` matches the period's year (the caller's
        responsibility; the orchestrator resolves it).

    Postconditions:
        net_pay == total_income - total_deductions;
        employer_total_cost == total_income + employer_contributions.
    """
    basis = employee.basis
    commercial_days = PayrollPeriod(totals.period_start, totals.period_end).commercial_days
    factor = proration_factor(commercial_days, rate_table)
    monthly_equivalent = basis.monthly_equivalent
    hourly_rate = hourly_rate_for(basis, rate_table)

    # Income
    pay = pay_lines_for(hourly_rate, totals, rate_table)
    regular_pay, overtime_pay, night_pay = pay.regular_pay, pay.overtime_pay, pay.night_pay

    transport_allowance = ZERO
    connectivity_allowance = ZERO
    if transport_eligible(monthly_equivalent, rate_table):
        if employee.telework:
            connectivity_allowance = quantize_money(
                rate_table.allowances.connectivity_allowance * factor
            )
        else:
            transport_allowance = quantize_money(
                rate_table.allowances.transport_allowance * factor
            )

    bonus_lines = tuple(bonuses)
    bonus_total = quantize_money(sum((b.amount for b in bonus_lines), ZERO))
    salary_bonus = quantize_money(
        sum((b.amount for b in bonus_lines if b.salary_component), ZERO)
    )

    total_income = (
        regular_pay + overtime_pay + night_pay
        + transport_allowance + connectivity_allowance + bonus_total
    )

    # Employee deductions, on realized salary income
    deduction_cap = quantize_money(
        rate_table.minimum_wage * rate_table.caps.cap_multiple * factor
    )
    deduction_base = min(regular_pay + overtime_pay + night_pay + salary_bonus, deduction_cap)
    health_deduction = _line(deduction_base, rate_table.employee.health)
    pension_deduction = _line(deduction_base, rate_table.employee.pension)
    solidarity_rate = rate_table.employee.solidarity_rate(
        rate_table.smmlv_multiple(monthly_equivalent)
    )
    solidarity_contribution = _line(deduction_base, solidarity_rate)
    total_deductions = health_deduction + pension_deduction + solidarity_contribution

    # Employer contributions, on the contractual base
    contribution_base = contribution_base_for(monthly_equivalent, commercial_days, rate_table)
    exempt = law_1141_applies(monthly_equivalent, rate_table, employer)
    exemption = rate_table.law_1141
    rates = rate_table.employer
    parafiscales = rate_table.parafiscales

    employer_health = ZERO if exempt and exemption.exempt_health else _line(contribution_base, rates.health)
    employer_pension = _line(contribution_base, rates.pension)
    arl_rate = rates.arl_rate(employee.arl_risk_class.value)
    arl = _line(contribution_base, arl_rate)
    severance = _line(contribution_base, rates.severance)
    severance_interest = _line(severance, rates.severance_interest)
    service_bonus = _line(contribution_base, rates.service_bonus)
    vacation = _line(contribution_base, rates.vacation)
    sena = ZERO if exempt and exemption.exempt_sena else _line(contribution_base, parafiscales.sena)
    icbf = ZERO if exempt and exemption.exempt_icbf else _line(contribution_base, parafiscales.icbf)
    compensation_fund = _line(contribution_base, parafiscales.compensation_fund)

    employer_contributions = (
        employer_health + employer_pension + arl + severance + severance_interest
        + service_bonus + vacation + sena + icbf + compensation_fund
    )

    net_pay = total_income - total_deductions
    employer_total_cost = total_income + employer_contributions

    benefit_factor = (
        quantize_rate(employer_contributions / contribution_base)
        if contribution_base > 0 else ZERO
    )
    worked_hours = totals.worked_hours
    real_hourly_cost = (
        quantize_money(employer_total_cost / worked_hours) if worked_hours > 0 else ZERO
    )

    breakdown = PayrollBreakdown(
        employee_id=employee.id,
        period_start=totals.period_start,
        period_end=totals.period_end,
        rate_table_year=rate_table.year,
        rate_table_checksum=rate_table.checksum,
        basis_kind=basis.kind,
        basis_amount=basis.amount,
        monthly_equivalent_base=monthly_equivalent,
        hourly_rate=hourly_rate,
        commercial_days=commercial_days,
        contribution_base=contribution_base,
        deduction_base=deduction_base,
        regular_hours=totals.regular_hours,
        overtime_hours=totals.overtime_hours,
        night_hours=totals.night_hours,
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        night_pay=night_pay,
        transport_allowance=transport_allowance,
        connectivity_allowance=connectivity_allowance,
        bonuses=bonus_total,
        total_income=total_income,
        health_deduction=health_deduction,
        pension_deduction=pension_deduction,
        solidarity_contribution=solidarity_contribution,
        total_deductions=total_deductions,
        employer_health=employer_health,
        employer_pension=employer_pension,
        arl=arl,
        arl_risk_class=employee.arl_risk_class.value,
        arl_rate=arl_rate,
        severance=severance,
        severance_interest=severance_interest,
        service_bonus=service_bonus,
        vacation=vacation,
        sena=sena,
        icbf=icbf,
        compensation_fund=compensation_fund,
        employer_contributions=employer_contributions,
        employer_total_cost=employer_total_cost,
        net_pay=net_pay,
        law_1141_applied=exempt,
        benefit_factor=benefit_factor,
        real_hourly_cost=real_hourly_cost,
        bonus_lines=bonus_lines,
    )

    logger.info(
        "payroll_calculated",
        extra={
            "employee_id": employee.id,
            "rate_table_year": rate_table.year,
            "commercial_days": commercial_days,
            "total_income": total_income,
            "total_deductions": total_deductions,
            "net_pay": net_pay,
            "employer_total_cost": employer_total_cost,
            "law_1141_applied": exempt,
        },
    )
    return breakdown
