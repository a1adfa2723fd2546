"""
Run summary -- period totals, per-department totals and review alerts.

Pure.  Built from the ordered employee results once the fan-out is done.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal

from payroll_batch.domain.types import (
    AlertKind,
    DepartmentTotals,
    EmployeeFailure,
    EmployeeResult,
    PayrollRunSummary,
    RunAlert,
)
from payroll_config.schema import RateTable
from payroll_kernel.domain.values import ZERO

HIGH_BENEFIT_FACTOR = Decimal("0.60")


def _alerts_for(result: EmployeeResult, rate_table: RateTable) -> list[RunAlert]:
    b = result.breakdown
    alerts = []
    if b.monthly_equivalent_base < rate_table.minimum_wage:
        alerts.append(
            RunAlert(
                kind=AlertKind.BELOW_MINIMUM_WAGE,
                employee_id=result.employee_id,
                message=(
                    f"base {b.monthly_equivalent_base} below minimum wage "
                    f"{rate_table.minimum_wage}"
                ),
            )
        )
    if b.benefit_factor > HIGH_BENEFIT_FACTOR:
        alerts.append(
            RunAlert(
                kind=AlertKind.HIGH_BENEFIT_FACTOR,
                employee_id=result.employee_id,
                message=f"benefit factor {b.benefit_factor} above {HIGH_BENEFIT_FACTOR}",
            )
        )
    if result.lock_failed:
        alerts.append(
            RunAlert(
                kind=AlertKind.LOCK_FAILED,
                employee_id=result.employee_id,
                message=(
                    f"{len(result.totals.entry_ids)} time entries not locked "
                    f"({result.lock_error}); re-run the period to lock them"
                ),
            )
        )
    for violation in result.validation.violations:
        if violation.rule == "minimum_wage":
            continue
        alerts.append(
            RunAlert(
                kind=AlertKind.COMPLIANCE_VIOLATION,
                employee_id=result.employee_id,
                message=f"{violation.rule}: {violation.message}",
            )
        )
    return alerts


def build_run_summary(
    results: Sequence[EmployeeResult],
    failures: Sequence[EmployeeFailure],
    rate_table: RateTable,
) -> PayrollRunSummary:
    by_department: dict[str, list[EmployeeResult]] = defaultdict(list)
    alerts: list[RunAlert] = []
    for result in results:
        by_department[result.department or "unassigned"].append(result)
        alerts.extend(_alerts_for(result, rate_table))

    departments = tuple(
        DepartmentTotals(
            department=name,
            employee_count=len(members),
            total_income=sum((m.breakdown.total_income for m in members), ZERO),
            total_deductions=sum((m.breakdown.total_deductions for m in members), ZERO),
            total_net=sum((m.breakdown.net_pay for m in members), ZERO),
            total_employer_cost=sum((m.breakdown.employer_total_cost for m in members), ZERO),
        )
        for name, members in sorted(by_department.items())
    )

    return PayrollRunSummary(
        employee_count=len(results),
        failure_count=len(failures),
        total_income=sum((r.breakdown.total_income for r in results), ZERO),
        total_deductions=sum((r.breakdown.total_deductions for r in results), ZERO),
        total_net=sum((r.breakdown.net_pay for r in results), ZERO),
        total_employer_contributions=sum(
            (r.breakdown.employer_contributions for r in results), ZERO
        ),
        total_employer_cost=sum((r.breakdown.employer_total_cost for r in results), ZERO),
        departments=departments,
        alerts=tuple(alerts),
    )
