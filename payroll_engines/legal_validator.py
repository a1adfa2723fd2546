"""
payroll_engines.legal_validator -- Compliance checks over a computed breakdown.

Responsibility:
    Compare a ``PayrollBreakdown`` against the Rate Table thresholds and
    report every statutory rule it breaks:

    * minimum_wage                     -- base >= legal monthly minimum wage
    * health_deduction                 -- employee health >= 4% of deduction base
    * pension_deduction                -- employee pension >= 4% of deduction base
    * transport_allowance_missing      -- eligible base without allowance
    * transport_allowance_not_allowed  -- allowance paid above the ceiling
    * solidarity_missing               -- base above threshold, FSP short
    * solidarity_not_allowed           -- FSP charged at or below threshold
    * employer_health                  -- employer health >= 8.5% (or exempt)
    * employer_pension                 -- employer pension >= 12%
    * severance                        -- severance >= 8.33%
    * law_1141_misapplied              -- exemption claimed without qualifying

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Advisory only: violations are returned, never raised.  Halting a
      period is the orchestrator's decision.
    - Rules run in the fixed order above, so the violation list is stable.
    - A tolerance of 0.01 absorbs per-line rounding.

Failure modes:
    - None for business rules.  Malformed Rate Tables are rejected by the
      loader before they reach this engine.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

from payroll_config.schema import RateTable
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO, quantize_money
from payroll_kernel.logging_config import get_logger
from payroll_modules.models import (
    ComplianceViolation,
    PayrollBreakdown,
    ValidationResult,
)

logger = get_logger("engines.legal_validator")

TOLERANCE = Decimal("0.01")

Rule = Callable[[PayrollBreakdown, RateTable], ComplianceViolation | None]


def _at_least(
    rule: str,
    label: str,
    actual: Decimal,
    expected: Decimal,
) -> ComplianceViolation | None:
    if actual + TOLERANCE >= expected:
        return None
    return ComplianceViolation(
        rule=rule,
        message=f"{label} {actual} is below the required {expected}",
        expected=expected,
        actual=actual,
    )


def check_minimum_wage(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if b.monthly_equivalent_base >= rt.minimum_wage:
        return None
    return ComplianceViolation(
        rule="minimum_wage",
        message=(
            f"base salary {b.monthly_equivalent_base} is below the "
            f"{rt.year} minimum wage {rt.minimum_wage}"
        ),
        expected=rt.minimum_wage,
        actual=b.monthly_equivalent_base,
    )


def check_health_deduction(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    expected = quantize_money(b.deduction_base * rt.employee.health)
    return _at_least("health_deduction", "health deduction", b.health_deduction, expected)


def check_pension_deduction(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    expected = quantize_money(b.deduction_base * rt.employee.pension)
    return _at_least("pension_deduction", "pension deduction", b.pension_deduction, expected)


def _allowance_paid(b: PayrollBreakdown) -> Decimal:
    return b.transport_allowance + b.connectivity_allowance


def check_transport_missing(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if b.monthly_equivalent_base > rt.transport_ceiling:
        return None
    if rt.allowances.transport_allowance <= 0 or _allowance_paid(b) > 0:
        return None
    return ComplianceViolation(
        rule="transport_allowance_missing",
        message=(
            f"missing transport allowance: base {b.monthly_equivalent_base} "
            f"is within the ceiling {rt.transport_ceiling}"
        ),
        actual=ZERO,
    )


def check_transport_not_allowed(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if b.monthly_equivalent_base <= rt.transport_ceiling or _allowance_paid(b) == 0:
        return None
    return ComplianceViolation(
        rule="transport_allowance_not_allowed",
        message=(
            f"transport allowance {_allowance_paid(b)} paid although base "
            f"{b.monthly_equivalent_base} exceeds the ceiling {rt.transport_ceiling}"
        ),
        expected=ZERO,
        actual=_allowance_paid(b),
    )


def check_solidarity_missing(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    rate = rt.employee.solidarity_rate(rt.smmlv_multiple(b.monthly_equivalent_base))
    if rate == 0:
        return None
    expected = quantize_money(b.deduction_base * rate)
    if b.solidarity_contribution == 0 and expected > 0:
        return ComplianceViolation(
            rule="solidarity_missing",
            message=(
                f"missing solidarity contribution: base {b.monthly_equivalent_base} "
                f"exceeds {rt.employee.solidarity_threshold_multiple} minimum wages"
            ),
            expected=expected,
            actual=ZERO,
        )
    return _at_least(
        "solidarity_missing", "solidarity contribution", b.solidarity_contribution, expected
    )


def check_solidarity_not_allowed(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if b.monthly_equivalent_base > rt.solidarity_threshold or b.solidarity_contribution == 0:
        return None
    return ComplianceViolation(
        rule="solidarity_not_allowed",
        message=(
            f"solidarity contribution {b.solidarity_contribution} charged although "
            f"base {b.monthly_equivalent_base} does not exceed {rt.solidarity_threshold}"
        ),
        expected=ZERO,
        actual=b.solidarity_contribution,
    )


def check_employer_health(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if b.law_1141_applied and rt.law_1141.exempt_health:
        return None
    expected = quantize_money(b.contribution_base * rt.employer.health)
    return _at_least("employer_health", "employer health contribution", b.employer_health, expected)


def check_employer_pension(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    expected = quantize_money(b.contribution_base * rt.employer.pension)
    return _at_least("employer_pension", "employer pension contribution", b.employer_pension, expected)


def check_severance(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    expected = quantize_money(b.contribution_base * rt.employer.severance)
    return _at_least("severance", "severance", b.severance, expected)


def check_law_1141(b: PayrollBreakdown, rt: RateTable) -> ComplianceViolation | None:
    if not b.law_1141_applied:
        return None
    ceiling = rt.minimum_wage * rt.law_1141.max_base_multiple
    if rt.law_1141.enabled and b.monthly_equivalent_base < ceiling:
        return None
    return ComplianceViolation(
        rule="law_1141_misapplied",
        message=(
            f"Law 1141 exemption applied to base {b.monthly_equivalent_base}, "
            f"which is not below {ceiling}"
        ),
        expected=ceiling,
        actual=b.monthly_equivalent_base,
    )


RULES: tuple[tuple[str, Rule], ...] = (
    ("minimum_wage", check_minimum_wage),
    ("health_deduction", check_health_deduction),
    ("pension_deduction", check_pension_deduction),
    ("transport_allowance_missing", check_transport_missing),
    ("transport_allowance_not_allowed", check_transport_not_allowed),
    ("solidarity_missing", check_solidarity_missing),
    ("solidarity_not_allowed", check_solidarity_not_allowed),
    ("employer_health", check_employer_health),
    ("employer_pension", check_employer_pension),
    ("severance", check_severance),
    ("law_1141_misapplied", check_law_1141),
)


@traced_engine("legal_validator", "1.0", fingerprint_fields=("breakdown",))
def validate_breakdown(breakdown: PayrollBreakdown, rate_table: RateTable) -> ValidationResult:
    """Run every compliance rule; never raises for a violation."""
    violations = []
    for _name, rule in RULES:
        violation = rule(breakdown, rate_table)
        if violation is not None:
            violations.append(violation)

    if violations:
        logger.warning(
            "compliance_violations_found",
            extra={
                "employee_id": breakdown.employee_id,
                "rules": [v.rule for v in violations],
            },
        )
    return ValidationResult(is_valid=not violations, violations=tuple(violations))
