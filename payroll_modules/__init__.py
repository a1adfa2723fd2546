"""
payroll_modules -- payroll domain models and their persistence.

``models`` holds the pure frozen value objects shared by every layer.
``orm``, ``selectors``, ``service`` and ``stores`` persist time entries
and payroll details through SQLAlchemy; import them explicitly.
"""

from payroll_modules.models import (
    ArlRiskClass,
    BasisKind,
    BonusLine,
    CompensationBasis,
    ComplianceViolation,
    DailyHourBucket,
    Employee,
    EmployerProfile,
    EmploymentStatus,
    LegalLimitWarning,
    PayrollBreakdown,
    PayrollPeriod,
    PeriodTotals,
    ShiftDecomposition,
    TimeEntryStatus,
    ValidationResult,
)

__all__ = [
    "ArlRiskClass",
    "BasisKind",
    "BonusLine",
    "CompensationBasis",
    "ComplianceViolation",
    "DailyHourBucket",
    "Employee",
    "EmployerProfile",
    "EmploymentStatus",
    "LegalLimitWarning",
    "PayrollBreakdown",
    "PayrollPeriod",
    "PeriodTotals",
    "ShiftDecomposition",
    "TimeEntryStatus",
    "ValidationResult",
]
