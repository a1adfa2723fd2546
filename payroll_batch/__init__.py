"""
payroll_batch -- period-level orchestration around the pure engines.

Aggregates approved daily buckets, fans payroll out over the roster,
isolates per-employee failures and requests time-entry locks only for
employees whose computation succeeded.
"""

from payroll_batch.aggregation import aggregate_period, request_lock
from payroll_batch.domain.types import (
    AlertKind,
    DepartmentTotals,
    EmployeeFailure,
    EmployeeResult,
    PayrollRunSummary,
    PeriodRunResult,
    PeriodRunStatus,
    RunAlert,
)
from payroll_batch.orchestrator import PeriodProcessor
from payroll_batch.ports import PayrollDetailStore, PersonnelProvider, TimeEntryStore
from payroll_batch.summary import build_run_summary

__all__ = [
    "AlertKind",
    "DepartmentTotals",
    "EmployeeFailure",
    "EmployeeResult",
    "PayrollDetailStore",
    "PayrollRunSummary",
    "PeriodProcessor",
    "PeriodRunResult",
    "PeriodRunStatus",
    "PersonnelProvider",
    "RunAlert",
    "TimeEntryStore",
    "aggregate_period",
    "build_run_summary",
    "request_lock",
]
