"""
Collaborator ports for the period processor.

The engines perform no I/O.  Everything the orchestrator reads or writes
goes through these protocols; ``payroll_modules.stores`` holds the
SQLAlchemy implementations.  Implementations are called from worker
threads and must be safe to share across them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from payroll_modules.models import (
    DailyHourBucket,
    Employee,
    PayrollBreakdown,
    ValidationResult,
)


class PersonnelProvider(Protocol):
    """Read-only source of employee records."""

    def active_employees(self) -> Sequence[Employee]: ...


class TimeEntryStore(Protocol):
    """Source of daily buckets and target of lock transitions."""

    def approved_buckets(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[DailyHourBucket]: ...

    def lock_entries(self, entry_ids: Sequence[str], period_id: str) -> int: ...


class PayrollDetailStore(Protocol):
    """Receives one breakdown per employee per period."""

    def save_breakdown(
        self,
        period_id: str,
        breakdown: PayrollBreakdown,
        validation: ValidationResult,
    ) -> None: ...
