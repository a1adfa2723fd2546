"""
Module: payroll_modules.selectors
Responsibility: Read-only query access to time entries and payroll details.
    Converts ORM rows to the frozen DTOs in ``payroll_modules.models``.
Architecture position: Modules.  May import from orm.py and the kernel's
    selectors/base.py.  MUST NOT import from batch or engines.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - DTO convention: public methods return DailyHourBucket /
      PayrollBreakdown, never ORM rows.
    - Buckets are ordered by work date for deterministic aggregation.

Failure modes:
    - Returns None or an empty list when nothing matches (never raises on
      absence of data).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from payroll_kernel.selectors.base import BaseSelector
from payroll_modules.models import (
    DailyHourBucket,
    PayrollBreakdown,
    TimeEntryStatus,
)
from payroll_modules.orm import PayrollDetailModel, TimeEntryModel


class TimeEntrySelector(BaseSelector[TimeEntryModel]):
    """Reads over the ``time_entries`` table."""

    def approved_buckets(
        self, employee_id: str, start: date, end: date
    ) -> list[DailyHourBucket]:
        """Approved (not yet locked) buckets for one employee in ``[start, end]``."""
        return self._dtos(
            select(TimeEntryModel)
            .where(
                TimeEntryModel.employee_id == employee_id,
                TimeEntryModel.status == TimeEntryStatus.APPROVED.value,
                TimeEntryModel.work_date.between(start, end),
            )
            .order_by(TimeEntryModel.work_date)
        )

    def get_bucket(self, entry_id: str) -> DailyHourBucket | None:
        try:
            key = UUID(str(entry_id))
        except ValueError:
            return None
        row = self.session.get(TimeEntryModel, key)
        return row.to_dto() if row is not None else None

    def entries_for_period(self, period_id: str) -> list[DailyHourBucket]:
        """Buckets locked by the given payroll period."""
        return self._dtos(
            select(TimeEntryModel)
            .where(TimeEntryModel.payroll_period_id == period_id)
            .order_by(TimeEntryModel.employee_id, TimeEntryModel.work_date)
        )


class PayrollDetailSelector(BaseSelector[PayrollDetailModel]):
    """Reads over the ``payroll_details`` table."""

    def _detail(self, period_id: str, employee_id: str) -> PayrollDetailModel | None:
        return self._first(
            select(PayrollDetailModel).where(
                PayrollDetailModel.payroll_period_id == period_id,
                PayrollDetailModel.employee_id == employee_id,
            )
        )

    def get(self, period_id: str, employee_id: str) -> PayrollBreakdown | None:
        row = self._detail(period_id, employee_id)
        return row.to_dto() if row is not None else None

    def for_period(self, period_id: str) -> list[PayrollBreakdown]:
        return self._dtos(
            select(PayrollDetailModel)
            .where(PayrollDetailModel.payroll_period_id == period_id)
            .order_by(PayrollDetailModel.employee_id)
        )

    def violation_rules(self, period_id: str, employee_id: str) -> list[str]:
        row = self._detail(period_id, employee_id)
        return row.violation_rules() if row is not None else []
