"""
SQLAlchemy implementations of the period processor's collaborator ports.

Each call opens its own session from the factory and commits on success,
so one store instance can be shared by every worker thread of a period
run.  The personnel provider is list-backed: employee records are owned
by an external system.
"""

from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from datetime import date
from typing import Generator

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.logging_config import get_logger
from payroll_modules.models import (
    DailyHourBucket,
    Employee,
    PayrollBreakdown,
    ValidationResult,
)
from payroll_modules.orm import PayrollDetailModel
from payroll_modules.selectors import TimeEntrySelector
from payroll_modules.service import TimeEntryService

logger = get_logger("modules.payroll.stores")


@contextmanager
def _unit_of_work(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class StaticPersonnelProvider:
    """Serves a fixed roster."""

    def __init__(self, employees: Iterable[Employee]):
        self._employees = tuple(employees)

    def active_employees(self) -> Sequence[Employee]:
        return tuple(e for e in self._employees if e.is_active)


class SqlTimeEntryStore:
    """``TimeEntryStore`` over the ``time_entries`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._factory = session_factory

    def approved_buckets(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[DailyHourBucket]:
        with _unit_of_work(self._factory) as session:
            return TimeEntrySelector(session).approved_buckets(employee_id, start, end)

    def lock_entries(self, entry_ids: Sequence[str], period_id: str) -> int:
        with _unit_of_work(self._factory) as session:
            return TimeEntryService(session).lock_entries(entry_ids, period_id)


class SqlPayrollDetailStore:
    """``PayrollDetailStore`` over the ``payroll_details`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._factory = session_factory

    def save_breakdown(
        self,
        period_id: str,
        breakdown: PayrollBreakdown,
        validation: ValidationResult,
    ) -> None:
        with _unit_of_work(self._factory) as session:
            existing = session.execute(
                select(PayrollDetailModel).where(
                    PayrollDetailModel.payroll_period_id == period_id,
                    PayrollDetailModel.employee_id == breakdown.employee_id,
                )
            ).scalar_one_or_none()
            if existing is None:
                session.add(PayrollDetailModel.from_breakdown(period_id, breakdown, validation))
            else:
                existing.update_from_breakdown(breakdown, validation)
            logger.info(
                "payroll_detail_saved",
                extra={
                    "period_id": period_id,
                    "employee_id": breakdown.employee_id,
                    "replaced": existing is not None,
                    "is_valid": validation.is_valid,
                },
            )
