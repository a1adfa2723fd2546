"""
PeriodProcessor -- fan-out payroll over the roster with per-employee isolation.

Contract:
    ``process(period, rate_tables=None, employer=None, bonuses=None)``
    computes payroll for every active employee and returns a
    ``PeriodRunResult``.

Architecture: payroll_batch.  Imports the engines, the Rate Table
    registry and the collaborator ports; all I/O goes through the ports.

Invariants enforced:
    - The Rate Table for ``period.year`` is resolved before any employee
      is touched; a missing year raises ``RateTableNotFoundError`` and
      aborts the whole run.
    - Per employee: aggregate -> calculate -> validate -> persist detail
      -> request lock.  The lock is requested only after the detail was
      saved, never for a failed employee.
    - A failed lock request does not undo the saved detail.  The employee
      is reported as computed with ``lock_error`` set and a ``lock_failed``
      alert; the entries stay approved, so a re-run recomputes the same
      detail and locks them.
    - Failure isolation: any exception for one employee is caught,
      attributed to that employee and recorded; the remaining fan-out
      continues.
    - Results are ordered by employee id regardless of completion order.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

from payroll_batch.aggregation import aggregate_period, request_lock
from payroll_batch.domain.types import (
    EmployeeFailure,
    EmployeeResult,
    PeriodRunResult,
    PeriodRunStatus,
)
from payroll_batch.ports import PayrollDetailStore, PersonnelProvider, TimeEntryStore
from payroll_batch.summary import build_run_summary
from payroll_config.registry import RateTableRegistry
from payroll_config.schema import RateTable
from payroll_config.settings import PayrollSettings
from payroll_engines.legal_validator import validate_breakdown
from payroll_engines.payroll_calculator import calculate_payroll
from payroll_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from payroll_kernel.exceptions import ComplianceBlockedError, RateTableNotFoundError
from payroll_kernel.logging_config import LogContext, configure_logging, get_logger
from payroll_modules.models import (
    BonusLine,
    Employee,
    EmployerProfile,
    PayrollPeriod,
)
from payroll_modules.stores import SqlPayrollDetailStore, SqlTimeEntryStore

logger = get_logger("batch.orchestrator")


class PeriodProcessor:
    """Period-level payroll coordinator.

    Non-goals:
        - Does NOT retry failed employees; re-running the period picks up
          only what is still unlocked.
        - Does NOT own transactions; each store call is its own unit.
    """

    def __init__(
        self,
        personnel: PersonnelProvider,
        time_entries: TimeEntryStore,
        details: PayrollDetailStore,
        max_workers: int = 4,
        fail_on_violation: bool = False,
        rate_tables: RateTableRegistry | None = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._personnel = personnel
        self._time_entries = time_entries
        self._details = details
        self._max_workers = max_workers
        self._fail_on_violation = fail_on_violation
        self._rate_tables = rate_tables

    @classmethod
    def from_settings(
        cls,
        settings: PayrollSettings,
        personnel: PersonnelProvider,
        time_entries: TimeEntryStore | None = None,
        details: PayrollDetailStore | None = None,
    ) -> PeriodProcessor:
        """Build a processor wired from deployment settings.

        Configures logging at ``settings.log_level``, loads the Rate Tables
        from ``settings.rate_table_dir`` and, for any store not supplied,
        opens ``settings.database_url`` and uses the SQL store.
        """
        configure_logging(level=settings.log_level_value)
        rate_tables = RateTableRegistry.from_directory(settings.rate_table_dir)

        if time_entries is None or details is None:
            init_engine_from_url(settings.database_url)
            create_tables()
            factory = get_session_factory()
            if time_entries is None:
                time_entries = SqlTimeEntryStore(factory)
            if details is None:
                details = SqlPayrollDetailStore(factory)

        return cls(
            personnel,
            time_entries,
            details,
            max_workers=settings.max_workers,
            fail_on_violation=settings.fail_on_violation,
            rate_tables=rate_tables,
        )

    # -------------------------------------------------------------------------
    # Process
    # -------------------------------------------------------------------------

    def process(
        self,
        period: PayrollPeriod,
        rate_tables: RateTableRegistry | None = None,
        employer: EmployerProfile | None = None,
        bonuses: Mapping[str, Sequence[BonusLine]] | None = None,
    ) -> PeriodRunResult:
        """Run payroll for every active employee in ``period``.

        ``rate_tables`` defaults to the registry the processor was built
        with.

        Raises:
            RateTableNotFoundError: no Rate Table for ``period.year``.
            ValueError: no registry given here or at construction.
        """
        registry = rate_tables if rate_tables is not None else self._rate_tables
        if registry is None:
            raise ValueError("no RateTableRegistry given to process() or the constructor")

        start_time = time.monotonic()
        run_id = str(uuid.uuid4())

        with LogContext.bind(run_id=run_id, period_id=period.key):
            try:
                rate_table = registry.for_year(period.year)
            except RateTableNotFoundError:
                logger.error(
                    "period_run_aborted",
                    extra={"year": period.year},
                    exc_info=True,
                )
                raise

            employees = sorted(
                (e for e in self._personnel.active_employees() if e.is_active),
                key=lambda e: e.id,
            )
            logger.info(
                "period_run_started",
                extra={
                    "employee_count": len(employees),
                    "rate_table_year": rate_table.year,
                    "max_workers": self._max_workers,
                },
            )

            bonuses = bonuses or {}
            jobs = [
                (employee, tuple(bonuses.get(employee.id, ())))
                for employee in employees
            ]
            if self._max_workers == 1:
                outcomes = [
                    self._run_employee(e, b, period, rate_table, employer, run_id)
                    for e, b in jobs
                ]
            else:
                with ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="payroll",
                ) as pool:
                    futures = [
                        pool.submit(
                            self._run_employee, e, b, period, rate_table, employer, run_id
                        )
                        for e, b in jobs
                    ]
                    outcomes = [f.result() for f in futures]

            results = sorted(
                (o for o in outcomes if isinstance(o, EmployeeResult)),
                key=lambda r: r.employee_id,
            )
            failures = sorted(
                (o for o in outcomes if isinstance(o, EmployeeFailure)),
                key=lambda f: f.employee_id,
            )

            if failures and not results:
                status = PeriodRunStatus.FAILED
            elif failures:
                status = PeriodRunStatus.PARTIALLY_COMPLETED
            else:
                status = PeriodRunStatus.COMPLETED

            duration_ms = round((time.monotonic() - start_time) * 1000, 2)
            summary = build_run_summary(results, failures, rate_table)
            logger.info(
                "period_run_completed",
                extra={
                    "status": status.value,
                    "succeeded": len(results),
                    "failed": len(failures),
                    "lock_failed": sum(1 for r in results if r.lock_failed),
                    "total_net": summary.total_net,
                    "total_employer_cost": summary.total_employer_cost,
                    "duration_ms": duration_ms,
                },
            )

        return PeriodRunResult(
            period_id=period.key,
            rate_table_year=rate_table.year,
            status=status,
            results=tuple(results),
            failures=tuple(failures),
            summary=summary,
            duration_ms=duration_ms,
        )

    # -------------------------------------------------------------------------
    # Per employee
    # -------------------------------------------------------------------------

    def _run_employee(
        self,
        employee: Employee,
        bonuses: tuple[BonusLine, ...],
        period: PayrollPeriod,
        rate_table: RateTable,
        employer: EmployerProfile | None,
        run_id: str,
    ) -> EmployeeResult | EmployeeFailure:
        # Worker threads start with an empty context
        with LogContext.bind(run_id=run_id, period_id=period.key, employee_id=employee.id):
            t0 = time.monotonic()
            try:
                buckets = self._time_entries.approved_buckets(
                    employee.id, period.start, period.end
                )
                totals = aggregate_period(employee.id, period, buckets)
                breakdown = calculate_payroll(
                    employee, totals, rate_table, employer=employer, bonuses=bonuses
                )
                validation = validate_breakdown(breakdown, rate_table)
                if self._fail_on_violation and not validation.is_valid:
                    raise ComplianceBlockedError(employee.id, validation.rules)
                self._details.save_breakdown(period.key, breakdown, validation)
            except Exception as exc:
                logger.error(
                    "employee_payroll_failed",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                return EmployeeFailure(
                    employee_id=employee.id,
                    error_code=getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                    error_message=str(exc),
                    error_type=type(exc).__name__,
                )

            lock_error = None
            try:
                locked = request_lock(self._time_entries, totals, period.key)
            except Exception as exc:
                locked = 0
                lock_error = getattr(exc, "code", type(exc).__name__)
                logger.error(
                    "employee_entry_lock_failed",
                    extra={
                        "error_type": type(exc).__name__,
                        "entry_count": len(totals.entry_ids),
                    },
                    exc_info=True,
                )

            return EmployeeResult(
                employee_id=employee.id,
                department=employee.department,
                totals=totals,
                breakdown=breakdown,
                validation=validation,
                locked_entries=locked,
                lock_error=lock_error,
                duration_ms=round((time.monotonic() - t0) * 1000, 2),
            )
