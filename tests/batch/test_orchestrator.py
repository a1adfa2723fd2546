"""
Tests for payroll_batch.orchestrator -- PeriodProcessor.

Validates the per-period fan-out with in-memory collaborators: ordering,
per-employee failure isolation, lock-after-success, Rate Table resolution,
compliance blocking and the run summary.
"""

import logging
import shutil
import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payroll_batch.domain.types import AlertKind, PeriodRunStatus
from payroll_batch.orchestrator import PeriodProcessor
from payroll_batch.summary import build_run_summary
from payroll_config import PayrollSettings
from payroll_config.registry import DEFAULT_SETS_DIR
from payroll_kernel.db.engine import reset_engine, session_scope
from payroll_kernel.exceptions import (
    ComplianceBlockedError,
    RateTableNotFoundError,
    TimeEntryLockedError,
)
from payroll_kernel.logging_config import configure_logging, reset_logging
from payroll_modules.models import (
    BonusLine,
    DailyHourBucket,
    EmploymentStatus,
    PayrollPeriod,
)
from payroll_modules.selectors import PayrollDetailSelector
from payroll_modules.stores import (
    SqlPayrollDetailStore,
    SqlTimeEntryStore,
    StaticPersonnelProvider,
)

MARCH = PayrollPeriod(date(2025, 3, 1), date(2025, 3, 31), period_id="2025-03")


# =============================================================================
# In-memory collaborators
# =============================================================================


class InMemoryTimeEntries:
    """TimeEntryStore backed by a dict of buckets per employee."""

    def __init__(self, buckets_by_employee=None, failing=(), failing_lock=()):
        self._buckets = buckets_by_employee or {}
        self._failing = set(failing)
        self._failing_lock = set(failing_lock)
        self._lock = threading.Lock()
        self.lock_calls: list[tuple[tuple[str, ...], str]] = []

    def approved_buckets(self, employee_id, start, end):
        if employee_id in self._failing:
            raise TimeEntryLockedError(f"{employee_id}-entry", "2025-02")
        return list(self._buckets.get(employee_id, ()))

    def lock_entries(self, entry_ids, period_id):
        if any(i.rsplit("-", 1)[0] in self._failing_lock for i in entry_ids):
            raise RuntimeError("lock service unavailable")
        with self._lock:
            self.lock_calls.append((tuple(entry_ids), period_id))
        return len(entry_ids)

    def locked_for(self, employee_id):
        return [ids for ids, _ in self.lock_calls if ids and ids[0].startswith(employee_id)]


class InMemoryDetails:
    """PayrollDetailStore that can be told to fail for given employees."""

    def __init__(self, failing=()):
        self._failing = set(failing)
        self._lock = threading.Lock()
        self.saved = {}

    def save_breakdown(self, period_id, breakdown, validation):
        if breakdown.employee_id in self._failing:
            raise RuntimeError(f"database unavailable for {breakdown.employee_id}")
        with self._lock:
            self.saved[(period_id, breakdown.employee_id)] = (breakdown, validation)


def _month_of_buckets(employee_id, days=22, overtime="0.2", night="0"):
    buckets = []
    for day in range(1, days + 1):
        buckets.append(
            DailyHourBucket(
                employee_id=employee_id,
                work_date=date(2025, 3, day),
                regular_hours=Decimal("7.3"),
                overtime_hours=Decimal(overtime),
                night_hours=Decimal(night),
                elapsed_hours=Decimal("7.3") + Decimal(overtime),
                entry_id=f"{employee_id}-{day:02d}",
            )
        )
    return buckets


@pytest.fixture
def roster(employee_factory):
    return [
        employee_factory("EMP-003", "1800000", department="welding"),
        employee_factory("EMP-001", "1423500", department="welding"),
        employee_factory("EMP-002", "2500000", department="assembly"),
    ]


@pytest.fixture
def time_entries(roster):
    return InMemoryTimeEntries({e.id: _month_of_buckets(e.id) for e in roster})


def _processor(roster, time_entries, details, **kwargs):
    return PeriodProcessor(StaticPersonnelProvider(roster), time_entries, details, **kwargs)


# =============================================================================
# Happy path
# =============================================================================


class TestProcess:

    def test_all_employees_processed(self, roster, time_entries, rate_tables):
        details = InMemoryDetails()
        result = _processor(roster, time_entries, details).process(MARCH, rate_tables)

        assert result.status is PeriodRunStatus.COMPLETED
        assert result.period_id == "2025-03"
        assert result.rate_table_year == 2025
        assert result.succeeded == 3
        assert result.failed == 0
        assert len(details.saved) == 3

    def test_results_ordered_by_employee_id(self, roster, time_entries, rate_tables):
        result = _processor(roster, time_entries, InMemoryDetails()).process(MARCH, rate_tables)
        assert [r.employee_id for r in result.results] == ["EMP-001", "EMP-002", "EMP-003"]

    def test_hours_flow_into_breakdown(self, roster, time_entries, rate_tables):
        result = _processor(roster, time_entries, InMemoryDetails()).process(MARCH, rate_tables)
        emp = result.result_for("EMP-001")

        assert emp.totals.days_worked == 22
        assert emp.totals.regular_hours == Decimal("160.6")
        assert emp.breakdown.regular_hours == Decimal("160.6")
        assert emp.breakdown.overtime_hours == Decimal("4.4")
        assert emp.breakdown.net_pay == emp.breakdown.total_income - emp.breakdown.total_deductions

    def test_entries_locked_after_success(self, roster, time_entries, rate_tables):
        result = _processor(roster, time_entries, InMemoryDetails()).process(MARCH, rate_tables)

        assert len(time_entries.lock_calls) == 3
        assert all(period_id == "2025-03" for _, period_id in time_entries.lock_calls)
        assert result.result_for("EMP-002").locked_entries == 22

    def test_inactive_employees_skipped(self, roster, time_entries, employee_factory, rate_tables):
        leaver = employee_factory("EMP-009", status=EmploymentStatus.TERMINATED)
        result = _processor(roster + [leaver], time_entries, InMemoryDetails()).process(
            MARCH, rate_tables
        )
        assert result.result_for("EMP-009") is None
        assert result.succeeded == 3

    def test_employee_without_entries(self, employee_factory, rate_tables):
        entries = InMemoryTimeEntries()
        result = _processor([employee_factory("EMP-010")], entries, InMemoryDetails()).process(
            MARCH, rate_tables
        )
        emp = result.result_for("EMP-010")
        assert emp.breakdown.regular_pay == Decimal("0.00")
        assert emp.locked_entries == 0
        assert entries.lock_calls == []

    def test_bonuses_applied_per_employee(self, roster, time_entries, rate_tables):
        bonus = BonusLine("night_crew", Decimal("80000"))
        result = _processor(roster, time_entries, InMemoryDetails()).process(
            MARCH, rate_tables, bonuses={"EMP-002": [bonus]}
        )
        assert result.result_for("EMP-002").breakdown.bonuses == Decimal("80000.00")
        assert result.result_for("EMP-001").breakdown.bonuses == Decimal("0.00")

    def test_uses_rate_table_of_period_year(self, roster, rate_tables):
        period = PayrollPeriod(date(2024, 3, 1), date(2024, 3, 31))
        entries = InMemoryTimeEntries()
        result = _processor(roster, entries, InMemoryDetails()).process(period, rate_tables)
        assert result.rate_table_year == 2024
        assert all(r.breakdown.rate_table_year == 2024 for r in result.results)
        assert result.period_id == "2024-03-01_2024-03-31"

    def test_parallel_and_sequential_runs_agree(self, roster, time_entries, rate_tables):
        parallel = _processor(roster, time_entries, InMemoryDetails(), max_workers=4).process(
            MARCH, rate_tables
        )
        sequential = _processor(roster, time_entries, InMemoryDetails(), max_workers=1).process(
            MARCH, rate_tables
        )
        assert [r.breakdown for r in parallel.results] == [
            r.breakdown for r in sequential.results
        ]
        assert parallel.summary == sequential.summary


# =============================================================================
# Failures
# =============================================================================


class TestFailureIsolation:

    def test_failed_save_does_not_stop_others(self, roster, time_entries, rate_tables):
        details = InMemoryDetails(failing={"EMP-002"})
        result = _processor(roster, time_entries, details).process(MARCH, rate_tables)

        assert result.status is PeriodRunStatus.PARTIALLY_COMPLETED
        assert [r.employee_id for r in result.results] == ["EMP-001", "EMP-003"]
        failure = result.failures[0]
        assert failure.employee_id == "EMP-002"
        assert failure.error_code == "UNHANDLED_EXCEPTION"
        assert failure.error_type == "RuntimeError"
        assert "database unavailable" in failure.error_message

    def test_failed_employee_not_locked(self, roster, time_entries, rate_tables):
        details = InMemoryDetails(failing={"EMP-002"})
        _processor(roster, time_entries, details).process(MARCH, rate_tables)

        assert time_entries.locked_for("EMP-002") == []
        assert len(time_entries.locked_for("EMP-001")) == 1

    def test_typed_error_code_recorded(self, roster, rate_tables):
        entries = InMemoryTimeEntries(failing={"EMP-003"})
        result = _processor(roster, entries, InMemoryDetails()).process(MARCH, rate_tables)
        assert result.failures[0].error_code == "TIME_ENTRY_LOCKED"

    def test_all_failed(self, roster, time_entries, rate_tables):
        details = InMemoryDetails(failing={"EMP-001", "EMP-002", "EMP-003"})
        result = _processor(roster, time_entries, details).process(MARCH, rate_tables)

        assert result.status is PeriodRunStatus.FAILED
        assert [f.employee_id for f in result.failures] == ["EMP-001", "EMP-002", "EMP-003"]
        assert time_entries.lock_calls == []

    def test_failure_logged_with_employee_context(self, roster, time_entries, rate_tables, captured_logs):
        details = InMemoryDetails(failing={"EMP-002"})
        _processor(roster, time_entries, details).process(MARCH, rate_tables)

        failures = [r for r in captured_logs() if r["message"] == "employee_payroll_failed"]
        assert len(failures) == 1
        assert failures[0]["employee_id"] == "EMP-002"
        assert failures[0]["period_id"] == "2025-03"
        assert "run_id" in failures[0]

    def test_lock_failure_keeps_saved_detail(self, roster, rate_tables):
        entries = InMemoryTimeEntries(
            {e.id: _month_of_buckets(e.id) for e in roster}, failing_lock={"EMP-002"}
        )
        details = InMemoryDetails()

        result = _processor(roster, entries, details).process(MARCH, rate_tables)

        assert result.status is PeriodRunStatus.COMPLETED
        assert result.failures == ()
        emp = result.result_for("EMP-002")
        assert emp.lock_failed
        assert emp.lock_error == "RuntimeError"
        assert emp.locked_entries == 0
        assert ("2025-03", "EMP-002") in details.saved
        assert result.summary.employee_count == 3
        assert result.summary.total_net == sum(r.breakdown.net_pay for r in result.results)
        lock_alerts = [a for a in result.summary.alerts if a.kind is AlertKind.LOCK_FAILED]
        assert [a.employee_id for a in lock_alerts] == ["EMP-002"]
        assert "22 time entries not locked" in lock_alerts[0].message
        assert not result.result_for("EMP-001").lock_failed

    def test_lock_failure_logged(self, roster, rate_tables, captured_logs):
        entries = InMemoryTimeEntries(
            {e.id: _month_of_buckets(e.id) for e in roster}, failing_lock={"EMP-003"}
        )
        _processor(roster, entries, InMemoryDetails()).process(MARCH, rate_tables)

        logs = captured_logs()
        lock_logs = [r for r in logs if r["message"] == "employee_entry_lock_failed"]
        assert [r["employee_id"] for r in lock_logs] == ["EMP-003"]
        assert lock_logs[0]["entry_count"] == 22
        done = [r for r in logs if r["message"] == "period_run_completed"][0]
        assert done["lock_failed"] == 1

    def test_missing_rate_table_aborts_run(self, roster, time_entries, rate_tables):
        details = InMemoryDetails()
        period = PayrollPeriod(date(2031, 1, 1), date(2031, 1, 31))

        with pytest.raises(RateTableNotFoundError) as exc_info:
            _processor(roster, time_entries, details).process(period, rate_tables)

        assert exc_info.value.year == 2031
        assert details.saved == {}
        assert time_entries.lock_calls == []


# =============================================================================
# Compliance and summary
# =============================================================================


class TestCompliance:

    def test_violations_reported_but_not_blocking(self, employee_factory, rate_tables):
        underpaid = employee_factory("EMP-050", "1000000")
        entries = InMemoryTimeEntries({"EMP-050": _month_of_buckets("EMP-050")})
        details = InMemoryDetails()

        result = _processor([underpaid], entries, details).process(MARCH, rate_tables)

        emp = result.result_for("EMP-050")
        assert emp.validation.rules == ("minimum_wage",)
        assert ("2025-03", "EMP-050") in details.saved
        assert emp.locked_entries == 22

    def test_fail_on_violation_blocks_employee(self, employee_factory, rate_tables):
        underpaid = employee_factory("EMP-050", "1000000")
        entries = InMemoryTimeEntries({"EMP-050": _month_of_buckets("EMP-050")})
        details = InMemoryDetails()

        result = _processor(
            [underpaid], entries, details, fail_on_violation=True
        ).process(MARCH, rate_tables)

        assert result.status is PeriodRunStatus.FAILED
        assert result.failures[0].error_code == ComplianceBlockedError.code
        assert result.failures[0].error_type == "ComplianceBlockedError"
        assert "minimum_wage" in result.failures[0].error_message
        assert details.saved == {}
        assert entries.lock_calls == []


class TestSummary:

    def test_totals_and_departments(self, roster, time_entries, rate_tables):
        result = _processor(roster, time_entries, InMemoryDetails()).process(MARCH, rate_tables)
        summary = result.summary

        assert summary.employee_count == 3
        assert summary.failure_count == 0
        assert summary.total_net == sum(r.breakdown.net_pay for r in result.results)
        assert summary.total_employer_cost == sum(
            r.breakdown.employer_total_cost for r in result.results
        )
        assert [d.department for d in summary.departments] == ["assembly", "welding"]
        assert summary.departments[1].employee_count == 2

    def test_unassigned_department(self, employee_factory, rate_tables):
        employee = employee_factory("EMP-020", department="")
        result = _processor([employee], InMemoryTimeEntries(), InMemoryDetails()).process(
            MARCH, rate_tables
        )
        assert result.summary.departments[0].department == "unassigned"

    def test_below_minimum_wage_alert_not_duplicated(self, employee_factory, rate_tables):
        underpaid = employee_factory("EMP-050", "1000000")
        entries = InMemoryTimeEntries({"EMP-050": _month_of_buckets("EMP-050")})
        result = _processor([underpaid], entries, InMemoryDetails()).process(MARCH, rate_tables)

        kinds = [a.kind for a in result.summary.alerts]
        assert kinds == [AlertKind.BELOW_MINIMUM_WAGE]

    def test_high_benefit_factor_alert(self, employee_factory, rate_tables, rate_table_2025):
        employee = employee_factory("EMP-060", "1423500")
        result = _processor([employee], InMemoryTimeEntries(), InMemoryDetails()).process(
            MARCH, rate_tables
        )
        normal = result.results[0]
        assert not any(a.kind is AlertKind.HIGH_BENEFIT_FACTOR for a in result.summary.alerts)

        inflated = replace(
            normal, breakdown=replace(normal.breakdown, benefit_factor=Decimal("0.6500"))
        )
        summary = build_run_summary([inflated], [], rate_table_2025)
        assert [a.kind for a in summary.alerts] == [AlertKind.HIGH_BENEFIT_FACTOR]
        assert "0.6500" in summary.alerts[0].message


class TestConstruction:

    def test_from_settings(self, roster, time_entries):
        settings = PayrollSettings(max_workers=2, fail_on_violation=True)
        processor = PeriodProcessor.from_settings(
            settings, StaticPersonnelProvider(roster), time_entries, InMemoryDetails()
        )
        assert processor._max_workers == 2
        assert processor._fail_on_violation is True

    def test_rejects_zero_workers(self, roster, time_entries):
        with pytest.raises(ValueError):
            _processor(roster, time_entries, InMemoryDetails(), max_workers=0)

    def test_from_settings_builds_sql_stores(self, roster):
        settings = PayrollSettings(max_workers=1, database_url="sqlite:///:memory:")
        try:
            processor = PeriodProcessor.from_settings(settings, StaticPersonnelProvider(roster))
            assert isinstance(processor._time_entries, SqlTimeEntryStore)
            assert isinstance(processor._details, SqlPayrollDetailStore)

            result = processor.process(MARCH)

            assert result.succeeded == 3
            with session_scope() as session:
                stored = PayrollDetailSelector(session).for_period("2025-03")
            assert [b.employee_id for b in stored] == ["EMP-001", "EMP-002", "EMP-003"]
        finally:
            reset_engine()

    def test_from_settings_reads_rate_table_dir(self, roster, time_entries, tmp_path):
        shutil.copy(DEFAULT_SETS_DIR / "2025.yaml", tmp_path / "2025.yaml")
        settings = PayrollSettings(rate_table_dir=tmp_path)
        processor = PeriodProcessor.from_settings(
            settings, StaticPersonnelProvider(roster), time_entries, InMemoryDetails()
        )

        assert processor.process(MARCH).rate_table_year == 2025
        with pytest.raises(RateTableNotFoundError) as exc_info:
            processor.process(PayrollPeriod(date(2024, 3, 1), date(2024, 3, 31)))
        assert exc_info.value.available_years == (2025,)

    def test_from_settings_applies_log_level(self, roster, time_entries):
        reset_logging()
        try:
            PeriodProcessor.from_settings(
                PayrollSettings(log_level="error"),
                StaticPersonnelProvider(roster),
                time_entries,
                InMemoryDetails(),
            )
            assert logging.getLogger("payroll_kernel").level == logging.ERROR
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_process_needs_a_registry(self, roster, time_entries):
        with pytest.raises(ValueError, match="RateTableRegistry"):
            _processor(roster, time_entries, InMemoryDetails()).process(MARCH)
