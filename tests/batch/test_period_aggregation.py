"""
Tests for Period Aggregation (payroll_batch/aggregation.py).

Covers:
- Summing approved buckets inside the period
- Ignoring other statuses, employees and dates
- Entry id collection and lock requests
"""

from datetime import date
from decimal import Decimal

import pytest

from payroll_batch.aggregation import aggregate_period, request_lock
from payroll_modules.models import DailyHourBucket, PayrollPeriod, TimeEntryStatus

MARCH = PayrollPeriod(date(2025, 3, 1), date(2025, 3, 31))


def _bucket(day: int, *, employee_id="EMP-1", month=3, status=TimeEntryStatus.APPROVED,
            regular="7.3", overtime="0.2", night="0", late=0, entry_id=None):
    regular_d, overtime_d = Decimal(regular), Decimal(overtime)
    return DailyHourBucket(
        employee_id=employee_id,
        work_date=date(2025, month, day),
        regular_hours=regular_d,
        overtime_hours=overtime_d,
        night_hours=Decimal(night),
        elapsed_hours=regular_d + overtime_d,
        late_minutes=late,
        entry_id=entry_id or f"{employee_id}-{month:02d}-{day:02d}",
        entry_status=status,
    )


class RecordingStore:
    def __init__(self, locked=None):
        self.calls = []
        self._locked = locked

    def approved_buckets(self, employee_id, start, end):
        return []

    def lock_entries(self, entry_ids, period_id):
        self.calls.append((tuple(entry_ids), period_id))
        return len(entry_ids) if self._locked is None else self._locked


class TestAggregatePeriod:

    def test_sums_approved_buckets(self):
        buckets = [
            _bucket(3, night="1.5", late=10),
            _bucket(4, overtime="1.7", night="7"),
            _bucket(5),
        ]
        totals = aggregate_period("EMP-1", MARCH, buckets)

        assert totals.regular_hours == Decimal("21.9")
        assert totals.overtime_hours == Decimal("2.1")
        assert totals.night_hours == Decimal("8.5")
        assert totals.elapsed_hours == Decimal("24.0")
        assert totals.late_minutes == 10
        assert totals.days_worked == 3
        assert totals.worked_hours == Decimal("24.0")
        assert totals.period_start == MARCH.start
        assert totals.period_end == MARCH.end

    @pytest.mark.parametrize(
        "status",
        [
            TimeEntryStatus.DRAFT,
            TimeEntryStatus.SUBMITTED,
            TimeEntryStatus.REJECTED,
            TimeEntryStatus.PAYROLL_LOCKED,
        ],
    )
    def test_unapproved_buckets_ignored(self, status):
        totals = aggregate_period("EMP-1", MARCH, [_bucket(3), _bucket(4, status=status)])
        assert totals.regular_hours == Decimal("7.3")
        assert totals.entry_ids == ("EMP-1-03-03",)

    def test_out_of_period_and_other_employees_ignored(self):
        buckets = [
            _bucket(3),
            _bucket(28, month=2),
            _bucket(1, month=4),
            _bucket(3, employee_id="EMP-2"),
        ]
        totals = aggregate_period("EMP-1", MARCH, buckets)
        assert totals.days_worked == 1
        assert totals.entry_ids == ("EMP-1-03-03",)

    def test_period_bounds_inclusive(self):
        totals = aggregate_period("EMP-1", MARCH, [_bucket(1), _bucket(31)])
        assert totals.days_worked == 2

    def test_empty_period(self):
        totals = aggregate_period("EMP-1", MARCH, [])
        assert totals.regular_hours == Decimal("0")
        assert totals.days_worked == 0
        assert totals.entry_ids == ()

    def test_entry_ids_sorted(self):
        buckets = [_bucket(9, entry_id="c"), _bucket(3, entry_id="a"), _bucket(5, entry_id="b")]
        assert aggregate_period("EMP-1", MARCH, buckets).entry_ids == ("a", "b", "c")

    def test_negative_hours_rejected_at_construction(self):
        with pytest.raises(ValueError, match="regular_hours"):
            _bucket(3, regular="-1")


class TestRequestLock:

    def test_locks_exactly_consumed_entries(self):
        store = RecordingStore()
        totals = aggregate_period("EMP-1", MARCH, [_bucket(3), _bucket(4)])

        locked = request_lock(store, totals, "2025-03")

        assert locked == 2
        assert store.calls == [(("EMP-1-03-03", "EMP-1-03-04"), "2025-03")]

    def test_nothing_to_lock(self):
        store = RecordingStore()
        totals = aggregate_period("EMP-1", MARCH, [])
        assert request_lock(store, totals, "2025-03") == 0
        assert store.calls == []

    def test_reports_store_count(self):
        store = RecordingStore(locked=1)
        totals = aggregate_period("EMP-1", MARCH, [_bucket(3), _bucket(4)])
        assert request_lock(store, totals, "2025-03") == 1
