"""
Tests for Time Decomposition (payroll_engines/time_decomposition.py).

Covers:
- Regular/overtime split against the legal daily hours
- Lunch deduction
- Midnight-crossing shifts and the night window overlap
- Daily limit warnings
- Late minutes
- Rejected inputs
- Engine tracing
"""

from datetime import date, time
from decimal import Decimal

import pytest

from payroll_config.schema import NightWindow
from payroll_engines.time_decomposition import (
    build_daily_bucket,
    decompose_shift,
    late_minutes_for,
    night_overlap_minutes,
)
from payroll_kernel.exceptions import ShiftValidationError
from payroll_modules.models import TimeEntryStatus


class TestRegularAndOvertime:

    def test_day_shift_with_lunch(self, rate_table_2025):
        """07:00-15:30 with lunch: 7.5 h elapsed, 0.2 h over the legal day."""
        result = decompose_shift("07:00", "15:30", True, rate_table_2025)

        assert result.elapsed_hours == Decimal("7.50")
        assert result.regular_hours == Decimal("7.3")
        assert result.overtime_hours == Decimal("0.20")
        assert result.night_hours == Decimal("0")
        assert result.crosses_midnight is False

    def test_short_day_has_no_overtime(self, rate_table_2025):
        result = decompose_shift(time(8, 0), time(14, 0), True, rate_table_2025)

        assert result.elapsed_hours == Decimal("5.00")
        assert result.regular_hours == Decimal("5.00")
        assert result.overtime_hours == Decimal("0")
        assert result.warnings == ()

    def test_without_lunch(self, rate_table_2025):
        result = decompose_shift("07:00", "15:30", False, rate_table_2025)
        assert result.elapsed_hours == Decimal("8.50")
        assert result.overtime_hours == Decimal("1.20")

    def test_lunch_never_makes_hours_negative(self, rate_table_2025):
        result = decompose_shift("07:00", "07:30", True, rate_table_2025)
        assert result.elapsed_hours == Decimal("0")
        assert result.regular_hours == Decimal("0")
        assert result.overtime_hours == Decimal("0")

    def test_regular_plus_overtime_equals_elapsed(self, rate_table_2025):
        result = decompose_shift("06:07", "19:53", True, rate_table_2025)
        assert result.regular_hours + result.overtime_hours == result.elapsed_hours

    def test_seconds_are_ignored(self, rate_table_2025):
        result = decompose_shift(time(7, 0, 59), time(15, 30, 1), True, rate_table_2025)
        assert result.elapsed_hours == Decimal("7.50")

    def test_overtime_warning(self, rate_table_2025):
        result = decompose_shift("07:00", "15:30", True, rate_table_2025)
        assert [w.code for w in result.warnings] == ["overtime_generated"]
        assert result.warnings[0].hours == Decimal("0.20")


class TestNightAndMidnight:

    def test_overnight_shift(self, rate_table_2025):
        """20:00-05:00 without lunch crosses midnight with 7 night hours."""
        result = decompose_shift("20:00", "05:00", False, rate_table_2025)

        assert result.crosses_midnight is True
        assert result.elapsed_hours == Decimal("9.00")
        assert result.regular_hours == Decimal("7.3")
        assert result.overtime_hours == Decimal("1.70")
        assert result.night_hours == Decimal("7.00")

    def test_early_morning_start_counts_previous_window(self, rate_table_2025):
        result = decompose_shift("04:00", "12:00", False, rate_table_2025)
        assert result.crosses_midnight is False
        assert result.night_hours == Decimal("2.00")

    def test_full_night_shift(self, rate_table_2025):
        result = decompose_shift("22:00", "06:00", False, rate_table_2025)
        assert result.night_hours == Decimal("8.00")
        assert result.elapsed_hours == Decimal("8.00")

    def test_night_hours_bounded_by_elapsed(self, rate_table_2025):
        result = decompose_shift("22:00", "06:00", True, rate_table_2025)
        assert result.elapsed_hours == Decimal("7.00")
        assert result.night_hours == Decimal("7.00")

    def test_departure_at_midnight(self, rate_table_2025):
        result = decompose_shift("16:00", "00:00", False, rate_table_2025)
        assert result.crosses_midnight is True
        assert result.elapsed_hours == Decimal("8.00")
        assert result.night_hours == Decimal("2.00")

    def test_daytime_shift_has_no_night_hours(self, rate_table_2025):
        assert night_overlap_minutes(6 * 60, 22 * 60, rate_table_2025.night_window) == 0

    def test_non_wrapping_window(self):
        window = NightWindow(start=time(0, 0), end=time(5, 0))
        assert not window.wraps_midnight
        # 20:00 to 05:00 next day on the 48 h axis
        assert night_overlap_minutes(20 * 60, 29 * 60, window) == 300


class TestDailyLimit:

    def test_fourteen_hour_day_warns_but_succeeds(self, rate_table_2025):
        result = decompose_shift("06:00", "20:00", False, rate_table_2025)

        assert result.elapsed_hours == Decimal("14.00")
        assert result.exceeds_daily_limit
        assert result.warnings[0].code == "daily_limit_exceeded"
        assert "12" in result.warnings[0].message

    def test_exactly_twelve_hours_is_within_limit(self, rate_table_2025):
        result = decompose_shift("06:00", "18:00", False, rate_table_2025)
        assert not result.exceeds_daily_limit


class TestLateMinutes:

    def test_late_arrival(self, rate_table_2025):
        result = decompose_shift("07:00", "15:30", True, rate_table_2025, expected_arrival="06:45")
        assert result.late_minutes == 15

    def test_late_across_midnight(self):
        assert late_minutes_for(time(0, 15), time(22, 0)) == 135

    def test_early_arrival_is_not_late(self):
        assert late_minutes_for(time(6, 30), time(7, 0)) == 0

    def test_no_expectation(self):
        assert late_minutes_for(time(9, 0), None) == 0


class TestRejectedShifts:

    def test_zero_duration_rejected(self, rate_table_2025):
        with pytest.raises(ShiftValidationError) as exc_info:
            decompose_shift("07:00", "07:00", True, rate_table_2025)
        assert exc_info.value.code == "INVALID_SHIFT"
        assert exc_info.value.reason == "arrival equals departure"

    def test_malformed_clock_rejected(self, rate_table_2025):
        with pytest.raises(ShiftValidationError, match="malformed"):
            decompose_shift("7am", "15:30", True, rate_table_2025)


class TestBucketsAndTracing:

    def test_build_daily_bucket(self, rate_table_2025):
        result = decompose_shift("20:00", "05:00", False, rate_table_2025)
        bucket = build_daily_bucket("EMP-1", date(2025, 3, 3), result, entry_id="t-1")

        assert bucket.regular_hours == result.regular_hours
        assert bucket.overtime_hours == result.overtime_hours
        assert bucket.night_hours == result.night_hours
        assert bucket.crosses_midnight is True
        assert bucket.entry_id == "t-1"
        assert bucket.entry_status is TimeEntryStatus.APPROVED

    def test_trace_emitted_with_stable_fingerprint(self, captured_logs, rate_table_2025):
        decompose_shift("07:00", "15:30", True, rate_table_2025)
        decompose_shift(
            arrival="07:00", departure="15:30", lunch_deducted=True, rate_table=rate_table_2025
        )
        decompose_shift("07:00", "16:30", True, rate_table_2025)

        traces = [
            r for r in captured_logs()
            if r["message"] == "PAYROLL_ENGINE_TRACE" and r["engine_name"] == "time_decomposition"
        ]
        assert len(traces) == 3
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
        assert traces[0]["input_fingerprint"] != traces[2]["input_fingerprint"]
        assert traces[0]["engine_version"] == "1.0"
