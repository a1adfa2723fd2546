"""
payroll_engines.time_decomposition -- Classify one day's clock times into hour buckets.

Responsibility:
    Convert an arrival/departure pair (plus the lunch flag) into elapsed,
    regular, overtime and night hours, late minutes and the
    crosses-midnight flag.  ``decompose_shift`` is the one implementation
    shared by the time-entry builder and the shift preview CLI.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only kernel values/exceptions, the Rate Table schema and the
    payroll value objects.

Invariants enforced:
    - regular_hours + overtime_hours == elapsed_hours exactly: arithmetic
      runs in whole minutes and overtime is derived as elapsed - regular.
    - night_hours <= elapsed_hours: night time is an overlap subset of the
      shift, never an extra bucket.
    - departure <= arrival means the shift crosses midnight.
    - Replay safety: no clock reads; identical inputs give identical output.

Failure modes:
    - ShiftValidationError for arrival == departure (zero-duration day)
      and for malformed clock strings.  Only that day's entry is rejected.
    - More than the daily hour limit is NOT an error: the result carries a
      ``daily_limit_exceeded`` LegalLimitWarning for human review.

Audit relevance:
    Daily buckets feed every pay line; the warnings list travels with the
    bucket so reviewers see why a day was flagged.

Usage:
    from datetime import time
    from payroll_config import get_rate_table
    from payroll_engines.time_decomposition import decompose_shift

    result = decompose_shift(time(20, 0), time(5, 0), False, get_rate_table(2025))
    result.night_hours  # Decimal("7.00")
"""

from __future__ import annotations

from datetime import date, time

from payroll_config.schema import NightWindow, RateTable
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import minutes_to_hours
from payroll_kernel.exceptions import ShiftValidationError
from payroll_kernel.logging_config import get_logger
from payroll_modules.models import (
    DailyHourBucket,
    LegalLimitWarning,
    ShiftDecomposition,
    TimeEntryStatus,
)

logger = get_logger("engines.time_decomposition")

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: time | str, *, arrival: str = "", departure: str = "") -> time:
    """Accept a ``time`` or an ``HH:MM[:SS]`` string."""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise ShiftValidationError(
            arrival or str(value), departure or str(value),
            f"malformed clock time {value!r}",
        ) from None


def _minute_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def _overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> int:
    return max(0, min(a_end, b_end) - max(a_start, b_start))


def night_overlap_minutes(start: int, end: int, window: NightWindow) -> int:
    """Minutes of ``[start, end)`` inside the night window.

    ``start`` lies in the first day and ``end`` may run into the second
    (up to 48 h axis).  Window occurrences from the previous evening
    through the next one are checked, so both a shift that starts before
    06:00 and one that crosses midnight are covered.
    """
    w_start = _minute_of_day(window.start)
    w_end = _minute_of_day(window.end)
    if window.wraps_midnight:
        occurrences = [
            (w_start + offset, w_end + MINUTES_PER_DAY + offset)
            for offset in (-MINUTES_PER_DAY, 0, MINUTES_PER_DAY)
        ]
    else:
        occurrences = [
            (w_start + offset, w_end + offset)
            for offset in (0, MINUTES_PER_DAY)
        ]
    return sum(_overlap(start, end, s, e) for s, e in occurrences)


def late_minutes_for(arrival: time, expected_arrival: time | None) -> int:
    """Whole minutes after the expected arrival; 0 when on time or early.

    Differences are taken on a 24 h clock, so a 22:00 expectation met at
    00:15 counts 135 minutes late.  Anything more than twelve hours "late"
    is read as an early arrival.
    """
    if expected_arrival is None:
        return 0
    diff = (_minute_of_day(arrival) - _minute_of_day(expected_arrival)) % MINUTES_PER_DAY
    return diff if diff <= MINUTES_PER_DAY // 2 else 0


@traced_engine(
    "time_decomposition", "1.0",
    fingerprint_fields=("arrival", "departure", "lunch_deducted", "expected_arrival"),
)
def decompose_shift(
    arrival: time | str,
    departure: time | str,
    lunch_deducted: bool,
    rate_table: RateTable,
    expected_arrival: time | str | None = None,
) -> ShiftDecomposition:
    """
    Decompose one day's shift into legally classified hours.

    Preconditions:
        arrival != departure.  Seconds are ignored; the engine works in
        whole minutes.

    Postconditions:
        regular + overtime == elapsed; night <= elapsed; all values are
        Decimals quantized to 0.01 h.

    Raises:
        ShiftValidationError: zero-duration shift or malformed clock time.
    """
    arrival_t = parse_clock(arrival, arrival=str(arrival), departure=str(departure))
    departure_t = parse_clock(departure, arrival=str(arrival), departure=str(departure))
    expected_t = (
        parse_clock(expected_arrival) if expected_arrival is not None else None
    )

    start = _minute_of_day(arrival_t)
    end = _minute_of_day(departure_t)
    if start == end:
        logger.warning(
            "shift_rejected_zero_duration",
            extra={"arrival": arrival_t, "departure": departure_t},
        )
        raise ShiftValidationError(
            arrival_t.isoformat(timespec="minutes"),
            departure_t.isoformat(timespec="minutes"),
            "arrival equals departure",
        )

    crosses_midnight = end < start
    if crosses_midnight:
        end += MINUTES_PER_DAY

    hours_rules = rate_table.hours
    raw_minutes = end - start
    elapsed_minutes = raw_minutes
    if lunch_deducted:
        elapsed_minutes = max(0, raw_minutes - hours_rules.lunch_minutes)

    elapsed = minutes_to_hours(elapsed_minutes)
    regular = min(elapsed, hours_rules.legal_daily_hours)
    overtime = elapsed - regular

    night_minutes = min(
        night_overlap_minutes(start, end, rate_table.night_window),
        elapsed_minutes,
    )
    night = minutes_to_hours(night_minutes)

    warnings: list[LegalLimitWarning] = []
    if elapsed > hours_rules.daily_hour_limit:
        warnings.append(
            LegalLimitWarning(
                code="daily_limit_exceeded",
                message=(
                    f"{elapsed} h worked exceeds the legal daily limit of "
                    f"{hours_rules.daily_hour_limit} h"
                ),
                hours=elapsed,
            )
        )
    if overtime > 0:
        warnings.append(
            LegalLimitWarning(
                code="overtime_generated",
                message=f"{overtime} h of overtime generated",
                hours=overtime,
            )
        )

    result = ShiftDecomposition(
        arrival=arrival_t,
        departure=departure_t,
        lunch_deducted=lunch_deducted,
        elapsed_hours=elapsed,
        regular_hours=regular,
        overtime_hours=overtime,
        night_hours=night,
        crosses_midnight=crosses_midnight,
        late_minutes=late_minutes_for(arrival_t, expected_t),
        warnings=tuple(warnings),
    )

    if result.exceeds_daily_limit:
        logger.warning(
            "shift_exceeds_daily_limit",
            extra={"elapsed_hours": elapsed, "limit": hours_rules.daily_hour_limit},
        )
    logger.debug(
        "shift_decomposed",
        extra={
            "elapsed_hours": elapsed,
            "regular_hours": regular,
            "overtime_hours": overtime,
            "night_hours": night,
            "crosses_midnight": crosses_midnight,
        },
    )
    return result


def build_daily_bucket(
    employee_id: str,
    work_date: date,
    decomposition: ShiftDecomposition,
    entry_id: str | None = None,
    entry_status: TimeEntryStatus = TimeEntryStatus.APPROVED,
) -> DailyHourBucket:
    """Freeze a decomposition into the bucket stored for ``work_date``."""
    return DailyHourBucket(
        employee_id=employee_id,
        work_date=work_date,
        regular_hours=decomposition.regular_hours,
        overtime_hours=decomposition.overtime_hours,
        night_hours=decomposition.night_hours,
        elapsed_hours=decomposition.elapsed_hours,
        late_minutes=decomposition.late_minutes,
        crosses_midnight=decomposition.crosses_midnight,
        entry_id=entry_id,
        entry_status=entry_status,
    )
