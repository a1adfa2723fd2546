"""
Period Aggregation -- boundary between the time-entry store and the engines.

Responsibility:
    Sum one employee's approved daily buckets over a payroll period into
    ``PeriodTotals``, and ask the store to lock exactly the consumed
    entries once that employee's payroll has been computed.

Architecture position:
    Batch -- orchestration glue.  ``aggregate_period`` is pure; only
    ``request_lock`` touches a collaborator (through the
    ``TimeEntryStore`` port).

Invariants enforced:
    - Only APPROVED buckets for the requested employee whose work date is
      inside the inclusive period range are summed.  Everything else is
      ignored, however the store filtered.
    - The lock transition is requested for ``totals.entry_ids`` and
      nothing else.
"""

from __future__ import annotations

from collections.abc import Iterable

from payroll_batch.ports import TimeEntryStore
from payroll_kernel.domain.values import ZERO
from payroll_kernel.logging_config import get_logger
from payroll_modules.models import (
    DailyHourBucket,
    PayrollPeriod,
    PeriodTotals,
    TimeEntryStatus,
)

logger = get_logger("batch.aggregation")


def aggregate_period(
    employee_id: str,
    period: PayrollPeriod,
    buckets: Iterable[DailyHourBucket],
) -> PeriodTotals:
    """Sum approved buckets for ``employee_id`` within ``period``."""
    regular = overtime = night = elapsed = ZERO
    late_minutes = 0
    work_dates = set()
    entry_ids: list[str] = []
    skipped = 0

    for bucket in buckets:
        if (
            bucket.employee_id != employee_id
            or bucket.entry_status is not TimeEntryStatus.APPROVED
            or not period.contains(bucket.work_date)
        ):
            skipped += 1
            continue
        regular += bucket.regular_hours
        overtime += bucket.overtime_hours
        night += bucket.night_hours
        elapsed += bucket.elapsed_hours
        late_minutes += bucket.late_minutes
        work_dates.add(bucket.work_date)
        if bucket.entry_id is not None:
            entry_ids.append(bucket.entry_id)

    if skipped:
        logger.debug(
            "buckets_skipped",
            extra={"employee_id": employee_id, "skipped": skipped},
        )

    return PeriodTotals(
        employee_id=employee_id,
        period_start=period.start,
        period_end=period.end,
        regular_hours=regular,
        overtime_hours=overtime,
        night_hours=night,
        elapsed_hours=elapsed,
        late_minutes=late_minutes,
        days_worked=len(work_dates),
        entry_ids=tuple(sorted(entry_ids)),
    )


def request_lock(store: TimeEntryStore, totals: PeriodTotals, period_id: str) -> int:
    """Ask the store to lock the entries consumed by ``totals``.

    Returns the number of entries the store locked.
    """
    if not totals.entry_ids:
        return 0
    locked = store.lock_entries(totals.entry_ids, period_id)
    logger.info(
        "time_entries_lock_requested",
        extra={
            "employee_id": totals.employee_id,
            "requested": len(totals.entry_ids),
            "locked": locked,
        },
    )
    return locked
