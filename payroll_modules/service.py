"""
Time Entry Service (``payroll_modules.service``).

Responsibility
--------------
Write path for time entries: record a day's clock times (decomposed by the
shared ``decompose_shift``), move entries through their lifecycle, and
lock approved entries once payroll has consumed them.

Architecture position
---------------------
**Modules layer** -- the only writer of ``time_entries``.  Uses the
caller's ``Session`` and never commits; the caller owns the transaction.

Invariants enforced
-------------------
* Lifecycle: draft -> submitted -> approved -> payroll_locked, with
  rejected reachable from submitted and draft reachable from rejected.
* A payroll_locked entry can never be edited or moved again.
* ``lock_entries`` transitions only rows that are currently approved.

Failure modes
-------------
* ``TimeEntryNotFoundError`` for an unknown id.
* ``TimeEntryLockedError`` when editing or re-statusing a locked entry.
* ``InvalidTimeEntryTransitionError`` for any other disallowed move.
* ``ShiftValidationError`` from ``decompose_shift`` for a zero-length day.
"""

from collections.abc import Sequence
from datetime import date, time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_config.schema import RateTable
from payroll_engines.time_decomposition import decompose_shift
from payroll_kernel.exceptions import (
    InvalidTimeEntryTransitionError,
    TimeEntryLockedError,
    TimeEntryNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_modules.models import ShiftDecomposition, TimeEntryStatus
from payroll_modules.orm import TimeEntryModel

logger = get_logger("modules.payroll.service")

_TRANSITIONS: dict[TimeEntryStatus, frozenset[TimeEntryStatus]] = {
    TimeEntryStatus.DRAFT: frozenset({TimeEntryStatus.SUBMITTED}),
    TimeEntryStatus.SUBMITTED: frozenset({TimeEntryStatus.APPROVED, TimeEntryStatus.REJECTED}),
    TimeEntryStatus.REJECTED: frozenset({TimeEntryStatus.DRAFT}),
    TimeEntryStatus.APPROVED: frozenset({TimeEntryStatus.PAYROLL_LOCKED}),
    TimeEntryStatus.PAYROLL_LOCKED: frozenset(),
}


class TimeEntryService:
    """Records and transitions time entries.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, rate_table: RateTable | None = None):
        self._session = session
        self._rate_table = rate_table

    @property
    def rate_table(self) -> RateTable:
        if self._rate_table is None:
            raise RuntimeError("TimeEntryService needs a rate_table to decompose shifts")
        return self._rate_table

    # -------------------------------------------------------------------------
    # Record
    # -------------------------------------------------------------------------

    def record_entry(
        self,
        employee_id: str,
        work_date: date,
        arrival: time | str,
        departure: time | str,
        lunch_deducted: bool = True,
        expected_arrival: time | str | None = None,
        notes: str | None = None,
    ) -> tuple[TimeEntryModel, ShiftDecomposition]:
        """Decompose and store one day as a draft entry."""
        decomposition = decompose_shift(
            arrival, departure, lunch_deducted, self.rate_table,
            expected_arrival=expected_arrival,
        )
        entry = TimeEntryModel(
            employee_id=employee_id,
            work_date=work_date,
            expected_arrival_time=_as_time(expected_arrival) if expected_arrival is not None else None,
            status=TimeEntryStatus.DRAFT.value,
            notes=notes,
        )
        entry.apply_decomposition(decomposition)
        self._session.add(entry)
        self._session.flush()

        logger.info(
            "time_entry_recorded",
            extra={
                "entry_id": str(entry.id),
                "employee_id": employee_id,
                "work_date": work_date,
                "elapsed_hours": decomposition.elapsed_hours,
                "warnings": [w.code for w in decomposition.warnings],
            },
        )
        return entry, decomposition

    def update_times(
        self,
        entry_id: str,
        arrival: time | str,
        departure: time | str,
        lunch_deducted: bool,
    ) -> ShiftDecomposition:
        """Re-decompose an editable entry with new clock times."""
        entry = self._get(entry_id)
        status = TimeEntryStatus(entry.status)
        if status is TimeEntryStatus.PAYROLL_LOCKED:
            raise TimeEntryLockedError(entry_id, entry.payroll_period_id)
        if status is TimeEntryStatus.APPROVED:
            raise InvalidTimeEntryTransitionError(entry_id, status.value, "edited")

        decomposition = decompose_shift(
            arrival, departure, lunch_deducted, self.rate_table,
            expected_arrival=entry.expected_arrival_time,
        )
        entry.apply_decomposition(decomposition)
        self._session.flush()
        return decomposition

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def submit(self, entry_id: str) -> None:
        self._transition(entry_id, TimeEntryStatus.SUBMITTED)

    def approve(self, entry_id: str) -> None:
        self._transition(entry_id, TimeEntryStatus.APPROVED)

    def reject(self, entry_id: str) -> None:
        self._transition(entry_id, TimeEntryStatus.REJECTED)

    def reopen(self, entry_id: str) -> None:
        self._transition(entry_id, TimeEntryStatus.DRAFT)

    def lock_entries(self, entry_ids: Sequence[str], period_id: str) -> int:
        """Move approved entries to payroll_locked under ``period_id``.

        Entries in any other status are left untouched.  Returns the
        number of rows locked.
        """
        if not entry_ids:
            return 0
        rows = self._session.execute(
            select(TimeEntryModel).where(
                TimeEntryModel.id.in_(list(entry_ids)),
                TimeEntryModel.status == TimeEntryStatus.APPROVED.value,
            )
        ).scalars().all()
        for row in rows:
            row.status = TimeEntryStatus.PAYROLL_LOCKED.value
            row.payroll_period_id = period_id
        self._session.flush()

        if len(rows) != len(entry_ids):
            logger.warning(
                "time_entries_partially_locked",
                extra={
                    "period_id": period_id,
                    "requested": len(entry_ids),
                    "locked": len(rows),
                },
            )
        return len(rows)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get(self, entry_id: str) -> TimeEntryModel:
        try:
            key = UUID(str(entry_id))
        except ValueError:
            raise TimeEntryNotFoundError(entry_id) from None
        entry = self._session.get(TimeEntryModel, key)
        if entry is None:
            raise TimeEntryNotFoundError(entry_id)
        return entry

    def _transition(self, entry_id: str, to_status: TimeEntryStatus) -> None:
        entry = self._get(entry_id)
        from_status = TimeEntryStatus(entry.status)
        if from_status is TimeEntryStatus.PAYROLL_LOCKED:
            raise TimeEntryLockedError(entry_id, entry.payroll_period_id)
        if to_status not in _TRANSITIONS[from_status]:
            raise InvalidTimeEntryTransitionError(entry_id, from_status.value, to_status.value)
        entry.status = to_status.value
        self._session.flush()
        logger.info(
            "time_entry_status_changed",
            extra={
                "entry_id": entry_id,
                "from_status": from_status.value,
                "to_status": to_status.value,
            },
        )


def _as_time(value: time | str) -> time:
    return value if isinstance(value, time) else time.fromisoformat(str(value).strip())
