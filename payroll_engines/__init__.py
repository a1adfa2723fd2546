"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll engines.  This is the canonical import surface for
    ``payroll_batch`` and ``scripts``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import payroll_kernel values/exceptions, the Rate Table schema and
    the payroll value objects.  MUST NOT import payroll_batch or any store.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
    - Decimal-only arithmetic: hours and money use ``Decimal``; floats are
      forbidden.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE records
    with engine name, version, input fingerprint and duration.

Usage:
    from payroll_engines import calculate_payroll, decompose_shift, validate_breakdown
"""

from payroll_engines.legal_validator import RULES, TOLERANCE, validate_breakdown
from payroll_engines.payroll_calculator import (
    calculate_payroll,
    contribution_base_for,
    hourly_rate_for,
    law_1141_applies,
    transport_eligible,
)
from payroll_engines.time_decomposition import (
    build_daily_bucket,
    decompose_shift,
    night_overlap_minutes,
)
from payroll_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "RULES",
    "TOLERANCE",
    "build_daily_bucket",
    "calculate_payroll",
    "compute_input_fingerprint",
    "contribution_base_for",
    "decompose_shift",
    "hourly_rate_for",
    "law_1141_applies",
    "night_overlap_minutes",
    "traced_engine",
    "transport_eligible",
    "validate_breakdown",
]
