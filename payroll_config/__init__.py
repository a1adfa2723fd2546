"""
payroll_config -- year-versioned legal parameters for the payroll engine.

Responsibility:
    Provides ``get_rate_table(year)``, the public way to obtain the Rate
    Table for a payroll period's calendar year.  YAML parsing lives in
    ``payroll_config.loader``; year lookup in ``payroll_config.registry``.

Architecture position:
    Configuration -- sits above ``payroll_kernel`` and below
    ``payroll_engines`` / ``payroll_batch``.  The kernel MUST NEVER import
    from ``payroll_config``.  Engines receive a ``RateTable`` as an
    explicit argument and never call into this package themselves.

Invariants enforced:
    - Every table has passed validation (rates in [0, 1], positive minimum
      wage, complete ARL classes) before it is returned.
    - Deterministic checksum: the same YAML document always produces the
      same ``RateTable.checksum``.

Failure modes:
    - ``RateTableNotFoundError`` -- no table for the requested year.
    - ``InvalidRateTableError`` -- a document fails validation.

Audit relevance:
    Every successful ``get_rate_table()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry with the year and checksum, tying
    each payroll run to the exact legal parameters it used.
"""

from __future__ import annotations

import logging
from pathlib import Path

from payroll_config.registry import DEFAULT_SETS_DIR, RateTableRegistry
from payroll_config.schema import RateTable
from payroll_config.settings import PayrollSettings

_logger = logging.getLogger("payroll_kernel.config")

__all__ = [
    "DEFAULT_SETS_DIR",
    "PayrollSettings",
    "RateTable",
    "RateTableRegistry",
    "get_rate_table",
]


def get_rate_table(year: int, config_dir: Path | None = None) -> RateTable:
    """Load the Rate Table for ``year`` from ``config_dir`` (default: bundled sets).

    Raises:
        RateTableNotFoundError: If no document covers ``year``.
        InvalidRateTableError: If a document in the directory is invalid.
    """
    table = RateTableRegistry.from_directory(config_dir).for_year(year)
    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "year": table.year,
            "checksum": table.checksum,
            "minimum_wage": table.minimum_wage,
        },
    )
    return table
