"""
Rate Table Loader (``payroll_config.loader``).

Responsibility
--------------
Loads one YAML Rate Table document and parses it into the typed
``payroll_config.schema`` dataclasses, validating that every legal
parameter is usable before any engine sees it.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by
``payroll_config.registry``.  Depends only on the kernel's exceptions and
rounding helpers; never on modules, engines, or batch.

Invariants enforced
-------------------
* Every numeric value is parsed through ``to_decimal``; YAML floats are
  rejected, so rates must be quoted in the source documents.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  document's canonical content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, unparsable values, rates outside [0, 1], a non-positive
  minimum wage or an incomplete ARL table  -> ``InvalidRateTableError``.

Audit relevance
---------------
The checksum travels on every ``RateTable`` and is copied onto each
computed breakdown, so a payslip can be traced to the exact parameters
that produced it.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, time
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    ARL_CLASSES,
    AllowanceRules,
    ContributionCaps,
    EmployeeDeductionRates,
    EmployerContributionRates,
    HourRules,
    Law1141Exemption,
    NightWindow,
    ParafiscalRates,
    RateTable,
    SolidarityBand,
)
from payroll_kernel.domain.values import to_decimal
from payroll_kernel.exceptions import InvalidRateTableError
from payroll_kernel.logging_config import get_logger

logger = get_logger("config.loader")

_ZERO = Decimal("0")
_ONE = Decimal("1")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_clock(value: Any) -> time:
    """Parse an ``HH:MM`` clock value.

    YAML 1.1 reads unquoted ``22:00`` as a sexagesimal integer (1320), so
    integers are accepted as minutes past midnight.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return time(value // 60, value % 60)
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot parse clock time from {value!r}")


class _Parser:
    """Collects every problem in a document instead of stopping at the first."""

    def __init__(self, source: str):
        self.source = source
        self.problems: list[str] = []

    def section(self, data: dict[str, Any], key: str) -> dict[str, Any]:
        value = data.get(key)
        if not isinstance(value, dict):
            self.problems.append(f"missing section '{key}'")
            return {}
        return value

    def decimal(self, data: dict[str, Any], key: str, path: str) -> Decimal:
        if key not in data:
            self.problems.append(f"missing '{path}.{key}'")
            return _ZERO
        try:
            return to_decimal(data[key])
        except (TypeError, ValueError) as exc:
            self.problems.append(f"'{path}.{key}': {exc}")
            return _ZERO

    def rate(self, data: dict[str, Any], key: str, path: str) -> Decimal:
        value = self.decimal(data, key, path)
        if not _ZERO <= value <= _ONE:
            self.problems.append(f"'{path}.{key}' = {value} is outside [0, 1]")
        return value

    def integer(self, data: dict[str, Any], key: str, path: str) -> int:
        value = data.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            self.problems.append(f"'{path}.{key}' must be an integer")
            return 0
        return value

    def flag(self, data: dict[str, Any], key: str, default: bool) -> bool:
        return bool(data.get(key, default))


def parse_rate_table(data: dict[str, Any], source: str = "<memory>") -> RateTable:
    """
    Parse and validate a Rate Table document.

    Raises:
        InvalidRateTableError: listing every problem found.
    """
    p = _Parser(source)

    year = p.integer(data, "year", "root")
    try:
        effective_date = parse_date(data.get("effective_date", f"{year}-01-01"))
    except ValueError as exc:
        p.problems.append(f"'effective_date': {exc}")
        effective_date = date(max(year, 1), 1, 1)

    minimum_wage = p.decimal(data, "minimum_wage", "root")
    if minimum_wage <= _ZERO:
        p.problems.append("minimum_wage must be positive")
    uvt = p.decimal(data, "uvt", "root")

    a = p.section(data, "allowances")
    allowances = AllowanceRules(
        transport_allowance=p.decimal(a, "transport_allowance", "allowances"),
        connectivity_allowance=p.decimal(a, "connectivity_allowance", "allowances"),
        ceiling_multiple=p.decimal(a, "ceiling_multiple", "allowances"),
    )

    h = p.section(data, "hours")
    hours = HourRules(
        legal_daily_hours=p.decimal(h, "legal_daily_hours", "hours"),
        monthly_hours_divisor=p.decimal(h, "monthly_hours_divisor", "hours"),
        commercial_days_per_month=p.integer(h, "commercial_days_per_month", "hours"),
        overtime_multiplier=p.decimal(h, "overtime_multiplier", "hours"),
        night_surcharge=p.rate(h, "night_surcharge", "hours"),
        daily_hour_limit=p.decimal(h, "daily_hour_limit", "hours"),
        lunch_minutes=p.integer(h, "lunch_minutes", "hours"),
    )
    if hours.legal_daily_hours <= _ZERO or hours.monthly_hours_divisor <= _ZERO:
        p.problems.append("legal_daily_hours and monthly_hours_divisor must be positive")

    nw = p.section(data, "night_window")
    try:
        night_window = NightWindow(
            start=parse_clock(nw.get("start", "22:00")),
            end=parse_clock(nw.get("end", "06:00")),
        )
    except ValueError as exc:
        p.problems.append(f"'night_window': {exc}")
        night_window = NightWindow(start=time(22, 0), end=time(6, 0))

    e = p.section(data, "employee_deductions")
    bands = []
    for i, row in enumerate(e.get("solidarity_bands") or ()):
        path = f"employee_deductions.solidarity_bands[{i}]"
        upper = row.get("upper")
        bands.append(
            SolidarityBand(
                lower_multiple=p.decimal(row, "lower", path),
                upper_multiple=None if upper is None else p.decimal(row, "upper", path),
                rate=p.rate(row, "rate", path),
            )
        )
    if not bands:
        p.problems.append("employee_deductions.solidarity_bands is empty")
    employee = EmployeeDeductionRates(
        health=p.rate(e, "health", "employee_deductions"),
        pension=p.rate(e, "pension", "employee_deductions"),
        solidarity_threshold_multiple=p.decimal(
            e, "solidarity_threshold_multiple", "employee_deductions"
        ),
        solidarity_bands=tuple(sorted(bands, key=lambda b: b.lower_multiple)),
    )

    c = p.section(data, "employer_contributions")
    arl_raw = c.get("arl") or {}
    missing_classes = [k for k in ARL_CLASSES if k not in arl_raw]
    if missing_classes:
        p.problems.append(f"ARL table lacks classes {', '.join(missing_classes)}")
    employer = EmployerContributionRates(
        health=p.rate(c, "health", "employer_contributions"),
        pension=p.rate(c, "pension", "employer_contributions"),
        arl={k: p.rate(arl_raw, k, "employer_contributions.arl") for k in ARL_CLASSES if k in arl_raw},
        severance=p.rate(c, "severance", "employer_contributions"),
        severance_interest=p.rate(c, "severance_interest", "employer_contributions"),
        service_bonus=p.rate(c, "service_bonus", "employer_contributions"),
        vacation=p.rate(c, "vacation", "employer_contributions"),
    )

    pf = p.section(data, "parafiscales")
    parafiscales = ParafiscalRates(
        sena=p.rate(pf, "sena", "parafiscales"),
        icbf=p.rate(pf, "icbf", "parafiscales"),
        compensation_fund=p.rate(pf, "compensation_fund", "parafiscales"),
    )

    lx = p.section(data, "law_1141")
    law_1141 = Law1141Exemption(
        enabled=p.flag(lx, "enabled", False),
        max_base_multiple=p.decimal(lx, "max_base_multiple", "law_1141"),
        exempt_health=p.flag(lx, "exempt_health", True),
        exempt_sena=p.flag(lx, "exempt_sena", True),
        exempt_icbf=p.flag(lx, "exempt_icbf", True),
    )

    cc = p.section(data, "contribution_caps")
    caps = ContributionCaps(
        floor_multiple=p.decimal(cc, "floor_multiple", "contribution_caps"),
        cap_multiple=p.decimal(cc, "cap_multiple", "contribution_caps"),
    )
    if caps.floor_multiple > caps.cap_multiple:
        p.problems.append("contribution_caps.floor_multiple exceeds cap_multiple")

    if p.problems:
        raise InvalidRateTableError(source, p.problems)

    return RateTable(
        year=year,
        effective_date=effective_date,
        minimum_wage=minimum_wage,
        uvt=uvt,
        allowances=allowances,
        hours=hours,
        night_window=night_window,
        employee=employee,
        employer=employer,
        parafiscales=parafiscales,
        law_1141=law_1141,
        caps=caps,
        checksum=compute_checksum(data),
    )


def load_rate_table(path: Path) -> RateTable:
    """Load and validate the Rate Table stored at ``path``."""
    table = parse_rate_table(load_yaml_file(path), source=str(path))
    logger.info(
        "rate_table_loaded",
        extra={
            "year": table.year,
            "source": str(path),
            "checksum": table.checksum,
        },
    )
    return table
