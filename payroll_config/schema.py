"""
Rate Table schema.

Defines the year-versioned legal parameters consumed by every payroll
engine. YAML documents under ``payroll_config/sets`` are parsed into these
types by the loader; engines receive a ``RateTable`` explicitly and never
look one up themselves.

All rates are fractions (``Decimal("0.04")`` means 4%). All amounts are
Colombian pesos. Multiples are expressed in SMMLV (legal monthly minimum
wage) units.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

# ---------------------------------------------------------------------------
# Time rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NightWindow:
    """Night surcharge window. ``start`` > ``end`` means it wraps midnight."""

    start: time
    end: time

    @property
    def wraps_midnight(self) -> bool:
        return self.start >= self.end


@dataclass(frozen=True)
class HourRules:
    legal_daily_hours: Decimal
    monthly_hours_divisor: Decimal
    commercial_days_per_month: int
    overtime_multiplier: Decimal
    night_surcharge: Decimal
    daily_hour_limit: Decimal
    lunch_minutes: int


# ---------------------------------------------------------------------------
# Employee deductions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolidarityBand:
    """One row of the graduated solidarity (FSP) table.

    Covers SMMLV multiples in ``[lower_multiple, upper_multiple)``; an
    ``upper_multiple`` of None is open-ended.
    """

    lower_multiple: Decimal
    upper_multiple: Decimal | None
    rate: Decimal

    def contains(self, multiple: Decimal) -> bool:
        if multiple < self.lower_multiple:
            return False
        return self.upper_multiple is None or multiple < self.upper_multiple


@dataclass(frozen=True)
class EmployeeDeductionRates:
    health: Decimal
    pension: Decimal
    solidarity_threshold_multiple: Decimal
    solidarity_bands: tuple[SolidarityBand, ...]

    def solidarity_rate(self, multiple: Decimal) -> Decimal:
        """Rate for a base of ``multiple`` SMMLV; zero at or below threshold."""
        if multiple <= self.solidarity_threshold_multiple:
            return Decimal("0")
        for band in self.solidarity_bands:
            if band.contains(multiple):
                return band.rate
        return self.solidarity_bands[-1].rate


# ---------------------------------------------------------------------------
# Employer contributions
# ---------------------------------------------------------------------------


ARL_CLASSES: tuple[str, ...] = ("I", "II", "III", "IV", "V")


@dataclass(frozen=True)
class EmployerContributionRates:
    health: Decimal
    pension: Decimal
    arl: dict[str, Decimal]
    severance: Decimal
    severance_interest: Decimal  # fraction of the severance line
    service_bonus: Decimal
    vacation: Decimal

    def arl_rate(self, risk_class: str) -> Decimal:
        return self.arl[risk_class]


@dataclass(frozen=True)
class ParafiscalRates:
    sena: Decimal
    icbf: Decimal
    compensation_fund: Decimal


@dataclass(frozen=True)
class Law1141Exemption:
    """Employer exemption for bases below ``max_base_multiple`` SMMLV."""

    enabled: bool
    max_base_multiple: Decimal
    exempt_health: bool
    exempt_sena: bool
    exempt_icbf: bool


@dataclass(frozen=True)
class ContributionCaps:
    floor_multiple: Decimal
    cap_multiple: Decimal


@dataclass(frozen=True)
class AllowanceRules:
    transport_allowance: Decimal
    connectivity_allowance: Decimal
    ceiling_multiple: Decimal


# ---------------------------------------------------------------------------
# Rate Table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateTable:
    """Legal parameters for one calendar year."""

    year: int
    effective_date: date
    minimum_wage: Decimal
    uvt: Decimal
    allowances: AllowanceRules
    hours: HourRules
    night_window: NightWindow
    employee: EmployeeDeductionRates
    employer: EmployerContributionRates
    parafiscales: ParafiscalRates
    law_1141: Law1141Exemption
    caps: ContributionCaps
    checksum: str = ""

    @property
    def transport_ceiling(self) -> Decimal:
        return self.minimum_wage * self.allowances.ceiling_multiple

    @property
    def solidarity_threshold(self) -> Decimal:
        return self.minimum_wage * self.employee.solidarity_threshold_multiple

    def smmlv_multiple(self, amount: Decimal) -> Decimal:
        return amount / self.minimum_wage
