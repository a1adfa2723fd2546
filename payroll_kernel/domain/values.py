"""
Values -- Decimal rounding rules shared by every payroll computation.

Responsibility:
    Single home for the quantization conventions of the engine: hours are
    carried to hundredths of an hour, hourly rates to four places and money
    lines to cents. Every layer rounds through these helpers so two call
    sites can never disagree on a result.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: ``to_decimal`` rejects ``float`` so binary
      rounding noise never enters a payroll figure.
    - ROUND_HALF_UP everywhere (statutory rounding convention).

Failure modes:
    - TypeError when a float or unsupported type reaches ``to_decimal``.
    - ValueError when a string is not a decimal literal.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
HOURS_QUANTUM = Decimal("0.01")
RATE_QUANTUM = Decimal("0.0001")
MONEY_QUANTUM = Decimal("0.01")
MINUTES_PER_HOUR = Decimal("60")


def to_decimal(value: Any) -> Decimal:
    """Convert an int, str or Decimal into Decimal; ``None`` becomes zero.

    Floats are refused: callers holding a float must convert via ``str()``
    deliberately.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric payroll value")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal literal: {value!r}") from exc
    if isinstance(value, float):
        raise TypeError(
            f"float {value!r} is not accepted; pass a Decimal or a string"
        )
    raise TypeError(f"Unsupported numeric type: {type(value).__name__}")


def quantize_hours(value: Decimal) -> Decimal:
    return value.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal) -> Decimal:
    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: int) -> Decimal:
    """Whole minutes to hours, quantized to hundredths."""
    return quantize_hours(Decimal(minutes) / MINUTES_PER_HOUR)
