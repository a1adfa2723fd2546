#!/usr/bin/env python3
"""
Preview how one day's clock times will be classified before recording them.

Runs the same ``decompose_shift`` the time-entry service uses, so the
preview and the stored entry can never disagree.

Usage:
  python3 scripts/preview_shift.py 07:00 15:30
  python3 scripts/preview_shift.py 20:00 05:00 --no-lunch --year 2024
  python3 scripts/preview_shift.py 07:00 17:00 --expected-arrival 06:45 --salary 1300000
  python3 scripts/preview_shift.py 06:00 14:00 --daily-rate 60000 --json

Output: elapsed, regular, overtime and night hours, late minutes, warnings
and, when a salary or daily rate is given, the day's estimated pay lines.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from payroll_config import get_rate_table
from payroll_engines.payroll_calculator import hourly_rate_for, pay_lines_for
from payroll_engines.time_decomposition import decompose_shift
from payroll_kernel.domain.values import to_decimal
from payroll_kernel.exceptions import PayrollEngineError
from payroll_modules.models import CompensationBasis, ShiftDecomposition


def _pay_lines(result: ShiftDecomposition, basis: CompensationBasis, rate_table) -> dict:
    hourly = hourly_rate_for(basis, rate_table)
    pay = pay_lines_for(hourly, result, rate_table)
    return {
        "hourly_rate": hourly,
        "regular_pay": pay.regular_pay,
        "overtime_pay": pay.overtime_pay,
        "night_pay": pay.night_pay,
    }


def _render(result: ShiftDecomposition, pay: dict | None) -> str:
    lines = [
        f"Shift            {result.arrival:%H:%M} - {result.departure:%H:%M}"
        + ("  (crosses midnight)" if result.crosses_midnight else ""),
        f"Lunch deducted   {'yes' if result.lunch_deducted else 'no'}",
        f"Elapsed hours    {result.elapsed_hours}",
        f"Regular hours    {result.regular_hours}",
        f"Overtime hours   {result.overtime_hours}",
        f"Night hours      {result.night_hours}",
        f"Late minutes     {result.late_minutes}",
    ]
    if pay:
        lines.append("")
        for name, value in pay.items():
            lines.append(f"{name.replace('_', ' ').capitalize():<17}{value}")
    for warning in result.warnings:
        lines.append(f"WARNING [{warning.code}] {warning.message}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Preview the hour classification of a single shift.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("arrival", help="Arrival clock time, HH:MM")
    parser.add_argument("departure", help="Departure clock time, HH:MM")
    parser.add_argument(
        "--no-lunch",
        action="store_true",
        help="Do not deduct the lunch hour",
    )
    parser.add_argument(
        "--expected-arrival",
        default=None,
        help="Scheduled arrival, HH:MM, for late-minute reporting",
    )
    parser.add_argument(
        "--year",
        type=int,
        default=2025,
        help="Rate Table year (default: 2025)",
    )
    parser.add_argument(
        "--rate-table-dir",
        type=Path,
        default=None,
        help="Directory of <year>.yaml Rate Tables (default: bundled sets)",
    )
    basis = parser.add_mutually_exclusive_group()
    basis.add_argument("--salary", default=None, help="Monthly salary base")
    basis.add_argument("--daily-rate", default=None, help="Daily rate")
    parser.add_argument("--json", action="store_true", help="Emit JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        rate_table = get_rate_table(args.year, args.rate_table_dir)
        result = decompose_shift(
            args.arrival,
            args.departure,
            not args.no_lunch,
            rate_table,
            expected_arrival=args.expected_arrival,
        )
        pay = None
        if args.salary is not None:
            pay = _pay_lines(result, CompensationBasis.monthly(to_decimal(args.salary)), rate_table)
        elif args.daily_rate is not None:
            pay = _pay_lines(result, CompensationBasis.daily(to_decimal(args.daily_rate)), rate_table)
    except (PayrollEngineError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.json:
        payload = {
            "arrival": result.arrival.isoformat(timespec="minutes"),
            "departure": result.departure.isoformat(timespec="minutes"),
            "crosses_midnight": result.crosses_midnight,
            "elapsed_hours": str(result.elapsed_hours),
            "regular_hours": str(result.regular_hours),
            "overtime_hours": str(result.overtime_hours),
            "night_hours": str(result.night_hours),
            "late_minutes": result.late_minutes,
            "warnings": [w.code for w in result.warnings],
        }
        if pay:
            payload["pay"] = {k: str(v) for k, v in pay.items()}
        print(json.dumps(payload, indent=2))
    else:
        print(_render(result, pay))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
