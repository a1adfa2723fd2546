"""
Rate Table registry.

Maps calendar years to loaded ``RateTable`` values. Built once by the
caller (usually the period processor's owner) and then passed around
explicitly; the registry itself holds no process-wide state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from payroll_config.loader import load_rate_table
from payroll_config.schema import RateTable
from payroll_kernel.exceptions import InvalidRateTableError, RateTableNotFoundError

DEFAULT_SETS_DIR = Path(__file__).parent / "sets"


class RateTableRegistry:
    """Year-keyed collection of Rate Tables."""

    def __init__(self, tables: Iterable[RateTable] = ()):
        self._tables: dict[int, RateTable] = {}
        for table in tables:
            if table.year in self._tables:
                raise InvalidRateTableError(
                    f"year {table.year}", ["duplicate rate table for year"]
                )
            self._tables[table.year] = table

    @classmethod
    def from_directory(cls, sets_dir: Path | None = None) -> "RateTableRegistry":
        """Load every ``<year>.yaml`` document in ``sets_dir``."""
        directory = Path(sets_dir) if sets_dir is not None else DEFAULT_SETS_DIR
        if not directory.is_dir():
            raise FileNotFoundError(f"Rate table directory not found: {directory}")
        tables = []
        for path in sorted(directory.glob("*.yaml")):
            table = load_rate_table(path)
            if path.stem.isdigit() and int(path.stem) != table.year:
                raise InvalidRateTableError(
                    str(path),
                    [f"file name says {path.stem} but document says {table.year}"],
                )
            tables.append(table)
        return cls(tables)

    @property
    def years(self) -> tuple[int, ...]:
        return tuple(sorted(self._tables))

    def for_year(self, year: int) -> RateTable:
        """
        Return the table for ``year``.

        Raises:
            RateTableNotFoundError: no table for that year. There is no
                fallback to a neighbouring year.
        """
        try:
            return self._tables[year]
        except KeyError:
            raise RateTableNotFoundError(year, self.years) from None

    def __contains__(self, year: object) -> bool:
        return year in self._tables

    def __len__(self) -> int:
        return len(self._tables)
