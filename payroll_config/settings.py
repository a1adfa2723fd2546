"""
Runtime settings for a payroll deployment.

Legal parameters live in the year-versioned Rate Tables; this schema only
covers how the engine is run (where the tables are, how wide the fan-out
is, which database the reference stores use).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Self

from payroll_kernel.logging_config import get_logger

logger = get_logger("config.settings")

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class PayrollSettings:
    """
    Settings for the period processor and its stores.

    Consumed by ``PeriodProcessor.from_settings``::

        settings = PayrollSettings.from_dict(yaml.safe_load(path.read_text()))
        processor = PeriodProcessor.from_settings(settings, personnel)
    """

    # Rate Tables (None = bundled payroll_config/sets)
    rate_table_dir: Path | None = None

    # Fan-out over the roster; 1 runs employees sequentially
    max_workers: int = 4

    # Reference SQL stores
    database_url: str = "sqlite:///:memory:"

    # Logging
    log_level: str = "INFO"

    # Treat compliance violations as a per-employee failure
    fail_on_violation: bool = False

    def __post_init__(self):
        if self.rate_table_dir is not None:
            self.rate_table_dir = Path(self.rate_table_dir)
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not self.database_url:
            raise ValueError("database_url cannot be empty")
        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'"
            )

        logger.info(
            "payroll_settings_initialized",
            extra={
                "rate_table_dir": str(self.rate_table_dir) if self.rate_table_dir else None,
                "max_workers": self.max_workers,
                "log_level": self.log_level,
                "fail_on_violation": self.fail_on_violation,
            },
        )

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create settings from a dictionary (e.g., parsed from a file)."""
        logger.info(
            "payroll_settings_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown payroll settings: {', '.join(unknown)}")
        return cls(**known)
