"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured log capture
- The bundled 2024 and 2025 Rate Tables
- In-memory SQLite sessions for the persistence adapters
- Builders for employees, buckets and period totals
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from payroll_config import RateTableRegistry
from payroll_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_modules.models import (
    ArlRiskClass,
    CompensationBasis,
    Employee,
    PeriodTotals,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, rate_table_2025):
            decompose_shift("07:00", "15:30", True, rate_table_2025)
            logs = captured_logs()
            assert any(r["message"] == "PAYROLL_ENGINE_TRACE" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Rate Tables
# =============================================================================


@pytest.fixture(scope="session")
def rate_tables() -> RateTableRegistry:
    return RateTableRegistry.from_directory()


@pytest.fixture(scope="session")
def rate_table_2024(rate_tables):
    return rate_tables.for_year(2024)


@pytest.fixture(scope="session")
def rate_table_2025(rate_tables):
    return rate_tables.for_year(2025)


# =============================================================================
# Database fixtures (in-memory SQLite)
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


# =============================================================================
# Builders
# =============================================================================


def make_employee(
    employee_id: str = "EMP-001",
    salary="1300000",
    *,
    daily_rate=None,
    arl_risk_class: ArlRiskClass = ArlRiskClass.I,
    department: str = "welding",
    telework: bool = False,
    **kwargs,
) -> Employee:
    basis = (
        CompensationBasis.daily(daily_rate)
        if daily_rate is not None
        else CompensationBasis.monthly(salary)
    )
    return Employee(
        id=employee_id,
        name=f"Worker {employee_id}",
        basis=basis,
        arl_risk_class=arl_risk_class,
        department=department,
        telework=telework,
        **kwargs,
    )


def make_totals(
    employee_id: str = "EMP-001",
    start: date = date(2025, 3, 1),
    end: date = date(2025, 3, 31),
    regular="160.6",
    overtime="0",
    night="0",
) -> PeriodTotals:
    regular_d = Decimal(regular)
    overtime_d = Decimal(overtime)
    return PeriodTotals(
        employee_id=employee_id,
        period_start=start,
        period_end=end,
        regular_hours=regular_d,
        overtime_hours=overtime_d,
        night_hours=Decimal(night),
        elapsed_hours=regular_d + overtime_d,
        days_worked=22,
    )


@pytest.fixture
def employee_factory():
    return make_employee


@pytest.fixture
def totals_factory():
    return make_totals
