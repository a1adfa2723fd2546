"""Tests for engine/session management (payroll_kernel.db.engine) and the DB base."""

from datetime import date, time
from uuid import UUID

import pytest
from sqlalchemy import inspect

from payroll_kernel.db.engine import (
    drop_tables,
    get_engine,
    get_session,
    reset_engine,
    session_scope,
)
from payroll_modules.orm import TimeEntryModel


def _entry(**overrides) -> TimeEntryModel:
    fields = {
        "employee_id": "EMP-1",
        "work_date": date(2025, 3, 3),
        "arrival_time": time(7, 0),
        "departure_time": time(15, 30),
    }
    fields.update(overrides)
    return TimeEntryModel(**fields)


class TestUninitialized:

    def test_accessors_raise_before_init(self):
        reset_engine()
        with pytest.raises(RuntimeError, match="init_engine_from_url"):
            get_engine()
        with pytest.raises(RuntimeError, match="init_engine_from_url"):
            get_session()


class TestSessionScope:

    def test_commits_on_success(self, db_engine):
        with session_scope() as session:
            session.add(_entry())

        with session_scope() as session:
            row = session.query(TimeEntryModel).one()
            assert isinstance(row.id, UUID)
            assert row.created_at is not None

    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(_entry())
                session.flush()
                raise ValueError("abort")

        with session_scope() as session:
            assert session.query(TimeEntryModel).count() == 0


class TestTables:

    def test_create_and_drop(self, db_engine):
        assert {"time_entries", "payroll_details"} <= set(inspect(db_engine).get_table_names())
        drop_tables()
        assert inspect(db_engine).get_table_names() == []
