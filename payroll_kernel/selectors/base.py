"""
Module: payroll_kernel.selectors.base
Responsibility: Common base for read-only query objects over the payroll
    tables.
Architecture position: Kernel > Selectors.  May import from db/base.py.

Invariants enforced:
    - Read-only: a selector runs SELECT statements on the caller's session
      and never adds, deletes, flushes or commits.
    - Rows leave a selector as frozen DTOs produced by the model's
      ``to_dto()``, never as ORM instances.
"""

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import Session

from payroll_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Holds the caller's session; subclasses define the queries."""

    def __init__(self, session: Session):
        self.session = session

    def _rows(self, stmt: Select) -> list[ModelType]:
        return list(self.session.execute(stmt).scalars().all())

    def _first(self, stmt: Select) -> ModelType | None:
        return self.session.execute(stmt).scalar_one_or_none()

    def _dtos(self, stmt: Select) -> list[Any]:
        return [row.to_dto() for row in self._rows(stmt)]
