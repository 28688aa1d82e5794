"""Predicate-query implementations.

``SQLAlchemyPredicateExecutor`` supplies the :class:`PredicateExecutor`
operations to any repository implementation exposing ``session``,
``entity_type`` and the ``_operation`` error boundary.
"""

import typing as t
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement
from typing import Any

from ._base import ID, IncorrectResultSizeError, Page, PaginationInfo, SortCriteria, T
from .history import N
from .revision import SQLAlchemyRevisionRepository
from .simple import SQLAlchemyRepository
from .specifications import Predicate, PredicateExecutor, to_clause


class SQLAlchemyPredicateExecutor(PredicateExecutor[T]):
    """Predicate queries translated to SQLAlchemy ``select`` statements."""

    session: Session
    entity_type: type[T]
    entity_name: str

    if t.TYPE_CHECKING:

        def _operation(self, operation: str) -> t.ContextManager[None]: ...
        def _order_by(self, sort: list[SortCriteria] | None) -> list[ColumnElement[Any]]: ...
        def _check_page_size(self, pagination: PaginationInfo) -> None: ...

    def _where(self, predicate: Predicate) -> ColumnElement[bool]:
        return to_clause(predicate, self.entity_type)

    def find_one(self, predicate: Predicate) -> T | None:
        clause = self._where(predicate)
        with self._operation("find_one"):
            results = self.session.scalars(select(self.entity_type).where(clause).limit(2)).all()
            if len(results) > 1:
                raise IncorrectResultSizeError(self.entity_name, 1)
            return results[0] if results else None

    def find_all_by(
        self,
        predicate: Predicate,
        sort: list[SortCriteria] | None = None,
    ) -> list[T]:
        clause = self._where(predicate)
        order_by = self._order_by(sort)
        with self._operation("find_all_by"):
            return list(
                self.session.scalars(
                    select(self.entity_type).where(clause).order_by(*order_by)
                ).all()
            )

    def find_page_by(
        self,
        predicate: Predicate,
        pagination: PaginationInfo,
        sort: list[SortCriteria] | None = None,
    ) -> Page[T]:
        self._check_page_size(pagination)
        clause = self._where(predicate)
        order_by = self._order_by(sort)
        with self._operation("find_page_by"):
            total = self._count(clause)
            content = self.session.scalars(
                select(self.entity_type)
                .where(clause)
                .order_by(*order_by)
                .offset(pagination.offset)
                .limit(pagination.page_size)
            ).all()
            return Page(content=list(content), pagination=pagination.with_total(total))

    def count_by(self, predicate: Predicate) -> int:
        clause = self._where(predicate)
        with self._operation("count_by"):
            return self._count(clause)

    def _count(self, clause: ColumnElement[bool]) -> int:
        statement = select(func.count()).select_from(self.entity_type).where(clause)
        return self.session.scalar(statement) or 0


class PredicateRepository(SQLAlchemyRepository[T, ID], SQLAlchemyPredicateExecutor[T]):
    """CRUD repository with predicate queries."""


class PredicateRevisionRepository(
    SQLAlchemyRevisionRepository[T, ID, N], SQLAlchemyPredicateExecutor[T]
):
    """Revision repository with predicate queries over the current state."""
