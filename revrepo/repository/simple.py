"""SQLAlchemy-backed CRUD repository."""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import Select, func, inspect, or_, select
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement
from typing import Any

from ..config import RepositorySettings, get_settings
from ..logger import logger
from ._base import (
    ID,
    CrudRepository,
    IncorrectResultSizeError,
    PaginationInfo,
    RepositoryError,
    SortCriteria,
    SortDirection,
    T,
)
from .entity_information import SQLAlchemyEntityInformation


class SQLAlchemyRepository(CrudRepository[T, ID]):
    """CRUD operations over a SQLAlchemy ``Session``.

    Provides common functionality for the repository implementations:
    - Persisting new entities and merging detached ones
    - Commit or flush after writes, depending on ``auto_commit``
    - Translation of SQLAlchemy errors into ``RepositoryError``
    - Per-operation success/error counters
    """

    def __init__(
        self,
        entity_information: SQLAlchemyEntityInformation[T, ID],
        session: Session,
        settings: RepositorySettings | None = None,
    ) -> None:
        self.entity_information = entity_information
        self.entity_type: type[T] = entity_information.entity_type
        self.entity_name = entity_information.entity_name
        self.session = session
        self.settings = settings or get_settings(RepositorySettings)
        self._metrics: dict[str, int] = {}

    def _increment_metric(self, operation: str, success: bool = True) -> None:
        """Track operation metrics."""
        metric_key = f"{operation}_{'success' if success else 'error'}"
        self._metrics[metric_key] = self._metrics.get(metric_key, 0) + 1

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        """Count the operation and translate SQLAlchemy errors."""
        try:
            yield
        except RepositoryError:
            self._increment_metric(operation, success=False)
            raise
        except MultipleResultsFound as e:
            self._increment_metric(operation, success=False)
            raise IncorrectResultSizeError(self.entity_name, 1) from e
        except SQLAlchemyError as e:
            self._increment_metric(operation, success=False)
            if self.settings.auto_commit:
                self.session.rollback()
            logger.error("{} {} failed: {}", self.entity_name, operation, e)
            msg = f"Repository operation failed: {e}"
            raise RepositoryError(
                msg,
                entity_type=self.entity_name,
                operation=operation,
            ) from e
        self._increment_metric(operation)

    def _write(self) -> None:
        if self.settings.auto_commit:
            self.session.commit()
        else:
            self.session.flush()

    def _order_by(self, sort: list[SortCriteria] | None) -> list[ColumnElement[Any]]:
        clauses = []
        for criteria in sort or []:
            attribute = getattr(self.entity_type, criteria.field, None)
            if attribute is None or not hasattr(attribute, "property"):
                msg = f"{self.entity_name} has no mapped attribute {criteria.field!r}"
                raise ValueError(msg)
            clauses.append(
                attribute.desc() if criteria.direction == SortDirection.DESC else attribute.asc()
            )
        return clauses

    def _check_page_size(self, pagination: PaginationInfo) -> None:
        if pagination.page_size > self.settings.max_page_size:
            msg = (
                f"page_size {pagination.page_size} exceeds max_page_size "
                f"{self.settings.max_page_size}"
            )
            raise ValueError(msg)

    def _select(self) -> Select[tuple[T]]:
        return select(self.entity_type)

    def _reload(self, entity_id: ID) -> T | None:
        """The persistent instance with ``entity_id``, if the row exists."""
        return self.session.get(self.entity_type, entity_id)

    def save(self, entity: T) -> T:
        with self._operation("save"):
            state = inspect(entity)
            if self.entity_information.is_new(entity):
                self.session.add(entity)
                saved = entity
            elif state.persistent:
                saved = entity
            else:
                saved = self.session.merge(entity)
            self._write()
            saved_id = self.entity_information.get_id(saved)
        logger.debug("Saved {} {}", self.entity_name, saved_id)
        return saved

    def find_by_id(self, entity_id: ID) -> T | None:
        with self._operation("find_by_id"):
            return self.session.get(self.entity_type, entity_id)

    def find_all(self, sort: list[SortCriteria] | None = None) -> list[T]:
        order_by = self._order_by(sort)
        with self._operation("find_all"):
            return list(self.session.scalars(self._select().order_by(*order_by)).all())

    def find_all_by_id(self, entity_ids: Iterable[ID]) -> list[T]:
        ids = list(entity_ids)
        if not ids:
            return []
        info = self.entity_information
        if info.has_composite_id:
            criteria = or_(*(info.id_criteria(self.entity_type, entity_id) for entity_id in ids))
        else:
            criteria = getattr(self.entity_type, info.id_attribute_names[0]).in_(ids)
        with self._operation("find_all_by_id"):
            return list(self.session.scalars(self._select().where(criteria)).all())

    def count(self) -> int:
        with self._operation("count"):
            return self.session.scalar(select(func.count()).select_from(self.entity_type)) or 0

    def delete_by_id(self, entity_id: ID) -> bool:
        with self._operation("delete_by_id"):
            entity = self.session.get(self.entity_type, entity_id)
            if entity is None:
                return False
            self.session.delete(entity)
            self._write()
        logger.debug("Deleted {} {}", self.entity_name, entity_id)
        return True

    def delete(self, entity: T) -> None:
        if self.entity_information.is_new(entity):
            return
        entity_id = self.entity_information.get_id(entity)
        with self._operation("delete"):
            target = entity if inspect(entity).persistent else self._reload(entity_id)
            if target is None:
                logger.debug("{} {} not found, nothing to delete", self.entity_name, entity_id)
                return
            self.session.delete(target)
            self._write()
        logger.debug("Deleted {} {}", self.entity_name, entity_id)

    def delete_all(self, entities: Iterable[T] | None = None) -> int:
        with self._operation("delete_all"):
            # ORM deletes, one per row, so each deletion is versioned
            targets = (
                list(self.session.scalars(self._select()).all())
                if entities is None
                else [
                    target
                    for target in (
                        entity
                        if inspect(entity).persistent
                        else self._reload(self.entity_information.get_id(entity))
                        for entity in entities
                        if not self.entity_information.is_new(entity)
                    )
                    if target is not None
                ]
            )
            for entity in targets:
                self.session.delete(entity)
            self._write()
        logger.debug("Deleted {} {} entities", len(targets), self.entity_name)
        return len(targets)

    def flush(self) -> None:
        with self._operation("flush"):
            self.session.flush()

    def get_metrics(self) -> dict[str, Any]:
        """Get repository performance metrics.

        Returns:
            Dictionary of metrics
        """
        return {
            "entity_type": self.entity_name,
            "operations": self._metrics.copy(),
            "settings": {
                "auto_commit": self.settings.auto_commit,
                "default_page_size": self.settings.default_page_size,
                "max_page_size": self.settings.max_page_size,
            },
        }

    def reset_metrics(self) -> None:
        self._metrics.clear()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity_name})"
