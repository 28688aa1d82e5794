"""Mapper-derived metadata about a repository's domain type."""

import typing as t
from sqlalchemy import and_, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper
from sqlalchemy.sql.elements import ColumnElement
from typing import Any, Generic

from ..config_errors import RepositoryConfigurationError
from ..versioning import is_versioned
from ._base import ID, T


class SQLAlchemyEntityInformation(Generic[T, ID]):
    """Identifier and naming information for a mapped domain class.

    Composite primary keys are exposed as tuples in mapper column order.
    """

    def __init__(self, entity_type: type[T]) -> None:
        try:
            mapper = inspect(entity_type)
        except NoInspectionAvailable as e:
            msg = f"{entity_type!r} is not a mapped class"
            raise RepositoryConfigurationError(msg) from e
        if not isinstance(mapper, Mapper):
            msg = f"{entity_type!r} is not a mapped class"
            raise RepositoryConfigurationError(msg)

        self.entity_type = entity_type
        self.mapper: Mapper[T] = mapper
        self.entity_name: str = entity_type.__name__
        self.id_attribute_names: tuple[str, ...] = tuple(
            mapper.get_property_by_column(column).key for column in mapper.primary_key
        )

    @property
    def has_composite_id(self) -> bool:
        return len(self.id_attribute_names) > 1

    @property
    def id_type(self) -> type[Any] | None:
        """Python type of a single-column identifier, None for composite ids."""
        if self.has_composite_id:
            return tuple
        try:
            return self.mapper.primary_key[0].type.python_type
        except NotImplementedError:
            return None

    def get_id(self, entity: T) -> ID | None:
        values = tuple(getattr(entity, name, None) for name in self.id_attribute_names)
        if all(value is None for value in values):
            return None
        if not self.has_composite_id:
            return t.cast("ID", values[0])
        return t.cast("ID", values)

    def is_new(self, entity: T) -> bool:
        state = inspect(entity)
        if state.persistent or state.detached:
            return False
        return self.get_id(entity) is None

    @property
    def is_versioned(self) -> bool:
        return is_versioned(self.entity_type)

    def id_values(self, entity_id: ID) -> tuple[Any, ...]:
        if not self.has_composite_id:
            return (entity_id,)
        values = tuple(t.cast("t.Iterable[Any]", entity_id))
        if len(values) != len(self.id_attribute_names):
            msg = (
                f"{self.entity_name} has a composite id of "
                f"{len(self.id_attribute_names)} columns, got {entity_id!r}"
            )
            raise ValueError(msg)
        return values

    def id_criteria(self, target_cls: type[Any], entity_id: ID) -> ColumnElement[bool]:
        """Clause matching ``entity_id`` on ``target_cls``.

        ``target_cls`` is the domain class itself or a class sharing its
        identifier attribute names, such as its version class.
        """
        return and_(
            *(
                getattr(target_cls, name) == value
                for name, value in zip(
                    self.id_attribute_names, self.id_values(entity_id), strict=True
                )
            )
        )

    def __repr__(self) -> str:
        return f"SQLAlchemyEntityInformation({self.entity_name}, id={self.id_attribute_names})"
