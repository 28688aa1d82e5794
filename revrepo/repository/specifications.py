"""Query Specification Pattern Implementation.

Provides the predicate-query capability of revision repositories:
- Specification pattern for query building
- Logical operators (AND, OR, NOT)
- Field-based specifications over mapped attributes
- Translation to SQLAlchemy boolean clauses and in-memory evaluation
- The ``PredicateExecutor`` repository capability
"""

import re
from abc import ABC, abstractmethod
from enum import Enum

import typing as t
from datetime import date, datetime
from sqlalchemy import and_, not_, or_
from sqlalchemy.sql.elements import ColumnElement
from typing import Any, Generic

from ._base import Page, PaginationInfo, SortCriteria, T


class ComparisonOperator(Enum):
    """Comparison operators for specifications."""

    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    GREATER_THAN_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL = "lte"
    IN = "in"
    NOT_IN = "not_in"
    LIKE = "like"
    ILIKE = "ilike"  # Case-insensitive like
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    BETWEEN = "between"


class Specification(ABC):
    """Abstract base class for query specifications.

    Specifications represent query criteria that can be combined
    using logical operators to build complex queries.
    """

    @abstractmethod
    def to_expression(self, entity_type: type[Any]) -> ColumnElement[bool]:
        """Convert specification to a SQLAlchemy boolean clause.

        Args:
            entity_type: Mapped class whose attributes the fields refer to

        Returns:
            Clause usable in ``select(entity_type).where(...)``
        """

    @abstractmethod
    def is_satisfied_by(self, candidate: Any) -> bool:
        """Evaluate the specification against an object in memory."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert specification to dictionary representation."""

    def __and__(self, other: "Specification") -> "AndSpecification":
        """Combine specifications with AND operator."""
        return AndSpecification([self, other])

    def __or__(self, other: "Specification") -> "OrSpecification":
        """Combine specifications with OR operator."""
        return OrSpecification([self, other])

    def __invert__(self) -> "NotSpecification":
        """Negate specification with NOT operator."""
        return NotSpecification(self)


class FieldSpecification(Specification):
    """Specification for field-based queries."""

    def __init__(self, field: str, operator: ComparisonOperator, value: Any) -> None:
        self.field = field
        self.operator = operator
        self.value = value
        if operator == ComparisonOperator.BETWEEN and (
            not isinstance(value, list | tuple) or len(value) != 2
        ):
            msg = "BETWEEN operator requires a list/tuple of 2 values"
            raise ValueError(msg)

    def to_expression(self, entity_type: type[Any]) -> ColumnElement[bool]:  # noqa: C901
        """Convert to a SQLAlchemy clause using match statement for operator dispatch."""
        column = self._get_attribute(entity_type)

        match self.operator:
            case ComparisonOperator.EQUALS:
                return column == self.value
            case ComparisonOperator.NOT_EQUALS:
                return column != self.value
            case ComparisonOperator.GREATER_THAN:
                return column > self.value
            case ComparisonOperator.GREATER_THAN_OR_EQUAL:
                return column >= self.value
            case ComparisonOperator.LESS_THAN:
                return column < self.value
            case ComparisonOperator.LESS_THAN_OR_EQUAL:
                return column <= self.value
            case ComparisonOperator.IN:
                return column.in_(self._as_list())
            case ComparisonOperator.NOT_IN:
                return column.not_in(self._as_list())
            case ComparisonOperator.LIKE:
                return column.like(self.value)
            case ComparisonOperator.ILIKE:
                return column.ilike(self.value)
            case ComparisonOperator.CONTAINS:
                return column.contains(self.value, autoescape=True)
            case ComparisonOperator.STARTS_WITH:
                return column.startswith(self.value, autoescape=True)
            case ComparisonOperator.ENDS_WITH:
                return column.endswith(self.value, autoescape=True)
            case ComparisonOperator.IS_NULL:
                return column.is_(None)
            case ComparisonOperator.IS_NOT_NULL:
                return column.is_not(None)
            case ComparisonOperator.BETWEEN:
                return column.between(self.value[0], self.value[1])

        msg = f"Unsupported operator: {self.operator}"
        raise ValueError(msg)

    def is_satisfied_by(self, candidate: Any) -> bool:  # noqa: C901
        """Evaluate in memory using match statement for operator dispatch."""
        actual = getattr(candidate, self.field, None)

        match self.operator:
            case ComparisonOperator.EQUALS:
                return bool(actual == self.value)
            case ComparisonOperator.NOT_EQUALS:
                return bool(actual != self.value)
            case ComparisonOperator.IS_NULL:
                return actual is None
            case ComparisonOperator.IS_NOT_NULL:
                return actual is not None
            case ComparisonOperator.IN:
                return actual in self._as_list()
            case ComparisonOperator.NOT_IN:
                return actual not in self._as_list()

        # SQL comparison semantics: NULL never matches an ordering or pattern
        if actual is None:
            return False

        match self.operator:
            case ComparisonOperator.GREATER_THAN:
                return bool(actual > self.value)
            case ComparisonOperator.GREATER_THAN_OR_EQUAL:
                return bool(actual >= self.value)
            case ComparisonOperator.LESS_THAN:
                return bool(actual < self.value)
            case ComparisonOperator.LESS_THAN_OR_EQUAL:
                return bool(actual <= self.value)
            case ComparisonOperator.LIKE:
                return self._like_pattern().fullmatch(str(actual)) is not None
            case ComparisonOperator.ILIKE:
                return (
                    self._like_pattern(re.IGNORECASE).fullmatch(str(actual)) is not None
                )
            case ComparisonOperator.CONTAINS:
                return str(self.value) in str(actual)
            case ComparisonOperator.STARTS_WITH:
                return str(actual).startswith(str(self.value))
            case ComparisonOperator.ENDS_WITH:
                return str(actual).endswith(str(self.value))
            case ComparisonOperator.BETWEEN:
                return bool(self.value[0] <= actual <= self.value[1])

        msg = f"Unsupported operator: {self.operator}"
        raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": "field",
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
        }

    def _get_attribute(self, entity_type: type[Any]) -> t.Any:
        attribute = getattr(entity_type, self.field, None)
        if attribute is None or not hasattr(attribute, "property"):
            entity_name = getattr(entity_type, "__name__", str(entity_type))
            msg = f"{entity_name} has no mapped attribute {self.field!r}"
            raise ValueError(msg)
        return attribute

    def _as_list(self) -> list[Any]:
        if isinstance(self.value, list | tuple | set | frozenset):
            return list(self.value)
        return [self.value]

    def _like_pattern(self, flags: int = 0) -> re.Pattern[str]:
        """Convert a SQL LIKE pattern to a regex."""
        pattern = "".join(
            ".*" if char == "%" else "." if char == "_" else re.escape(char)
            for char in str(self.value)
        )
        return re.compile(pattern, flags | re.DOTALL)

    def __repr__(self) -> str:
        return f"FieldSpecification({self.field!r}, {self.operator.value}, {self.value!r})"


class AndSpecification(Specification):
    """Specification for AND operations."""

    def __init__(self, specifications: list[Specification]) -> None:
        self.specifications = specifications

    def to_expression(self, entity_type: type[Any]) -> ColumnElement[bool]:
        return and_(*(spec.to_expression(entity_type) for spec in self.specifications))

    def is_satisfied_by(self, candidate: Any) -> bool:
        return all(spec.is_satisfied_by(candidate) for spec in self.specifications)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "and",
            "specifications": [spec.to_dict() for spec in self.specifications],
        }


class OrSpecification(Specification):
    """Specification for OR operations."""

    def __init__(self, specifications: list[Specification]) -> None:
        self.specifications = specifications

    def to_expression(self, entity_type: type[Any]) -> ColumnElement[bool]:
        return or_(*(spec.to_expression(entity_type) for spec in self.specifications))

    def is_satisfied_by(self, candidate: Any) -> bool:
        return any(spec.is_satisfied_by(candidate) for spec in self.specifications)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "or",
            "specifications": [spec.to_dict() for spec in self.specifications],
        }


class NotSpecification(Specification):
    """Specification for NOT operations."""

    def __init__(self, specification: Specification) -> None:
        self.specification = specification

    def to_expression(self, entity_type: type[Any]) -> ColumnElement[bool]:
        return not_(self.specification.to_expression(entity_type))

    def is_satisfied_by(self, candidate: Any) -> bool:
        return not self.specification.is_satisfied_by(candidate)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "not", "specification": self.specification.to_dict()}


Predicate = Specification | ColumnElement[bool]


def to_clause(predicate: Predicate, entity_type: type[Any]) -> ColumnElement[bool]:
    """Turn a specification or a ready-made SQLAlchemy clause into a clause."""
    if isinstance(predicate, Specification):
        return predicate.to_expression(entity_type)
    if isinstance(predicate, ColumnElement):
        return predicate
    msg = f"Unsupported predicate type: {type(predicate).__name__}"
    raise TypeError(msg)


class PredicateExecutor(ABC, Generic[T]):
    """Repository capability for querying with composable predicates.

    Predicates are :class:`Specification` objects or SQLAlchemy boolean
    clauses such as ``Country.name == "Deutschland"``.
    """

    @abstractmethod
    def find_one(self, predicate: Predicate) -> T | None:
        """Return the single entity matching the predicate.

        Returns:
            The entity, or None if nothing matches

        Raises:
            IncorrectResultSizeError: If more than one entity matches
        """

    @abstractmethod
    def find_all_by(
        self,
        predicate: Predicate,
        sort: list[SortCriteria] | None = None,
    ) -> list[T]:
        """Return every entity matching the predicate."""

    @abstractmethod
    def find_page_by(
        self,
        predicate: Predicate,
        pagination: PaginationInfo,
        sort: list[SortCriteria] | None = None,
    ) -> Page[T]:
        """Return one page of the entities matching the predicate."""

    @abstractmethod
    def count_by(self, predicate: Predicate) -> int:
        """Count entities matching the predicate."""

    def exists_by(self, predicate: Predicate) -> bool:
        """Check whether any entity matches the predicate."""
        return self.count_by(predicate) > 0


# Convenience functions for creating specifications
def equals(field: str, value: Any) -> FieldSpecification:
    """Create equals specification."""
    return FieldSpecification(field, ComparisonOperator.EQUALS, value)


def not_equals(field: str, value: Any) -> FieldSpecification:
    """Create not equals specification."""
    return FieldSpecification(field, ComparisonOperator.NOT_EQUALS, value)


def greater_than(field: str, value: Any) -> FieldSpecification:
    """Create greater than specification."""
    return FieldSpecification(field, ComparisonOperator.GREATER_THAN, value)


def greater_than_or_equal(field: str, value: Any) -> FieldSpecification:
    """Create greater than or equal specification."""
    return FieldSpecification(field, ComparisonOperator.GREATER_THAN_OR_EQUAL, value)


def less_than(field: str, value: Any) -> FieldSpecification:
    """Create less than specification."""
    return FieldSpecification(field, ComparisonOperator.LESS_THAN, value)


def less_than_or_equal(field: str, value: Any) -> FieldSpecification:
    """Create less than or equal specification."""
    return FieldSpecification(field, ComparisonOperator.LESS_THAN_OR_EQUAL, value)


def in_values(field: str, values: list[Any]) -> FieldSpecification:
    """Create IN specification."""
    return FieldSpecification(field, ComparisonOperator.IN, values)


def not_in_values(field: str, values: list[Any]) -> FieldSpecification:
    """Create NOT IN specification."""
    return FieldSpecification(field, ComparisonOperator.NOT_IN, values)


def like(field: str, pattern: str) -> FieldSpecification:
    """Create LIKE specification."""
    return FieldSpecification(field, ComparisonOperator.LIKE, pattern)


def ilike(field: str, pattern: str) -> FieldSpecification:
    """Create case-insensitive LIKE specification."""
    return FieldSpecification(field, ComparisonOperator.ILIKE, pattern)


def contains(field: str, value: str) -> FieldSpecification:
    """Create contains specification."""
    return FieldSpecification(field, ComparisonOperator.CONTAINS, value)


def starts_with(field: str, value: str) -> FieldSpecification:
    """Create starts with specification."""
    return FieldSpecification(field, ComparisonOperator.STARTS_WITH, value)


def ends_with(field: str, value: str) -> FieldSpecification:
    """Create ends with specification."""
    return FieldSpecification(field, ComparisonOperator.ENDS_WITH, value)


def is_null(field: str) -> FieldSpecification:
    """Create IS NULL specification."""
    return FieldSpecification(field, ComparisonOperator.IS_NULL, None)


def is_not_null(field: str) -> FieldSpecification:
    """Create IS NOT NULL specification."""
    return FieldSpecification(field, ComparisonOperator.IS_NOT_NULL, None)


def between(field: str, start: Any, end: Any) -> FieldSpecification:
    """Create BETWEEN specification."""
    return FieldSpecification(field, ComparisonOperator.BETWEEN, [start, end])


def date_range(field: str, start_date: date, end_date: date) -> FieldSpecification:
    """Create date range specification."""
    return between(field, start_date, end_date)


def datetime_range(
    field: str,
    start_datetime: datetime,
    end_datetime: datetime,
) -> FieldSpecification:
    """Create datetime range specification."""
    return between(field, start_datetime, end_datetime)


def and_specs(*specifications: Specification) -> AndSpecification:
    """Create AND specification from multiple specifications."""
    return AndSpecification(list(specifications))


def or_specs(*specifications: Specification) -> OrSpecification:
    """Create OR specification from multiple specifications."""
    return OrSpecification(list(specifications))


def not_spec(specification: Specification) -> NotSpecification:
    """Create NOT specification."""
    return NotSpecification(specification)
