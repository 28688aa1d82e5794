"""Repository Base Classes and Interface.

Provides the capability interfaces repository interfaces are declared with:
- ``Repository[T, ID]`` marker fixing the domain and identifier types
- ``CrudRepository[T, ID]`` with the generic persistence operations
- Sorting and pagination value types shared by all repositories
- Error types for repository operations
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from enum import Enum

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

# Type variables for generic repositories
T = TypeVar("T")
ID = TypeVar("ID")


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(
        self,
        message: str,
        entity_type: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.operation = operation
        super().__init__(message)


class EntityNotFoundError(RepositoryError):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            entity_type=entity_type,
            operation="find",
        )
        self.entity_id = entity_id


class IncorrectResultSizeError(RepositoryError):
    """Raised when a single-result query matches more than one row."""

    def __init__(self, entity_type: str, expected: int, actual: int | None = None) -> None:
        actual_text = "more" if actual is None else str(actual)
        super().__init__(
            f"Expected {expected} {entity_type} result(s) but found {actual_text}",
            entity_type=entity_type,
            operation="find_one",
        )
        self.expected = expected
        self.actual = actual


class RevisionDoesNotExistError(RepositoryError):
    """Raised when a revision number is unknown to the revision entity table."""

    def __init__(self, revision_number: Any, entity_type: str | None = None) -> None:
        super().__init__(
            f"Revision {revision_number} does not exist",
            entity_type=entity_type,
            operation="find_revision",
        )
        self.revision_number = revision_number


class SortDirection(Enum):
    """Sort direction enumeration."""

    ASC = "asc"
    DESC = "desc"


@dataclass
class SortCriteria:
    """Sort criteria specification."""

    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class PaginationInfo:
    """Pagination information."""

    page: int = 1
    page_size: int = 50
    total_items: int | None = None
    total_pages: int | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            msg = "page is 1-based and must be positive"
            raise ValueError(msg)
        if self.page_size < 1:
            msg = "page_size must be positive"
            raise ValueError(msg)
        if self.total_items is not None and self.total_pages is None:
            self.total_pages = (self.total_items + self.page_size - 1) // self.page_size

    @property
    def offset(self) -> int:
        """Calculate offset for database queries."""
        return (self.page - 1) * self.page_size

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.total_pages is not None and self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1

    def with_total(self, total_items: int) -> "PaginationInfo":
        return PaginationInfo(
            page=self.page,
            page_size=self.page_size,
            total_items=total_items,
        )


@dataclass
class Page(Generic[T]):
    """One page of query results."""

    content: list[T] = field(default_factory=list)
    pagination: PaginationInfo = field(default_factory=PaginationInfo)

    def __iter__(self) -> Iterator[T]:
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)

    @property
    def total_items(self) -> int | None:
        return self.pagination.total_items

    @property
    def total_pages(self) -> int | None:
        return self.pagination.total_pages

    @property
    def has_next(self) -> bool:
        return self.pagination.has_next


class Repository(ABC, Generic[T, ID]):  # noqa: B024
    """Marker interface for repository interfaces.

    Subclasses are declared with concrete type arguments, e.g.
    ``class CountryRepository(CrudRepository[Country, int])``; the factory
    reads those arguments to learn the domain and identifier types.
    """


class CrudRepository(Repository[T, ID]):
    """Generic persistence operations."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist a new entity or merge a detached one.

        Args:
            entity: Entity to save

        Returns:
            The persistent instance, which differs from ``entity`` when it
            had to be merged
        """

    def save_all(self, entities: Iterable[T]) -> list[T]:
        """Save several entities.

        Args:
            entities: Entities to save

        Returns:
            List of persistent instances
        """
        return [self.save(entity) for entity in entities]

    @abstractmethod
    def find_by_id(self, entity_id: ID) -> T | None:
        """Get entity by ID.

        Args:
            entity_id: Unique identifier for the entity

        Returns:
            Entity if found, None otherwise
        """

    def find_by_id_or_raise(self, entity_id: ID) -> T:
        """Get entity by ID, raise if not found.

        Raises:
            EntityNotFoundError: If entity not found
        """
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(self._entity_name(), entity_id)
        return entity

    def exists_by_id(self, entity_id: ID) -> bool:
        """Check if entity exists."""
        return self.find_by_id(entity_id) is not None

    @abstractmethod
    def find_all(self, sort: list[SortCriteria] | None = None) -> list[T]:
        """Return every entity, optionally sorted."""

    @abstractmethod
    def find_all_by_id(self, entity_ids: Iterable[ID]) -> list[T]:
        """Return the entities with the given identifiers that exist."""

    @abstractmethod
    def count(self) -> int:
        """Count all entities."""

    @abstractmethod
    def delete_by_id(self, entity_id: ID) -> bool:
        """Delete entity by ID.

        Returns:
            True if entity was deleted, False if not found
        """

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Delete the given entity."""

    @abstractmethod
    def delete_all(self, entities: Iterable[T] | None = None) -> int:
        """Delete the given entities, or all of them.

        Returns:
            Number of entities deleted
        """

    @abstractmethod
    def flush(self) -> None:
        """Flush pending changes to the database."""

    def _entity_name(self) -> str:
        return getattr(self, "entity_name", type(self).__name__)
