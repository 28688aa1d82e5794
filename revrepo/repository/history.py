"""Revision value types and the revision repository interface."""

from abc import abstractmethod
from collections.abc import Iterable, Iterator
from enum import Enum

from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import inspect
from sqlalchemy.orm import InstanceState
from typing import Any, Generic, TypeVar

from ._base import ID, CrudRepository, Page, PaginationInfo, Repository, SortDirection, T

# Revision number type
N = TypeVar("N")


class RevisionType(Enum):
    """Kind of change a revision recorded for an entity."""

    UNKNOWN = "unknown"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def from_operation(cls, operation_type: int | None) -> "RevisionType":
        """Map a SQLAlchemy-Continuum ``operation_type`` value."""
        return _OPERATION_TYPES.get(operation_type, cls.UNKNOWN)


# sqlalchemy_continuum.operation.Operation values
_OPERATION_TYPES = {
    0: RevisionType.INSERT,
    1: RevisionType.UPDATE,
    2: RevisionType.DELETE,
}


@dataclass(frozen=True)
class RevisionMetadata(Generic[N]):
    """Metadata of a single revision.

    ``delegate`` is the revision entity row the metadata was read from.
    """

    revision_number: N | None
    revision_date: datetime | None = None
    revision_type: RevisionType = RevisionType.UNKNOWN
    delegate: Any = None

    @property
    def required_revision_number(self) -> N:
        if self.revision_number is None:
            msg = f"No revision number found on {self.delegate!r}"
            raise ValueError(msg)
        return self.revision_number

    @property
    def required_revision_date(self) -> datetime:
        if self.revision_date is None:
            msg = f"No revision date found on {self.delegate!r}"
            raise ValueError(msg)
        return self.revision_date


@dataclass(frozen=True, eq=False)
class Revision(Generic[N, T]):
    """An entity snapshot together with the metadata of its revision."""

    metadata: RevisionMetadata[N]
    entity: T

    @property
    def revision_number(self) -> N | None:
        return self.metadata.revision_number

    @property
    def required_revision_number(self) -> N:
        return self.metadata.required_revision_number

    @property
    def revision_date(self) -> datetime | None:
        return self.metadata.revision_date

    @property
    def revision_type(self) -> RevisionType:
        return self.metadata.revision_type

    def __lt__(self, other: "Revision[N, T]") -> bool:
        if self.revision_number is None or other.revision_number is None:
            return NotImplemented
        return self.revision_number < other.revision_number  # type: ignore[operator]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Revision):
            return NotImplemented
        return (
            self.revision_number == other.revision_number
            and _entity_key(self.entity) == _entity_key(other.entity)
        )

    def __hash__(self) -> int:
        return hash((self.revision_number, _entity_key(self.entity)))

    def __repr__(self) -> str:
        return (
            f"Revision(number={self.revision_number!r}, "
            f"type={self.revision_type.value}, entity={self.entity!r})"
        )


def _entity_key(entity: Any) -> tuple[Any, ...]:
    """Type and primary key of a mapped snapshot; identity for anything else."""
    state = inspect(entity, raiseerr=False)
    if not isinstance(state, InstanceState):
        return (type(entity), id(entity))
    return (type(entity), tuple(state.mapper.primary_key_from_instance(entity)))


class Revisions(Generic[N, T]):
    """Immutable sequence of revisions ordered by revision number.

    Revisions are kept in ascending order (latest last) unless the sequence
    was produced by :meth:`reverse`.
    """

    def __init__(self, revisions: Iterable[Revision[N, T]], latest_last: bool = True) -> None:
        ordered = sorted(revisions, key=lambda r: r.required_revision_number)
        self._latest_last = latest_last
        self._revisions: tuple[Revision[N, T], ...] = tuple(
            ordered if latest_last else reversed(ordered)
        )

    @classmethod
    def of(cls, revisions: Iterable[Revision[N, T]]) -> "Revisions[N, T]":
        return cls(revisions)

    @classmethod
    def none(cls) -> "Revisions[N, T]":
        return cls(())

    @property
    def content(self) -> list[Revision[N, T]]:
        return list(self._revisions)

    @property
    def latest_revision(self) -> Revision[N, T] | None:
        if not self._revisions:
            return None
        return self._revisions[-1] if self._latest_last else self._revisions[0]

    def reverse(self) -> "Revisions[N, T]":
        return Revisions(self._revisions, latest_last=not self._latest_last)

    def __iter__(self) -> Iterator[Revision[N, T]]:
        return iter(self._revisions)

    def __len__(self) -> int:
        return len(self._revisions)

    def __getitem__(self, index: int) -> Revision[N, T]:
        return self._revisions[index]

    def __bool__(self) -> bool:
        return bool(self._revisions)

    def __repr__(self) -> str:
        return f"Revisions({list(self._revisions)!r})"


class RevisionRepository(Repository[T, ID], Generic[T, ID, N]):
    """Access to the revision history of an entity.

    ``N`` is the revision number type and must match the revision number
    type of the configured revision entity.
    """

    @abstractmethod
    def find_last_change_revision(self, entity_id: ID) -> Revision[N, T] | None:
        """Return the revision of the most recent change to the entity.

        Args:
            entity_id: Identifier of the entity

        Returns:
            The latest revision, or None when the entity has no history
        """

    @abstractmethod
    def find_revisions(self, entity_id: ID) -> Revisions[N, T]:
        """Return all revisions of the entity, oldest first."""

    @abstractmethod
    def find_revisions_page(
        self,
        entity_id: ID,
        pagination: PaginationInfo,
        direction: SortDirection = SortDirection.ASC,
    ) -> Page[Revision[N, T]]:
        """Return one page of the entity's revisions.

        Args:
            entity_id: Identifier of the entity
            pagination: Requested page; its total is filled in on the result
            direction: Ordering by revision number

        Returns:
            Page of revisions
        """

    @abstractmethod
    def find_revision(self, entity_id: ID, revision_number: N) -> Revision[N, T] | None:
        """Return the entity as it was at the given revision.

        Args:
            entity_id: Identifier of the entity
            revision_number: Revision to look at

        Returns:
            The revision, or None if the entity did not exist at that
            revision or had been deleted by it

        Raises:
            RevisionDoesNotExistError: If no such revision was recorded
        """


class VersionedRepository(RevisionRepository[T, ID, N], CrudRepository[T, ID]):
    """CRUD repository with revision history."""
