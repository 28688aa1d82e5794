"""Revision-aware repository over SQLAlchemy-Continuum version tables."""

from collections.abc import Iterable, Sequence

import typing as t
from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session, configure_mappers
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy_continuum.utils import get_versioning_manager
from sqlalchemy_continuum.utils import version_class as get_version_class
from typing import Any

from ..config import RepositorySettings
from ..logger import logger
from ._base import ID, Page, PaginationInfo, RevisionDoesNotExistError, SortDirection, T
from .entity_information import SQLAlchemyEntityInformation
from .history import (
    N,
    Revision,
    RevisionMetadata,
    RevisionRepository,
    Revisions,
    RevisionType,
    VersionedRepository,
)
from .revision_entity import RevisionEntityInformation
from .simple import SQLAlchemyRepository


class SQLAlchemyRevisionHistory(RevisionRepository[T, ID, N]):
    """Revision queries for repositories exposing ``session`` and ``entity_information``.

    Revisions come from the version class SQLAlchemy-Continuum keeps for the
    domain type; revision numbers are the version rows' transaction ids and
    their metadata is read from the configured revision entity. Entity
    snapshots are new, session-less instances of the domain type populated
    from the version row.

    It extends the constructor of :class:`SQLAlchemyRepository` and is listed
    ahead of it wherever the two are combined.
    """

    session: Session
    settings: RepositorySettings
    entity_information: SQLAlchemyEntityInformation[T, ID]
    entity_type: type[T]
    entity_name: str

    if t.TYPE_CHECKING:

        def _operation(self, operation: str) -> t.ContextManager[None]: ...
        def _check_page_size(self, pagination: PaginationInfo) -> None: ...

    def __init__(
        self,
        entity_information: SQLAlchemyEntityInformation[T, ID],
        revision_entity_information: RevisionEntityInformation,
        session: Session,
        settings: RepositorySettings | None = None,
    ) -> None:
        super().__init__(entity_information, session, settings)  # type: ignore[call-arg]
        self.revision_entity_information = revision_entity_information
        self._version_class: type[Any] | None = None

        manager = get_versioning_manager(self.entity_type)
        self._transaction_column = manager.option(self.entity_type, "transaction_column_name")
        self._operation_type_column = manager.option(
            self.entity_type, "operation_type_column_name"
        )

    @property
    def version_class(self) -> type[Any]:
        if self._version_class is None:
            configure_mappers()
            self._version_class = get_version_class(self.entity_type)
        return self._version_class

    def _transaction_id(self) -> Any:
        return getattr(self.version_class, self._transaction_column)

    def _version_criteria(self, entity_id: ID) -> ColumnElement[bool]:
        return self.entity_information.id_criteria(self.version_class, entity_id)

    def find_last_change_revision(self, entity_id: ID) -> Revision[N, T] | None:
        with self._operation("find_last_change_revision"):
            version = self.session.scalars(
                select(self.version_class)
                .where(self._version_criteria(entity_id))
                .order_by(self._transaction_id().desc())
                .limit(1)
            ).first()
            if version is None:
                return None
            return self._to_revisions([version])[0]

    def find_revisions(self, entity_id: ID) -> Revisions[N, T]:
        with self._operation("find_revisions"):
            versions = self.session.scalars(
                select(self.version_class)
                .where(self._version_criteria(entity_id))
                .order_by(self._transaction_id())
            ).all()
            return Revisions.of(self._to_revisions(versions))

    def find_revisions_page(
        self,
        entity_id: ID,
        pagination: PaginationInfo,
        direction: SortDirection = SortDirection.ASC,
    ) -> Page[Revision[N, T]]:
        self._check_page_size(pagination)
        transaction_id = self._transaction_id()
        order = transaction_id.desc() if direction == SortDirection.DESC else transaction_id.asc()
        with self._operation("find_revisions_page"):
            criteria = self._version_criteria(entity_id)
            total = (
                self.session.scalar(
                    select(func.count()).select_from(self.version_class).where(criteria)
                )
                or 0
            )
            versions = self.session.scalars(
                select(self.version_class)
                .where(criteria)
                .order_by(order)
                .offset(pagination.offset)
                .limit(pagination.page_size)
            ).all()
            return Page(
                content=self._to_revisions(versions),
                pagination=pagination.with_total(total),
            )

    def find_revision(self, entity_id: ID, revision_number: N) -> Revision[N, T] | None:
        with self._operation("find_revision"):
            revision_entity = self._load_revision_entities([revision_number]).get(
                revision_number
            )
            if revision_entity is None:
                raise RevisionDoesNotExistError(revision_number, self.entity_name)

            transaction_id = self._transaction_id()
            version = self.session.scalars(
                select(self.version_class)
                .where(self._version_criteria(entity_id), transaction_id <= revision_number)
                .order_by(transaction_id.desc())
                .limit(1)
            ).first()
            if version is None:
                return None

            revision_type = self._revision_type(version)
            if revision_type is RevisionType.DELETE:
                return None
            if getattr(version, self._transaction_column) != revision_number:
                revision_type = RevisionType.UNKNOWN

            metadata = self.revision_entity_information.create_metadata(
                revision_entity, revision_type
            )
            return Revision(metadata=metadata, entity=self._snapshot(version))

    def _revision_type(self, version: Any) -> RevisionType:
        return RevisionType.from_operation(getattr(version, self._operation_type_column, None))

    def _load_revision_entities(self, revision_numbers: Iterable[Any]) -> dict[Any, Any]:
        """Load the revision entity rows for ``revision_numbers`` in one query."""
        numbers = set(revision_numbers)
        if not numbers:
            return {}
        info = self.revision_entity_information
        revision_entity_class = info.revision_entity_class
        number_attribute = getattr(revision_entity_class, info.revision_number_attribute)
        rows = self.session.scalars(
            select(revision_entity_class).where(number_attribute.in_(numbers))
        ).all()
        return {info.get_revision_number(row): row for row in rows}

    def _to_revisions(self, versions: Sequence[Any]) -> list[Revision[N, T]]:
        """Pair version rows with their revision metadata, keeping their order."""
        revision_entities = self._load_revision_entities(
            getattr(version, self._transaction_column) for version in versions
        )
        revisions = []
        for version in versions:
            revision_number = getattr(version, self._transaction_column)
            revision_type = self._revision_type(version)
            revision_entity = revision_entities.get(revision_number)
            if revision_entity is None:
                logger.warning(
                    "No revision entity row for revision {} of {}",
                    revision_number,
                    self.entity_name,
                )
                metadata: RevisionMetadata[Any] = RevisionMetadata(
                    revision_number=revision_number, revision_type=revision_type
                )
            else:
                metadata = self.revision_entity_information.create_metadata(
                    revision_entity, revision_type
                )
            revisions.append(Revision(metadata=metadata, entity=self._snapshot(version)))
        return revisions

    def _snapshot(self, version: Any) -> T:
        """Build an unattached domain instance holding the version's column values."""
        mapper = self.entity_information.mapper
        version_keys = {prop.key for prop in inspect(type(version)).column_attrs}
        instance = mapper.class_manager.new_instance()
        for prop in mapper.column_attrs:
            if prop.key in version_keys:
                set_committed_value(instance, prop.key, getattr(version, prop.key))
        return instance


class SQLAlchemyRevisionRepository(
    SQLAlchemyRevisionHistory[T, ID, N],
    SQLAlchemyRepository[T, ID],
    VersionedRepository[T, ID, N],
):
    """CRUD repository that also reads the entity's revision history."""
