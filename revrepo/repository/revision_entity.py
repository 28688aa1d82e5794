"""Revision entity metadata.

A revision entity is the mapped class whose rows record each revision:
its number and when it was issued. By default this is the transaction class
SQLAlchemy-Continuum generates. Applications may supply their own class and
mark the relevant columns through ``Column.info``::

    class AuditRevision(Base):
        __tablename__ = "transaction"

        id: Mapped[int] = mapped_column(primary_key=True, info={REVISION_NUMBER: True})
        issued_at: Mapped[datetime] = mapped_column(info={REVISION_TIMESTAMP: True})
"""

from abc import ABC, abstractmethod

import typing as t
from datetime import UTC, date, datetime, time
from sqlalchemy import Column, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper, configure_mappers
from sqlalchemy_continuum import versioning_manager
from sqlalchemy_continuum.transaction import TransactionBase
from typing import Any

from ..config_errors import ConfigError, ConfigMissingError
from ..logger import logger
from .history import RevisionMetadata, RevisionType

# Column.info keys marking a custom revision entity's columns
REVISION_NUMBER = "revision_number"
REVISION_TIMESTAMP = "revision_timestamp"


class RevisionEntityInformation(ABC):
    """Reads revision numbers and dates from revision entity instances."""

    @property
    @abstractmethod
    def revision_entity_class(self) -> type[Any]: ...

    @property
    @abstractmethod
    def revision_number_type(self) -> type[Any]: ...

    @property
    @abstractmethod
    def revision_number_attribute(self) -> str: ...

    @property
    @abstractmethod
    def revision_timestamp_attribute(self) -> str | None: ...

    @property
    def is_default_revision_entity(self) -> bool:
        return False

    def get_revision_number(self, revision_entity: Any) -> Any:
        return getattr(revision_entity, self.revision_number_attribute)

    def get_revision_date(self, revision_entity: Any) -> datetime | None:
        if self.revision_timestamp_attribute is None:
            return None
        return to_datetime(getattr(revision_entity, self.revision_timestamp_attribute))

    def create_metadata(
        self,
        revision_entity: Any,
        revision_type: RevisionType = RevisionType.UNKNOWN,
    ) -> RevisionMetadata[Any]:
        return RevisionMetadata(
            revision_number=self.get_revision_number(revision_entity),
            revision_date=self.get_revision_date(revision_entity),
            revision_type=revision_type,
            delegate=revision_entity,
        )


class DefaultRevisionEntityInformation(RevisionEntityInformation):
    """SQLAlchemy-Continuum's transaction class: ``id`` and ``issued_at``."""

    @property
    def revision_entity_class(self) -> type[Any]:
        return continuum_transaction_class()

    @property
    def revision_number_type(self) -> type[Any]:
        return int

    @property
    def revision_number_attribute(self) -> str:
        return "id"

    @property
    def revision_timestamp_attribute(self) -> str | None:
        return "issued_at"

    @property
    def is_default_revision_entity(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "DefaultRevisionEntityInformation()"


class ReflectionRevisionEntityInformation(RevisionEntityInformation):
    """Revision entity information discovered from a mapped class.

    The revision number column is the one whose ``info`` carries
    :data:`REVISION_NUMBER`, or else the class's single-column primary key.
    The timestamp column is optional and marked with
    :data:`REVISION_TIMESTAMP`.
    """

    def __init__(self, revision_entity_class: type[Any]) -> None:
        mapper = _mapper_of(revision_entity_class)
        self._revision_entity_class = revision_entity_class

        number = _marked_attribute(mapper, REVISION_NUMBER)
        if number is None and len(mapper.primary_key) == 1:
            column = mapper.primary_key[0]
            number = (mapper.get_property_by_column(column).key, column)
        if number is None:
            raise ConfigMissingError(
                REVISION_NUMBER,
                context=f"revision entity {revision_entity_class.__qualname__}",
            )
        self._number_attribute, number_column = number
        self._number_type = _python_type(number_column, revision_entity_class)

        timestamp = _marked_attribute(mapper, REVISION_TIMESTAMP)
        self._timestamp_attribute = timestamp[0] if timestamp else None

        logger.debug(
            "Revision entity {}: number={} ({}), timestamp={}",
            revision_entity_class.__qualname__,
            self._number_attribute,
            self._number_type.__name__,
            self._timestamp_attribute,
        )

    @property
    def revision_entity_class(self) -> type[Any]:
        return self._revision_entity_class

    @property
    def revision_number_type(self) -> type[Any]:
        return self._number_type

    @property
    def revision_number_attribute(self) -> str:
        return self._number_attribute

    @property
    def revision_timestamp_attribute(self) -> str | None:
        return self._timestamp_attribute

    def __repr__(self) -> str:
        return f"ReflectionRevisionEntityInformation({self._revision_entity_class.__qualname__})"


def continuum_transaction_class() -> type[Any]:
    """Return the transaction class, building Continuum's classes if needed."""
    transaction_cls = versioning_manager.transaction_cls
    if not isinstance(transaction_cls, type):
        configure_mappers()
        transaction_cls = versioning_manager.transaction_cls
    if not isinstance(transaction_cls, type):
        raise ConfigMissingError(
            "transaction_cls",
            context="SQLAlchemy-Continuum (no versioned class has been mapped)",
        )
    return transaction_cls


def is_default_revision_entity_class(revision_entity_class: type[Any] | None) -> bool:
    if revision_entity_class is None:
        return True
    if revision_entity_class is versioning_manager.transaction_cls:
        return True
    return isinstance(revision_entity_class, type) and issubclass(
        revision_entity_class, TransactionBase
    )


def create_revision_entity_information(
    revision_entity_class: type[Any] | None,
) -> RevisionEntityInformation:
    if is_default_revision_entity_class(revision_entity_class):
        return DefaultRevisionEntityInformation()
    return ReflectionRevisionEntityInformation(t.cast("type[Any]", revision_entity_class))


def to_datetime(value: Any) -> datetime | None:
    """Normalise a stored timestamp; numbers are epoch milliseconds."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    msg = f"Cannot convert revision timestamp {value!r} to datetime"
    raise TypeError(msg)


def _mapper_of(cls: type[Any]) -> Mapper[Any]:
    try:
        mapper = inspect(cls)
    except NoInspectionAvailable as e:
        raise ConfigMissingError(
            "mapper", context=f"revision entity {getattr(cls, '__qualname__', cls)!r}"
        ) from e
    if not isinstance(mapper, Mapper):
        raise ConfigMissingError(
            "mapper", context=f"revision entity {getattr(cls, '__qualname__', cls)!r}"
        )
    return mapper


def _marked_attribute(mapper: Mapper[Any], marker: str) -> tuple[str, Column[Any]] | None:
    found = [
        (prop.key, column)
        for prop in mapper.column_attrs
        for column in prop.columns
        if isinstance(column, Column) and column.info.get(marker)
    ]
    if len(found) > 1:
        names = ", ".join(key for key, _ in found)
        msg = f"{mapper.class_.__qualname__} marks more than one column as {marker}: {names}"
        raise ConfigError(msg, field_name=marker, config_section="revision_entity")
    return found[0] if found else None


def _python_type(column: Any, cls: type[Any]) -> type[Any]:
    try:
        return column.type.python_type
    except NotImplementedError as e:
        msg = f"Cannot determine the revision number type of {cls.__qualname__}.{column.key}"
        raise ConfigError(msg, field_name=REVISION_NUMBER, config_section="revision_entity") from e
