"""Revision Repository Factory.

Turns repository interfaces into working repositories:
- Resolves the revision entity metadata once, at construction
- Validates an interface's declared revision number type against it
- Chooses the implementation base from the capabilities the interface
  declares (revision history, predicate queries)
- Composes the base, an optional custom implementation and the interface
  into a concrete class and instantiates it
"""

import types

import typing as t
from sqlalchemy.orm import Session
from typing import Any, TypeVar

from ..config import RepositorySettings, get_settings
from ..config_errors import RepositoryConfigurationError, RevisionTypeMismatchError
from ..logger import logger
from ..versioning import is_versioned
from ._base import Repository
from .entity_information import SQLAlchemyEntityInformation
from .metadata import RepositoryMetadata
from .predicate import (
    PredicateRepository,
    PredicateRevisionRepository,
    SQLAlchemyPredicateExecutor,
)
from .revision import SQLAlchemyRevisionHistory, SQLAlchemyRevisionRepository
from .revision_entity import RevisionEntityInformation, create_revision_entity_information
from .simple import SQLAlchemyRepository

R = TypeVar("R", bound=Repository[Any, Any])


class RevisionRepositoryFactory:
    """Creates repository instances for repository interfaces.

    Args:
        session: Session every produced repository works with
        revision_entity_class: Revision entity; None falls back to
            ``RepositorySettings.revision_entity_class`` and then to
            SQLAlchemy-Continuum's transaction class
        settings: Repository settings; defaults to the published ones
    """

    def __init__(
        self,
        session: Session,
        revision_entity_class: type[Any] | None = None,
        settings: RepositorySettings | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings(RepositorySettings)
        if revision_entity_class is None:
            revision_entity_class = self._settings.revision_entity_class
        self._revision_entity_information = create_revision_entity_information(
            revision_entity_class
        )
        self._entity_information: dict[type[Any], SQLAlchemyEntityInformation[Any, Any]] = {}
        self._repository_classes: dict[tuple[type[Any], type[Any] | None], type[Any]] = {}
        logger.debug("Repository factory created with {}", self._revision_entity_information)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def settings(self) -> RepositorySettings:
        return self._settings

    @property
    def revision_entity_information(self) -> RevisionEntityInformation:
        return self._revision_entity_information

    def get_repository_metadata(self, repository_interface: type[Any]) -> RepositoryMetadata:
        return RepositoryMetadata.from_interface(repository_interface)

    def get_entity_information(
        self, domain_type: type[Any]
    ) -> SQLAlchemyEntityInformation[Any, Any]:
        information = self._entity_information.get(domain_type)
        if information is None:
            information = SQLAlchemyEntityInformation(domain_type)
            self._entity_information[domain_type] = information
        return information

    def get_repository_base_class(self, metadata: RepositoryMetadata) -> type[Any]:
        """Pick the implementation for the capabilities an interface declares."""
        if metadata.is_revision_repository:
            if metadata.is_predicate_executor:
                return PredicateRevisionRepository
            return SQLAlchemyRevisionRepository
        if metadata.is_predicate_executor:
            return PredicateRepository
        return SQLAlchemyRepository

    def get_repository_fragments(self, metadata: RepositoryMetadata) -> tuple[type[Any], ...]:
        """Implementation classes combined into a repository for ``metadata``.

        Each fragment extends exactly one capability interface, so placing
        all of them ahead of the repository interface leaves the order of
        the capabilities to the interface's own declaration.
        """
        fragments: list[type[Any]] = []
        if metadata.is_revision_repository:
            fragments.append(SQLAlchemyRevisionHistory)
        fragments.append(SQLAlchemyRepository)
        if metadata.is_predicate_executor:
            fragments.append(SQLAlchemyPredicateExecutor)
        return tuple(fragments)

    def get_repository(
        self,
        repository_interface: type[R],
        custom_implementation: type[Any] | None = None,
    ) -> R:
        """Create a repository implementing ``repository_interface``.

        Args:
            repository_interface: Abstract repository interface
            custom_implementation: Optional mixin implementing the
                interface's own query methods; it is placed first in the
                composed class and can use ``self.session``,
                ``self.entity_type`` and the other repository attributes

        Returns:
            Repository instance

        Raises:
            RevisionTypeMismatchError: If the interface's revision number
                type differs from the revision entity's
            RepositoryConfigurationError: If the interface cannot be
                implemented
        """
        metadata = self.get_repository_metadata(repository_interface)
        self._validate(metadata)

        repository_class = self._repository_class(metadata, custom_implementation)
        arguments: dict[str, Any] = {
            "entity_information": self.get_entity_information(metadata.domain_type),
            "session": self._session,
            "settings": self._settings,
        }
        if metadata.is_revision_repository:
            arguments["revision_entity_information"] = self._revision_entity_information

        repository = repository_class(**arguments)
        logger.debug(
            "Created {} for {} ({})",
            repository_class.__name__,
            metadata.domain_type.__name__,
            self.get_repository_base_class(metadata).__name__,
        )
        return t.cast("R", repository)

    def _validate(self, metadata: RepositoryMetadata) -> None:
        if not metadata.is_revision_repository:
            return
        interface = metadata.repository_interface

        if not is_versioned(metadata.domain_type):
            msg = (
                f"{interface.__qualname__} tracks revisions of "
                f"{metadata.domain_type.__qualname__}, which does not declare __versioned__"
            )
            logger.error(msg)
            raise RepositoryConfigurationError(msg, repository_interface=interface)

        information = self._revision_entity_information
        expected = information.revision_number_type
        if metadata.revision_number_type != expected:
            error = RevisionTypeMismatchError(
                repository_interface=interface,
                revision_entity_class=information.revision_entity_class,
                expected=expected,
                actual=metadata.revision_number_type,
            )
            logger.error(str(error))
            raise error

    def _repository_class(
        self,
        metadata: RepositoryMetadata,
        custom_implementation: type[Any] | None,
    ) -> type[Any]:
        interface = metadata.repository_interface
        key = (interface, custom_implementation)
        repository_class = self._repository_classes.get(key)
        if repository_class is not None:
            return repository_class

        if custom_implementation is not None and not isinstance(custom_implementation, type):
            msg = f"Custom implementation {custom_implementation!r} is not a class"
            raise RepositoryConfigurationError(msg, repository_interface=interface)

        bases: tuple[type[Any], ...] = (*self.get_repository_fragments(metadata), interface)
        if custom_implementation is not None:
            bases = (custom_implementation, *bases)

        try:
            repository_class = types.new_class(f"{interface.__name__}Impl", bases)
        except TypeError as e:
            names = ", ".join(base.__qualname__ for base in bases)
            msg = f"Cannot compose {interface.__qualname__} from {names}: {e}"
            raise RepositoryConfigurationError(msg, repository_interface=interface) from e
        repository_class.__module__ = interface.__module__

        unimplemented = sorted(getattr(repository_class, "__abstractmethods__", ()))
        if unimplemented:
            msg = (
                f"{interface.__qualname__} declares methods without an implementation: "
                f"{', '.join(unimplemented)}"
            )
            logger.error(msg)
            raise RepositoryConfigurationError(msg, repository_interface=interface)

        self.get_repository_base_class(metadata).register(repository_class)
        self._repository_classes[key] = repository_class
        return repository_class
