"""Repository Registry Implementation.

Start-up registration of repository interfaces:
- One factory per registry, created on first registration
- Fail-fast validation when an interface is registered
- Repository lookup by interface
- Dependency injection integration
"""

import inspect

import typing as t
from dataclasses import dataclass
from sqlalchemy.orm import Session
from typing import Any, TypeVar

from ..config import RepositorySettings, get_settings
from ..depends import depends
from ..logger import logger
from ._base import Repository, RepositoryError
from .factory import RevisionRepositoryFactory

R = TypeVar("R", bound=Repository[Any, Any])


@dataclass
class RepositoryRegistration:
    """Repository registration information."""

    repository_interface: type[Any]
    repository_instance: Any
    custom_implementation: type[Any] | None = None


class RepositoryRegistryError(RepositoryError):
    """Exception for repository registry operations."""

    def __init__(self, message: str, entity_type: str | None = None) -> None:
        super().__init__(message, entity_type=entity_type, operation="registry")


class RevisionRepositoryRegistry:
    """Registry building and holding repositories for interfaces.

    The revision entity class can be changed until the first repository is
    registered; after that the factory, and with it the resolved revision
    entity metadata, is fixed.
    """

    def __init__(self, session: Session, settings: RepositorySettings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings(RepositorySettings)
        self._revision_entity_class: type[Any] | None = None
        self._factory: RevisionRepositoryFactory | None = None
        self._registrations: dict[type[Any], RepositoryRegistration] = {}

    def set_revision_entity_class(self, revision_entity_class: type[Any] | None) -> None:
        """Configure the revision entity class. Defaults to Continuum's transaction class."""
        if self._factory is not None:
            msg = "Revision entity class cannot change after repositories were registered"
            raise RepositoryRegistryError(msg)
        self._revision_entity_class = revision_entity_class

    @property
    def factory(self) -> RevisionRepositoryFactory:
        if self._factory is None:
            self._factory = RevisionRepositoryFactory(
                self._session,
                revision_entity_class=self._revision_entity_class,
                settings=self._settings,
            )
        return self._factory

    def register(
        self,
        repository_interface: type[R],
        custom_implementation: type[Any] | None = None,
    ) -> R:
        """Register a repository interface and create its repository.

        Args:
            repository_interface: The repository interface
            custom_implementation: Optional mixin implementing the
                interface's own methods

        Returns:
            Repository instance

        Raises:
            RepositoryRegistryError: If the interface is already registered
                with a different custom implementation
            RepositoryConfigurationError: If the interface is misconfigured
        """
        existing = self._registrations.get(repository_interface)
        if existing is not None:
            if existing.custom_implementation is not custom_implementation:
                msg = (
                    f"Repository {repository_interface.__name__} already registered with "
                    "a different custom implementation"
                )
                raise RepositoryRegistryError(msg, entity_type=repository_interface.__name__)
            return t.cast("R", existing.repository_instance)

        repository = self.factory.get_repository(repository_interface, custom_implementation)
        self._registrations[repository_interface] = RepositoryRegistration(
            repository_interface=repository_interface,
            repository_instance=repository,
            custom_implementation=custom_implementation,
        )
        depends.set(repository_interface, repository)
        logger.info("Registered repository {}", repository_interface.__name__)
        return repository

    def get(self, repository_interface: type[R]) -> R:
        """Get the repository for an interface.

        Raises:
            RepositoryRegistryError: If the interface is not registered
        """
        registration = self._registrations.get(repository_interface)
        if registration is None:
            name = getattr(repository_interface, "__name__", str(repository_interface))
            msg = f"No repository registered for interface: {name}"
            raise RepositoryRegistryError(msg, entity_type=name)
        return t.cast("R", registration.repository_instance)

    def try_get(self, repository_interface: type[R]) -> R | None:
        """Get the repository for an interface, or None if not registered."""
        try:
            return self.get(repository_interface)
        except RepositoryRegistryError:
            return None

    def is_registered(self, repository_interface: type[Any]) -> bool:
        return repository_interface in self._registrations

    def list_registrations(self) -> dict[str, dict[str, Any]]:
        """List all repository registrations.

        Returns:
            Dictionary of registrations by interface name
        """
        result = {}
        for interface, registration in self._registrations.items():
            metadata = self.factory.get_repository_metadata(interface)
            result[interface.__name__] = {
                "domain_type": metadata.domain_type.__name__,
                "repository_type": type(registration.repository_instance).__name__,
                "revision_repository": metadata.is_revision_repository,
                "predicate_executor": metadata.is_predicate_executor,
                "custom_implementation": (
                    registration.custom_implementation.__name__
                    if registration.custom_implementation
                    else None
                ),
            }
        return result

    def auto_register_repositories(self, module_or_package: Any) -> int:
        """Register every repository interface defined in a module.

        Only abstract, fully parameterised classes defined in the module
        itself are considered; imported capability interfaces and generic
        intermediate interfaces are skipped.

        Returns:
            Number of repositories registered
        """
        module_name = getattr(module_or_package, "__name__", None)
        interfaces = [
            obj
            for obj in vars(module_or_package).values()
            if inspect.isclass(obj)
            and issubclass(obj, Repository)
            and inspect.isabstract(obj)
            and not getattr(obj, "__parameters__", ())
            and obj.__module__ == module_name
        ]

        registered_count = 0
        for interface in interfaces:
            if interface in self._registrations:
                continue
            self.register(interface)
            registered_count += 1
        return registered_count


_global_registry: RevisionRepositoryRegistry | None = None


def get_registry(session: Session | None = None) -> RevisionRepositoryRegistry:
    """Get the global repository registry.

    The first call must supply the session the registry's repositories use.
    """
    global _global_registry
    if _global_registry is None:
        if session is None:
            msg = "The global registry has not been created; pass a session"
            raise RepositoryRegistryError(msg)
        _global_registry = RevisionRepositoryRegistry(session)
        depends.set(RevisionRepositoryRegistry, _global_registry)
    return _global_registry


def reset_registry() -> None:
    """Forget the global registry (testing helper)."""
    global _global_registry
    _global_registry = None
