"""Configuration error types for revrepo.

These errors are raised while repositories are being assembled, before any
data access happens, and are not meant to be recovered from locally.
"""

from typing import Any


class ConfigError(Exception):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        config_section: str | None = None,
    ) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.config_section = config_section


class ConfigMissingError(ConfigError):
    """Raised when required configuration is missing."""

    def __init__(self, field_name: str, context: str | None = None) -> None:
        self.field_name = field_name
        if context:
            error_msg = f"Required configuration '{field_name}' is missing in {context}"
        else:
            error_msg = f"Required configuration '{field_name}' is missing"

        super().__init__(error_msg, field_name=field_name)


class RepositoryConfigurationError(ConfigError):
    """Raised when a repository interface cannot be turned into a repository."""

    def __init__(self, message: str, repository_interface: type[Any] | None = None) -> None:
        super().__init__(message, config_section="repository")
        self.repository_interface = repository_interface


class RevisionTypeMismatchError(RepositoryConfigurationError):
    """Raised when an interface declares a different revision number type.

    Carries the offending interface, the revision number type of the
    configured revision entity (``expected``) and the one declared on the
    interface (``actual``).
    """

    def __init__(
        self,
        repository_interface: type[Any],
        revision_entity_class: type[Any] | None,
        expected: type[Any],
        actual: Any,
    ) -> None:
        self.revision_entity_class = revision_entity_class
        self.expected = expected
        self.actual = actual
        entity_name = _type_name(revision_entity_class)
        message = (
            f"Configured a revision entity type of {entity_name} with a revision "
            f"type of {_type_name(expected)} but the repository interface "
            f"{_type_name(repository_interface)} is typed to a revision type of "
            f"{_type_name(actual)}!"
        )
        super().__init__(message, repository_interface=repository_interface)


def _type_name(value: Any) -> str:
    if value is None:
        return "None"
    return getattr(value, "__qualname__", None) or str(value)
