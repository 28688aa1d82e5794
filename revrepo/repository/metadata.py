"""Repository interface metadata.

Reads the type arguments a repository interface declares on its capability
bases, e.g.::

    class CountryRepository(VersionedRepository[Country, int, int], PredicateExecutor[Country]):
        ...

yields domain type ``Country``, id type ``int`` and revision number type
``int``. Arguments are followed through intermediate generic interfaces.
"""

import typing as t
from dataclasses import dataclass
from typing import Any, TypeVar

from ..config_errors import RepositoryConfigurationError
from ._base import Repository
from .history import RevisionRepository
from .specifications import PredicateExecutor


def resolve_type_arguments(
    cls: type[Any],
    generic_base: type[Any],
    substitutions: dict[Any, Any] | None = None,
) -> tuple[Any, ...] | None:
    """Resolve the type arguments ``cls`` supplies to ``generic_base``.

    Args:
        cls: Class to inspect
        generic_base: Generic class whose parameters should be resolved
        substitutions: Type variable bindings collected so far

    Returns:
        The arguments in ``generic_base.__parameters__`` order, with
        unbound parameters left as type variables, or None when ``cls``
        does not derive from ``generic_base``
    """
    substitutions = substitutions or {}
    if cls is generic_base:
        return tuple(substitutions.get(p, p) for p in generic_base.__parameters__)

    for base in cls.__dict__.get("__orig_bases__", cls.__bases__):
        origin = t.get_origin(base) or base
        if not isinstance(origin, type) or not issubclass(origin, generic_base):
            continue
        parameters = getattr(origin, "__parameters__", ())
        arguments = tuple(_substitute(arg, substitutions) for arg in t.get_args(base))
        bindings = dict(zip(parameters, arguments, strict=False)) if arguments else {}
        resolved = resolve_type_arguments(origin, generic_base, bindings)
        if resolved is not None:
            return resolved
    return None


def _substitute(argument: Any, substitutions: dict[Any, Any]) -> Any:
    if isinstance(argument, TypeVar):
        return substitutions.get(argument, argument)
    parameters = getattr(argument, "__parameters__", ())
    if parameters and t.get_origin(argument) is not None:
        return argument[tuple(substitutions.get(p, p) for p in parameters)]
    return argument


def _resolved(argument: Any) -> Any | None:
    return None if argument is None or isinstance(argument, TypeVar) else argument


@dataclass(frozen=True)
class RepositoryMetadata:
    """What a repository interface declares about itself."""

    repository_interface: type[Any]
    domain_type: type[Any]
    id_type: Any | None
    revision_number_type: Any | None = None
    is_revision_repository: bool = False
    is_predicate_executor: bool = False

    @classmethod
    def from_interface(cls, repository_interface: type[Any]) -> "RepositoryMetadata":
        if not (
            isinstance(repository_interface, type)
            and issubclass(repository_interface, Repository)
        ):
            msg = f"{repository_interface!r} is not a repository interface"
            raise RepositoryConfigurationError(msg, repository_interface=None)

        arguments = resolve_type_arguments(repository_interface, Repository) or ()
        domain_type = _resolved(arguments[0]) if arguments else None
        if not isinstance(domain_type, type):
            msg = (
                f"Could not resolve the domain type of {repository_interface.__qualname__}; "
                "declare it as e.g. CrudRepository[Entity, int]"
            )
            raise RepositoryConfigurationError(msg, repository_interface=repository_interface)
        id_type = _resolved(arguments[1]) if len(arguments) > 1 else None

        is_revision_repository = issubclass(repository_interface, RevisionRepository)
        revision_number_type = None
        if is_revision_repository:
            revision_arguments = resolve_type_arguments(repository_interface, RevisionRepository)
            if revision_arguments:
                revision_number_type = _resolved(revision_arguments[2])

        is_predicate_executor = issubclass(repository_interface, PredicateExecutor)
        if is_predicate_executor:
            predicate_arguments = resolve_type_arguments(repository_interface, PredicateExecutor)
            predicate_type = _resolved(predicate_arguments[0]) if predicate_arguments else None
            if predicate_type is not None and predicate_type is not domain_type:
                msg = (
                    f"{repository_interface.__qualname__} queries "
                    f"{getattr(predicate_type, '__qualname__', predicate_type)} "
                    f"but manages {domain_type.__qualname__}"
                )
                raise RepositoryConfigurationError(
                    msg, repository_interface=repository_interface
                )

        return cls(
            repository_interface=repository_interface,
            domain_type=domain_type,
            id_type=id_type,
            revision_number_type=revision_number_type,
            is_revision_repository=is_revision_repository,
            is_predicate_executor=is_predicate_executor,
        )
