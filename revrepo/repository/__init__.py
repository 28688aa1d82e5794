"""Revision repositories for SQLAlchemy.

Repository interfaces are declared as abstract classes over the capability
interfaces in this package; :class:`RevisionRepositoryFactory` turns them
into working repositories:
- ``CrudRepository`` for generic persistence
- ``RevisionRepository`` / ``VersionedRepository`` for revision history
  recorded by SQLAlchemy-Continuum
- ``PredicateExecutor`` for queries with composable predicates
"""

from ._base import (
    CrudRepository,
    EntityNotFoundError,
    IncorrectResultSizeError,
    Page,
    PaginationInfo,
    Repository,
    RepositoryError,
    RevisionDoesNotExistError,
    SortCriteria,
    SortDirection,
)
from .entity_information import SQLAlchemyEntityInformation
from .factory import RevisionRepositoryFactory
from .history import (
    Revision,
    RevisionMetadata,
    RevisionRepository,
    Revisions,
    RevisionType,
    VersionedRepository,
)
from .metadata import RepositoryMetadata, resolve_type_arguments
from .predicate import (
    PredicateRepository,
    PredicateRevisionRepository,
    SQLAlchemyPredicateExecutor,
)
from .registry import (
    RepositoryRegistryError,
    RevisionRepositoryRegistry,
    get_registry,
)
from .revision import SQLAlchemyRevisionHistory, SQLAlchemyRevisionRepository
from .revision_entity import (
    REVISION_NUMBER,
    REVISION_TIMESTAMP,
    DefaultRevisionEntityInformation,
    ReflectionRevisionEntityInformation,
    RevisionEntityInformation,
)
from .simple import SQLAlchemyRepository
from .specifications import (
    AndSpecification,
    FieldSpecification,
    NotSpecification,
    OrSpecification,
    PredicateExecutor,
    Specification,
)

__all__ = [
    "REVISION_NUMBER",
    "REVISION_TIMESTAMP",
    "AndSpecification",
    "CrudRepository",
    "DefaultRevisionEntityInformation",
    "EntityNotFoundError",
    "FieldSpecification",
    "IncorrectResultSizeError",
    "NotSpecification",
    "OrSpecification",
    "Page",
    "PaginationInfo",
    "PredicateExecutor",
    "PredicateRepository",
    "PredicateRevisionRepository",
    "ReflectionRevisionEntityInformation",
    "Repository",
    "RepositoryError",
    "RepositoryMetadata",
    "RepositoryRegistryError",
    "Revision",
    "RevisionDoesNotExistError",
    "RevisionEntityInformation",
    "RevisionMetadata",
    "RevisionRepository",
    "RevisionRepositoryFactory",
    "RevisionRepositoryRegistry",
    "RevisionType",
    "Revisions",
    "SQLAlchemyEntityInformation",
    "SQLAlchemyPredicateExecutor",
    "SQLAlchemyRepository",
    "SQLAlchemyRevisionHistory",
    "SQLAlchemyRevisionRepository",
    "SortCriteria",
    "SortDirection",
    "Specification",
    "VersionedRepository",
    "get_registry",
    "resolve_type_arguments",
]
