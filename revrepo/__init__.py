"""revrepo: revision-aware repositories over SQLAlchemy and SQLAlchemy-Continuum."""

from .config_errors import (
    ConfigError,
    ConfigMissingError,
    RepositoryConfigurationError,
    RevisionTypeMismatchError,
)
from .depends import Inject, depends
from .versioning import enable_versioning, is_versioned

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConfigMissingError",
    "Inject",
    "RepositoryConfigurationError",
    "RevisionTypeMismatchError",
    "depends",
    "enable_versioning",
    "is_versioned",
]
