"""SQLAlchemy-Continuum bootstrap helpers.

``enable_versioning`` has to run before the versioned models are declared;
``sqlalchemy.orm.configure_mappers()`` has to run after, which builds the
version classes and the transaction (revision entity) class.
"""

import typing as t
from sqlalchemy_continuum import make_versioned, remove_versioning

from .logger import logger

_versioning_enabled = False


def enable_versioning(user_cls: str | type[t.Any] | None = None, **options: t.Any) -> None:
    """Install Continuum's mapper and session listeners once per process."""
    global _versioning_enabled
    if _versioning_enabled:
        return
    make_versioned(user_cls=user_cls, options=options or None)
    _versioning_enabled = True
    logger.debug("Versioning enabled (user_cls={})", user_cls)


def disable_versioning() -> None:
    global _versioning_enabled
    if not _versioning_enabled:
        return
    remove_versioning()
    _versioning_enabled = False
    logger.debug("Versioning disabled")


def is_versioning_enabled() -> bool:
    return _versioning_enabled


def is_versioned(entity_type: type[t.Any]) -> bool:
    """Whether ``entity_type`` opted into history tracking via ``__versioned__``."""
    return getattr(entity_type, "__versioned__", None) is not None
