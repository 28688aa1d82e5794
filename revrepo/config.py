"""Settings for revrepo.

Settings are pydantic-settings models read from ``REVREPO_*`` environment
variables. Instances can be published through :mod:`revrepo.depends` so the
factory and registry pick them up without being passed explicitly.
"""

import typing as t
from contextlib import suppress
from pydantic import Field, ImportString, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import TypeVar

from .depends import depends

T = TypeVar("T", bound="Settings")


class Settings(BaseSettings):
    """Base class for all revrepo settings."""

    model_config = SettingsConfigDict(
        env_prefix="REVREPO_",
        extra="ignore",
        validate_default=True,
        arbitrary_types_allowed=True,
    )


class RepositorySettings(Settings):
    """Repository and factory configuration."""

    model_config = SettingsConfigDict(env_prefix="REVREPO_REPOSITORY_")

    # Revision entity, e.g. "myapp.models:AuditRevision". None means the
    # transaction class generated by SQLAlchemy-Continuum.
    revision_entity_class: ImportString[type[t.Any]] | None = None

    # Transaction settings
    auto_commit: bool = Field(
        default=True,
        description="Commit after each write operation instead of only flushing",
    )

    # Query settings
    max_page_size: int = Field(default=1000, ge=1)
    default_page_size: int = Field(default=50, ge=1, le=1000)

    @field_validator("default_page_size")
    @classmethod
    def validate_page_size(cls, v: int, info: t.Any) -> int:
        values: t.Any = info.data if hasattr(info, "data") else {}
        if "max_page_size" in values and v > values["max_page_size"]:
            msg = "default_page_size cannot exceed max_page_size"
            raise ValueError(msg)
        return v


class LoggerSettings(Settings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="REVREPO_LOGGER_")

    log_level: str = "INFO"
    serialize: bool = False
    colorize: bool = True
    intercept_stdlib: bool = Field(
        default=False,
        description="Route stdlib logging (e.g. sqlalchemy.engine) into loguru",
    )

    format: dict[str, str] = {
        "time": "<b><e>[</e> <w>{time:YYYY-MM-DD HH:mm:ss.SSS}</w> <e>]</e></b>",
        "level": " <level>{level:>8}</level>",
        "sep": " <b><w>in</w></b> ",
        "name": "<b>{extra[mod_name]:>20}</b>",
        "line": "<b><e>[</e><w>{line:^5}</w><e>]</e></b>",
        "message": "  <level>{message}</level>",
    }

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()

    @property
    def format_string(self) -> str:
        return "".join(self.format.values())


def get_settings(settings_cls: type[T]) -> T:
    """Return the published settings instance, or a fresh one from the environment."""
    with suppress(Exception):
        instance = depends.get_sync(settings_cls)
        if isinstance(instance, settings_cls):
            return instance
    return settings_cls()
