"""Loguru logging setup for revrepo.

Modules log through ``from revrepo.logger import logger``. Until
:func:`configure_logging` runs, loguru's default stderr sink prints every
record from DEBUG up; applications call it once at start-up to replace that
sink with the configured one.
"""

import logging
import os
import sys
from inspect import currentframe

import typing as t
from loguru import logger

from .config import LoggerSettings


class InterceptHandler(logging.Handler):
    """Handler to intercept standard library logging and route to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = (currentframe(), 0)
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level,
            record.getMessage(),
        )


def _patch(record: t.Any) -> None:
    """Ensure the extra fields used by the format exist."""
    name = record["name"] or ""
    record["extra"].setdefault("mod_name", name.rsplit(".", 1)[-1])


def _is_testing_mode() -> bool:
    return "pytest" in sys.modules or os.getenv("TESTING", "False").lower() == "true"


def configure_logging(settings: LoggerSettings | None = None) -> None:
    """Install the stderr sink described by ``settings``."""
    settings = settings or LoggerSettings()

    logger.remove()
    logger.configure(patcher=_patch)

    if _is_testing_mode():
        return

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=settings.format_string,
        colorize=settings.colorize,
        serialize=settings.serialize,
    )

    if settings.intercept_stdlib:
        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


__all__ = ["InterceptHandler", "configure_logging", "logger"]
