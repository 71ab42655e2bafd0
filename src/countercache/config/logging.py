"""Shared logging helpers for countercache."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV_VAR = "COUNTERCACHE_LOG_LEVEL"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Attach a stream handler to the root logger unless one is already installed.

    Applications with their own logging setup never need this; ``force=True``
    replaces existing root handlers.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def get_log_level(default: int | None = None) -> int | None:
    """Return the log level named by ``COUNTERCACHE_LOG_LEVEL`` (or ``default``)."""

    raw = os.getenv(LOG_LEVEL_ENV_VAR)
    if raw is None or not raw.strip():
        return default
    value = raw.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelNamesMapping().get(value.upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level in {LOG_LEVEL_ENV_VAR}: {raw}")
    return level
