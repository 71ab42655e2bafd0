"""Library configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError, RegistryFrozenError, UnknownAssociationError
from .logging import configure_logging, get_log_level
from .storage import DatabaseConfig, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "RegistryFrozenError",
    "UnknownAssociationError",
    "configure_logging",
    "get_database_config",
    "get_log_level",
]
