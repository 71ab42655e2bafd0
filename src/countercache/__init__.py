from __future__ import annotations

from importlib import metadata

from countercache.config.errors import (
    ConfigurationError,
    RegistryFrozenError,
    UnknownAssociationError,
)
from countercache.domain.counters import CounterCache, CounterSpec, Direction, PendingUpdate

try:
    __version__ = metadata.version("countercache")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ConfigurationError",
    "CounterCache",
    "CounterSpec",
    "Direction",
    "PendingUpdate",
    "RegistryFrozenError",
    "UnknownAssociationError",
]
