"""Counter cache core: registry, relation resolution and deferred dispatch."""

from __future__ import annotations

from .cache import CounterCache
from .dispatcher import CounterUpdateDispatcher, flush_pending
from .hooks import LifecycleHooks
from .pending import PendingUpdateQueue
from .registry import ConfigurationRegistry, RegistryEntry
from .resolver import AssociationDescriptor, RelationResolver
from .spec import (
    CounterSpec,
    Direction,
    PendingUpdate,
    default_column_name,
    normalize_relation_path,
)

__all__ = [
    "AssociationDescriptor",
    "ConfigurationRegistry",
    "CounterCache",
    "CounterSpec",
    "CounterUpdateDispatcher",
    "Direction",
    "LifecycleHooks",
    "PendingUpdate",
    "PendingUpdateQueue",
    "RegistryEntry",
    "RelationResolver",
    "default_column_name",
    "flush_pending",
    "normalize_relation_path",
]
