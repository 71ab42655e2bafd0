"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AssociationLookup,
    CounterBackend,
    CounterStore,
    DeferredExecution,
    ForeignKeyReader,
    LifecycleCallback,
    LifecycleRegistrar,
    RecordLoader,
)

__all__ = [
    "AssociationLookup",
    "CounterBackend",
    "CounterStore",
    "DeferredExecution",
    "ForeignKeyReader",
    "LifecycleCallback",
    "LifecycleRegistrar",
    "RecordLoader",
]
