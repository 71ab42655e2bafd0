"""Ports the counter cache core consumes from the persistence layer."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from countercache.domain.counters.resolver import AssociationDescriptor
    from countercache.domain.counters.spec import PendingUpdate, RecordId

LifecycleCallback: TypeAlias = Callable[[object], None]


@runtime_checkable
class AssociationLookup(Protocol):
    """Type-level association metadata."""

    def association(self, entity_type: type, name: str) -> AssociationDescriptor | None:
        """Describe the many-to-one association ``name`` or return ``None``."""
        ...


@runtime_checkable
class RecordLoader(Protocol):
    def load(
        self, entity_type: type, record_id: RecordId, *, related_to: object
    ) -> object | None:
        """Load a record by id in the same persistence context as ``related_to``."""
        ...


@runtime_checkable
class ForeignKeyReader(Protocol):
    def current_foreign_key(self, record: object, foreign_key: str) -> RecordId | None: ...

    def previous_foreign_key(self, record: object, foreign_key: str) -> RecordId | None:
        """Value before the change currently in flight (only meaningful on update)."""
        ...

    def foreign_key_changed(self, record: object, foreign_key: str) -> bool: ...


@runtime_checkable
class CounterStore(Protocol):
    def atomic_adjust(
        self, target_type: type, column: str, record_id: RecordId, delta: int
    ) -> None:
        """Add ``delta`` to ``column`` without reading it first."""
        ...


@runtime_checkable
class DeferredExecution(Protocol):
    def enqueue_pending(self, record: object, pending_update: PendingUpdate) -> None:
        """Register ``pending_update`` against the transaction ``record`` is being saved in.

        The update must be applied exactly once when the outermost transaction
        commits and dropped when the transaction rolls back.
        """
        ...


@runtime_checkable
class LifecycleRegistrar(Protocol):
    def install_lifecycle(
        self,
        entity_type: type,
        *,
        after_create: LifecycleCallback,
        after_update: LifecycleCallback,
        after_destroy: LifecycleCallback,
    ) -> None: ...


@runtime_checkable
class CounterBackend(
    AssociationLookup,
    RecordLoader,
    ForeignKeyReader,
    CounterStore,
    DeferredExecution,
    LifecycleRegistrar,
    Protocol,
):
    """Everything the counter cache needs from one persistence layer."""
