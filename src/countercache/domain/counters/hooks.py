"""Lifecycle entry points driven by the persistence layer's save/destroy events."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .spec import Direction

if TYPE_CHECKING:
    from countercache.domain.ports.persistence import ForeignKeyReader

    from .dispatcher import CounterUpdateDispatcher
    from .registry import ConfigurationRegistry
    from .resolver import RelationResolver


class LifecycleHooks:
    def __init__(
        self,
        registry: ConfigurationRegistry,
        dispatcher: CounterUpdateDispatcher,
        resolver: RelationResolver,
        foreign_keys: ForeignKeyReader,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self._resolver = resolver
        self._foreign_keys = foreign_keys

    def on_create(self, record: object) -> None:
        for spec in self._registry.specs_for(type(record)):
            self._dispatcher.apply(record, spec, Direction.INCREMENT)

    def on_destroy(self, record: object) -> None:
        for spec in self._registry.specs_for(type(record)):
            self._dispatcher.apply(record, spec, Direction.DECREMENT)

    def on_update(self, record: object) -> None:
        for spec in self._registry.specs_for(type(record)):
            foreign_key = self._resolver.first_level_foreign_key(
                spec.entity_type, spec.relation_path
            )
            # only a change of the first-level foreign key moves the record
            if not self._foreign_keys.foreign_key_changed(record, foreign_key):
                continue
            self._dispatcher.apply(record, spec, Direction.INCREMENT)
            self._dispatcher.apply(record, spec, Direction.DECREMENT, use_current=False)
