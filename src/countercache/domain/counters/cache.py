"""Composition root wiring the counter cache core onto one backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .dispatcher import CounterUpdateDispatcher
from .hooks import LifecycleHooks
from .registry import ConfigurationRegistry
from .resolver import RelationResolver

if TYPE_CHECKING:
    from collections.abc import Sequence

    from countercache.domain.ports.persistence import CounterBackend

    from .spec import ColumnResolver, CounterSpec, ForeignKeyOverride


class CounterCache:
    """Declare counter caches and keep them up to date through ``backend``.

    Example::

        counters = CounterCache(backend)
        counters.configure(Comment, "post")  # Post.comments_count
        counters.configure(Comment, ["post", "author"], column_name="post_comments_count")
        counters.freeze()
    """

    def __init__(self, backend: CounterBackend) -> None:
        self.backend = backend
        self.resolver = RelationResolver(backend, backend, backend)
        self.dispatcher = CounterUpdateDispatcher(self.resolver, backend)
        self.registry = ConfigurationRegistry(self.resolver, self._install_hooks)
        self.hooks = LifecycleHooks(self.registry, self.dispatcher, self.resolver, backend)

    def configure(
        self,
        entity_type: type,
        relation_path: str | Sequence[str],
        *,
        column_name: ColumnResolver | None = None,
        foreign_key_override: ForeignKeyOverride | None = None,
    ) -> CounterSpec:
        return self.registry.register(
            entity_type,
            relation_path,
            column_name=column_name,
            foreign_key_override=foreign_key_override,
        )

    def specs_for(self, entity_type: type) -> tuple[CounterSpec, ...]:
        return self.registry.specs_for(entity_type)

    def freeze(self) -> None:
        self.registry.freeze()

    def _install_hooks(self, entity_type: type) -> None:
        self.backend.install_lifecycle(
            entity_type,
            after_create=self.hooks.on_create,
            after_update=self.hooks.on_update,
            after_destroy=self.hooks.on_destroy,
        )
