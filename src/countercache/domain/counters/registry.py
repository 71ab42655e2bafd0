"""Per-type registry of declared counter caches."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, TypeAlias

from countercache.config.errors import RegistryFrozenError

from .spec import CounterSpec, default_column_name, normalize_relation_path

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .resolver import RelationResolver
    from .spec import ColumnResolver, ForeignKeyOverride

HookInstaller: TypeAlias = Callable[[type], None]

log = getLogger(__name__)


@dataclass(slots=True)
class RegistryEntry:
    specs: list[CounterSpec] = field(default_factory=list)
    hooks_installed: bool = False


class ConfigurationRegistry:
    """Ordered counter specs per entity type.

    Registration happens during start-up. The first registration for a type
    installs its lifecycle hooks through ``install_hooks``; later registrations
    only append. Once :meth:`freeze` is called the registry is read-only.
    """

    def __init__(self, resolver: RelationResolver, install_hooks: HookInstaller) -> None:
        self._resolver = resolver
        self._install_hooks = install_hooks
        self._entries: dict[type, RegistryEntry] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        entity_type: type,
        relation_path: str | Sequence[str],
        *,
        column_name: ColumnResolver | None = None,
        foreign_key_override: ForeignKeyOverride | None = None,
    ) -> CounterSpec:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register a counter cache on {entity_type.__name__}: "
                "registry is frozen"
            )

        path = normalize_relation_path(relation_path)
        # fails with UnknownAssociationError before anything is recorded
        self._resolver.describe_path(entity_type, path)

        spec = CounterSpec(
            entity_type=entity_type,
            relation_path=path,
            column_name=(
                column_name if column_name is not None else default_column_name(entity_type)
            ),
            foreign_key_override=foreign_key_override,
        )

        with self._lock:
            entry = self._entries.setdefault(entity_type, RegistryEntry())
            if not entry.hooks_installed:
                self._install_hooks(entity_type)
                entry.hooks_installed = True
                log.debug("Installed counter cache hooks on %s", entity_type.__name__)
            entry.specs.append(spec)

        log.debug(
            "Registered counter cache %s -> %s",
            entity_type.__name__,
            ".".join(path),
        )
        return spec

    def specs_for(self, entity_type: type) -> tuple[CounterSpec, ...]:
        entry = self._entries.get(entity_type)
        if entry is None:
            return ()
        return tuple(entry.specs)

    def hooks_installed(self, entity_type: type) -> bool:
        entry = self._entries.get(entity_type)
        return entry is not None and entry.hooks_installed

    def entity_types(self) -> tuple[type, ...]:
        return tuple(self._entries)

    def freeze(self) -> None:
        self._frozen = True
