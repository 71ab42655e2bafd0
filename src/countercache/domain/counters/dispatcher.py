"""Turn one counter spec and one lifecycle event into a deferred counter update."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .spec import Direction, PendingUpdate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from countercache.domain.ports.persistence import CounterStore, DeferredExecution

    from .resolver import RelationResolver
    from .spec import CounterSpec

log = getLogger(__name__)


class CounterUpdateDispatcher:
    def __init__(self, resolver: RelationResolver, deferred: DeferredExecution) -> None:
        self._resolver = resolver
        self._deferred = deferred

    def apply(
        self,
        record: object,
        spec: CounterSpec,
        direction: Direction,
        *,
        use_current: bool = True,
    ) -> PendingUpdate | None:
        """Schedule a +1/-1 on the counter ``spec`` maintains for ``record``.

        Returns the scheduled update, or ``None`` when there is nothing to adjust
        (unresolvable target) or the dynamic column name could not be computed.
        """

        if use_current:
            target_id = self._resolver.resolve_current(record, spec.relation_path)
        else:
            target_id = self._resolver.resolve_previous(record, spec.relation_path)

        if spec.foreign_key_override is not None:
            # called even for a None id: the override may supply a fallback target
            target_id = spec.foreign_key_override(target_id)

        if target_id is None:
            return None

        try:
            column = spec.column_for(record)
        except Exception:
            log.exception(
                "Column name for counter cache %s.%s failed; skipping this update",
                spec.entity_type.__name__,
                ".".join(spec.relation_path),
            )
            return None

        update = PendingUpdate(
            target_type=self._resolver.target_type(spec.entity_type, spec.relation_path),
            target_id=target_id,
            column=column,
            delta=int(direction),
        )
        self._deferred.enqueue_pending(record, update)
        log.debug(
            "Queued %s.%s %+d for #%s",
            update.target_type.__name__,
            update.column,
            update.delta,
            update.target_id,
        )
        return update


def flush_pending(store: CounterStore, updates: Iterable[PendingUpdate]) -> int:
    """Apply committed updates in order; storage errors propagate unretried."""

    applied = 0
    for update in updates:
        store.atomic_adjust(update.target_type, update.column, update.target_id, update.delta)
        applied += 1
    if applied:
        log.debug("Applied %d counter cache update(s)", applied)
    return applied
