"""Transaction-scoped queue of pending counter updates."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable

    from .spec import PendingUpdate

log = getLogger(__name__)


class PendingUpdateQueue:
    """Pending updates grouped by the transaction scope they were registered in.

    A scope is any hashable token identifying a transaction: the outermost
    transaction or a nested one (savepoint). Nested scopes are folded into their
    parent with :meth:`release` when they commit and dropped with :meth:`discard`
    when they roll back. Only :meth:`drain` on the outermost scope hands updates
    out for application, and each update is handed out at most once.
    """

    def __init__(self) -> None:
        self._frames: dict[Hashable, list[PendingUpdate]] = {}

    def __len__(self) -> int:
        return sum(len(frame) for frame in self._frames.values())

    def enqueue(self, scope: Hashable, update: PendingUpdate) -> None:
        self._frames.setdefault(scope, []).append(update)

    def pending(self, scope: Hashable) -> tuple[PendingUpdate, ...]:
        return tuple(self._frames.get(scope, ()))

    def release(self, scope: Hashable, into: Hashable) -> None:
        """Move the updates of a committed nested scope into its enclosing scope."""

        frame = self._frames.pop(scope, None)
        if not frame:
            return
        self._frames.setdefault(into, []).extend(frame)

    def discard(self, scope: Hashable) -> list[PendingUpdate]:
        """Drop the updates of a rolled back scope without applying them."""

        frame = self._frames.pop(scope, [])
        if frame:
            log.debug("Discarding %d pending counter update(s)", len(frame))
        return frame

    def drain(self, scope: Hashable) -> list[PendingUpdate]:
        """Return and forget the updates of a committed outermost scope."""

        return self._frames.pop(scope, [])
