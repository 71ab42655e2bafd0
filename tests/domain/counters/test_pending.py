from __future__ import annotations

from countercache.domain.counters import PendingUpdate, PendingUpdateQueue
from tests.support.memory import Post

ROOT = "root"
SAVEPOINT = "savepoint"


def _update(target_id: int, delta: int = 1) -> PendingUpdate:
    return PendingUpdate(Post, target_id, "comments_count", delta)


def test_drain_hands_out_updates_once() -> None:
    queue = PendingUpdateQueue()
    queue.enqueue(ROOT, _update(1))
    queue.enqueue(ROOT, _update(2))

    assert queue.drain(ROOT) == [_update(1), _update(2)]
    assert queue.drain(ROOT) == []
    assert len(queue) == 0


def test_released_savepoint_joins_enclosing_scope() -> None:
    queue = PendingUpdateQueue()
    queue.enqueue(ROOT, _update(1))
    queue.enqueue(SAVEPOINT, _update(2))

    queue.release(SAVEPOINT, ROOT)

    assert queue.pending(SAVEPOINT) == ()
    assert queue.drain(ROOT) == [_update(1), _update(2)]


def test_discarded_savepoint_leaves_enclosing_scope_untouched() -> None:
    queue = PendingUpdateQueue()
    queue.enqueue(ROOT, _update(1))
    queue.enqueue(SAVEPOINT, _update(2, delta=-1))

    assert queue.discard(SAVEPOINT) == [_update(2, delta=-1)]
    assert queue.drain(ROOT) == [_update(1)]


def test_scopes_are_isolated_from_each_other() -> None:
    queue = PendingUpdateQueue()
    other = object()
    queue.enqueue(ROOT, _update(1))
    queue.enqueue(other, _update(2))

    queue.discard(ROOT)

    assert queue.pending(other) == (_update(2),)
    assert len(queue) == 1


def test_releasing_empty_scope_is_harmless() -> None:
    queue = PendingUpdateQueue()

    queue.release(SAVEPOINT, ROOT)

    assert queue.pending(ROOT) == ()
