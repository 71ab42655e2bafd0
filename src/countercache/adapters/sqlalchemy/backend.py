"""SQLAlchemy implementation of the counter cache persistence ports."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import event, inspect, update
from sqlalchemy.orm import MANYTOONE, Mapper, Session, object_session

from countercache.config.errors import ConfigurationError
from countercache.domain.counters.dispatcher import flush_pending
from countercache.domain.counters.pending import PendingUpdateQueue
from countercache.domain.counters.resolver import AssociationDescriptor

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.orm import SessionTransaction, UOWTransaction, sessionmaker
    from sqlalchemy.sql.dml import Update

    from countercache.domain.counters.spec import PendingUpdate, RecordId
    from countercache.domain.ports.persistence import LifecycleCallback

log = getLogger(__name__)

PENDING_QUEUE_KEY: Final[str] = "countercache.pending"


@dataclass(frozen=True, slots=True)
class _Lifecycle:
    after_create: LifecycleCallback
    after_update: LifecycleCallback
    after_destroy: LifecycleCallback


class ConnectionCounterStore:
    """Issue ``UPDATE ... SET col = col + :delta`` statements on one connection."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def atomic_adjust(
        self, target_type: type, column: str, record_id: RecordId, delta: int
    ) -> None:
        self._connection.execute(adjust_statement(target_type, column, record_id, delta))


def adjust_statement(target_type: type, column: str, record_id: RecordId, delta: int) -> Update:
    mapper = _mapper_for(target_type)
    if mapper is None:
        raise ConfigurationError(f"{target_type.__name__} is not a mapped class")
    table = mapper.local_table
    counter = table.c.get(column)
    if counter is None:
        raise ConfigurationError(f"No counter column {column!r} on {table.name}")
    if len(mapper.primary_key) != 1:
        raise ConfigurationError(
            f"Counter caches require a single-column primary key on {table.name}"
        )
    primary_key = mapper.primary_key[0]
    return (
        update(table)
        .where(primary_key == record_id)
        .values({counter: counter + delta})
    )


class SqlAlchemyCounterBackend:
    """Counter cache backend bound to the sessions produced by ``session_factory``.

    Lifecycle hooks run from the session ``after_flush`` event, while the
    attribute history of the flushed objects is still available. Pending
    updates are kept per session, scoped to the innermost savepoint or the root
    transaction, and applied in a fresh transaction once the root transaction
    has committed.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        engine: Engine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._lifecycles: dict[type, _Lifecycle] = {}
        self._listening = False
        self._tracked_keys: set[tuple[type, str]] = set()
        self._lock = threading.Lock()

    # AssociationLookup ---------------------------------------------------------

    def association(self, entity_type: type, name: str) -> AssociationDescriptor | None:
        mapper = _mapper_for(entity_type)
        if mapper is None:
            return None
        if name not in mapper.relationships:
            return None
        relationship = mapper.relationships[name]
        if relationship.direction is not MANYTOONE:
            return None
        local_columns = list(relationship.local_columns)
        if len(local_columns) != 1:
            return None
        foreign_key = mapper.get_property_by_column(local_columns[0]).key
        self._track_previous_value(entity_type, foreign_key)
        return AssociationDescriptor(
            name=name,
            target_type=relationship.mapper.class_,
            foreign_key=foreign_key,
        )

    # RecordLoader --------------------------------------------------------------

    def load(
        self, entity_type: type, record_id: RecordId, *, related_to: object
    ) -> object | None:
        session = object_session(related_to)
        if session is None:
            return None
        return session.get(entity_type, record_id)

    # ForeignKeyReader ----------------------------------------------------------

    def current_foreign_key(self, record: object, foreign_key: str) -> RecordId | None:
        return getattr(record, foreign_key)

    def previous_foreign_key(self, record: object, foreign_key: str) -> RecordId | None:
        history = inspect(record).attrs[foreign_key].history
        if history.deleted:
            return history.deleted[0]
        if history.unchanged:
            return history.unchanged[0]
        return None

    def foreign_key_changed(self, record: object, foreign_key: str) -> bool:
        if not inspect(record).attrs[foreign_key].history.has_changes():
            return False
        return self.previous_foreign_key(record, foreign_key) != self.current_foreign_key(
            record, foreign_key
        )

    def _track_previous_value(self, entity_type: type, foreign_key: str) -> None:
        """Load the stored key before it is overwritten, even on expired instances."""

        with self._lock:
            if (entity_type, foreign_key) in self._tracked_keys:
                return
            event.listen(
                getattr(entity_type, foreign_key),
                "set",
                _keep_previous_value,
                active_history=True,
            )
            self._tracked_keys.add((entity_type, foreign_key))

    # CounterStore --------------------------------------------------------------

    def atomic_adjust(
        self, target_type: type, column: str, record_id: RecordId, delta: int
    ) -> None:
        with self._bind().begin() as connection:
            ConnectionCounterStore(connection).atomic_adjust(
                target_type, column, record_id, delta
            )

    # DeferredExecution ---------------------------------------------------------

    def enqueue_pending(self, record: object, pending_update: PendingUpdate) -> None:
        session = object_session(record)
        if session is None:
            raise ConfigurationError(
                f"{type(record).__name__} is not attached to a session; "
                "counter updates need an active transaction"
            )
        _queue_for(session).enqueue(_current_scope(session), pending_update)

    # LifecycleRegistrar --------------------------------------------------------

    def install_lifecycle(
        self,
        entity_type: type,
        *,
        after_create: LifecycleCallback,
        after_update: LifecycleCallback,
        after_destroy: LifecycleCallback,
    ) -> None:
        if _mapper_for(entity_type) is None:
            raise ConfigurationError(f"{entity_type.__name__} is not a mapped class")
        with self._lock:
            self._lifecycles[entity_type] = _Lifecycle(
                after_create=after_create,
                after_update=after_update,
                after_destroy=after_destroy,
            )
            if not self._listening:
                self._listen()
                self._listening = True

    def remove(self) -> None:
        """Detach all session listeners (primarily for tests)."""

        with self._lock:
            if self._listening:
                target = self._session_factory
                event.remove(target, "after_flush", self._after_flush)
                event.remove(target, "after_commit", self._after_commit)
                event.remove(target, "after_rollback", self._after_rollback)
                event.remove(target, "after_transaction_end", self._after_transaction_end)
                self._listening = False
            self._lifecycles.clear()

    def _listen(self) -> None:
        target = self._session_factory
        event.listen(target, "after_flush", self._after_flush)
        event.listen(target, "after_commit", self._after_commit)
        event.listen(target, "after_rollback", self._after_rollback)
        event.listen(target, "after_transaction_end", self._after_transaction_end)

    def _bind(self) -> Engine | Connection:
        if self._engine is not None:
            return self._engine
        bind = self._session_factory.kw.get("bind")
        if bind is None:
            raise ConfigurationError("Counter cache backend has no engine to write to")
        return bind

    def _after_flush(self, session: Session, flush_context: UOWTransaction) -> None:
        _ = flush_context
        for record in list(session.new):
            lifecycle = self._lifecycles.get(type(record))
            if lifecycle is not None:
                lifecycle.after_create(record)
        for record in list(session.dirty):
            lifecycle = self._lifecycles.get(type(record))
            if lifecycle is not None and session.is_modified(record, include_collections=False):
                lifecycle.after_update(record)
        for record in list(session.deleted):
            lifecycle = self._lifecycles.get(type(record))
            if lifecycle is not None:
                lifecycle.after_destroy(record)

    def _after_commit(self, session: Session) -> None:
        if session.get_nested_transaction() is not None:
            # savepoint release; its updates move up in after_transaction_end
            return
        queue: PendingUpdateQueue | None = session.info.get(PENDING_QUEUE_KEY)
        root = session.get_transaction()
        if queue is None or root is None:
            return
        updates = queue.drain(root)
        if not updates:
            return
        log.debug("Applying %d counter update(s) after commit", len(updates))
        bind = self._engine or session.get_bind()
        with bind.begin() as connection:
            flush_pending(ConnectionCounterStore(connection), updates)

    def _after_rollback(self, session: Session) -> None:
        queue: PendingUpdateQueue | None = session.info.get(PENDING_QUEUE_KEY)
        if queue is not None:
            queue.discard(_current_scope(session))

    def _after_transaction_end(self, session: Session, transaction: SessionTransaction) -> None:
        queue: PendingUpdateQueue | None = session.info.get(PENDING_QUEUE_KEY)
        if queue is None:
            return
        if transaction.nested:
            parent = transaction.parent
            if parent is not None:
                queue.release(transaction, _scope_of(parent))
        elif transaction.parent is None:
            # root closed without a commit that drained it
            queue.discard(transaction)


def _keep_previous_value(
    target: object, value: object, oldvalue: object, initiator: object
) -> None:
    # registered only for active_history; attribute history records oldvalue
    _ = (target, value, oldvalue, initiator)


def _mapper_for(entity_type: type) -> Mapper[Any] | None:
    mapper = inspect(entity_type, raiseerr=False)
    if isinstance(mapper, Mapper):
        return mapper
    return None


def _queue_for(session: Session) -> PendingUpdateQueue:
    queue = session.info.get(PENDING_QUEUE_KEY)
    if queue is None:
        queue = PendingUpdateQueue()
        session.info[PENDING_QUEUE_KEY] = queue
    return queue


def _current_scope(session: Session) -> SessionTransaction | None:
    return session.get_nested_transaction() or session.get_transaction()


def _scope_of(transaction: SessionTransaction) -> SessionTransaction:
    scope = transaction
    while not scope.nested and scope.parent is not None:
        scope = scope.parent
    return scope
