"""SQLAlchemy-backed unit of work and adapter start-up state."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from countercache.config.storage import get_database_config
from countercache.domain.counters.cache import CounterCache

from .backend import SqlAlchemyCounterBackend

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy import MetaData
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import SessionTransaction


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None
    backend: SqlAlchemyCounterBackend | None = None
    counters: CounterCache | None = None

    def require_session_factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call countercache.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self.session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    metadata: MetaData | None = None,
    force: bool = False,
) -> CounterCache:
    """Initialise the engine, session factory and the counter cache bound to them.

    When ``metadata`` is given its tables are created if missing; schema
    management otherwise belongs to the application.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )
    if _STATE.engine is not None:
        shutdown()

    resolved_engine = engine or create_engine(_resolve_database_uri(database_uri), future=True)
    if metadata is not None:
        metadata.create_all(resolved_engine)

    session_factory = sessionmaker(bind=resolved_engine, expire_on_commit=False)
    backend = SqlAlchemyCounterBackend(session_factory, engine=resolved_engine)

    _STATE.engine = resolved_engine
    _STATE.session_factory = session_factory
    _STATE.backend = backend
    _STATE.counters = CounterCache(backend)
    return _STATE.counters


def _resolve_database_uri(database_uri: str | None) -> str:
    if database_uri:
        return database_uri
    config = get_database_config()
    if config is None:
        raise StartupError(
            "No database configured. Pass engine= or database_uri=, or set DATABASE_URI."
        )
    return config.uri


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def counter_cache() -> CounterCache:
    """Return the counter cache bound to the adapter's session factory."""

    if _STATE.counters is None:
        raise StartupError("SQLAlchemy adapter not initialised; no counter cache available")
    return _STATE.counters


def shutdown() -> None:
    """Detach listeners, dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.backend is not None:
        _STATE.backend.remove()
    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.session_factory = None
    _STATE.backend = None
    _STATE.counters = None


class SqlAlchemyUnitOfWork:
    """Transactional scope around one session; rolls back when the block raises."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.require_session_factory()
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self.session_factory()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False  # don't swallow exceptions

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def savepoint(self) -> Iterator[SessionTransaction]:
        """Run the block in a nested transaction (SAVEPOINT)."""

        with self.session.begin_nested() as nested:
            yield nested

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session
