from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, event

from countercache.adapters.sqlalchemy.unit_of_work import shutdown, startup
from countercache.domain.counters import CounterCache
from tests.support.memory import InMemoryBackend
from tests.support.models import mapper_registry, start_mappers

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


def _use_explicit_transactions(engine: Engine) -> None:
    # let SQLite see BEGIN/SAVEPOINT as issued instead of pysqlite's implicit handling
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(
        dbapi_connection: object, connection_record: object
    ) -> None:
        _ = connection_record
        dbapi_connection.isolation_level = None  # type: ignore[attr-defined]

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: object) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")  # type: ignore[attr-defined]


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def memory_counters(memory_backend: InMemoryBackend) -> CounterCache:
    return CounterCache(memory_backend)


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'counters.db'}",
        future=True,
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    _use_explicit_transactions(engine)
    start_mappers()
    mapper_registry.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_counters(sqlite_engine: Engine) -> Iterator[CounterCache]:
    counters = startup(engine=sqlite_engine, force=True)
    try:
        yield counters
    finally:
        shutdown()
