from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from countercache.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    counter_cache,
    is_started,
    shutdown,
    startup,
)
from tests.support.models import Post

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()
    with pytest.raises(StartupError):
        counter_cache()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    first = startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    second = startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()
    assert counter_cache() is second
    assert second is not first


def test_unit_of_work_commits_and_closes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Post("persisted", id=1))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.session.get(Post, 1) is not None

    with pytest.raises(StartupError):
        _ = uow.session


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError, match="boom"), SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Post("discarded", id=1))
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.session.get(Post, 1) is None


def test_startup_without_database_is_an_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)

    with pytest.raises(StartupError, match="No database configured"):
        startup()
    assert not is_started()


def test_startup_uses_database_uri_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    startup()

    engine = configured_engine()
    assert engine is not None
    assert engine.url.get_backend_name() == "sqlite"


def test_committed_records_stay_loaded(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        post = Post("persisted", id=1)
        uow.session.add(post)
        uow.commit()

        assert "title" in post.__dict__
