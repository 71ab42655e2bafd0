from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from countercache.adapters.sqlalchemy import SqlAlchemyUnitOfWork, counter_cache, shutdown
from countercache.app import start_counter_cache
from tests.support.models import Comment, Post, mapper_registry, start_mappers

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_adapter() -> Iterator[None]:
    root = logging.getLogger()
    previous_level = root.level
    previous_handlers = list(root.handlers)
    yield
    shutdown()
    root.handlers[:] = previous_handlers
    root.setLevel(previous_level)


def test_start_counter_cache_creates_schema_and_wires_hooks(tmp_path: Path) -> None:
    start_mappers()
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'app.db'}", future=True)

    counters = start_counter_cache(
        engine=engine, metadata=mapper_registry.metadata, force=True, log_level=logging.DEBUG
    )
    counters.configure(Comment, "post")
    counters.freeze()

    with SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Post("five", id=5))
        uow.session.add(Comment("hello", post_id=5))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        post = uow.session.get(Post, 5)
        assert post is not None
        assert post.comments_count == 1  # type: ignore[attr-defined]

    assert counter_cache() is counters


def test_start_counter_cache_leaves_logging_alone_by_default(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls: list[int] = []
    monkeypatch.setattr(
        "countercache.app.configure_logging", lambda *, level: calls.append(level)
    )
    monkeypatch.delenv("COUNTERCACHE_LOG_LEVEL", raising=False)
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'quiet.db'}", future=True)

    start_counter_cache(engine=engine, force=True)
    assert calls == []

    monkeypatch.setenv("COUNTERCACHE_LOG_LEVEL", "warning")
    start_counter_cache(engine=engine, force=True)
    assert calls == [logging.WARNING]
