"""Application entry points for wiring counter caches onto a database."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from countercache.adapters.sqlalchemy.unit_of_work import startup
from countercache.config.logging import configure_logging, get_log_level

if TYPE_CHECKING:
    from sqlalchemy import MetaData
    from sqlalchemy.engine import Engine

    from countercache.domain.counters.cache import CounterCache

log = getLogger(__name__)


def start_counter_cache(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    metadata: MetaData | None = None,
    force: bool = False,
    log_level: int | None = None,
) -> CounterCache:
    """Start the SQLAlchemy adapter and return its counter cache.

    Root logging is only configured when ``log_level`` is given or
    ``COUNTERCACHE_LOG_LEVEL`` is set; otherwise the application's setup is left alone.
    """

    level = log_level if log_level is not None else get_log_level()
    if level is not None:
        configure_logging(level=level)
    counters = startup(engine=engine, database_uri=database_uri, metadata=metadata, force=force)
    log.info("Counter cache started")
    return counters
