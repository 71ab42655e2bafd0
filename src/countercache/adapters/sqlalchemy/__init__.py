"""SQLAlchemy adapter package for countercache."""

from __future__ import annotations

from .backend import ConnectionCounterStore, SqlAlchemyCounterBackend, adjust_statement
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    counter_cache,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "ConnectionCounterStore",
    "SqlAlchemyCounterBackend",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "adjust_statement",
    "configured_engine",
    "counter_cache",
    "is_started",
    "shutdown",
    "startup",
]
