"""Counter declarations and the pending updates they produce."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, TypeAlias

import inflection

from countercache.config.errors import ConfigurationError

RecordId: TypeAlias = Hashable
ColumnResolver: TypeAlias = str | Callable[[Any], str]
ForeignKeyOverride: TypeAlias = Callable[[RecordId | None], RecordId | None]


class Direction(IntEnum):
    INCREMENT = 1
    DECREMENT = -1


@dataclass(frozen=True, slots=True)
class CounterSpec:
    """One declared counter cache on ``entity_type``.

    ``relation_path`` is walked from a record of ``entity_type`` towards the record
    holding the counter column. ``column_name`` is either a fixed column or a callable
    evaluated against the record that triggered the event. ``foreign_key_override``,
    when present, receives the resolved id (possibly ``None``) and returns the id
    that is actually adjusted.
    """

    entity_type: type
    relation_path: tuple[str, ...]
    column_name: ColumnResolver
    foreign_key_override: ForeignKeyOverride | None = None

    def column_for(self, record: object) -> str:
        if callable(self.column_name):
            return self.column_name(record)
        return self.column_name


@dataclass(frozen=True, slots=True)
class PendingUpdate:
    """A counter delta waiting for its transaction to commit."""

    target_type: type
    target_id: RecordId
    column: str
    delta: int


def default_column_name(entity_type: type) -> str:
    """Return ``<tableized type name>_count``, e.g. ``Comment`` -> ``comments_count``."""

    return f"{inflection.tableize(entity_type.__name__)}_count"


def normalize_relation_path(relation_path: str | Sequence[str]) -> tuple[str, ...]:
    """Accept a single association name or a sequence of names."""

    path = (relation_path,) if isinstance(relation_path, str) else tuple(relation_path)
    if not path:
        raise ConfigurationError("Relation path must name at least one association")
    for name in path:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Invalid association name in relation path: {name!r}")
    return path
