"""Walk relation paths from a record to the record that owns a counter."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from countercache.config.errors import UnknownAssociationError

if TYPE_CHECKING:
    from countercache.domain.ports.persistence import (
        AssociationLookup,
        ForeignKeyReader,
        RecordLoader,
    )

    from .spec import RecordId

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssociationDescriptor:
    """Target type and foreign key of one named many-to-one association."""

    name: str
    target_type: type
    foreign_key: str


class RelationResolver:
    """Resolve counter targets for both the current and the pre-change state."""

    def __init__(
        self,
        associations: AssociationLookup,
        loader: RecordLoader,
        foreign_keys: ForeignKeyReader,
    ) -> None:
        self._associations = associations
        self._loader = loader
        self._foreign_keys = foreign_keys
        self._paths: dict[tuple[type, tuple[str, ...]], tuple[AssociationDescriptor, ...]] = {}
        self._lock = threading.Lock()

    def describe(self, entity_type: type, name: str) -> AssociationDescriptor:
        descriptor = self._associations.association(entity_type, name)
        if descriptor is None:
            raise UnknownAssociationError(entity_type, name)
        return descriptor

    def describe_path(
        self, entity_type: type, relation_path: tuple[str, ...]
    ) -> tuple[AssociationDescriptor, ...]:
        """Validate every hop of ``relation_path`` at the type level."""

        key = (entity_type, relation_path)
        cached = self._paths.get(key)
        if cached is not None:
            return cached

        descriptors: list[AssociationDescriptor] = []
        current_type = entity_type
        for name in relation_path:
            descriptor = self.describe(current_type, name)
            descriptors.append(descriptor)
            current_type = descriptor.target_type

        resolved = tuple(descriptors)
        with self._lock:
            self._paths.setdefault(key, resolved)
        return resolved

    def target_type(self, entity_type: type, relation_path: tuple[str, ...]) -> type:
        return self.describe_path(entity_type, relation_path)[-1].target_type

    def first_level_foreign_key(self, entity_type: type, relation_path: tuple[str, ...]) -> str:
        return self.describe_path(entity_type, relation_path)[0].foreign_key

    def resolve_current(
        self, record: object, relation_path: tuple[str, ...]
    ) -> RecordId | None:
        """Return the id of the record at the end of ``relation_path`` right now.

        A missing hop anywhere along the path yields ``None``.
        """

        return self._walk(record, type(record), relation_path, origin=record)

    def resolve_previous(
        self, record: object, relation_path: tuple[str, ...]
    ) -> RecordId | None:
        """Return the id the path pointed at before the in-flight foreign key change.

        Only the first-level foreign key is taken from its previous value; the
        remaining hops follow the current relations of the previously referenced
        record.
        """

        descriptors = self.describe_path(type(record), relation_path)
        first = descriptors[0]
        previous_id = self._foreign_keys.previous_foreign_key(record, first.foreign_key)
        if previous_id is None:
            return None

        previous = self._loader.load(first.target_type, previous_id, related_to=record)
        if previous is None:
            log.debug(
                "Previous %s #%s referenced by %s no longer exists",
                first.target_type.__name__,
                previous_id,
                type(record).__name__,
            )
            return None
        if len(relation_path) == 1:
            return previous_id
        return self._walk(previous, first.target_type, relation_path[1:], origin=record)

    def _walk(
        self,
        record: object,
        entity_type: type,
        relation_path: tuple[str, ...],
        *,
        origin: object,
    ) -> RecordId | None:
        descriptors = self.describe_path(entity_type, relation_path)
        current = record
        last = len(descriptors) - 1
        for index, descriptor in enumerate(descriptors):
            related_id = self._foreign_keys.current_foreign_key(current, descriptor.foreign_key)
            if related_id is None:
                return None
            if index == last:
                return related_id
            loaded = self._loader.load(descriptor.target_type, related_id, related_to=origin)
            if loaded is None:
                return None
            current = loaded
        return None
