"""Entity lookup adapter: in-memory id → type table (for tests and config seeding)."""

from __future__ import annotations

import threading
from collections.abc import Mapping

from ontograph.ports.entity_lookup import EntityLookupPort


class InMemoryEntityLookup(EntityLookupPort):
    """Entity types held in a dict.

    ``register``/``forget`` stand in for the external entity service
    creating and destroying records.
    """

    def __init__(self, entities: Mapping[str, str] | None = None) -> None:
        self._types: dict[str, str] = {str(k): str(v) for k, v in (entities or {}).items()}
        self._lock = threading.Lock()

    def register(self, entity_id: str, entity_type: str) -> None:
        with self._lock:
            self._types[entity_id] = entity_type

    def forget(self, entity_id: str) -> None:
        with self._lock:
            self._types.pop(entity_id, None)

    def type_of(self, entity_id: str) -> str | None:
        with self._lock:
            return self._types.get(entity_id)

    def __len__(self) -> int:
        return len(self._types)
