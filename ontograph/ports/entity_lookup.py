"""Port: entity existence and type lookup (owned by the entity service)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ontograph.domain.models import EntityRef


class EntityLookupPort(ABC):
    """Resolve entity ids to their type label."""

    @abstractmethod
    def type_of(self, entity_id: str) -> str | None:
        """Return the entity's type label, or None if it does not exist."""

    def exists(self, entity_id: str) -> bool:
        return self.type_of(entity_id) is not None

    def resolve(self, entity_id: str) -> EntityRef | None:
        entity_type = self.type_of(entity_id)
        if entity_type is None:
            return None
        return EntityRef(id=entity_id, entity_type=entity_type)
