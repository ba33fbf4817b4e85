"""Service: Relation Validator.

Decides whether a candidate ``(source, target, type)`` triple may be
persisted.  Rules run in a fixed order and stop at the first failure, so
the result always names the single rule the caller must fix:

1. the relation type is declared
2. both entities exist (source checked first)
3. the source type is allowed
4. the target type is allowed
5. a ONE source bound is not already used towards a different target
6. a ONE target bound is not already used from a different source
7. the triple is not already stored

Validation never writes.  :class:`~ontograph.services.relation_store.RelationStore`
runs it again inside its atomic unit before every insert.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ontograph.domain.errors import (
    CardinalityViolation,
    DuplicateRelation,
    EntityNotFound,
    InvalidSourceType,
    InvalidTargetType,
    OntologyError,
    StoreFailure,
)
from ontograph.domain.models import (
    Bound,
    Direction,
    Relation,
    RelationTypeDefinition,
    ValidationResult,
)
from ontograph.ports.entity_lookup import EntityLookupPort
from ontograph.services.schema_registry import OntologySchemaRegistry

log = logging.getLogger(__name__)


class RelationReader(Protocol):
    def relations_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction = Direction.BOTH,
    ) -> list[Relation]: ...


class RelationValidator:
    """Check a triple against the schema, the entity lookup and current edges."""

    def __init__(
        self,
        registry: OntologySchemaRegistry,
        entities: EntityLookupPort,
        relations: RelationReader,
    ):
        self._registry = registry
        self._entities = entities
        self._relations = relations

    def validate(self, source_id: str, target_id: str, rel_type: str) -> ValidationResult:
        try:
            self._check(source_id, target_id, rel_type)
        except StoreFailure:
            raise
        except OntologyError as exc:
            log.debug("Rejected (%s)-[%s]->(%s): %s", source_id, rel_type, target_id, exc)
            return ValidationResult(error=exc)
        return ValidationResult()

    # ── rules ──

    def _check(self, source_id: str, target_id: str, rel_type: str) -> None:
        definition = self._registry.definition_of(rel_type)

        source_type = self._entities.type_of(source_id)
        if source_type is None:
            raise EntityNotFound(source_id, side="source")
        target_type = self._entities.type_of(target_id)
        if target_type is None:
            raise EntityNotFound(target_id, side="target")

        if source_type not in definition.source_types:
            raise InvalidSourceType(rel_type, source_type, definition.source_types)
        if target_type not in definition.target_types:
            raise InvalidTargetType(rel_type, target_type, definition.target_types)

        self._check_cardinality(definition, source_id, target_id)

        candidate = Relation(source_id, target_id, rel_type)
        outgoing = self._relations.relations_of(source_id, rel_type, Direction.OUTGOING)
        if candidate in outgoing:
            raise DuplicateRelation(source_id, target_id, rel_type)

    def _check_cardinality(
        self, definition: RelationTypeDefinition, source_id: str, target_id: str
    ) -> None:
        rel_type = definition.name
        if definition.cardinality.source is Bound.ONE:
            for rel in self._relations.relations_of(source_id, rel_type, Direction.OUTGOING):
                if rel.target_id != target_id:
                    raise CardinalityViolation(rel_type, "source", source_id, rel.target_id)
        if definition.cardinality.target is Bound.ONE:
            for rel in self._relations.relations_of(target_id, rel_type, Direction.INCOMING):
                if rel.source_id != source_id:
                    raise CardinalityViolation(rel_type, "target", target_id, rel.source_id)
