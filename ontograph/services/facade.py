"""Query Façade: the single entry point for the API layer and the CLI.

Composes the registry, relation store and traversal engine.  Validation
errors are surfaced as raised; a :class:`StoreFailure` is retried up to
``store_retries`` times (no side effects are assumed from a failed unit)
before it propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from ontograph.domain.errors import EntityNotFound, StoreFailure
from ontograph.domain.models import (
    Direction,
    Path,
    RankedEntity,
    Relation,
    RelationStatistics,
    RelationTypeDefinition,
)
from ontograph.ports.entity_lookup import EntityLookupPort
from ontograph.services.graph_traversal import GraphTraversalEngine
from ontograph.services.relation_store import RelationStore
from ontograph.services.schema_registry import OntologySchemaRegistry

log = logging.getLogger(__name__)

T = TypeVar("T")


class RelationFacade:
    """Validated relation mutations, relation reads and graph analytics."""

    def __init__(
        self,
        registry: OntologySchemaRegistry,
        entities: EntityLookupPort,
        store: RelationStore,
        traversal: GraphTraversalEngine,
        *,
        store_retries: int = 1,
    ):
        self._registry = registry
        self._entities = entities
        self._store = store
        self._traversal = traversal
        self._store_retries = max(0, store_retries)

    # ── retry ──

    def _with_retry(self, op: str, fn: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return fn()
            except StoreFailure as exc:
                if attempt >= self._store_retries:
                    log.error("%s failed after %d attempt(s): %s", op, attempt + 1, exc)
                    raise
                attempt += 1
                log.warning("%s hit a store failure, retrying (%d): %s", op, attempt, exc)

    def _require_entity(self, entity_id: str) -> None:
        if not self._with_retry("lookup", lambda: self._entities.exists(entity_id)):
            raise EntityNotFound(entity_id)

    # ── mutations ──

    def validate_relation(self, source_id: str, target_id: str, rel_type: str) -> dict[str, Any]:
        """Dry run: report whether the relation could be created right now."""
        result = self._with_retry(
            "validate_relation",
            lambda: self._store.validator.validate(source_id, target_id, rel_type),
        )
        return result.to_dict()

    def create_relation(self, source_id: str, target_id: str, rel_type: str) -> Relation:
        return self._with_retry(
            "create_relation", lambda: self._store.create(source_id, target_id, rel_type)
        )

    def delete_relation(self, source_id: str, target_id: str, rel_type: str) -> dict[str, bool]:
        deleted = self._with_retry(
            "delete_relation", lambda: self._store.delete(source_id, target_id, rel_type)
        )
        return {"deleted": deleted}

    # ── relation reads ──

    def relations_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction | str = Direction.BOTH,
    ) -> list[Relation]:
        self._require_entity(entity_id)
        if rel_type is not None:
            self._registry.definition_of(rel_type)
        return self._with_retry(
            "relations_of",
            lambda: self._store.relations_of(entity_id, rel_type, Direction(direction)),
        )

    def relation_types(self) -> list[RelationTypeDefinition]:
        return self._registry.definitions()

    def relations_by_type(self, rel_type: str, limit: int = 100) -> list[Relation]:
        return self._with_retry(
            "relations_by_type", lambda: self._store.relations_by_type(rel_type, limit)
        )

    def all_relations(self, limit: int = 50, skip: int = 0) -> list[Relation]:
        return self._with_retry("all_relations", lambda: self._store.all_relations(limit, skip))

    def statistics(self) -> RelationStatistics:
        return self._with_retry("statistics", self._store.statistics)

    # ── analytics ──

    def find_paths(
        self,
        source_id: str,
        target_id: str,
        max_depth: int = 3,
        *,
        timeout: float | None = None,
    ) -> list[Path]:
        self._require_entity(source_id)
        self._require_entity(target_id)
        return self._with_retry(
            "find_paths",
            lambda: self._traversal.find_paths(source_id, target_id, max_depth, timeout=timeout),
        )

    def centrality(
        self,
        limit: int = 20,
        *,
        weights: Mapping[str, float] | None = None,
        entity_types: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> list[RankedEntity]:
        if weights:
            for rel_type in weights:
                self._registry.definition_of(rel_type)
        types = frozenset(entity_types) if entity_types else None
        return self._with_retry(
            "centrality",
            lambda: self._traversal.centrality(
                limit, weights=weights, entity_types=types, timeout=timeout
            ),
        )

    def similar_to(
        self,
        entity_id: str,
        limit: int = 10,
        *,
        entity_types: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> list[RankedEntity]:
        self._require_entity(entity_id)
        types = frozenset(entity_types) if entity_types else None
        return self._with_retry(
            "similar_to",
            lambda: self._traversal.similar_to(
                entity_id, limit, entity_types=types, timeout=timeout
            ),
        )
