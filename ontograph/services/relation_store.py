"""Service: Relation Store.

The only writer of edges.  ``create`` and ``delete`` run as one atomic
unit each: per-entity locks for both endpoints are taken, then the graph
port's ``atomic()`` block wraps the re-validation and the write.  Two
mutations that could invalidate each other's check always share an
endpoint, so they always share a lock stripe.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

from ontograph.domain.errors import RelationNotFound
from ontograph.domain.models import Direction, Relation, RelationStatistics
from ontograph.ports.entity_lookup import EntityLookupPort
from ontograph.ports.graph_store import RelationGraphPort
from ontograph.services.relation_validator import RelationValidator
from ontograph.services.schema_registry import OntologySchemaRegistry

log = logging.getLogger(__name__)


class RelationStore:
    """Validated create/delete plus ordered reads of stored relations."""

    def __init__(
        self,
        graph: RelationGraphPort,
        registry: OntologySchemaRegistry,
        entities: EntityLookupPort,
        *,
        lock_stripes: int = 64,
    ):
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be >= 1")
        self._graph = graph
        self._registry = registry
        self._stripes = [threading.Lock() for _ in range(lock_stripes)]
        self.validator = RelationValidator(registry, entities, self)

    # ── locking ──

    @contextmanager
    def _locked(self, *entity_ids: str) -> Iterator[None]:
        # Sorted, de-duplicated stripe indexes give a global acquisition order.
        indexes = sorted({hash(eid) % len(self._stripes) for eid in entity_ids})
        with ExitStack() as stack:
            for i in indexes:
                stack.enter_context(self._stripes[i])
            yield

    # ── mutations ──

    def create(self, source_id: str, target_id: str, rel_type: str) -> Relation:
        """Validate and persist an edge; raises the first violated rule."""
        relation = Relation(source_id, target_id, rel_type)
        with self._locked(source_id, target_id), self._graph.atomic():
            self.validator.validate(source_id, target_id, rel_type).raise_for_failure()
            self._graph.add_edge(relation)
        log.info("Created relation %s", relation)
        return relation

    def delete(self, source_id: str, target_id: str, rel_type: str) -> bool:
        """Remove an edge; raises :class:`RelationNotFound` if it is absent."""
        relation = Relation(source_id, target_id, rel_type)
        with self._locked(source_id, target_id), self._graph.atomic():
            if not self._graph.remove_edge(relation):
                raise RelationNotFound(source_id, target_id, rel_type)
        log.info("Deleted relation %s", relation)
        return True

    # ── reads ──

    def relations_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction = Direction.BOTH,
    ) -> list[Relation]:
        return self._graph.edges_of(entity_id, rel_type, Direction(direction))

    def relations_by_type(self, rel_type: str, limit: int = 100) -> list[Relation]:
        self._registry.definition_of(rel_type)
        _check_limit(limit)
        return self._graph.all_edges(rel_type)[:limit]

    def all_relations(self, limit: int = 50, skip: int = 0) -> list[Relation]:
        _check_limit(limit)
        if skip < 0:
            raise ValueError("skip must be >= 0")
        return self._graph.all_edges()[skip : skip + limit]

    def statistics(self) -> RelationStatistics:
        counts = self._graph.count_by_type()
        by_type = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return RelationStatistics(
            total=sum(counts.values()),
            by_type=by_type,
            available_types=sorted(self._registry.all_types()),
        )


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be >= 1")
