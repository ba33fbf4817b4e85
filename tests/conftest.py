"""Shared test fixtures — in-memory adapters and a small instrument ontology."""

from __future__ import annotations

import time

import pytest

from ontograph.adapters.lookups.in_memory_entities import InMemoryEntityLookup
from ontograph.adapters.stores.in_memory_graph import InMemoryGraphStore
from ontograph.domain.errors import StoreFailure
from ontograph.domain.models import Direction, Relation
from ontograph.services.facade import RelationFacade
from ontograph.services.graph_traversal import GraphTraversalEngine
from ontograph.services.relation_store import RelationStore
from ontograph.services.schema_registry import OntologySchemaRegistry


TEST_RELATION_TYPES = {
    "belongsTo": {
        "from": ["Instrument"],
        "to": ["Family"],
        "cardinality": {"source": "one", "target": "many"},
    },
    "usedBy": {
        "from": ["Instrument"],
        "to": ["EthnicGroup"],
        "cardinality": {"source": "many", "target": "many"},
    },
    "locatedIn": {
        "from": ["Instrument", "EthnicGroup"],
        "to": ["Locality"],
    },
    "signatureOf": {
        "from": ["Timbre"],
        "to": ["Instrument"],
        "cardinality": {"source": "many", "target": "one"},
    },
}

TEST_ENTITIES = {
    "i1": "Instrument",
    "i2": "Instrument",
    "i3": "Instrument",
    "f1": "Family",
    "f2": "Family",
    "g1": "EthnicGroup",
    "g2": "EthnicGroup",
    "l1": "Locality",
    "t1": "Timbre",
    "t2": "Timbre",
    "a1": "Artisan",
}


# ── Test doubles ──


class SlowGraphStore(InMemoryGraphStore):
    """Sleeps on every edge read to widen check-then-act windows."""

    def __init__(self, delay: float = 0.002) -> None:
        super().__init__()
        self.delay = delay

    def edges_of(self, entity_id, rel_type=None, direction=Direction.BOTH):
        time.sleep(self.delay)
        return super().edges_of(entity_id, rel_type, direction)

    def all_edges(self, rel_type=None):
        time.sleep(self.delay)
        return super().all_edges(rel_type)


class FlakyGraphStore(InMemoryGraphStore):
    """Raises StoreFailure on the first ``failures`` writes."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures
        self.write_attempts = 0

    def add_edge(self, relation: Relation) -> None:
        self.write_attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise StoreFailure("disk I/O error")
        super().add_edge(relation)


# ── Fixtures ──


@pytest.fixture
def registry():
    return OntologySchemaRegistry.from_mapping(TEST_RELATION_TYPES)


@pytest.fixture
def entities():
    return InMemoryEntityLookup(TEST_ENTITIES)


@pytest.fixture
def in_memory_graph():
    return InMemoryGraphStore()


@pytest.fixture
def store(in_memory_graph, registry, entities):
    return RelationStore(in_memory_graph, registry, entities)


@pytest.fixture
def traversal(in_memory_graph, entities):
    return GraphTraversalEngine(in_memory_graph, entities)


@pytest.fixture
def facade(registry, entities, store, traversal):
    return RelationFacade(registry, entities, store, traversal)
