"""Tests for the relation store: mutations, reads and concurrent writers."""

from __future__ import annotations

import threading

import pytest

from ontograph.adapters.lookups.in_memory_entities import InMemoryEntityLookup
from ontograph.domain.errors import (
    CardinalityViolation,
    DuplicateRelation,
    InvalidTargetType,
    OntologyError,
    RelationNotFound,
    UnknownRelationType,
)
from ontograph.domain.models import Direction, Relation
from ontograph.services.relation_store import RelationStore

from conftest import TEST_ENTITIES, SlowGraphStore


class TestCreateDelete:
    def test_create_returns_relation(self, store, in_memory_graph):
        rel = store.create("i1", "f1", "belongsTo")
        assert rel == Relation("i1", "f1", "belongsTo")
        assert in_memory_graph.has_edge(rel)

    def test_create_raises_first_violation(self, store, in_memory_graph):
        with pytest.raises(InvalidTargetType):
            store.create("i1", "g1", "belongsTo")
        assert in_memory_graph.all_edges() == []

    def test_create_duplicate(self, store):
        store.create("i1", "g1", "usedBy")
        with pytest.raises(DuplicateRelation):
            store.create("i1", "g1", "usedBy")

    def test_rejected_create_leaves_graph_unchanged(self, store, in_memory_graph):
        store.create("i1", "f1", "belongsTo")
        before = in_memory_graph.all_edges()
        with pytest.raises(CardinalityViolation):
            store.create("i1", "f2", "belongsTo")
        assert in_memory_graph.all_edges() == before

    def test_delete(self, store, in_memory_graph):
        rel = store.create("i1", "f1", "belongsTo")
        assert store.delete("i1", "f1", "belongsTo") is True
        assert not in_memory_graph.has_edge(rel)

    def test_delete_missing(self, store):
        with pytest.raises(RelationNotFound):
            store.delete("i1", "f1", "belongsTo")

    def test_delete_frees_one_bound(self, store):
        store.create("i1", "f1", "belongsTo")
        store.delete("i1", "f1", "belongsTo")
        assert store.create("i1", "f2", "belongsTo").target_id == "f2"

    def test_lock_stripes_must_be_positive(self, in_memory_graph, registry, entities):
        with pytest.raises(ValueError):
            RelationStore(in_memory_graph, registry, entities, lock_stripes=0)


class TestReads:
    @pytest.fixture
    def populated(self, store):
        store.create("i1", "f1", "belongsTo")
        store.create("i1", "g1", "usedBy")
        store.create("i2", "g1", "usedBy")
        store.create("g1", "l1", "locatedIn")
        store.create("t1", "i1", "signatureOf")
        return store

    def test_relations_of_both_directions(self, populated):
        rels = populated.relations_of("i1")
        assert [r.rel_type for r in rels] == ["belongsTo", "usedBy", "signatureOf"]

    def test_relations_of_filtered(self, populated):
        assert populated.relations_of("i1", direction=Direction.INCOMING) == [
            Relation("t1", "i1", "signatureOf")
        ]
        assert populated.relations_of("g1", "usedBy", Direction.INCOMING) == [
            Relation("i1", "g1", "usedBy"),
            Relation("i2", "g1", "usedBy"),
        ]
        assert populated.relations_of("g1", "usedBy", Direction.OUTGOING) == []

    def test_relations_by_type(self, populated):
        assert len(populated.relations_by_type("usedBy")) == 2
        assert len(populated.relations_by_type("usedBy", limit=1)) == 1
        with pytest.raises(UnknownRelationType):
            populated.relations_by_type("nope")

    def test_all_relations_pagination(self, populated):
        first = populated.all_relations(limit=2)
        rest = populated.all_relations(limit=10, skip=2)
        assert len(first) == 2 and len(rest) == 3
        assert first + rest == populated.all_relations(limit=50)

    @pytest.mark.parametrize("limit,skip", [(0, 0), (5, -1)])
    def test_all_relations_rejects_bad_paging(self, populated, limit, skip):
        with pytest.raises(ValueError):
            populated.all_relations(limit=limit, skip=skip)

    def test_statistics(self, populated):
        st = populated.statistics()
        assert st.total == 5
        assert st.by_type[0] == ("usedBy", 2)
        assert [t for t, _ in st.by_type[1:]] == ["belongsTo", "locatedIn", "signatureOf"]
        assert st.available_types == sorted(st.available_types)
        assert st.to_dict()["relation_types"][0] == {"type": "usedBy", "count": 2}


class TestConcurrentWriters:
    """Racing writers must never leave a violated bound or a duplicate behind."""

    N_THREADS = 16

    @pytest.fixture
    def slow_store(self, registry):
        table = dict(TEST_ENTITIES)
        table.update({f"fam{i}": "Family" for i in range(self.N_THREADS)})
        table.update({f"tim{i}": "Timbre" for i in range(self.N_THREADS)})
        graph = SlowGraphStore()
        return RelationStore(graph, registry, InMemoryEntityLookup(table), lock_stripes=8), graph

    def _race(self, calls):
        barrier = threading.Barrier(len(calls))
        outcomes: list[object] = [None] * len(calls)

        def run(i, fn):
            barrier.wait()
            try:
                outcomes[i] = fn()
            except OntologyError as exc:
                outcomes[i] = exc

        threads = [threading.Thread(target=run, args=(i, fn)) for i, fn in enumerate(calls)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes

    def test_source_one_bound_under_contention(self, slow_store):
        store, graph = slow_store
        outcomes = self._race(
            [lambda i=i: store.create("i1", f"fam{i}", "belongsTo") for i in range(self.N_THREADS)]
        )
        created = [o for o in outcomes if isinstance(o, Relation)]
        rejected = [o for o in outcomes if isinstance(o, CardinalityViolation)]
        assert len(created) == 1
        assert len(rejected) == self.N_THREADS - 1
        assert len(graph.edges_of("i1", "belongsTo", Direction.OUTGOING)) == 1

    def test_target_one_bound_under_contention(self, slow_store):
        store, graph = slow_store
        outcomes = self._race(
            [lambda i=i: store.create(f"tim{i}", "i2", "signatureOf") for i in range(self.N_THREADS)]
        )
        assert sum(isinstance(o, Relation) for o in outcomes) == 1
        assert len(graph.edges_of("i2", "signatureOf", Direction.INCOMING)) == 1

    def test_same_triple_created_once(self, slow_store):
        store, graph = slow_store
        outcomes = self._race(
            [lambda: store.create("i3", "g2", "usedBy") for _ in range(self.N_THREADS)]
        )
        assert sum(isinstance(o, Relation) for o in outcomes) == 1
        assert all(
            isinstance(o, (Relation, DuplicateRelation)) for o in outcomes
        )
        assert graph.all_edges("usedBy") == [Relation("i3", "g2", "usedBy")]

    def test_create_and_delete_interleave_consistently(self, slow_store):
        store, graph = slow_store
        store.create("i1", "fam0", "belongsTo")
        outcomes = self._race(
            [
                lambda: store.delete("i1", "fam0", "belongsTo"),
                lambda: store.create("i1", "fam1", "belongsTo"),
            ]
        )
        assert outcomes[0] is True
        remaining = graph.edges_of("i1", "belongsTo", Direction.OUTGOING)
        # The create either ran first and was rejected, or ran after the delete.
        if isinstance(outcomes[1], Relation):
            assert remaining == [Relation("i1", "fam1", "belongsTo")]
        else:
            assert isinstance(outcomes[1], CardinalityViolation)
            assert remaining == []
