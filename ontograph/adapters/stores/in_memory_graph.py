"""Graph store adapter: in-memory (for tests and scratch sessions)."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ontograph.domain.errors import DuplicateRelation
from ontograph.domain.models import Direction, Relation
from ontograph.ports.graph_store import RelationGraphPort

_Triple = tuple[str, str, str]


class InMemoryGraphStore(RelationGraphPort):
    """Non-persistent relation graph — useful for unit tests.

    Each edge is stored with an insertion sequence number and indexed per
    incident entity.  An ``RLock`` guards both structures, so readers never
    see an edge that is only half indexed.
    """

    def __init__(self) -> None:
        self._edges: dict[_Triple, tuple[int, Relation]] = {}
        self._incident: dict[str, set[_Triple]] = {}
        self._seq = itertools.count()
        self._lock = threading.RLock()
        self._depth = 0
        self._undo: list[tuple[str, int, Relation]] = []

    # ── atomic unit ──

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost:
                    self._rollback()
                raise
            finally:
                self._depth -= 1
                if outermost:
                    self._undo.clear()

    def _rollback(self) -> None:
        for op, seq, rel in reversed(self._undo):
            if op == "add":
                self._unindex(rel)
            else:
                self._index(rel, seq)

    # ── write ──

    def add_edge(self, relation: Relation) -> None:
        with self._lock:
            if relation.triple in self._edges:
                raise DuplicateRelation(*relation.triple)
            seq = next(self._seq)
            self._index(relation, seq)
            if self._depth:
                self._undo.append(("add", seq, relation))

    def remove_edge(self, relation: Relation) -> bool:
        with self._lock:
            entry = self._edges.get(relation.triple)
            if entry is None:
                return False
            self._unindex(relation)
            if self._depth:
                self._undo.append(("remove", entry[0], entry[1]))
            return True

    def _index(self, rel: Relation, seq: int) -> None:
        self._edges[rel.triple] = (seq, rel)
        self._incident.setdefault(rel.source_id, set()).add(rel.triple)
        self._incident.setdefault(rel.target_id, set()).add(rel.triple)

    def _unindex(self, rel: Relation) -> None:
        self._edges.pop(rel.triple, None)
        for eid in {rel.source_id, rel.target_id}:
            bucket = self._incident.get(eid)
            if bucket is None:
                continue
            bucket.discard(rel.triple)
            if not bucket:
                del self._incident[eid]

    # ── read ──

    def has_edge(self, relation: Relation) -> bool:
        with self._lock:
            return relation.triple in self._edges

    def edges_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction = Direction.BOTH,
    ) -> list[Relation]:
        with self._lock:
            entries = [self._edges[t] for t in self._incident.get(entity_id, ())]
        entries.sort(key=lambda e: e[0])
        return [
            rel
            for _, rel in entries
            if (rel_type is None or rel.rel_type == rel_type)
            and _matches_direction(rel, entity_id, direction)
        ]

    def all_edges(self, rel_type: str | None = None) -> list[Relation]:
        with self._lock:
            entries = sorted(self._edges.values(), key=lambda e: e[0])
        return [
            rel for _, rel in entries if rel_type is None or rel.rel_type == rel_type
        ]

    def count_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            for _, rel in self._edges.values():
                counts[rel.rel_type] = counts.get(rel.rel_type, 0) + 1
        return counts

    def clear(self) -> None:
        with self._lock:
            self._edges.clear()
            self._incident.clear()


def _matches_direction(rel: Relation, entity_id: str, direction: Direction) -> bool:
    if direction is Direction.OUTGOING:
        return rel.source_id == entity_id
    if direction is Direction.INCOMING:
        return rel.target_id == entity_id
    return rel.touches(entity_id)
