"""Service: Graph Traversal Engine.

Read-only analytics over the stored relation graph:

* ``find_paths``  — all shortest paths between two entities, breadth-first
  over undirected adjacency, bounded by depth and path count.
* ``centrality``  — degree ranking (optionally weighted per relation type).
* ``similar_to``  — Jaccard similarity of one-hop neighbour sets.

Every operation is deterministic for a given graph state: adjacency comes
back from the graph port in insertion order and rankings break ties on
the entity id.  A caller-supplied timeout is enforced as a deadline that
is checked while walking; running past it raises
:class:`~ontograph.domain.errors.TraversalTimeout` instead of handing back
a truncated answer.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator, Mapping
from itertools import islice

from ontograph.domain.errors import TraversalTimeout
from ontograph.domain.models import Path, PathStep, RankedEntity, Relation
from ontograph.ports.entity_lookup import EntityLookupPort
from ontograph.ports.graph_store import RelationGraphPort

log = logging.getLogger(__name__)

_Parent = tuple[str, Relation, bool]


class _Deadline:
    def __init__(self, operation: str, timeout: float | None):
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")
        self._operation = operation
        self._timeout = timeout
        self._expires = None if timeout is None else time.monotonic() + timeout

    def check(self) -> None:
        if self._expires is not None and time.monotonic() > self._expires:
            raise TraversalTimeout(self._operation, self._timeout)


class GraphTraversalEngine:
    """Path finding, degree centrality and neighbour similarity."""

    def __init__(
        self,
        graph: RelationGraphPort,
        entities: EntityLookupPort | None = None,
        *,
        max_depth_limit: int = 6,
        max_paths: int = 10,
        max_results: int = 100,
    ):
        self._graph = graph
        self._entities = entities
        self._max_depth_limit = max_depth_limit
        self._max_paths = max_paths
        self._max_results = max_results

    # ── path finding ──

    def find_paths(
        self,
        source_id: str,
        target_id: str,
        max_depth: int = 3,
        *,
        max_paths: int | None = None,
        timeout: float | None = None,
    ) -> list[Path]:
        """Return the shortest paths from *source_id* to *target_id*.

        Relations are walked in either direction.  Only paths of the minimum
        length found within ``max_depth`` hops are returned, in discovery
        order, at most ``max_paths`` of them.  ``source_id == target_id``
        yields one zero-length path; no path within the bound yields ``[]``.
        """
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        depth = min(max_depth, self._max_depth_limit)
        cap = self._max_paths if max_paths is None else max_paths
        if cap < 1:
            raise ValueError("max_paths must be >= 1")
        deadline = _Deadline("find_paths", timeout)

        if source_id == target_id:
            return [Path(start=source_id)]
        if depth == 0:
            return []

        parents = self._bfs_parents(source_id, target_id, depth, deadline)
        if target_id not in parents:
            log.debug("No path %s → %s within %d hops", source_id, target_id, depth)
            return []

        def expand(node: str) -> Iterator[tuple[PathStep, ...]]:
            if node == source_id:
                yield ()
                return
            for prev, rel, forward in parents[node]:
                deadline.check()
                for prefix in expand(prev):
                    yield prefix + (PathStep(rel, node, forward),)

        paths = [Path(start=source_id, steps=steps) for steps in islice(expand(target_id), cap)]
        log.debug(
            "Found %d shortest path(s) %s → %s of length %d",
            len(paths), source_id, target_id, paths[0].length,
        )
        return paths

    def _bfs_parents(
        self, source_id: str, target_id: str, depth: int, deadline: _Deadline
    ) -> dict[str, list[_Parent]]:
        """Level-by-level BFS recording every shortest-path predecessor."""
        level_of: dict[str, int] = {source_id: 0}
        parents: dict[str, list[_Parent]] = {}
        frontier = [source_id]
        level = 0
        while frontier and level < depth and target_id not in level_of:
            level += 1
            next_frontier: list[str] = []
            for node in frontier:
                deadline.check()
                for rel in self._graph.edges_of(node):
                    neighbour = rel.other_end(node)
                    if neighbour == node:
                        continue
                    seen = level_of.get(neighbour)
                    if seen is None:
                        level_of[neighbour] = level
                        parents[neighbour] = [(node, rel, rel.source_id == node)]
                        next_frontier.append(neighbour)
                    elif seen == level:
                        parents[neighbour].append((node, rel, rel.source_id == node))
            frontier = next_frontier
        return parents

    # ── degree centrality ──

    def centrality(
        self,
        limit: int = 20,
        *,
        weights: Mapping[str, float] | None = None,
        entity_types: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> list[RankedEntity]:
        """Rank entities by incident-edge count (or weighted sum)."""
        limit = self._clamp_limit(limit)
        if weights and any(w < 0 for w in weights.values()):
            raise ValueError("relation weights must be >= 0")
        deadline = _Deadline("centrality", timeout)

        scores: dict[str, float] = {}
        for i, rel in enumerate(self._graph.all_edges()):
            if i % 512 == 0:
                deadline.check()
            w = weights.get(rel.rel_type, 1.0) if weights else 1
            for eid in {rel.source_id, rel.target_id}:
                scores[eid] = scores.get(eid, 0) + w

        ordered = sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))
        return self._rank(ordered, limit, entity_types, deadline)

    # ── similarity ──

    def similar_to(
        self,
        entity_id: str,
        limit: int = 10,
        *,
        entity_types: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> list[RankedEntity]:
        """Rank entities sharing neighbours with *entity_id* by Jaccard score."""
        limit = self._clamp_limit(limit)
        deadline = _Deadline("similar_to", timeout)
        cache: dict[str, frozenset[str]] = {}

        own = self._neighbours(entity_id, cache)
        if not own:
            return []

        # m ∈ N(n) ⇔ n ∈ N(m), so counting two-hop arrivals gives |N(a) ∩ N(m)|.
        shared: dict[str, int] = {}
        for n in sorted(own):
            deadline.check()
            for m in self._neighbours(n, cache):
                if m != entity_id:
                    shared[m] = shared.get(m, 0) + 1

        scored: list[tuple[str, float, int]] = []
        for cand, inter in shared.items():
            deadline.check()
            union = len(own | self._neighbours(cand, cache))
            scored.append((cand, inter / union, inter))
        scored.sort(key=lambda t: (-t[1], -t[2], t[0]))

        share_of = {cand: inter for cand, _, inter in scored}
        ordered = [(cand, score) for cand, score, _ in scored]
        return self._rank(ordered, limit, entity_types, deadline, shared=share_of)

    def neighbours(self, entity_id: str) -> frozenset[str]:
        """Entities one hop away in either direction, excluding *entity_id*."""
        return self._neighbours(entity_id, {})

    def _neighbours(self, entity_id: str, cache: dict[str, frozenset[str]]) -> frozenset[str]:
        found = cache.get(entity_id)
        if found is None:
            found = frozenset(
                rel.other_end(entity_id)
                for rel in self._graph.edges_of(entity_id)
                if rel.source_id != rel.target_id
            )
            cache[entity_id] = found
        return found

    # ── helpers ──

    def _clamp_limit(self, limit: int) -> int:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        return min(limit, self._max_results)

    def _rank(
        self,
        ordered: list[tuple[str, float]],
        limit: int,
        entity_types: Iterable[str] | None,
        deadline: _Deadline,
        *,
        shared: Mapping[str, int] | None = None,
    ) -> list[RankedEntity]:
        wanted = frozenset(entity_types) if entity_types else None
        out: list[RankedEntity] = []
        for eid, score in ordered:
            if len(out) >= limit:
                break
            deadline.check()
            etype = self._entities.type_of(eid) if self._entities is not None else None
            if wanted is not None and etype not in wanted:
                continue
            out.append(
                RankedEntity(
                    entity_id=eid,
                    score=score,
                    entity_type=etype,
                    shared=shared.get(eid) if shared is not None else None,
                )
            )
        return out
