"""Port: persistent relation-graph storage.

Only :class:`~ontograph.services.relation_store.RelationStore` and
:class:`~ontograph.services.graph_traversal.GraphTraversalEngine` are handed
an instance of this port.  Everything else goes through them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from ontograph.domain.models import Direction, Relation


class RelationGraphPort(ABC):
    """Add, remove and enumerate typed edges."""

    # ── write ──

    @abstractmethod
    def add_edge(self, relation: Relation) -> None:
        """Persist *relation*; raises DuplicateRelation if it is already stored."""

    @abstractmethod
    def remove_edge(self, relation: Relation) -> bool:
        """Remove *relation*; return False if it was not stored."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Context manager grouping reads and writes into one atomic unit.

        Must be re-entrant.  Only the outermost unit commits or rolls back:
        an exception escaping it discards every write made since it opened,
        nested blocks included.  An exception caught inside an outer block
        does not undo the writes of the nested block it escaped.
        """

    # ── read ──

    @abstractmethod
    def has_edge(self, relation: Relation) -> bool: ...

    @abstractmethod
    def edges_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction = Direction.BOTH,
    ) -> list[Relation]:
        """Incident edges in insertion order; a self-loop is listed once."""

    @abstractmethod
    def all_edges(self, rel_type: str | None = None) -> list[Relation]:
        """Every edge (optionally of one type) in insertion order."""

    @abstractmethod
    def count_by_type(self) -> dict[str, int]: ...

    # ── lifecycle ──

    @abstractmethod
    def clear(self) -> None: ...

    def close(self) -> None:
        """Release resources.  Default: nothing to release."""
