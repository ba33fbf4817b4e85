"""Pure domain models — zero external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ontograph.domain.errors import ErrorCode, OntologyError


# ── Entities ────────────────────────────────────────────────────────────────


class EntityType(str, Enum):
    """Entity labels of the built-in instrument ontology."""

    INSTRUMENT = "Instrument"
    FAMILY = "Family"
    STRINGS = "Strings"
    WINDS = "Winds"
    PERCUSSION = "Percussion"
    ELECTROPHONES = "Electrophones"
    ETHNIC_GROUP = "EthnicGroup"
    RHYTHM = "Rhythm"
    LOCALITY = "Locality"
    MATERIAL = "Material"
    TIMBRE = "Timbre"
    PLAYING_TECHNIQUE = "PlayingTechnique"
    ARTISAN = "Artisan"
    CULTURAL_HERITAGE = "CulturalHeritage"


@dataclass(frozen=True)
class EntityRef:
    """The narrow view of an entity this core needs: its id and type label."""

    id: str
    entity_type: str


# ── Ontology schema ─────────────────────────────────────────────────────────


class Bound(str, Enum):
    ONE = "one"
    MANY = "many"


@dataclass(frozen=True)
class Cardinality:
    """Per-side bound on how many edges of one type an entity may hold.

    ``source`` limits outgoing edges per source entity, ``target`` limits
    incoming edges per target entity.
    """

    source: Bound = Bound.MANY
    target: Bound = Bound.MANY

    def __str__(self) -> str:
        return f"({self.source.name}, {self.target.name})"


@dataclass(frozen=True)
class RelationTypeDefinition:
    """A named category of edge with allowed endpoint types."""

    name: str
    source_types: frozenset[str]
    target_types: frozenset[str]
    cardinality: Cardinality = field(default_factory=Cardinality)
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "from": sorted(self.source_types),
            "to": sorted(self.target_types),
            "cardinality": {
                "source": self.cardinality.source.value,
                "target": self.cardinality.target.value,
            },
            "description": self.description,
        }


# ── Relations ───────────────────────────────────────────────────────────────


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


@dataclass(frozen=True)
class Relation:
    """A directed, typed edge. The triple is its only identity."""

    source_id: str
    target_id: str
    rel_type: str

    @property
    def triple(self) -> tuple[str, str, str]:
        return (self.source_id, self.target_id, self.rel_type)

    def other_end(self, entity_id: str) -> str:
        """Return the endpoint opposite *entity_id*."""
        return self.target_id if self.source_id == entity_id else self.source_id

    def touches(self, entity_id: str) -> bool:
        return self.source_id == entity_id or self.target_id == entity_id

    def to_dict(self) -> dict[str, str]:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "rel_type": self.rel_type,
        }

    def __str__(self) -> str:
        return f"({self.source_id})-[{self.rel_type}]->({self.target_id})"


@dataclass
class ValidationResult:
    """Outcome of a dry-run validation: success, or the first rule violated."""

    error: OntologyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> ErrorCode | None:
        return self.error.code if self.error else None

    @property
    def detail(self) -> str | None:
        return self.error.message if self.error else None

    @property
    def side(self) -> str | None:
        return getattr(self.error, "side", None)

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        if self.error is None:
            return {"ok": True}
        return {"ok": False, **self.error.to_dict()}


# ── Traversal results ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PathStep:
    """One hop: the relation crossed and the entity it lands on.

    ``forward`` is False when the relation was walked against its direction.
    """

    relation: Relation
    entity_id: str
    forward: bool = True


@dataclass(frozen=True)
class Path:
    start: str
    steps: tuple[PathStep, ...] = ()

    @property
    def length(self) -> int:
        return len(self.steps)

    @property
    def end(self) -> str:
        return self.steps[-1].entity_id if self.steps else self.start

    @property
    def entity_ids(self) -> list[str]:
        return [self.start] + [s.entity_id for s in self.steps]

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "length": self.length,
            "steps": [
                {
                    "relation": s.relation.to_dict(),
                    "entity_id": s.entity_id,
                    "direction": "out" if s.forward else "in",
                }
                for s in self.steps
            ],
        }


@dataclass(frozen=True)
class RankedEntity:
    """An entity with an analytic score (degree or similarity)."""

    entity_id: str
    score: float
    entity_type: str | None = None
    shared: int | None = None  # similarity only: shared neighbour count

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "entity_id": self.entity_id,
            "entity_type": self.entity_type,
            "score": self.score,
        }
        if self.shared is not None:
            d["shared"] = self.shared
        return d


@dataclass
class RelationStatistics:
    """Edge counts per relation type, plus the types the schema declares."""

    total: int = 0
    by_type: list[tuple[str, int]] = field(default_factory=list)
    available_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "relation_types": [{"type": t, "count": c} for t, c in self.by_type],
            "available_types": list(self.available_types),
        }
