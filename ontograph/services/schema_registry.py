"""Service: Ontology Schema Registry.

An immutable table of relation-type definitions, built once at startup
from a static mapping (the ``ontology.relation_types`` config section, or
the built-in instrument ontology below).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from ontograph.domain.errors import SchemaDefinitionError, UnknownRelationType
from ontograph.domain.models import (
    Bound,
    Cardinality,
    EntityType as E,
    RelationTypeDefinition,
)

log = logging.getLogger(__name__)

_FAMILIES = [E.FAMILY, E.STRINGS, E.WINDS, E.PERCUSSION, E.ELECTROPHONES]

# Built-in instrument ontology.  Bounds are (source, target); see Cardinality.
DEFAULT_RELATION_TYPES: dict[str, dict[str, Any]] = {
    "belongsTo": {
        "from": [E.INSTRUMENT],
        "to": _FAMILIES,
        "cardinality": {"source": "one", "target": "many"},
        "description": "An instrument belongs to a single main family",
    },
    "usedBy": {
        "from": [E.INSTRUMENT],
        "to": [E.ETHNIC_GROUP],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An instrument may be used by several ethnic groups",
    },
    "producesRhythm": {
        "from": [E.INSTRUMENT],
        "to": [E.RHYTHM],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An instrument may produce several rhythms",
    },
    "locatedIn": {
        "from": [E.INSTRUMENT, E.ETHNIC_GROUP, E.RHYTHM],
        "to": [E.LOCALITY],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An entity may be found in several localities",
    },
    "madeOf": {
        "from": [E.INSTRUMENT],
        "to": [E.MATERIAL],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An instrument may be made of several materials",
    },
    "playedWith": {
        "from": [E.INSTRUMENT],
        "to": [E.PLAYING_TECHNIQUE],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An instrument may be played with several techniques",
    },
    "crafts": {
        "from": [E.ARTISAN],
        "to": [E.INSTRUMENT],
        "cardinality": {"source": "many", "target": "many"},
        "description": "An artisan may craft several instruments",
    },
    "characterizes": {
        "from": [E.TIMBRE],
        "to": [E.INSTRUMENT],
        "cardinality": {"source": "many", "target": "many"},
        "description": "A timbre characterizes instruments",
    },
    "appliesTo": {
        "from": [E.PLAYING_TECHNIQUE],
        "to": [E.INSTRUMENT],
        "cardinality": {"source": "many", "target": "many"},
        "description": "A technique may apply to several instruments",
    },
    "encompasses": {
        "from": [E.CULTURAL_HERITAGE],
        "to": [E.INSTRUMENT, E.ETHNIC_GROUP, E.RHYTHM],
        "cardinality": {"source": "many", "target": "many"},
        "description": "A cultural heritage item encompasses several cultural elements",
    },
}


class OntologySchemaRegistry:
    """Read-only lookup of relation-type definitions."""

    def __init__(self, definitions: list[RelationTypeDefinition]):
        table: dict[str, RelationTypeDefinition] = {}
        for d in definitions:
            if d.name in table:
                raise SchemaDefinitionError(f"Duplicate relation type: {d.name}")
            table[d.name] = d
        self._table: Mapping[str, RelationTypeDefinition] = MappingProxyType(table)
        self._names = frozenset(table)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "OntologySchemaRegistry":
        """Build from ``{name: {from: [...], to: [...], cardinality: {...}}}``."""
        if not isinstance(raw, Mapping) or not raw:
            raise SchemaDefinitionError("relation_types must be a non-empty mapping")
        registry = cls([_parse_definition(name, entry) for name, entry in raw.items()])
        log.info("Loaded %d relation types", len(registry))
        return registry

    @classmethod
    def default(cls) -> "OntologySchemaRegistry":
        return cls.from_mapping(DEFAULT_RELATION_TYPES)

    # ── lookup ──

    def definition_of(self, rel_type: str) -> RelationTypeDefinition:
        try:
            return self._table[rel_type]
        except KeyError:
            raise UnknownRelationType(rel_type, sorted(self._names)) from None

    def all_types(self) -> frozenset[str]:
        return self._names

    def definitions(self) -> list[RelationTypeDefinition]:
        return [self._table[name] for name in sorted(self._names)]

    def __contains__(self, rel_type: object) -> bool:
        return rel_type in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._names))

    def __len__(self) -> int:
        return len(self._table)


def _parse_definition(name: Any, entry: Any) -> RelationTypeDefinition:
    if not isinstance(name, str) or not name:
        raise SchemaDefinitionError(f"Relation type name must be a string: {name!r}")
    if not isinstance(entry, Mapping):
        raise SchemaDefinitionError(f"{name}: definition must be a mapping")

    sources = _parse_types(name, "from", entry.get("from"))
    targets = _parse_types(name, "to", entry.get("to"))

    card = entry.get("cardinality") or {}
    if not isinstance(card, Mapping):
        raise SchemaDefinitionError(
            f"{name}: cardinality must be a mapping with 'source' and 'target'"
        )
    cardinality = Cardinality(
        source=_parse_bound(name, card.get("source", "many")),
        target=_parse_bound(name, card.get("target", "many")),
    )
    return RelationTypeDefinition(
        name=name,
        source_types=sources,
        target_types=targets,
        cardinality=cardinality,
        description=str(entry.get("description", "")),
    )


def _parse_types(name: str, key: str, value: Any) -> frozenset[str]:
    if isinstance(value, str):
        value = [value]
    if not value:
        raise SchemaDefinitionError(f"{name}: '{key}' must list at least one entity type")
    # str-valued enum members (EntityType) keep their .value
    return frozenset(v.value if isinstance(v, E) else str(v) for v in value)


def _parse_bound(name: str, value: Any) -> Bound:
    if isinstance(value, Bound):
        return value
    try:
        return Bound(str(value).lower())
    except ValueError:
        raise SchemaDefinitionError(
            f"{name}: cardinality bound must be 'one' or 'many', got {value!r}"
        ) from None
