"""OntoGraph: ontology-constrained relation engine with graph analytics.

Provides:
1. A frozen schema of relation types (allowed endpoint types + cardinality)
2. Validated, atomic create/delete of typed relations
3. Shortest paths, degree centrality and neighbour similarity over the graph
"""

from ontograph.domain.errors import ErrorCode, OntologyError
from ontograph.domain.models import (
    Bound,
    Cardinality,
    Direction,
    Path,
    RankedEntity,
    Relation,
    RelationTypeDefinition,
)
from ontograph.services.facade import RelationFacade

__all__ = [
    "Bound",
    "Cardinality",
    "Direction",
    "ErrorCode",
    "OntologyError",
    "Path",
    "RankedEntity",
    "Relation",
    "RelationFacade",
    "RelationTypeDefinition",
]
