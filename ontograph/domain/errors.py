"""Error taxonomy for relation mutations and graph reads.

Every error carries an :class:`ErrorCode` so callers (CLI, API layer) can
render the specific rule that was violated without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN_RELATION_TYPE = "UnknownRelationType"
    ENTITY_NOT_FOUND = "EntityNotFound"
    INVALID_SOURCE_TYPE = "InvalidSourceType"
    INVALID_TARGET_TYPE = "InvalidTargetType"
    CARDINALITY_VIOLATION = "CardinalityViolation"
    DUPLICATE_RELATION = "DuplicateRelation"
    RELATION_NOT_FOUND = "RelationNotFound"
    STORE_FAILURE = "StoreFailure"
    TIMEOUT = "Timeout"
    SCHEMA_DEFINITION = "SchemaDefinition"


# Deterministic functions of graph state: retrying cannot change the outcome.
VALIDATION_CODES = frozenset(
    {
        ErrorCode.UNKNOWN_RELATION_TYPE,
        ErrorCode.ENTITY_NOT_FOUND,
        ErrorCode.INVALID_SOURCE_TYPE,
        ErrorCode.INVALID_TARGET_TYPE,
        ErrorCode.CARDINALITY_VIOLATION,
        ErrorCode.DUPLICATE_RELATION,
    }
)


class OntologyError(Exception):
    """Base exception for the relation engine."""

    code: ErrorCode = ErrorCode.STORE_FAILURE

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.code.value, "detail": self.message}


class UnknownRelationType(OntologyError):
    """Raised when a relation type is not declared in the schema."""

    code = ErrorCode.UNKNOWN_RELATION_TYPE

    def __init__(self, rel_type: str, known: list[str] | None = None):
        self.rel_type = rel_type
        msg = f"Unknown relation type: {rel_type}"
        if known:
            msg += f" (valid types: {', '.join(known)})"
        super().__init__(msg)


class EntityNotFound(OntologyError):
    code = ErrorCode.ENTITY_NOT_FOUND

    def __init__(self, entity_id: str, side: str | None = None):
        self.entity_id = entity_id
        self.side = side
        prefix = f"{side.capitalize()} entity" if side else "Entity"
        super().__init__(f"{prefix} not found: {entity_id}")


class InvalidSourceType(OntologyError):
    code = ErrorCode.INVALID_SOURCE_TYPE

    def __init__(self, rel_type: str, actual: str, expected: frozenset[str]):
        self.rel_type = rel_type
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Invalid source entity type for relation {rel_type}. "
            f"Expected: {', '.join(sorted(expected))}, got: {actual}"
        )


class InvalidTargetType(OntologyError):
    code = ErrorCode.INVALID_TARGET_TYPE

    def __init__(self, rel_type: str, actual: str, expected: frozenset[str]):
        self.rel_type = rel_type
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Invalid target entity type for relation {rel_type}. "
            f"Expected: {', '.join(sorted(expected))}, got: {actual}"
        )


class CardinalityViolation(OntologyError):
    """Raised when a ONE bound on either side of a relation type is already used."""

    code = ErrorCode.CARDINALITY_VIOLATION

    def __init__(self, rel_type: str, side: str, entity_id: str, existing_id: str):
        self.rel_type = rel_type
        self.side = side
        self.entity_id = entity_id
        self.existing_id = existing_id
        if side == "source":
            msg = (
                f"Relation {rel_type}: source {entity_id} already has an outgoing "
                f"{rel_type} relation (to {existing_id}); only one is allowed"
            )
        else:
            msg = (
                f"Relation {rel_type}: target {entity_id} already has an incoming "
                f"{rel_type} relation (from {existing_id}); only one is allowed"
            )
        super().__init__(msg)


class DuplicateRelation(OntologyError):
    code = ErrorCode.DUPLICATE_RELATION

    def __init__(self, source_id: str, target_id: str, rel_type: str):
        self.source_id = source_id
        self.target_id = target_id
        self.rel_type = rel_type
        super().__init__(
            f"Relation {rel_type} already exists between {source_id} and {target_id}"
        )


class RelationNotFound(OntologyError):
    code = ErrorCode.RELATION_NOT_FOUND

    def __init__(self, source_id: str, target_id: str, rel_type: str):
        self.source_id = source_id
        self.target_id = target_id
        self.rel_type = rel_type
        super().__init__(
            f"Relation not found: ({source_id})-[{rel_type}]->({target_id})"
        )


class StoreFailure(OntologyError):
    """Raised by graph adapters when the underlying storage fails."""

    code = ErrorCode.STORE_FAILURE


class TraversalTimeout(OntologyError):
    """Raised when an analytic read exceeds its deadline."""

    code = ErrorCode.TIMEOUT

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} did not complete within {timeout:.3f}s")


class SchemaDefinitionError(OntologyError):
    """Raised when a relation-type definition cannot be loaded."""

    code = ErrorCode.SCHEMA_DEFINITION
