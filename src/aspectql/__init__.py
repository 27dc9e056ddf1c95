"""aspectql: relationship queries over a local entity-aspect metadata store."""

__version__ = "0.1.0"

from aspectql.config import QueryConfig
from aspectql.database import Database
from aspectql.errors import (
    AspectQLError,
    BackendFailureError,
    DecodeError,
    ErrorKind,
    FilterCompileError,
    InvalidArgumentError,
    QueryTimeoutError,
    UnsupportedError,
)
from aspectql.filters import (
    EMPTY_FILTER,
    Condition,
    Criterion,
    LocalRelationshipFilter,
    RelationshipDirection,
    aspect_field,
    filter_of,
    relationship_field,
    urn_field,
)
from aspectql.query import LocalRelationshipQueryDAO
from aspectql.types import Aspect, Relationship, Snapshot, Urn
from aspectql.writer import AuditStamp, LocalAspectAccess, LocalRelationshipWriter

__all__ = [
    "__version__",
    "Urn",
    "Aspect",
    "Snapshot",
    "Relationship",
    "Condition",
    "Criterion",
    "LocalRelationshipFilter",
    "RelationshipDirection",
    "EMPTY_FILTER",
    "aspect_field",
    "urn_field",
    "relationship_field",
    "filter_of",
    "QueryConfig",
    "Database",
    "LocalRelationshipQueryDAO",
    "AuditStamp",
    "LocalAspectAccess",
    "LocalRelationshipWriter",
    "AspectQLError",
    "ErrorKind",
    "InvalidArgumentError",
    "FilterCompileError",
    "UnsupportedError",
    "QueryTimeoutError",
    "BackendFailureError",
    "DecodeError",
]
