"""Read access to the host's relational store.

Models and exceptions are importable without a database driver; the
asyncpg-backed ``Database`` and the repositories live in their own
modules.
"""

from reverse_relations.db.exceptions import (
    ConnectionError,
    DatabaseError,
    PoolExhaustedError,
    QueryError,
    RecordNotFoundError,
)
from reverse_relations.db.models import (
    ALL_SOURCES,
    CandidateSource,
    EagerLoadMap,
    EagerLoadPair,
    FieldConfig,
    FieldRecord,
    RelationEdge,
    TargetElement,
)

__all__ = [
    # Exceptions
    "DatabaseError",
    "ConnectionError",
    "PoolExhaustedError",
    "QueryError",
    "RecordNotFoundError",
    # Models
    "ALL_SOURCES",
    "CandidateSource",
    "EagerLoadMap",
    "EagerLoadPair",
    "FieldConfig",
    "FieldRecord",
    "RelationEdge",
    "TargetElement",
]
