"""Redis Tables - Schema-enforced models stored in Redis hashes and sets."""

from redis_tables.errors import (
    EntryNameUsed,
    EntryNotFound,
    TableError,
    UnknownModel,
    ValidationError,
)
from redis_tables.query import QueryHelper, Relation, RelationState
from redis_tables.schema import Schema, setup_table
from redis_tables.storage import Store
from redis_tables.table import Table
from redis_tables.types import (
    FieldSpec,
    FieldType,
    ModelRegistry,
    ModelSchema,
    RelationKind,
)
from redis_tables.validate import UNSET, parse_from_string, parse_to_string, process_keys

__all__ = [
    # Main API
    "setup_table",
    "Schema",
    "Table",
    "QueryHelper",
    # Storage
    "Store",
    # Field definitions
    "FieldSpec",
    "FieldType",
    "RelationKind",
    "ModelSchema",
    "ModelRegistry",
    "Relation",
    "RelationState",
    # Validation
    "process_keys",
    "parse_from_string",
    "parse_to_string",
    "UNSET",
    # Errors
    "TableError",
    "ValidationError",
    "EntryNotFound",
    "EntryNameUsed",
    "UnknownModel",
]

__version__ = "0.1.0"
