"""
Structural (schema level) comparison.
"""

from .objects import (
    ConstraintDefinition,
    ForeignKeyDefinition,
    GrantDefinition,
    IndexDefinition,
    PrimaryKeyDefinition,
    SequenceDefinition,
    TableDefinition,
    TableSnapshot,
    TriggerDefinition,
    ViewDefinition,
)
from .schema_diff import SchemaDiff, SchemaSnapshot, diff_schemas, read_snapshot, to_xml
from .table_diff import TableDiff, column_changes

__all__ = [
    "ConstraintDefinition",
    "ForeignKeyDefinition",
    "GrantDefinition",
    "IndexDefinition",
    "PrimaryKeyDefinition",
    "SchemaDiff",
    "SchemaSnapshot",
    "SequenceDefinition",
    "TableDefinition",
    "TableDiff",
    "TableSnapshot",
    "TriggerDefinition",
    "ViewDefinition",
    "column_changes",
    "diff_schemas",
    "read_snapshot",
    "to_xml",
]
