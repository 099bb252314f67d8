"""
Cross-database table reconciliation.

Compares the rows (and the structure) of tables living on two database
connections and produces the INSERT, UPDATE and DELETE statements, or an
XML change log, that make the target match the reference.

Usage:
    from datadiff import DiffConfig, TableDataDiff, connect

    reference = connect("postgresql://app@prod-db/warehouse")
    target = connect("sqlite:///copy.db")

    diff = TableDataDiff(reference, target, DiffConfig(chunk_size=50))
    status = diff.prepare("public.person", "person")
    if not status.is_fatal:
        with open("inserts.sql", "w") as ins, open("updates.sql", "w") as upd:
            diff.set_output_writers(insert_writer=ins, update_writer=upd)
            diff.execute()
"""

from .compare import (
    ComparisonStatus,
    DataDiffResult,
    DeleteSyncResult,
    RowDataComparer,
    TableDataDiff,
    TableDeleteSync,
    find_match,
)
from .config import BlobMode, DateLiteralType, DiffConfig, OutputFormat, SchemaDiffConfig
from .connection import DatabaseType, DbConnection, connect
from .errors import (
    CancellationError,
    ConfigurationError,
    ConnectionSetupError,
    DataDiffError,
    LiteralConversionError,
)
from .schema import SchemaDiff
from .storage import ColumnDescriptor, ResultShape, Row, SqlType, TableIdentifier

__version__ = "1.0.0"

__all__ = [
    "BlobMode",
    "CancellationError",
    "ColumnDescriptor",
    "ComparisonStatus",
    "ConfigurationError",
    "ConnectionSetupError",
    "DataDiffError",
    "DataDiffResult",
    "DatabaseType",
    "DateLiteralType",
    "DbConnection",
    "DeleteSyncResult",
    "DiffConfig",
    "LiteralConversionError",
    "OutputFormat",
    "ResultShape",
    "Row",
    "RowDataComparer",
    "SchemaDiff",
    "SchemaDiffConfig",
    "SqlType",
    "TableDataDiff",
    "TableDeleteSync",
    "TableIdentifier",
    "connect",
    "find_match",
]
