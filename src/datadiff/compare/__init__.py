"""
Row level comparison of two tables.

Main entry points:
    TableDataDiff: INSERT/UPDATE fragments aligning a target with a reference
    TableDeleteSync: DELETE fragments (or direct deletes) for orphaned rows
"""

from .comparer import RowDataComparer
from .data_diff import ComparisonStatus, DataDiffResult, PairState, TableDataDiff
from .delete_sync import DeleteSyncResult, TableDeleteSync
from .fetcher import ChunkFetcher
from .literals import SqlLiteralFormatter
from .matcher import find_match
from .monitor import LoggingProgressMonitor, MessageBuffer, ProgressMonitor
from .output import ColumnValue, OutputDialect, SqlTextOutput, XmlOutput, create_output

__all__ = [
    "ChunkFetcher",
    "ColumnValue",
    "ComparisonStatus",
    "DataDiffResult",
    "DeleteSyncResult",
    "LoggingProgressMonitor",
    "MessageBuffer",
    "OutputDialect",
    "PairState",
    "ProgressMonitor",
    "RowDataComparer",
    "SqlLiteralFormatter",
    "SqlTextOutput",
    "TableDataDiff",
    "TableDeleteSync",
    "XmlOutput",
    "create_output",
    "find_match",
]
