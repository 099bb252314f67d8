"""
Removal of target rows that no longer exist in the reference.

TableDeleteSync streams the key columns of the target table, looks the
keys up in the reference table chunk by chunk and either writes a DELETE
fragment for every orphaned target row or, without an output writer,
deletes the rows directly.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Sequence, TextIO

from ..config import DiffConfig
from ..connection.wrapper import DbConnection
from ..errors import DataDiffError
from ..storage.columns import ColumnDescriptor, TableIdentifier
from ..storage.rows import Row
from ..utils.logging import ContextLogger
from ..utils.metrics import DIFF_METRICS
from ..utils.tracing import trace_operation
from .data_diff import ComparisonStatus, as_table, primary_key_columns
from .fetcher import ChunkFetcher
from .matcher import find_match
from .monitor import MessageBuffer, ProgressMonitor
from .output import ColumnValue, create_output

DELETE_ROOT = "table-data-delete"


@dataclass(frozen=True)
class DeleteSyncResult:
    table: str
    status: ComparisonStatus
    rows_processed: int = 0
    deleted_rows: int = 0
    skipped_rows: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def has_differences(self) -> bool:
        return self.deleted_rows > 0

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "operation": "delete-sync",
            "status": self.status.value,
            "rows_processed": self.rows_processed,
            "inserts": 0,
            "updates": 0,
            "deletes": self.deleted_rows,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }


class TableDeleteSync:
    """
    Finds (and optionally deletes) target rows missing in the reference.

    Args:
        target: Connection holding the table to clean up
        reference: Connection holding the reference data
        config: Run configuration
        progress: Receives progress reports every ``progress_interval`` rows
    """

    def __init__(
        self,
        target: DbConnection,
        reference: DbConnection,
        config: DiffConfig | None = None,
        progress: ProgressMonitor | None = None,
    ):
        self.target = target
        self.reference = reference
        self.config = config or DiffConfig()
        self.progress = progress
        self.policy = self.config.name_policy
        self.output = create_output(self.config, target.db_type)
        self.writer: TextIO | None = None
        self.log = ContextLogger(__name__, run="delete-sync")
        self.warnings = MessageBuffer(self.log)
        self.errors = MessageBuffer(self.log, level=logging.ERROR)
        self._cancel = threading.Event()
        self._reset_pair()

    def _reset_pair(self) -> None:
        self.reference_table: TableIdentifier | None = None
        self.target_table: TableIdentifier | None = None
        self.key_columns: tuple[ColumnDescriptor, ...] = ()
        self.status: ComparisonStatus | None = None
        self.rows_processed = 0
        self.deleted_rows = 0
        self.skipped_rows = 0
        self._header_written = False
        self._pending: list[tuple] = []
        self._delete_sql: str | None = None
        self._fetcher: ChunkFetcher | None = None
        self.warnings.clear()
        self.errors.clear()
        self._cancel.clear()

    def set_output_writer(self, writer: TextIO | None) -> None:
        """Write DELETE fragments to ``writer``; None deletes directly."""
        self.writer = writer

    def cancel(self) -> None:
        self._cancel.set()

    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def _fail(self, status: ComparisonStatus, message: str) -> ComparisonStatus:
        self.errors.append(message)
        self.status = status
        return status

    def prepare(
        self,
        reference_table: TableIdentifier | str,
        target_table: TableIdentifier | str,
        key_columns: Sequence[str] | None = None,
    ) -> ComparisonStatus:
        """
        Resolve both tables and the key used to match rows.

        The key is, in this order: ``key_columns``, the alternate key
        registered for the table, the target's primary key.

        Returns:
            ComparisonStatus; execute() may only be called when it is not fatal
        """
        self._reset_pair()
        self.log.update_context(table=str(target_table))
        target_definition = self.target.catalog.get_table_definition(as_table(target_table))
        if target_definition is None:
            return self._fail(ComparisonStatus.TARGET_NOT_FOUND, f"Target table {target_table} not found")
        reference_definition = self.reference.catalog.get_table_definition(as_table(reference_table))
        if reference_definition is None:
            return self._fail(ComparisonStatus.REFERENCE_NOT_FOUND,
                              f"Reference table {reference_table} not found")

        self.target_table = target_definition.table
        self.reference_table = reference_definition.table
        self.log.update_context(table=str(self.target_table))
        names = (
            tuple(key_columns) if key_columns
            else self.config.get_alternate_key(self.target_table.qualified_name)
            or self.config.get_alternate_key(self.reference_table.qualified_name)
            or primary_key_columns(self.target, self.target_table, target_definition.columns)
        )
        if not names:
            return self._fail(ComparisonStatus.NO_PRIMARY_KEY,
                              f"No primary key found for table {self.target_table}")

        target_keys = []
        reference_keys = []
        for name in names:
            target_column = next(
                (c for c in target_definition.columns if self.policy.equals(c.name, name)), None)
            reference_column = next(
                (c for c in reference_definition.columns if self.policy.equals(c.name, name)), None)
            if target_column is None or reference_column is None:
                return self._fail(ComparisonStatus.NO_PRIMARY_KEY,
                                  f"Key column {name} not found in both tables")
            target_keys.append(target_column)
            reference_keys.append(reference_column)

        self.key_columns = tuple(target_keys)
        db_type = self.target.db_type
        where = " AND ".join(
            f"{db_type.quote_if_needed(c.name)} = {db_type.placeholder}" for c in self.key_columns
        )
        self._delete_sql = f"DELETE FROM {db_type.table_expression(self.target_table)} WHERE {where}"
        self._fetcher = ChunkFetcher(
            self.reference,
            self.reference_table,
            reference_keys,
            [c.name for c in target_keys],
            use_savepoints=self.config.use_savepoints,
            policy=self.policy,
            is_cancelled=self.is_cancelled,
        )
        self.status = ComparisonStatus.OK
        return self.status

    def execute(self) -> DeleteSyncResult:
        """
        Stream the target keys and delete (or script) orphaned rows.

        In direct mode the DELETE statements run while the target is
        streamed and are committed every ``delete_batch_size`` rows. The
        open batch is committed at the end of the stream, also when the run
        was cancelled; on error it is rolled back and the error re-raised.

        Returns:
            DeleteSyncResult; ``deleted_rows`` counts fragments written or
            rows deleted

        Raises:
            DataDiffError: If prepare() was not called or failed
        """
        if self.status is None or self.status.is_fatal:
            raise DataDiffError("execute() requires a successful prepare()")

        started = time.monotonic()
        table_name = str(self.target_table)
        with trace_operation("datadiff.delete_sync", target=table_name,
                             reference=str(self.reference_table)):
            try:
                self._stream_target(table_name)
                if self.writer is None:
                    self._flush_deletes(table_name)
            finally:
                self._pending = []
                if self._header_written and self.writer is not None:
                    footer = self.output.footer(DELETE_ROOT)
                    if footer:
                        self.writer.write(footer)

        elapsed = time.monotonic() - started
        DIFF_METRICS.run_seconds.labels(table=table_name, operation="delete-sync").observe(elapsed)
        if self.is_cancelled():
            self.log.warning(f"Delete sync of {table_name} cancelled after {self.rows_processed} rows")
        action = "rows deleted" if self.writer is None else "rows to delete"
        self.log.info(
            f"Checked {self.rows_processed} rows of {table_name}: "
            f"{self.deleted_rows} {action} ({elapsed:.2f}s)"
        )
        return DeleteSyncResult(
            table=table_name,
            status=self.status,
            rows_processed=self.rows_processed,
            deleted_rows=self.deleted_rows,
            skipped_rows=self.skipped_rows,
            cancelled=self.is_cancelled(),
            elapsed_seconds=elapsed,
            warnings=tuple(self.warnings),
            errors=tuple(self.errors),
        )

    def _stream_target(self, table_name: str) -> None:
        db_type = self.target.db_type
        select_list = ", ".join(db_type.quote_if_needed(c.name) for c in self.key_columns)
        sql = f"SELECT {select_list} FROM {db_type.table_expression(self.target_table)}"
        interval = self.config.progress_interval

        chunk: list[tuple[int, Row]] = []
        with self.target.query(sql, columns=self.key_columns, is_cancelled=self.is_cancelled) as result:
            for row in result:
                if self.is_cancelled():
                    return
                self.rows_processed += 1
                if row.has_null_key([c.name for c in self.key_columns]):
                    self.skipped_rows += 1
                    self.warnings.append(
                        f"Row {self.rows_processed} of {table_name} has a NULL key value and was skipped"
                    )
                    continue
                chunk.append((self.rows_processed, row))
                if self.progress is not None and self.rows_processed % interval == 0:
                    self.progress.report_progress(table_name, self.rows_processed)
                if len(chunk) >= self.config.chunk_size:
                    self._process_chunk(chunk, table_name)
                    chunk = []

        if chunk and not self.is_cancelled():
            self._process_chunk(chunk, table_name)

    def _process_chunk(self, chunk: list[tuple[int, Row]], table_name: str) -> None:
        if self.is_cancelled():
            return
        key_names = [c.name for c in self.key_columns]
        found = self._fetcher.fetch([row for _, row in chunk])
        if self.is_cancelled():
            return

        orphans = [
            (row_number, row) for row_number, row in chunk
            if find_match(found, row, key_names, self.policy) < 0
        ]
        for row_number, row in orphans:
            values = row.key_values(key_names)
            if self.writer is None:
                self._pending.append(values)
                if len(self._pending) >= self.config.delete_batch_size:
                    self._flush_deletes(table_name)
                continue
            self._write(row_number, values)
            self.deleted_rows += 1
            DIFF_METRICS.rows_deleted.labels(table=table_name).inc()

    def _write(self, row_number: int, values: tuple[Any, ...]) -> None:
        if not self._header_written:
            self.writer.write(self.output.header(self.target_table, DELETE_ROOT))
            self._header_written = True
        keys = [ColumnValue(c, v, key=True) for c, v in zip(self.key_columns, values)]
        fragment = self.output.delete(row_number, self.target_table, keys)
        self.writer.write(fragment + self.output.fragment_separator)

    def _flush_deletes(self, table_name: str) -> None:
        """Delete the rows of the open batch and commit them."""
        if not self._pending:
            return
        deleted = 0
        try:
            for values in self._pending:
                deleted += self.target.execute(self._delete_sql, list(values))
            self.target.commit()
        except Exception:
            self.log.error(f"Error deleting rows from {table_name} using:\n{self._delete_sql}")
            self.target.rollback()
            raise
        finally:
            self._pending = []
        self.deleted_rows += deleted
        DIFF_METRICS.rows_deleted.labels(table=table_name).inc(deleted)
        self.log.debug(f"Deleted {deleted} rows from {table_name}")
