"""
Table data comparison.

TableDataDiff streams the rows of a reference table, looks up their
counterparts in the target table chunk by chunk and writes the INSERT and
UPDATE fragments needed to make the target match the reference.

Usage:
    diff = TableDataDiff(reference, target, DiffConfig(chunk_size=50))
    diff.set_output_writers(insert_file, update_file)
    if not diff.prepare("public.person", "public.person").is_fatal:
        result = diff.execute()
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TextIO

from ..config import DiffConfig
from ..connection.wrapper import DbConnection
from ..errors import DataDiffError
from ..storage.columns import ColumnDescriptor, TableIdentifier
from ..storage.rows import Row
from ..utils.logging import ContextLogger
from ..utils.metrics import DIFF_METRICS
from ..utils.tracing import add_span_attributes, trace_operation
from .comparer import RowDataComparer
from .fetcher import ChunkFetcher
from .matcher import find_match
from .monitor import MessageBuffer, ProgressMonitor
from .output import create_output

logger = logging.getLogger(__name__)

DATA_DIFF_ROOT = "table-data-diff"


class ComparisonStatus(Enum):
    """Outcome of preparing a table pair."""

    OK = "ok"
    REFERENCE_NOT_FOUND = "reference_not_found"
    TARGET_NOT_FOUND = "target_not_found"
    NO_PRIMARY_KEY = "no_primary_key"
    COLUMN_MISMATCH = "column_mismatch"

    @property
    def is_fatal(self) -> bool:
        return self in (
            ComparisonStatus.REFERENCE_NOT_FOUND,
            ComparisonStatus.TARGET_NOT_FOUND,
            ComparisonStatus.NO_PRIMARY_KEY,
        )


def as_table(table: TableIdentifier | str) -> TableIdentifier:
    if isinstance(table, TableIdentifier):
        return table
    return TableIdentifier.parse(table)


def primary_key_columns(connection: DbConnection, table: TableIdentifier,
                        columns: tuple[ColumnDescriptor, ...]) -> tuple[str, ...]:
    """Primary key columns in key order, falling back to the column flags."""
    primary_key = connection.catalog.get_primary_key(table)
    if primary_key is not None and primary_key.columns:
        return tuple(primary_key.columns)
    return tuple(c.name for c in columns if c.is_pk)


@dataclass
class PairState:
    """Everything a run learns about one table pair."""

    reference_table: TableIdentifier | None = None
    target_table: TableIdentifier | None = None
    reference_columns: tuple[ColumnDescriptor, ...] = ()
    target_columns: tuple[ColumnDescriptor, ...] = ()
    key_columns: tuple[str, ...] = ()
    real_pk: tuple[str, ...] = ()
    ignored: frozenset[str] = frozenset()
    excluded: frozenset[str] = frozenset()
    target_missing: bool = False
    status: ComparisonStatus | None = None
    rows_processed: int = 0
    inserts: int = 0
    updates: int = 0
    insert_header_written: bool = False
    update_header_written: bool = False
    warnings: MessageBuffer = field(default_factory=MessageBuffer)
    errors: MessageBuffer = field(default_factory=lambda: MessageBuffer(level=logging.ERROR))


@dataclass(frozen=True)
class DataDiffResult:
    table: str
    status: ComparisonStatus
    rows_processed: int = 0
    inserts: int = 0
    updates: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def has_differences(self) -> bool:
        return self.inserts > 0 or self.updates > 0

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "operation": "data-diff",
            "status": self.status.value,
            "rows_processed": self.rows_processed,
            "inserts": self.inserts,
            "updates": self.updates,
            "deletes": 0,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }


class TableDataDiff:
    """
    Compares the rows of a reference table with a target table.

    One instance can compare several table pairs one after another:
    every prepare() starts from a clean per-pair state. Output writers and
    the configuration stay in place between pairs.

    Args:
        reference: Connection holding the reference data
        target: Connection holding the data to be aligned
        config: Run configuration
        progress: Receives progress reports every ``progress_interval`` rows
    """

    def __init__(
        self,
        reference: DbConnection,
        target: DbConnection,
        config: DiffConfig | None = None,
        progress: ProgressMonitor | None = None,
    ):
        self.reference = reference
        self.target = target
        self.config = config or DiffConfig()
        self.progress = progress
        self.output = create_output(self.config, target.db_type)
        self.policy = self.config.name_policy
        self.insert_writer: TextIO | None = None
        self.update_writer: TextIO | None = None
        self.log = ContextLogger(__name__, run="data-diff")
        self._cancel = threading.Event()
        self._comparer: RowDataComparer | None = None
        self._fetcher: ChunkFetcher | None = None
        self.state = PairState()

    @property
    def warnings(self) -> MessageBuffer:
        return self.state.warnings

    @property
    def errors(self) -> MessageBuffer:
        return self.state.errors

    def set_output_writers(self, insert_writer: TextIO | None, update_writer: TextIO | None) -> None:
        """Set where INSERT and UPDATE fragments go; None discards them."""
        self.insert_writer = insert_writer
        self.update_writer = update_writer

    def cancel(self) -> None:
        """Ask a running execute() to stop; it returns normally."""
        self._cancel.set()

    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def reset(self) -> None:
        """Forget everything about the previous table pair."""
        self.state = PairState()
        self._comparer = None
        self._fetcher = None
        self._cancel.clear()

    def _fail(self, status: ComparisonStatus, message: str) -> ComparisonStatus:
        self.state.errors.append(message)
        self.state.status = status
        return status

    def _resolve_key(self, reference_table: TableIdentifier,
                     target_table: TableIdentifier) -> tuple[str, ...] | None:
        state = self.state
        columns = state.reference_columns
        alternate = (self.config.get_alternate_key(reference_table.qualified_name)
                     or self.config.get_alternate_key(target_table.qualified_name))
        if alternate is None:
            return state.real_pk or None

        key = []
        for name in alternate:
            column = next((c for c in columns if self.policy.equals(c.name, name)), None)
            if column is None:
                state.errors.append(
                    f"Alternate key column {name} not found in table {reference_table}"
                )
                return None
            key.append(column.name)
        self.log.info(f"Using alternate key ({', '.join(key)}) for {reference_table}")
        return tuple(key)

    def prepare(self, reference_table: TableIdentifier | str,
                target_table: TableIdentifier | str) -> ComparisonStatus:
        """
        Resolve both tables, the active key and the column mapping.

        Problems are reported as a status plus a message in ``errors`` or
        ``warnings``; nothing is raised for missing tables or keys.

        Args:
            reference_table: Table holding the reference data
            target_table: Table to be aligned

        Returns:
            ComparisonStatus; execute() may only be called when it is not fatal
        """
        self.reset()
        state = self.state
        reference_id = as_table(reference_table)
        target_id = as_table(target_table)
        self.log.update_context(table=str(reference_id))

        definition = self.reference.catalog.get_table_definition(reference_id)
        if definition is None:
            return self._fail(ComparisonStatus.REFERENCE_NOT_FOUND,
                              f"Reference table {reference_id} not found")
        state.reference_table = definition.table
        state.reference_columns = definition.columns
        state.real_pk = primary_key_columns(self.reference, definition.table, definition.columns)

        key = self._resolve_key(definition.table, target_id)
        if key is None:
            if not state.errors:
                state.errors.append(f"No primary key found for table {definition.table}")
            state.status = ComparisonStatus.NO_PRIMARY_KEY
            return state.status
        state.key_columns = key

        status = ComparisonStatus.OK
        target_definition = self.target.catalog.get_table_definition(target_id)
        if target_definition is None:
            if not self.config.ignore_missing_target:
                return self._fail(ComparisonStatus.TARGET_NOT_FOUND,
                                  f"Target table {target_id} not found")
            state.target_missing = True
            state.target_table = target_id.with_schema(target_id.schema or self.config.target_schema)
            state.target_columns = state.reference_columns
            state.warnings.append(
                f"Target table {target_id} not found, all rows will be generated as INSERT"
            )
        else:
            state.target_table = target_definition.table
            matched = []
            for column in state.reference_columns:
                counterpart = next(
                    (c for c in target_definition.columns if self.policy.equals(c.name, column.name)),
                    None,
                )
                if counterpart is None:
                    state.warnings.append(
                        f"Column {column.name} of {state.reference_table} not found "
                        f"in target table {state.target_table}"
                    )
                    status = ComparisonStatus.COLUMN_MISMATCH
                    continue
                matched.append(counterpart)
            state.target_columns = tuple(matched)

            for name in key:
                if not any(self.policy.equals(c.name, name) for c in matched):
                    return self._fail(
                        ComparisonStatus.NO_PRIMARY_KEY,
                        f"Key column {name} not found in target table {state.target_table}",
                    )

        self._configure_columns()
        self._comparer = RowDataComparer(
            self.output,
            table=state.target_table,
            key_columns=state.key_columns,
            target_columns=state.target_columns,
            policy=self.policy,
        )
        self._comparer.ignore_columns(state.ignored)
        self._comparer.exclude_columns(state.excluded)
        if not state.target_missing:
            self._fetcher = ChunkFetcher(
                self.target,
                state.target_table,
                state.target_columns,
                state.key_columns,
                use_savepoints=self.config.use_savepoints,
                policy=self.policy,
                is_cancelled=self.is_cancelled,
            )
        state.status = status
        return status

    def _configure_columns(self) -> None:
        state = self.state
        policy = self.policy

        def is_key(name: str) -> bool:
            return any(policy.equals(name, k) for k in state.key_columns)

        ignored = set()
        excluded = set()
        for column in state.reference_columns:
            if self.config.is_ignored(column.name):
                ignored.add(column.name)
                if self.config.exclude_ignored_columns and not is_key(column.name):
                    excluded.add(column.name)

        # With an alternate key the physical primary key is never compared
        for name in state.real_pk:
            if is_key(name):
                continue
            ignored.add(name)
            if self.config.exclude_real_pk:
                excluded.add(name)

        state.ignored = frozenset(ignored)
        state.excluded = frozenset(excluded)

    def _reference_query(self) -> str:
        db_type = self.reference.db_type
        select_list = ", ".join(db_type.quote_if_needed(c.name) for c in self.state.reference_columns)
        return f"SELECT {select_list} FROM {db_type.table_expression(self.state.reference_table)}"

    def execute(self) -> DataDiffResult:
        """
        Stream the reference table and write the differences.

        Returns:
            DataDiffResult with row and fragment counts

        Raises:
            DataDiffError: If prepare() was not called or failed
        """
        state = self.state
        if state.status is None or state.status.is_fatal:
            raise DataDiffError("execute() requires a successful prepare()")

        started = time.monotonic()
        table_name = str(state.reference_table)
        self.log.info(f"Comparing {state.reference_table} with {state.target_table}")

        with trace_operation("datadiff.data_diff", reference=table_name,
                             target=str(state.target_table)):
            try:
                self._stream_reference(table_name)
            finally:
                self._write_footers()
            add_span_attributes(rows=state.rows_processed, inserts=state.inserts,
                                updates=state.updates)

        elapsed = time.monotonic() - started
        DIFF_METRICS.run_seconds.labels(table=table_name, operation="data-diff").observe(elapsed)
        if self.is_cancelled():
            self.log.warning(f"Comparison of {table_name} cancelled after {state.rows_processed} rows")
        else:
            self.log.info(
                f"Compared {state.rows_processed} rows of {table_name}: "
                f"{state.inserts} inserts, {state.updates} updates ({elapsed:.2f}s)"
            )

        return DataDiffResult(
            table=table_name,
            status=state.status,
            rows_processed=state.rows_processed,
            inserts=state.inserts,
            updates=state.updates,
            cancelled=self.is_cancelled(),
            elapsed_seconds=elapsed,
            warnings=tuple(state.warnings),
            errors=tuple(state.errors),
        )

    def _stream_reference(self, table_name: str) -> None:
        state = self.state
        interval = self.config.progress_interval
        chunk: list[tuple[int, Row]] = []
        with self.reference.query(self._reference_query(), columns=state.reference_columns,
                                  is_cancelled=self.is_cancelled) as result:
            for row in result:
                if self.is_cancelled():
                    return
                state.rows_processed += 1
                chunk.append((state.rows_processed, row))
                if self.progress is not None and state.rows_processed % interval == 0:
                    self.progress.report_progress(table_name, state.rows_processed)
                if len(chunk) >= self.config.chunk_size:
                    self._process_chunk(chunk, table_name)
                    chunk = []

        if chunk and not self.is_cancelled():
            self._process_chunk(chunk, table_name)

    def _process_chunk(self, chunk: list[tuple[int, Row]], table_name: str) -> None:
        if self.is_cancelled():
            return
        rows = [row for _, row in chunk]
        candidates = [] if self._fetcher is None else self._fetcher.fetch(rows)

        fragments = []
        for row_number, row in chunk:
            if self.is_cancelled():
                return
            index = find_match(candidates, row, self.state.key_columns, self.policy)
            target_row = candidates[index] if index >= 0 else None
            self._comparer.set_rows(row, target_row)
            fragment = self._comparer.get_migration(row_number)
            if fragment is not None:
                fragments.append(("insert" if target_row is None else "update", fragment))

        DIFF_METRICS.rows_compared.labels(table=table_name).inc(len(chunk))
        for kind, fragment in fragments:
            self._write(kind, fragment, table_name)

    def _write(self, kind: str, fragment: str, table_name: str) -> None:
        state = self.state
        if kind == "insert":
            state.inserts += 1
            writer = self.insert_writer
        else:
            state.updates += 1
            writer = self.update_writer
        DIFF_METRICS.record_fragment(table_name, kind)
        if writer is None:
            return

        header_flag = f"{kind}_header_written"
        if not getattr(state, header_flag):
            writer.write(self.output.header(state.target_table, DATA_DIFF_ROOT))
            setattr(state, header_flag, True)
        writer.write(fragment + self.output.fragment_separator)

    def _write_footers(self) -> None:
        state = self.state
        footer = self.output.footer(DATA_DIFF_ROOT)
        if not footer:
            return
        if state.insert_header_written and self.insert_writer is not None:
            self.insert_writer.write(footer)
        if state.update_header_written and self.update_writer is not None:
            self.update_writer.write(footer)
