"""
Chunked lookup of counterpart rows.

For a chunk of rows read from one side, ChunkFetcher issues a single
SELECT against the other side restricted to the chunk's keys:

    SELECT c1, c2, ... FROM t WHERE (k1 = v1 AND k2 = v2) OR (k1 = v3 AND ...)
"""

import logging
import time
from typing import Callable, Sequence

from ..connection.wrapper import DbConnection
from ..storage.columns import ColumnDescriptor, TableIdentifier
from ..storage.names import DEFAULT_NAME_POLICY, NamePolicy
from ..storage.rows import Row
from ..utils.metrics import DIFF_METRICS
from ..utils.tracing import trace_operation
from .literals import SqlLiteralFormatter
from .matcher import key_positions

logger = logging.getLogger(__name__)


class ChunkFetcher:
    """
    Fetches the rows of ``table`` whose key equals the key of a chunk row.

    Key literals are written in the native style of the queried database,
    independent of the style used for generated output.

    Args:
        connection: Connection to query
        table: Table to query
        columns: Descriptors of the columns to select (the key included)
        key_columns: Active key column names
        use_savepoints: Wrap each lookup in a savepoint when possible
        policy: Name matching policy
        is_cancelled: Checked while reading the result
    """

    def __init__(
        self,
        connection: DbConnection,
        table: TableIdentifier,
        columns: Sequence[ColumnDescriptor],
        key_columns: Sequence[str],
        use_savepoints: bool = True,
        policy: NamePolicy = DEFAULT_NAME_POLICY,
        is_cancelled: Callable[[], bool] | None = None,
    ):
        self.connection = connection
        self.table = table
        self.columns = tuple(columns)
        self.key_columns = tuple(key_columns)
        self.use_savepoints = use_savepoints
        self.policy = policy
        self.is_cancelled = is_cancelled
        self.formatter = SqlLiteralFormatter(connection.db_type)
        self.queries_executed = 0

        db_type = connection.db_type
        self._key_names = []
        for key in self.key_columns:
            column = next((c for c in self.columns if policy.equals(c.name, key)), None)
            self._key_names.append(
                (db_type.quote_if_needed(column.name if column else key), column)
            )

    def build_predicate(self, rows: Sequence[Row]) -> str:
        """
        OR-of-ANDs predicate matching the keys of ``rows``.

        Rows with a NULL key value, or without all key columns, cannot be
        addressed and are left out.

        Returns:
            Predicate text, empty when no row is usable
        """
        groups = []
        for row in rows:
            positions = key_positions(row.shape, self.key_columns, self.policy)
            if positions is None:
                continue
            values = [row[p] for p in positions]
            if any(v is None for v in values):
                continue
            terms = [
                f"{name} = {self.formatter.format(value, column)}"
                for (name, column), value in zip(self._key_names, values)
            ]
            groups.append("(" + " AND ".join(terms) + ")")
        return " OR ".join(groups)

    def build_query(self, rows: Sequence[Row]) -> str | None:
        predicate = self.build_predicate(rows)
        if not predicate:
            return None
        db_type = self.connection.db_type
        select_list = ", ".join(db_type.quote_if_needed(c.name) for c in self.columns)
        return f"SELECT {select_list} FROM {db_type.table_expression(self.table)} WHERE {predicate}"

    def fetch(self, rows: Sequence[Row]) -> list[Row]:
        """
        Run the lookup for one chunk.

        Returns:
            Counterpart rows; an empty list when no chunk row has a usable key

        Raises:
            Exception: Driver errors are logged together with the SQL text
                and re-raised unchanged
        """
        sql = self.build_query(rows)
        if sql is None:
            return []

        table_name = self.table.qualified_name
        started = time.monotonic()
        with trace_operation("datadiff.fetch_chunk", table=table_name, rows=len(rows)) as span:
            try:
                with self.connection.savepoint(enabled=self.use_savepoints):
                    with self.connection.query(sql, columns=self.columns,
                                               is_cancelled=self.is_cancelled) as result:
                        found = result.fetch_all()
            except Exception:
                logger.error(f"Error retrieving rows from {table_name} using:\n{sql}")
                raise
            span.set_attribute("rows_found", len(found))

        self.queries_executed += 1
        DIFF_METRICS.chunk_fetch_seconds.labels(table=table_name).observe(time.monotonic() - started)
        logger.debug(f"Fetched {len(found)} of {len(rows)} rows from {table_name}")
        return found
