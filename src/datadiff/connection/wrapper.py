"""
Thin wrapper around a DB-API 2.0 connection.

DbConnection streams query results as Row objects, executes statements and
manages savepoints, hiding the differences between psycopg2, pyodbc and
sqlite3 that matter to the comparison code.
"""

import itertools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, Sequence

from ..storage.columns import ColumnDescriptor
from ..storage.names import DEFAULT_NAME_POLICY, NamePolicy
from ..storage.rows import ResultShape, Row
from .dialect import DatabaseType

logger = logging.getLogger(__name__)

DEFAULT_FETCH_SIZE = 500

_savepoint_ids = itertools.count(1)


def materialize(value: Any) -> Any:
    """
    Turn driver specific LOB objects into plain Python values.

    psycopg2 returns bytea as memoryview and some ODBC drivers hand out
    stream-like objects; both are read completely so that a Row never keeps
    a reference into the driver's buffers.

    Args:
        value: Value as returned by the driver

    Returns:
        bytes for binary data, str for character streams, the value itself
        otherwise
    """
    if isinstance(value, memoryview):
        return value.tobytes()
    if isinstance(value, bytearray):
        return bytes(value)
    read = getattr(value, "read", None)
    if callable(read):
        try:
            return read()
        finally:
            close = getattr(value, "close", None)
            if callable(close):
                close()
    return value


class QueryResult:
    """
    Rows of one running query.

    Iterating ``rows`` fetches from the cursor in batches of ``fetch_size``;
    the cursor is closed when the owning ``DbConnection.query`` block exits,
    even if iteration stopped early.
    """

    def __init__(self, shape: ResultShape, cursor, fetch_size: int,
                 is_cancelled: Callable[[], bool] | None = None):
        self.shape = shape
        self._cursor = cursor
        self._fetch_size = fetch_size
        self._is_cancelled = is_cancelled
        self.rows_read = 0

    @property
    def rows(self) -> Iterator[Row]:
        return self._iterate()

    def __iter__(self):
        return self._iterate()

    def _iterate(self) -> Iterator[Row]:
        while True:
            if self._is_cancelled is not None and self._is_cancelled():
                return
            batch = self._cursor.fetchmany(self._fetch_size)
            if not batch:
                return
            for raw in batch:
                self.rows_read += 1
                yield Row(self.shape, [materialize(v) for v in raw])

    def fetch_all(self) -> list[Row]:
        return list(self._iterate())


class DbConnection:
    """
    DB-API connection plus the database type and catalog access.

    A DbConnection must be used by one thread at a time; parallel runs
    each open their own.

    Args:
        raw: psycopg2, pyodbc or sqlite3 connection
        db_type: Database type (detected from the driver when omitted)
        name: Label used in logs and reports, e.g. "reference"
        fetch_size: Rows requested per fetchmany() call
        policy: Name matching policy for catalog lookups
    """

    def __init__(
        self,
        raw,
        db_type: DatabaseType | None = None,
        name: str = "connection",
        fetch_size: int = DEFAULT_FETCH_SIZE,
        policy: NamePolicy = DEFAULT_NAME_POLICY,
    ):
        self.raw = raw
        self.db_type = db_type or DatabaseType.from_connection(raw)
        self.name = name
        self.fetch_size = fetch_size
        self.policy = policy
        self._catalog = None

    def __repr__(self):
        return f"DbConnection(name={self.name!r}, db_type={self.db_type.value!r})"

    @property
    def catalog(self):
        """Catalog reader for this connection's database type."""
        if self._catalog is None:
            from .catalog import create_catalog

            self._catalog = create_catalog(self)
        return self._catalog

    @property
    def autocommit(self) -> bool:
        if self.db_type == DatabaseType.SQLITE:
            if getattr(self.raw, "autocommit", None) is True:
                return True
            return self.raw.isolation_level is None
        return bool(getattr(self.raw, "autocommit", False))

    @contextmanager
    def query(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        columns: Iterable[ColumnDescriptor] = (),
        is_cancelled: Callable[[], bool] | None = None,
    ) -> Iterator[QueryResult]:
        """
        Run a query and stream its rows.

        Args:
            sql: SELECT statement
            params: Statement parameters
            columns: Catalog descriptors of the queried table, used to type
                the result columns
            is_cancelled: Checked before every fetch; iteration stops once
                it returns True

        Yields:
            QueryResult whose rows are read lazily
        """
        cursor = self.raw.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            shape = ResultShape.from_description(cursor.description, columns, self.policy)
            yield QueryResult(shape, cursor, self.fetch_size, is_cancelled)
        finally:
            cursor.close()

    def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        """Run a small query and return its rows as tuples."""
        cursor = self.raw.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            return [tuple(r) for r in cursor.fetchall()]
        finally:
            cursor.close()

    def fetch_value(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        rows = self.fetch_all(sql, params)
        return rows[0][0] if rows else None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """
        Execute a statement.

        Returns:
            Number of affected rows as reported by the driver (0 when unknown)
        """
        cursor = self.raw.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            return max(cursor.rowcount, 0)
        finally:
            cursor.close()

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    def close(self) -> None:
        self.raw.close()

    @property
    def can_use_savepoints(self) -> bool:
        return self.db_type.supports_savepoints and not self.autocommit

    @contextmanager
    def savepoint(self, enabled: bool = True) -> Iterator[str | None]:
        """
        Wrap a block in a savepoint.

        The savepoint is released when the block succeeds and rolled back to
        when it raises, so a failed statement does not poison the enclosing
        transaction. Nothing happens when savepoints are unavailable.

        Args:
            enabled: Set to False to skip the savepoint

        Yields:
            Savepoint name, or None when no savepoint was taken
        """
        if not (enabled and self.can_use_savepoints):
            yield None
            return

        name = f"datadiff_sp_{next(_savepoint_ids)}"
        self.execute(self.db_type.savepoint_sql(name))
        try:
            yield name
        except Exception:
            try:
                self.execute(self.db_type.rollback_savepoint_sql(name))
                self.execute(self.db_type.release_savepoint_sql(name))
            except Exception as rollback_error:
                logger.error(f"Could not roll back to savepoint {name}: {rollback_error}")
            raise
        else:
            self.execute(self.db_type.release_savepoint_sql(name))
