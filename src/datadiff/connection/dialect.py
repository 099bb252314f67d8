"""
Database type enumeration and per-dialect SQL spelling.

Everything that differs between the supported products at the level of a
single token lives here: identifier quoting, parameter placeholders,
savepoint statements and script include directives.
"""

import re
from enum import Enum

from ..storage.columns import TableIdentifier

# Identifiers matching this never need quoting (lower case for PostgreSQL,
# which folds unquoted names to lower case)
_PLAIN_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")
_PLAIN_IDENTIFIER_ANY_CASE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RESERVED_WORDS = frozenset({
    "all", "alter", "and", "any", "as", "asc", "between", "by", "case", "check",
    "column", "constraint", "create", "cross", "current_date", "current_time",
    "current_timestamp", "current_user", "default", "delete", "desc", "distinct",
    "drop", "else", "end", "exists", "foreign", "from", "full", "grant", "group",
    "having", "in", "index", "inner", "insert", "into", "is", "join", "key", "left",
    "like", "limit", "not", "null", "offset", "on", "or", "order", "outer",
    "primary", "references", "right", "select", "session_user", "set", "table",
    "then", "to", "union", "unique", "update", "user", "using", "values", "view",
    "when", "where", "with",
})


class DatabaseType(str, Enum):
    """
    Enumeration of supported database types.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"
    SQLITE = "sqlite"
    UNKNOWN = "unknown"

    @classmethod
    def from_connection(cls, connection) -> "DatabaseType":
        """
        Detect database type from the driver module of a DB-API connection.

        Args:
            connection: psycopg2, pyodbc or sqlite3 connection

        Returns:
            DatabaseType enum value
        """
        module = type(connection).__module__.lower()
        class_name = type(connection).__name__.lower()

        if "psycopg" in module or "postgres" in class_name:
            return cls.POSTGRESQL
        if "pyodbc" in module or "odbc" in class_name:
            return cls.SQLSERVER
        if "sqlite" in module:
            return cls.SQLITE
        return cls.UNKNOWN

    @property
    def placeholder(self) -> str:
        """Parameter placeholder of the driver used for this database."""
        if self == DatabaseType.POSTGRESQL:
            return "%s"
        return "?"

    @property
    def supports_savepoints(self) -> bool:
        # pyodbc keeps SQL Server in implicit transaction mode, where SAVE
        # TRANSACTION fails until a DML statement opened the transaction
        return self in (DatabaseType.POSTGRESQL, DatabaseType.SQLITE)

    @property
    def script_tool(self) -> str:
        return {
            DatabaseType.POSTGRESQL: "psql",
            DatabaseType.SQLSERVER: "sqlcmd",
            DatabaseType.SQLITE: "sqlite3",
        }.get(self, "sql")

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote an identifier unconditionally.

        Embedded quote characters are doubled, so any name is safe.

        Args:
            identifier: Column or table name (unquoted)

        Returns:
            Quoted identifier string
        """
        if self == DatabaseType.SQLSERVER:
            return "[" + identifier.replace("]", "]]") + "]"
        return '"' + identifier.replace('"', '""') + '"'

    def needs_quoting(self, identifier: str) -> bool:
        if identifier.lower() in RESERVED_WORDS:
            return True
        if self == DatabaseType.POSTGRESQL:
            return not _PLAIN_IDENTIFIER.match(identifier)
        return not _PLAIN_IDENTIFIER_ANY_CASE.match(identifier)

    def quote_if_needed(self, identifier: str) -> str:
        """Quote an identifier only when it is not a plain lower/any case word."""
        if self.needs_quoting(identifier):
            return self.quote_identifier(identifier)
        return identifier

    def table_expression(self, table: TableIdentifier) -> str:
        """
        Render a table reference for use in generated SQL.

        Args:
            table: Table identifier

        Returns:
            Qualified name with each part quoted where necessary
        """
        parts = [p for p in (table.catalog, table.schema, table.name) if p]
        return ".".join(self.quote_if_needed(p) for p in parts)

    def savepoint_sql(self, name: str) -> str:
        return f"SAVEPOINT {name}"

    def release_savepoint_sql(self, name: str) -> str:
        return f"RELEASE SAVEPOINT {name}"

    def rollback_savepoint_sql(self, name: str) -> str:
        return f"ROLLBACK TO SAVEPOINT {name}"

    def include_directive(self, file_name: str) -> str:
        """
        Statement that runs another script file in the dialect's CLI tool.

        Args:
            file_name: Script path relative to the main script

        Returns:
            Include directive line
        """
        if self == DatabaseType.POSTGRESQL:
            return f"\\i {file_name}"
        if self == DatabaseType.SQLSERVER:
            return f":r {file_name}"
        if self == DatabaseType.SQLITE:
            return f".read {file_name}"
        return f"@{file_name}"

    def begin_statement(self) -> str:
        return "BEGIN TRANSACTION;"

    def commit_statement(self) -> str:
        if self == DatabaseType.SQLSERVER:
            return "COMMIT;\nGO"
        return "COMMIT;"
