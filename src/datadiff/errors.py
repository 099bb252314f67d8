"""
Exception hierarchy for datadiff.

Driver errors (psycopg2, pyodbc, sqlite3) are never wrapped: a SQL error
raised while fetching a chunk reaches the caller unchanged. The classes
below cover failures that happen on our side of the connection.
"""


class DataDiffError(Exception):
    """Base class for all datadiff errors."""


class ConfigurationError(DataDiffError, ValueError):
    """Raised when a configuration value is invalid."""


class LiteralConversionError(DataDiffError):
    """
    Raised when a value cannot be rendered as a SQL literal.

    Distinct from driver errors so callers can tell "the database rejected
    this statement" from "the statement could not be built".
    """

    def __init__(self, message: str, column: str | None = None, value_type: str | None = None):
        super().__init__(message)
        self.column = column
        self.value_type = value_type


class ConnectionSetupError(DataDiffError):
    """Raised when a connection URL cannot be turned into a live connection."""


class CancellationError(DataDiffError):
    """Raised when a queued parallel task is cancelled before it starts."""
