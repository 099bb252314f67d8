"""
Connection, dialect and catalog access.
"""

from .catalog import CatalogReader, PostgresCatalog, SqliteCatalog, SqlServerCatalog, create_catalog
from .dialect import DatabaseType
from .factory import connect, parse_url
from .wrapper import DbConnection, QueryResult, materialize

__all__ = [
    "CatalogReader",
    "DatabaseType",
    "DbConnection",
    "PostgresCatalog",
    "QueryResult",
    "SqlServerCatalog",
    "SqliteCatalog",
    "connect",
    "create_catalog",
    "materialize",
    "parse_url",
]
