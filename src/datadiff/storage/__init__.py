"""
Row model shared by the data and schema comparisons.
"""

from .columns import ColumnDescriptor, SqlType, TableIdentifier
from .names import (
    DEFAULT_NAME_POLICY,
    CaseInsensitiveNames,
    CaseSensitiveNames,
    NamePolicy,
    get_name_policy,
    strip_quotes,
)
from .rows import ResultShape, Row, keys_equal, values_equal

__all__ = [
    "CaseInsensitiveNames",
    "CaseSensitiveNames",
    "ColumnDescriptor",
    "DEFAULT_NAME_POLICY",
    "NamePolicy",
    "ResultShape",
    "Row",
    "SqlType",
    "TableIdentifier",
    "get_name_policy",
    "keys_equal",
    "strip_quotes",
    "values_equal",
]
