"""
Column and table descriptors.

ColumnDescriptor and TableIdentifier are immutable once read from the
catalog; a comparison run never mutates them.
"""

import datetime
import decimal
import re
import uuid
from dataclasses import dataclass
from enum import IntEnum

from .names import DEFAULT_NAME_POLICY, NamePolicy, is_quoted, strip_quotes


class SqlType(IntEnum):
    """Generic SQL type codes (numerically identical to java.sql.Types)."""

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    BLOB = 2004
    CLOB = 2005
    NCLOB = 2011
    BOOLEAN = 16
    NULL = 0
    OTHER = 1111

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_TYPES

    @property
    def is_character(self) -> bool:
        return self in _CHARACTER_TYPES

    @property
    def is_temporal(self) -> bool:
        return self in _TEMPORAL_TYPES

    @property
    def is_binary(self) -> bool:
        return self in _BINARY_TYPES

    @property
    def is_national(self) -> bool:
        return self in (SqlType.NCHAR, SqlType.NVARCHAR, SqlType.LONGNVARCHAR, SqlType.NCLOB)

    @classmethod
    def from_type_name(cls, type_name: str | None) -> "SqlType":
        """
        Classify a DBMS type name.

        Args:
            type_name: Declared type as reported by the catalog, e.g.
                "character varying", "NVARCHAR(50)", "bytea"

        Returns:
            Closest SqlType; OTHER when the name is not recognized
        """
        if not type_name:
            return cls.OTHER
        base = re.sub(r"\(.*\)", "", type_name).strip().lower()
        if base in _TYPE_NAMES:
            return _TYPE_NAMES[base]
        # SQLite type affinity rules
        if "int" in base:
            return cls.INTEGER
        if "char" in base or "clob" in base or "text" in base:
            return cls.VARCHAR
        if "blob" in base:
            return cls.BLOB
        if "real" in base or "floa" in base or "doub" in base:
            return cls.DOUBLE
        if base.startswith("timestamp"):
            return cls.TIMESTAMP_WITH_TIMEZONE if "with time zone" in base else cls.TIMESTAMP
        if base.startswith("time"):
            return cls.TIME_WITH_TIMEZONE if "with time zone" in base else cls.TIME
        return cls.OTHER

    @classmethod
    def from_python_type(cls, python_type) -> "SqlType":
        """Classify a Python type as reported in cursor.description by pyodbc."""
        if not isinstance(python_type, type):
            return cls.OTHER
        for candidate, sql_type in _PYTHON_TYPES:
            if issubclass(python_type, candidate):
                return sql_type
        return cls.OTHER


_NUMERIC_TYPES = frozenset({
    SqlType.BIT, SqlType.TINYINT, SqlType.SMALLINT, SqlType.INTEGER, SqlType.BIGINT,
    SqlType.FLOAT, SqlType.REAL, SqlType.DOUBLE, SqlType.NUMERIC, SqlType.DECIMAL,
})
_CHARACTER_TYPES = frozenset({
    SqlType.CHAR, SqlType.VARCHAR, SqlType.LONGVARCHAR, SqlType.NCHAR,
    SqlType.NVARCHAR, SqlType.LONGNVARCHAR, SqlType.CLOB, SqlType.NCLOB,
})
_TEMPORAL_TYPES = frozenset({
    SqlType.DATE, SqlType.TIME, SqlType.TIMESTAMP,
    SqlType.TIME_WITH_TIMEZONE, SqlType.TIMESTAMP_WITH_TIMEZONE,
})
_BINARY_TYPES = frozenset({
    SqlType.BINARY, SqlType.VARBINARY, SqlType.LONGVARBINARY, SqlType.BLOB,
})

_TYPE_NAMES = {
    "bit": SqlType.BIT,
    "tinyint": SqlType.TINYINT,
    "smallint": SqlType.SMALLINT,
    "int2": SqlType.SMALLINT,
    "integer": SqlType.INTEGER,
    "int": SqlType.INTEGER,
    "int4": SqlType.INTEGER,
    "serial": SqlType.INTEGER,
    "bigint": SqlType.BIGINT,
    "int8": SqlType.BIGINT,
    "bigserial": SqlType.BIGINT,
    "real": SqlType.REAL,
    "float4": SqlType.REAL,
    "float": SqlType.FLOAT,
    "double precision": SqlType.DOUBLE,
    "float8": SqlType.DOUBLE,
    "numeric": SqlType.NUMERIC,
    "decimal": SqlType.DECIMAL,
    "money": SqlType.DECIMAL,
    "smallmoney": SqlType.DECIMAL,
    "char": SqlType.CHAR,
    "character": SqlType.CHAR,
    "bpchar": SqlType.CHAR,
    "varchar": SqlType.VARCHAR,
    "character varying": SqlType.VARCHAR,
    "text": SqlType.LONGVARCHAR,
    "nchar": SqlType.NCHAR,
    "nvarchar": SqlType.NVARCHAR,
    "ntext": SqlType.LONGNVARCHAR,
    "date": SqlType.DATE,
    "time": SqlType.TIME,
    "time without time zone": SqlType.TIME,
    "time with time zone": SqlType.TIME_WITH_TIMEZONE,
    "timetz": SqlType.TIME_WITH_TIMEZONE,
    "datetime": SqlType.TIMESTAMP,
    "datetime2": SqlType.TIMESTAMP,
    "smalldatetime": SqlType.TIMESTAMP,
    "timestamp": SqlType.TIMESTAMP,
    "timestamp without time zone": SqlType.TIMESTAMP,
    "timestamp with time zone": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "timestamptz": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "datetimeoffset": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "binary": SqlType.BINARY,
    "varbinary": SqlType.VARBINARY,
    "image": SqlType.LONGVARBINARY,
    "bytea": SqlType.LONGVARBINARY,
    "blob": SqlType.BLOB,
    "clob": SqlType.CLOB,
    "boolean": SqlType.BOOLEAN,
    "bool": SqlType.BOOLEAN,
    "uniqueidentifier": SqlType.CHAR,
    # Names the affinity rules below would misclassify
    "interval": SqlType.OTHER,
    "point": SqlType.OTHER,
    "uuid": SqlType.OTHER,
    "json": SqlType.OTHER,
    "jsonb": SqlType.OTHER,
    "xml": SqlType.OTHER,
}

# Order matters: bool is a subclass of int, datetime of date
_PYTHON_TYPES = (
    (bool, SqlType.BOOLEAN),
    (int, SqlType.BIGINT),
    (float, SqlType.DOUBLE),
    (decimal.Decimal, SqlType.DECIMAL),
    (str, SqlType.VARCHAR),
    (datetime.datetime, SqlType.TIMESTAMP),
    (datetime.date, SqlType.DATE),
    (datetime.time, SqlType.TIME),
    ((bytes, bytearray, memoryview), SqlType.VARBINARY),
    (uuid.UUID, SqlType.CHAR),
)


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    One column of a table or query projection.

    Attributes:
        name: Column name as reported by the catalog (unquoted)
        dbms_type: Declared type, e.g. "varchar(50)"
        sql_type: Generic type classification
        nullable: Whether NULL is allowed
        is_pk: Whether the column belongs to the table's primary key
        comment: Column comment/remarks
        size: Character length or numeric precision
        digits: Numeric scale
        default: Default value expression
        position: 1-based ordinal position in the table
    """

    name: str
    dbms_type: str = ""
    sql_type: SqlType = SqlType.OTHER
    nullable: bool = True
    is_pk: bool = False
    comment: str | None = None
    size: int | None = None
    digits: int | None = None
    default: str | None = None
    position: int = 0

    def same_name(self, other: "ColumnDescriptor | str", policy: NamePolicy = DEFAULT_NAME_POLICY) -> bool:
        """Return True when this column and ``other`` share a name under ``policy``."""
        other_name = other if isinstance(other, str) else other.name
        return policy.equals(self.name, other_name)

    @property
    def is_blob(self) -> bool:
        return self.sql_type.is_binary

    @property
    def is_clob(self) -> bool:
        return self.sql_type in (SqlType.CLOB, SqlType.NCLOB)


@dataclass(frozen=True)
class TableIdentifier:
    """
    Fully or partially qualified table name.

    Names are stored without quotes. ``preserve_case`` records whether the
    user wrote a quoted name, in which case catalog lookups must not fold it.
    """

    name: str
    schema: str | None = None
    catalog: str | None = None
    preserve_case: bool = False

    @classmethod
    def parse(cls, text: str) -> "TableIdentifier":
        """
        Parse ``table``, ``schema.table`` or ``catalog.schema.table``.

        Dots inside quoted parts are kept: ``"my.schema".person`` has the
        schema ``my.schema``.

        Args:
            text: Table expression as typed by a user

        Returns:
            TableIdentifier

        Raises:
            ValueError: If text is empty or has more than three parts
        """
        if not text or not text.strip():
            raise ValueError("Table name cannot be empty")

        parts = _split_qualified(text.strip())
        if len(parts) > 3:
            raise ValueError(f"Invalid table name: {text!r}")

        preserve = is_quoted(parts[-1])
        names = [strip_quotes(p) for p in parts]
        if len(names) == 1:
            return cls(names[0], preserve_case=preserve)
        if len(names) == 2:
            return cls(names[1], schema=names[0], preserve_case=preserve)
        return cls(names[2], schema=names[1], catalog=names[0], preserve_case=preserve)

    @property
    def qualified_name(self) -> str:
        """Unquoted dotted name, used for logging and file names."""
        return ".".join(p for p in (self.catalog, self.schema, self.name) if p)

    def with_schema(self, schema: str | None) -> "TableIdentifier":
        return TableIdentifier(self.name, schema, self.catalog, self.preserve_case)

    def __str__(self):
        return self.qualified_name


def _split_qualified(text: str) -> list[str]:
    parts = []
    current = []
    closing = None
    for char in text:
        if closing is not None:
            current.append(char)
            if char == closing:
                closing = None
        elif char in ('"', "[", "`"):
            closing = {'"': '"', "[": "]", "`": "`"}[char]
            current.append(char)
        elif char == ".":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts]
