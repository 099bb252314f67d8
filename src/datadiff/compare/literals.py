"""
SQL literal formatting.

SqlLiteralFormatter renders a Python value as a literal of the target
database, so that generated statements can be run as a plain script.
NULL is always rendered as the keyword NULL.
"""

import base64
import datetime
import decimal
import hashlib
import json
import logging
import math
import uuid
from pathlib import Path
from typing import Any

from ..config import BlobMode, DateLiteralType
from ..connection.dialect import DatabaseType
from ..errors import LiteralConversionError
from ..storage.columns import ColumnDescriptor

logger = logging.getLogger(__name__)


def quote_string(value: str) -> str:
    """Single-quote a string, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def _iso_timestamp(value: datetime.datetime) -> str:
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    if value.tzinfo is not None:
        offset = value.strftime("%z")
        if offset:
            text += f"{offset[:3]}:{offset[3:]}"
    return text


def _iso_time(value: datetime.time) -> str:
    text = value.strftime("%H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    return text


class SqlLiteralFormatter:
    """
    Dialect aware literal renderer.

    Args:
        db_type: Database the statements are written for
        date_literal_type: Date/time literal style
        blob_mode: Binary literal style
        blob_directory: Where blob files go when blob_mode is FILE
    """

    def __init__(
        self,
        db_type: DatabaseType,
        date_literal_type: DateLiteralType = DateLiteralType.DBMS,
        blob_mode: BlobMode = BlobMode.DBMS,
        blob_directory: Path | None = None,
    ):
        self.db_type = db_type
        self.date_literal_type = date_literal_type
        self.blob_mode = blob_mode
        self.blob_directory = Path(blob_directory) if blob_directory else None
        if blob_mode is BlobMode.FILE and self.blob_directory is None:
            raise ValueError("blob_directory is required for blob mode 'file'")
        self.blob_files_written = 0

    def format(self, value: Any, column: ColumnDescriptor | None = None) -> str:
        """
        Render a value as a SQL literal.

        Args:
            value: Python value as returned by the driver
            column: Column the value belongs to (drives N'' prefixes)

        Returns:
            SQL literal text

        Raises:
            LiteralConversionError: If the value cannot be rendered
        """
        if value is None:
            return "NULL"
        try:
            return self._format(value, column)
        except LiteralConversionError:
            raise
        except (TypeError, ValueError, OSError, decimal.InvalidOperation) as e:
            raise LiteralConversionError(
                f"Cannot render {type(value).__name__} value as SQL literal: {e}",
                column=column.name if column else None,
                value_type=type(value).__name__,
            ) from e

    def _format(self, value: Any, column: ColumnDescriptor | None) -> str:
        if isinstance(value, bool):
            return self._format_bool(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, decimal.Decimal):
            if not value.is_finite():
                return quote_string(str(value))
            return format(value, "f")
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return quote_string(repr(value).replace("inf", "Infinity").replace("nan", "NaN"))
            return repr(value)
        if isinstance(value, str):
            return self._format_string(value, column)
        if isinstance(value, datetime.datetime):
            return self._format_temporal(_iso_timestamp(value), "timestamp", value.tzinfo is not None)
        if isinstance(value, datetime.date):
            return self._format_temporal(value.isoformat(), "date", False)
        if isinstance(value, datetime.time):
            return self._format_temporal(_iso_time(value), "time", value.tzinfo is not None)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.format_blob(bytes(value), column)
        if isinstance(value, uuid.UUID):
            return quote_string(str(value))
        if isinstance(value, (dict, list)):
            return quote_string(json.dumps(value, default=str))
        return quote_string(str(value))

    def _format_bool(self, value: bool) -> str:
        if self.db_type == DatabaseType.POSTGRESQL:
            return "TRUE" if value else "FALSE"
        return "1" if value else "0"

    def _format_string(self, value: str, column: ColumnDescriptor | None) -> str:
        literal = quote_string(value)
        if self.db_type == DatabaseType.SQLSERVER and column is not None and column.sql_type.is_national:
            return "N" + literal
        return literal

    def _format_temporal(self, text: str, kind: str, with_zone: bool) -> str:
        style = self.date_literal_type
        if style is DateLiteralType.ISO:
            return quote_string(text)
        if style is DateLiteralType.JDBC:
            escape = {"date": "d", "time": "t", "timestamp": "ts"}[kind]
            return f"{{{escape} {quote_string(text)}}}"
        if style is DateLiteralType.ANSI:
            keyword = kind.upper()
            if with_zone:
                keyword += " WITH TIME ZONE"
            return f"{keyword} {quote_string(text)}"

        # Native spelling of the target database
        if self.db_type == DatabaseType.POSTGRESQL:
            cast = {"date": "date", "time": "time", "timestamp": "timestamp"}[kind]
            if with_zone:
                cast += "tz"
            return f"{quote_string(text)}::{cast}"
        if self.db_type == DatabaseType.SQLSERVER:
            target_type = {"date": "DATE", "time": "TIME",
                           "timestamp": "DATETIMEOFFSET" if with_zone else "DATETIME2"}[kind]
            return f"CONVERT({target_type}, {quote_string(text)}, 121)"
        return quote_string(text)

    def format_blob(self, data: bytes, column: ColumnDescriptor | None = None) -> str:
        """
        Render binary data according to the blob mode.

        Args:
            data: Binary value
            column: Column the value belongs to

        Returns:
            SQL expression producing the binary value
        """
        mode = self.blob_mode
        if mode is BlobMode.NONE:
            return "NULL"
        if mode is BlobMode.ANSI:
            return f"X'{data.hex().upper()}'"
        if mode is BlobMode.BASE64:
            encoded = quote_string(base64.b64encode(data).decode("ascii"))
            if self.db_type == DatabaseType.POSTGRESQL:
                return f"decode({encoded}, 'base64')"
            return encoded
        if mode is BlobMode.FILE:
            return self._write_blob_file(data, column)

        if self.db_type == DatabaseType.POSTGRESQL:
            return f"'\\x{data.hex()}'::bytea"
        if self.db_type == DatabaseType.SQLSERVER:
            return "0x" + data.hex().upper()
        return f"X'{data.hex().upper()}'"

    def _write_blob_file(self, data: bytes, column: ColumnDescriptor | None) -> str:
        self.blob_directory.mkdir(parents=True, exist_ok=True)
        digest = hashlib.sha1(data).hexdigest()[:16]
        prefix = column.name if column is not None else "blob"
        path = self.blob_directory / f"{prefix}_{digest}.data"
        if not path.exists():
            path.write_bytes(data)
            self.blob_files_written += 1
            logger.debug(f"Wrote {len(data)} bytes to {path}")

        location = quote_string(str(path))
        if self.db_type == DatabaseType.POSTGRESQL:
            return f"pg_read_binary_file({location})"
        if self.db_type == DatabaseType.SQLSERVER:
            return f"(SELECT BulkColumn FROM OPENROWSET(BULK N{location}, SINGLE_BLOB) AS blob_data)"
        # readfile() is provided by the sqlite3 command line shell
        return f"readfile({location})"
