"""
Unit tests for SQL literal formatting across dialects
"""

import datetime
import decimal
import uuid

import pytest

from datadiff.compare.literals import SqlLiteralFormatter, quote_string
from datadiff.config import BlobMode, DateLiteralType
from datadiff.connection import DatabaseType
from datadiff.errors import LiteralConversionError
from datadiff.storage import ColumnDescriptor, SqlType

PG = DatabaseType.POSTGRESQL
MSSQL = DatabaseType.SQLSERVER
SQLITE = DatabaseType.SQLITE

TIMESTAMP = datetime.datetime(2024, 1, 31, 13, 45, 30)


class TestScalars:
    """Test numbers, strings and booleans"""

    def test_null(self):
        assert SqlLiteralFormatter(PG).format(None) == "NULL"

    def test_quote_string_doubles_quotes(self):
        assert quote_string("O'Brien") == "'O''Brien'"

    @pytest.mark.parametrize("db_type,true,false", [(PG, "TRUE", "FALSE"), (MSSQL, "1", "0"), (SQLITE, "1", "0")])
    def test_booleans(self, db_type, true, false):
        formatter = SqlLiteralFormatter(db_type)
        assert formatter.format(True) == true
        assert formatter.format(False) == false

    def test_numbers(self):
        formatter = SqlLiteralFormatter(PG)
        assert formatter.format(42) == "42"
        assert formatter.format(decimal.Decimal("1E+3")) == "1000"
        assert formatter.format(decimal.Decimal("12.50")) == "12.50"
        assert formatter.format(0.1) == "0.1"

    def test_non_finite_floats_are_quoted(self):
        formatter = SqlLiteralFormatter(PG)
        assert formatter.format(float("nan")) == "'NaN'"
        assert formatter.format(float("-inf")) == "'-Infinity'"

    def test_national_strings_on_sql_server(self):
        national = ColumnDescriptor("name", "nvarchar(50)", SqlType.NVARCHAR)
        plain = ColumnDescriptor("code", "varchar(5)", SqlType.VARCHAR)
        formatter = SqlLiteralFormatter(MSSQL)
        assert formatter.format("Zoë", national) == "N'Zoë'"
        assert formatter.format("A1", plain) == "'A1'"
        assert SqlLiteralFormatter(PG).format("Zoë", national) == "'Zoë'"

    def test_uuid_and_json(self):
        formatter = SqlLiteralFormatter(PG)
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert formatter.format(value) == "'12345678-1234-5678-1234-567812345678'"
        assert formatter.format({"a": 1}) == "'{\"a\": 1}'"


class TestTemporal:
    """Test date/time literal styles"""

    def test_postgres_native(self):
        formatter = SqlLiteralFormatter(PG)
        assert formatter.format(TIMESTAMP) == "'2024-01-31 13:45:30'::timestamp"
        assert formatter.format(datetime.date(2024, 1, 31)) == "'2024-01-31'::date"
        assert formatter.format(datetime.time(8, 5)) == "'08:05:00'::time"

    def test_postgres_with_time_zone(self):
        value = datetime.datetime(2024, 1, 31, 13, 45, 30, 120, tzinfo=datetime.UTC)
        assert SqlLiteralFormatter(PG).format(value) == "'2024-01-31 13:45:30.000120+00:00'::timestamptz"

    def test_sql_server_native(self):
        formatter = SqlLiteralFormatter(MSSQL)
        assert formatter.format(TIMESTAMP) == "CONVERT(DATETIME2, '2024-01-31 13:45:30', 121)"
        assert formatter.format(datetime.date(2024, 1, 31)) == "CONVERT(DATE, '2024-01-31', 121)"

    def test_sqlite_native(self):
        assert SqlLiteralFormatter(SQLITE).format(TIMESTAMP) == "'2024-01-31 13:45:30'"

    @pytest.mark.parametrize("style,expected", [
        (DateLiteralType.ANSI, "TIMESTAMP '2024-01-31 13:45:30'"),
        (DateLiteralType.JDBC, "{ts '2024-01-31 13:45:30'}"),
        (DateLiteralType.ISO, "'2024-01-31 13:45:30'"),
    ])
    def test_portable_styles(self, style, expected):
        assert SqlLiteralFormatter(MSSQL, date_literal_type=style).format(TIMESTAMP) == expected

    def test_jdbc_date_escape(self):
        formatter = SqlLiteralFormatter(PG, date_literal_type=DateLiteralType.JDBC)
        assert formatter.format(datetime.date(2024, 1, 31)) == "{d '2024-01-31'}"


class TestBlobs:
    """Test binary literal modes"""

    DATA = b"\x0a\x1b\xff"

    @pytest.mark.parametrize("db_type,expected", [
        (PG, "'\\x0a1bff'::bytea"),
        (MSSQL, "0x0A1BFF"),
        (SQLITE, "X'0A1BFF'"),
    ])
    def test_native(self, db_type, expected):
        assert SqlLiteralFormatter(db_type).format(self.DATA) == expected

    def test_memoryview_is_binary(self):
        assert SqlLiteralFormatter(MSSQL).format(memoryview(self.DATA)) == "0x0A1BFF"

    def test_ansi(self):
        assert SqlLiteralFormatter(PG, blob_mode=BlobMode.ANSI).format(self.DATA) == "X'0A1BFF'"

    def test_base64(self):
        assert SqlLiteralFormatter(PG, blob_mode=BlobMode.BASE64).format(self.DATA) == "decode('Chv/', 'base64')"
        assert SqlLiteralFormatter(MSSQL, blob_mode=BlobMode.BASE64).format(self.DATA) == "'Chv/'"

    def test_none(self):
        assert SqlLiteralFormatter(PG, blob_mode=BlobMode.NONE).format(self.DATA) == "NULL"

    def test_file_mode_writes_each_value_once(self, tmp_path):
        formatter = SqlLiteralFormatter(PG, blob_mode=BlobMode.FILE, blob_directory=tmp_path)
        column = ColumnDescriptor("photo", "bytea", SqlType.LONGVARBINARY)

        first = formatter.format(self.DATA, column)
        second = formatter.format(self.DATA, column)

        files = list(tmp_path.glob("photo_*.data"))
        assert len(files) == 1
        assert files[0].read_bytes() == self.DATA
        assert first == second == f"pg_read_binary_file('{files[0]}')"
        assert formatter.blob_files_written == 1

    def test_file_mode_requires_directory(self):
        with pytest.raises(ValueError):
            SqlLiteralFormatter(PG, blob_mode=BlobMode.FILE)


class TestConversionErrors:
    """Test unrenderable values raise LiteralConversionError"""

    def test_value_without_text_form(self):
        class Broken:
            def __str__(self):
                raise ValueError("no text form")

        column = ColumnDescriptor("payload")
        with pytest.raises(LiteralConversionError) as exc_info:
            SqlLiteralFormatter(PG).format(Broken(), column)

        assert exc_info.value.column == "payload"
        assert exc_info.value.value_type == "Broken"
