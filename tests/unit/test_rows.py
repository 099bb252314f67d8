"""
Unit tests for the row model: names, shapes, rows and value equality
"""

import datetime
import decimal
import uuid

import pytest

from datadiff.storage import (
    CaseInsensitiveNames,
    CaseSensitiveNames,
    ColumnDescriptor,
    ResultShape,
    Row,
    SqlType,
    TableIdentifier,
    get_name_policy,
    keys_equal,
    strip_quotes,
    values_equal,
)


def make_shape(*names, keys=()):
    return ResultShape(tuple(ColumnDescriptor(n) for n in names), key_columns=tuple(keys))


class TestNames:
    """Test identifier quoting and name policies"""

    @pytest.mark.parametrize("name,expected", [
        ('"FirstName"', "FirstName"),
        ("[first name]", "first name"),
        ("`id`", "id"),
        ('"say ""hi"""', 'say "hi"'),
        ("[a]]b]", "a]b"),
        ("plain", "plain"),
        ('"', '"'),
    ])
    def test_strip_quotes(self, name, expected):
        """Test one level of quoting is removed"""
        assert strip_quotes(name) == expected

    def test_case_insensitive_policy(self):
        """Test quoted and differently cased names are equal"""
        policy = CaseInsensitiveNames()
        assert policy.equals('"FirstName"', "FIRSTNAME")
        assert policy.equals("[id]", "ID")

    def test_case_sensitive_policy(self):
        """Test case matters but quotes do not"""
        policy = CaseSensitiveNames()
        assert policy.equals('"Name"', "Name")
        assert not policy.equals("Name", "name")

    def test_get_name_policy(self):
        """Test lookup by configuration name"""
        assert get_name_policy("sensitive") == CaseSensitiveNames()
        assert get_name_policy("INSENSITIVE") == CaseInsensitiveNames()
        with pytest.raises(ValueError, match="Unknown name policy"):
            get_name_policy("fuzzy")


class TestTableIdentifier:
    """Test table name parsing"""

    def test_parse_bare_name(self):
        table = TableIdentifier.parse("person")
        assert table == TableIdentifier("person")
        assert not table.preserve_case

    def test_parse_qualified_name(self):
        table = TableIdentifier.parse("sales.dbo.person")
        assert (table.catalog, table.schema, table.name) == ("sales", "dbo", "person")
        assert str(table) == "sales.dbo.person"

    def test_parse_quoted_parts(self):
        """Test dots inside quotes are part of the name"""
        table = TableIdentifier.parse('"my.schema"."Person"')
        assert table.schema == "my.schema"
        assert table.name == "Person"
        assert table.preserve_case

    @pytest.mark.parametrize("text", ["", "   ", "a.b.c.d"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            TableIdentifier.parse(text)

    def test_with_schema(self):
        assert TableIdentifier("person").with_schema("public").qualified_name == "public.person"


class TestSqlType:
    """Test type classification"""

    @pytest.mark.parametrize("type_name,expected", [
        ("character varying(50)", SqlType.VARCHAR),
        ("NVARCHAR(100)", SqlType.NVARCHAR),
        ("bytea", SqlType.LONGVARBINARY),
        ("timestamp with time zone", SqlType.TIMESTAMP_WITH_TIMEZONE),
        ("NUMERIC(10,2)", SqlType.NUMERIC),
        ("UNSIGNED BIG INT", SqlType.INTEGER),
        ("uuid", SqlType.OTHER),
        (None, SqlType.OTHER),
    ])
    def test_from_type_name(self, type_name, expected):
        assert SqlType.from_type_name(type_name) == expected

    def test_from_python_type_prefers_bool_over_int(self):
        assert SqlType.from_python_type(bool) == SqlType.BOOLEAN
        assert SqlType.from_python_type(int) == SqlType.BIGINT
        assert SqlType.from_python_type("STRING") == SqlType.OTHER

    def test_categories(self):
        assert SqlType.NVARCHAR.is_national
        assert SqlType.BLOB.is_binary
        assert SqlType.DECIMAL.is_numeric
        assert not SqlType.VARCHAR.is_temporal


class TestResultShape:
    """Test column lookup in result shapes"""

    def test_find_column_uses_policy(self):
        shape = make_shape("ID", "FirstName")
        assert shape.find_column("firstname") == 1
        assert shape.find_column('"id"') == 0
        assert shape.find_column("missing") == -1

    def test_unknown_key_column_rejected(self):
        with pytest.raises(ValueError, match="not part of the result"):
            make_shape("id", keys=("code",))

    def test_from_description_prefers_catalog_columns(self):
        """Test catalog descriptors replace sparse cursor metadata"""
        known = [ColumnDescriptor("id", "integer", SqlType.INTEGER, nullable=False, is_pk=True)]
        description = [("ID", None, None, None, None, None, None), ("name", str, None, 50, None, None, True)]

        shape = ResultShape.from_description(description, known)

        assert shape.columns[0].is_pk
        assert shape.columns[0].name == "ID"
        assert shape.columns[1].sql_type == SqlType.VARCHAR
        assert shape.columns[1].size == 50

    def test_subset_keeps_order_and_keys(self):
        shape = make_shape("a", "b", "c", keys=("a",))
        subset = shape.subset(["c", "a"])
        assert subset.column_names == ["a", "c"]
        assert subset.key_columns == ("a",)


class TestRow:
    """Test row access"""

    def test_length_must_match_shape(self):
        with pytest.raises(ValueError, match="2 values"):
            Row(make_shape("a"), [1, 2])

    def test_get_by_name(self):
        row = Row(make_shape("id", "name", keys=("id",)), [7, "x"])
        assert row.get("NAME") == "x"
        assert row.get("other", "default") == "default"
        assert row.key_values() == (7,)
        assert not row.has_null_key()

    def test_null_key(self):
        row = Row(make_shape("id", "name"), [None, "x"])
        assert row.has_null_key(["id"])


class TestValuesEqual:
    """Test database-like value equality"""

    @pytest.mark.parametrize("first,second", [
        (None, None),
        (1, 1.0),
        (1, decimal.Decimal("1.00")),
        (decimal.Decimal("2.5"), "2.5"),
        (True, 1),
        (b"\x01\x02", bytearray(b"\x01\x02")),
        (memoryview(b"ab"), b"ab"),
        (datetime.date(2024, 1, 31), datetime.datetime(2024, 1, 31)),
        (datetime.datetime(2024, 1, 31, 12, 0, tzinfo=datetime.UTC), datetime.datetime(2024, 1, 31, 12, 0)),
        (uuid.UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
        ("abc", "abc"),
    ])
    def test_equal(self, first, second):
        assert values_equal(first, second)
        assert values_equal(second, first)

    @pytest.mark.parametrize("first,second", [
        (None, 0),
        ("", None),
        (1, 2),
        ("abc", 1),
        ("abc", "ABC"),
        (datetime.date(2024, 1, 31), datetime.datetime(2024, 1, 31, 0, 0, 1)),
        (b"\x01", "\x01"),
    ])
    def test_not_equal(self, first, second):
        assert not values_equal(first, second)
        assert not values_equal(second, first)


class TestKeysEqual:
    """Test key comparison across differently ordered shapes"""

    def test_column_order_does_not_matter(self):
        first = Row(make_shape("id", "code", "name"), [1, "A", "x"])
        second = Row(make_shape("name", "CODE", "ID"), ["y", "A", 1])
        assert keys_equal(first, second, ["id", "code"])

    def test_null_never_matches(self):
        first = Row(make_shape("id"), [None])
        second = Row(make_shape("id"), [None])
        assert not keys_equal(first, second, ["id"])
