"""
Unit tests for SQL and XML output dialects
"""

import datetime
import xml.etree.ElementTree as ET

from datadiff.compare.literals import SqlLiteralFormatter
from datadiff.compare.output import (
    BANNER_LINE,
    ColumnValue,
    SqlTextOutput,
    XmlOutput,
    cdata,
    create_output,
)
from datadiff.config import DiffConfig
from datadiff.connection import DatabaseType
from datadiff.storage import ColumnDescriptor, SqlType, TableIdentifier

FIXED_TIME = datetime.datetime(2024, 5, 1, 10, 30, 0)
TABLE = TableIdentifier("person", "public")

ID = ColumnDescriptor("id", "integer", SqlType.INTEGER, is_pk=True)
NAME = ColumnDescriptor("name", "varchar(50)", SqlType.VARCHAR)
ORDER = ColumnDescriptor("order", "integer", SqlType.INTEGER)


def sql_output(db_type=DatabaseType.POSTGRESQL, line_ending="\n"):
    return SqlTextOutput(db_type, SqlLiteralFormatter(db_type), line_ending=line_ending, clock=lambda: FIXED_TIME)


class TestSqlTextOutput:
    """Test SQL statement rendering"""

    def test_header(self):
        header = sql_output().header(TABLE, "table-data-diff")
        assert header.splitlines() == [
            BANNER_LINE,
            "-- Generated by datadiff at: 2024-05-01 10:30:00",
            "-- Operation: table-data-diff",
            "-- Table: public.person",
            BANNER_LINE,
            "",
        ]
        assert header.endswith("\n\n")
        assert sql_output().footer("table-data-diff") == ""

    def test_insert(self):
        statement = sql_output().insert(1, TABLE, [
            ColumnValue(ID, 1, key=True),
            ColumnValue(NAME, "O'Brien"),
        ])
        assert statement == "INSERT INTO public.person (id, name) VALUES (1, 'O''Brien');"

    def test_update_sets_only_modified_columns(self):
        statement = sql_output().update(1, TABLE, [
            ColumnValue(ID, 7, key=True),
            ColumnValue(NAME, "Bob", modified=True),
            ColumnValue(ORDER, 3),
        ])
        assert statement == "UPDATE public.person SET name = 'Bob' WHERE id = 7;"

    def test_delete_with_reserved_column(self):
        statement = sql_output(DatabaseType.SQLSERVER).delete(1, TableIdentifier("orders", "dbo"), [
            ColumnValue(ID, 1, key=True),
            ColumnValue(ORDER, 2, key=True),
        ])
        assert statement == "DELETE FROM dbo.orders WHERE id = 1 AND [order] = 2;"

    def test_fragment_separator_follows_line_ending(self):
        assert sql_output(line_ending="\r\n").fragment_separator == "\r\n\r\n"

    def test_crlf_header(self):
        header = sql_output(line_ending="\r\n").header(TABLE, "table-data-delete")
        assert "\n" not in header.replace("\r\n", "")


class TestXmlOutput:
    """Test XML element rendering"""

    def output(self, **kwargs):
        return XmlOutput(clock=lambda: FIXED_TIME, **kwargs)

    def document(self, output, *fragments, operation="table-data-diff"):
        text = output.header(TABLE, operation)
        for fragment in fragments:
            text += fragment + output.fragment_separator
        text += output.footer(operation)
        return ET.fromstring(text.encode("utf-8"))

    def test_header_and_footer(self):
        output = self.output()
        header = output.header(TABLE, "table-data-diff")
        assert header.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert "<!-- Generated by datadiff at: 2024-05-01 10:30:00 -->" in header
        assert header.endswith('<table-data-diff name="person" schema="public">\n')
        assert output.footer("table-data-diff") == "</table-data-diff>\n"

    def test_document_is_well_formed(self):
        output = self.output()
        insert = output.insert(3, TABLE, [ColumnValue(ID, 1, key=True), ColumnValue(NAME, "a < b & c")])
        update = output.update(4, TABLE, [ColumnValue(ID, 2, key=True), ColumnValue(NAME, None, modified=True)])

        root = self.document(output, insert, update)

        assert root.tag == "table-data-diff"
        assert root.get("name") == "person"
        first, second = list(root)
        assert first.tag == "insert"
        assert first.get("row") == "3"
        assert first[0].get("pk") == "true"
        assert first[1].text == "a < b & c"
        assert second[1].get("null") == "true"
        assert second[1].get("modified") == "true"

    def test_binary_values_are_base64(self):
        output = self.output()
        photo = ColumnDescriptor("photo", "bytea", SqlType.LONGVARBINARY)
        root = self.document(output, output.insert(1, TABLE, [ColumnValue(photo, b"\x00\x01")]))
        column = root[0][0]
        assert column.get("encoding") == "base64"
        assert column.text == "AAE="

    def test_cdata(self):
        output = self.output(use_cdata=True)
        fragment = output.insert(1, TABLE, [ColumnValue(NAME, "x]]>y")])
        assert "<![CDATA[" in fragment
        root = self.document(output, fragment)
        assert root[0][0].text == "x]]>y"

    def test_cdata_split(self):
        assert cdata("a]]>b") == "<![CDATA[a]]]]><![CDATA[>b]]>"

    def test_delete_element(self):
        output = self.output()
        root = self.document(
            output,
            output.delete(9, TABLE, [ColumnValue(ID, 5, key=True)]),
            operation="table-data-delete",
        )
        assert root.tag == "table-data-delete"
        assert root[0].tag == "delete"
        assert root[0][0].text == "5"


class TestCreateOutput:
    """Test dialect selection"""

    def test_sql_by_default(self):
        output = create_output(DiffConfig(), DatabaseType.SQLSERVER)
        assert isinstance(output, SqlTextOutput)
        assert output.formatter.db_type == DatabaseType.SQLSERVER

    def test_xml(self):
        output = create_output(DiffConfig(output_format="xml", xml_use_cdata=True, encoding="ISO-8859-1"),
                               DatabaseType.POSTGRESQL)
        assert isinstance(output, XmlOutput)
        assert output.use_cdata
        assert output.encoding == "ISO-8859-1"
