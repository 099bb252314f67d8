"""
Output dialects for migration fragments.

A run picks exactly one dialect when it starts: SqlTextOutput renders
INSERT/UPDATE/DELETE statements, XmlOutput renders <insert>/<update>/
<delete> elements. Comparers and sync runs only decide *what* changed and
hand a list of ColumnValue entries to the dialect.
"""

import base64
import datetime
import decimal
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from xml.sax.saxutils import escape, quoteattr

from ..config import DiffConfig, OutputFormat
from ..connection.dialect import DatabaseType
from ..storage.columns import ColumnDescriptor, TableIdentifier
from .literals import SqlLiteralFormatter

GENERATOR_NAME = "datadiff"

BANNER_LINE = "-- " + "-" * 70


@dataclass(frozen=True)
class ColumnValue:
    """
    One column of a fragment.

    Attributes:
        column: Target column descriptor
        value: Value to write
        key: Column belongs to the active key (UPDATE/DELETE WHERE clause)
        modified: Value differs from the target (UPDATE SET list)
    """

    column: ColumnDescriptor
    value: Any
    key: bool = False
    modified: bool = False


def _now() -> datetime.datetime:
    return datetime.datetime.now().replace(microsecond=0)


class SqlTextOutput:
    """
    Renders fragments as SQL statements for the target database.

    Args:
        db_type: Target database type (identifier quoting)
        formatter: Literal formatter for the target database
        line_ending: Line separator
        clock: Returns the generation timestamp shown in the banner
    """

    format = OutputFormat.SQL
    file_extension = "sql"

    def __init__(
        self,
        db_type: DatabaseType,
        formatter: SqlLiteralFormatter,
        line_ending: str = "\n",
        clock: Callable[[], datetime.datetime] = _now,
    ):
        self.db_type = db_type
        self.formatter = formatter
        self.line_ending = line_ending
        self.clock = clock

    @property
    def fragment_separator(self) -> str:
        return self.line_ending * 2

    def header(self, table: TableIdentifier, operation: str) -> str:
        nl = self.line_ending
        lines = [
            BANNER_LINE,
            f"-- Generated by {GENERATOR_NAME} at: {self.clock().isoformat(sep=' ')}",
            f"-- Operation: {operation}",
            f"-- Table: {table.qualified_name}",
            BANNER_LINE,
        ]
        return nl.join(lines) + nl + nl

    def footer(self, operation: str) -> str:
        return ""

    def _name(self, column: ColumnDescriptor) -> str:
        return self.db_type.quote_if_needed(column.name)

    def _literal(self, entry: ColumnValue) -> str:
        return self.formatter.format(entry.value, entry.column)

    def _where(self, keys: Sequence[ColumnValue]) -> str:
        return " AND ".join(f"{self._name(k.column)} = {self._literal(k)}" for k in keys)

    def insert(self, row_number: int, table: TableIdentifier, columns: Sequence[ColumnValue]) -> str:
        names = ", ".join(self._name(c.column) for c in columns)
        values = ", ".join(self._literal(c) for c in columns)
        return f"INSERT INTO {self.db_type.table_expression(table)} ({names}) VALUES ({values});"

    def update(self, row_number: int, table: TableIdentifier, columns: Sequence[ColumnValue]) -> str:
        assignments = ", ".join(
            f"{self._name(c.column)} = {self._literal(c)}" for c in columns if c.modified
        )
        where = self._where([c for c in columns if c.key])
        return f"UPDATE {self.db_type.table_expression(table)} SET {assignments} WHERE {where};"

    def delete(self, row_number: int, table: TableIdentifier, keys: Sequence[ColumnValue]) -> str:
        return f"DELETE FROM {self.db_type.table_expression(table)} WHERE {self._where(keys)};"


def xml_text(value: Any) -> tuple[str, dict[str, str]]:
    """
    Text content and extra attributes for a value in XML output.

    Returns:
        Tuple of (text, attributes); binary data is base64 encoded and
        flagged with encoding="base64"
    """
    if isinstance(value, bool):
        return ("true" if value else "false"), {}
    if isinstance(value, decimal.Decimal):
        return format(value, "f"), {}
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat(), {}
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii"), {"encoding": "base64"}
    return str(value), {}


def cdata(text: str) -> str:
    # "]]>" cannot appear inside a CDATA section; split it across two sections
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


class XmlOutput:
    """
    Renders fragments as XML elements.

    The header opens a root element named after the operation
    (``table-data-diff``, ``table-data-delete``); the footer closes it.

    Args:
        encoding: Encoding declared in the XML declaration
        use_cdata: Wrap character data in CDATA sections
        line_ending: Line separator
        clock: Returns the generation timestamp shown in the comment
    """

    format = OutputFormat.XML
    file_extension = "xml"

    def __init__(
        self,
        encoding: str = "UTF-8",
        use_cdata: bool = False,
        line_ending: str = "\n",
        clock: Callable[[], datetime.datetime] = _now,
    ):
        self.encoding = encoding
        self.use_cdata = use_cdata
        self.line_ending = line_ending
        self.clock = clock

    @property
    def fragment_separator(self) -> str:
        return self.line_ending

    def header(self, table: TableIdentifier, operation: str) -> str:
        nl = self.line_ending
        attributes = f" name={quoteattr(table.name)}"
        if table.schema:
            attributes += f" schema={quoteattr(table.schema)}"
        if table.catalog:
            attributes += f" catalog={quoteattr(table.catalog)}"
        return (
            f'<?xml version="1.0" encoding="{self.encoding}"?>{nl}'
            f"<!-- Generated by {GENERATOR_NAME} at: {self.clock().isoformat(sep=' ')} -->{nl}"
            f"<{operation}{attributes}>{nl}"
        )

    def footer(self, operation: str) -> str:
        return f"</{operation}>{self.line_ending}"

    def _col(self, entry: ColumnValue) -> str:
        attributes = {"name": entry.column.name}
        if entry.key:
            attributes["pk"] = "true"
        if entry.modified:
            attributes["modified"] = "true"
        if entry.value is None:
            attributes["null"] = "true"
            text = None
        else:
            text, extra = xml_text(entry.value)
            attributes.update(extra)

        rendered = "".join(f" {k}={quoteattr(v)}" for k, v in attributes.items())
        if text is None:
            return f"    <col{rendered}/>"
        if self.use_cdata and isinstance(entry.value, str):
            body = cdata(text)
        else:
            body = escape(text)
        return f"    <col{rendered}>{body}</col>"

    def _element(self, tag: str, row_number: int, columns: Sequence[ColumnValue]) -> str:
        nl = self.line_ending
        lines = [f'  <{tag} row="{row_number}">']
        lines.extend(self._col(c) for c in columns)
        lines.append(f"  </{tag}>")
        return nl.join(lines)

    def insert(self, row_number: int, table: TableIdentifier, columns: Sequence[ColumnValue]) -> str:
        return self._element("insert", row_number, columns)

    def update(self, row_number: int, table: TableIdentifier, columns: Sequence[ColumnValue]) -> str:
        return self._element("update", row_number, columns)

    def delete(self, row_number: int, table: TableIdentifier, keys: Sequence[ColumnValue]) -> str:
        return self._element("delete", row_number, keys)


OutputDialect = SqlTextOutput | XmlOutput


def create_output(
    config: DiffConfig,
    db_type: DatabaseType,
    clock: Callable[[], datetime.datetime] = _now,
) -> OutputDialect:
    """
    Select the output dialect for a run.

    Args:
        config: Run configuration
        db_type: Database the output is meant for
        clock: Timestamp source for headers

    Returns:
        SqlTextOutput or XmlOutput
    """
    if config.output_format is OutputFormat.XML:
        return XmlOutput(
            encoding=config.encoding,
            use_cdata=config.xml_use_cdata,
            line_ending=config.line_ending,
            clock=clock,
        )
    formatter = SqlLiteralFormatter(
        db_type,
        date_literal_type=config.date_literal_type,
        blob_mode=config.blob_mode,
        blob_directory=config.blob_directory,
    )
    return SqlTextOutput(db_type, formatter, line_ending=config.line_ending, clock=clock)
