"""
Catalog (metadata) readers.

One reader per supported database answers the questions the comparisons
ask: does this table exist and under which exact name, what are its
columns and primary key, and (for the schema diff) which indexes, foreign
keys, constraints, triggers, grants, views and sequences exist.

PostgreSQL and SQL Server are read through their system catalogs and
INFORMATION_SCHEMA; SQLite through sqlite_master and PRAGMA statements.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import replace

from ..schema.objects import (
    ConstraintDefinition,
    ForeignKeyDefinition,
    GrantDefinition,
    IndexDefinition,
    PrimaryKeyDefinition,
    SequenceDefinition,
    TableDefinition,
    TriggerDefinition,
    ViewDefinition,
)
from ..storage.columns import ColumnDescriptor, SqlType, TableIdentifier
from .dialect import DatabaseType

logger = logging.getLogger(__name__)

_TYPE_SIZE = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")

_PG_FK_RULES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


def _parse_type_size(type_name: str) -> tuple[int | None, int | None]:
    match = _TYPE_SIZE.search(type_name or "")
    if not match:
        return None, None
    digits = int(match.group(2)) if match.group(2) is not None else None
    return int(match.group(1)), digits


def _to_int(value) -> int | None:
    return int(value) if value is not None else None


class CatalogReader:
    """
    Base class with the lookup logic shared by all databases.

    Subclasses provide the SQL; this class turns results into descriptors
    and applies the connection's name policy when resolving tables.
    """

    def __init__(self, connection):
        self.connection = connection
        self.policy = connection.policy
        self.placeholder = connection.db_type.placeholder

    def current_schema(self) -> str | None:
        return None

    def _table_candidates(self, name: str, schema: str | None) -> list[tuple[str | None, str, str]]:
        raise NotImplementedError

    def _read_columns(self, table: TableIdentifier) -> list[ColumnDescriptor]:
        raise NotImplementedError

    def find_table(self, table: TableIdentifier) -> TableIdentifier | None:
        """
        Resolve a table to the exact name stored in the catalog.

        An exact match wins; otherwise (unless the name was quoted) the
        name policy decides.

        Args:
            table: Table as given by the user

        Returns:
            Identifier with catalog spelling, or None when the table does not exist
        """
        schema = table.schema or self.current_schema()
        candidates = self._table_candidates(table.name, schema)

        for cand_schema, cand_name, _ in candidates:
            if cand_name == table.name:
                return TableIdentifier(cand_name, cand_schema, table.catalog)

        if table.preserve_case:
            return None

        for cand_schema, cand_name, _ in candidates:
            if self.policy.equals(cand_name, table.name):
                return TableIdentifier(cand_name, cand_schema, table.catalog)
        return None

    def get_columns(self, table: TableIdentifier) -> list[ColumnDescriptor]:
        """
        Columns of a table in ordinal order with primary key flags set.

        Args:
            table: Resolved table identifier

        Returns:
            List of column descriptors
        """
        columns = self._read_columns(table)
        primary_key = self.get_primary_key(table)
        if primary_key is None:
            return columns
        pk_names = {self.policy.normalize(c) for c in primary_key.columns}
        return [
            replace(c, is_pk=True) if self.policy.normalize(c.name) in pk_names else c
            for c in columns
        ]

    def get_table_definition(self, table: TableIdentifier) -> TableDefinition | None:
        """
        Resolve a table and read its columns.

        Returns:
            TableDefinition, or None when the table does not exist
        """
        resolved = self.find_table(table)
        if resolved is None:
            return None
        table_type = "TABLE"
        for _, name, kind in self._table_candidates(resolved.name, resolved.schema):
            if name == resolved.name:
                table_type = kind
                break
        return TableDefinition(resolved, tuple(self.get_columns(resolved)), table_type)

    def get_primary_key(self, table: TableIdentifier) -> PrimaryKeyDefinition | None:
        return None

    def list_tables(self, schema: str | None = None) -> list[TableIdentifier]:
        return []

    def get_indexes(self, table: TableIdentifier) -> list[IndexDefinition]:
        return []

    def get_foreign_keys(self, table: TableIdentifier) -> list[ForeignKeyDefinition]:
        return []

    def get_constraints(self, table: TableIdentifier) -> list[ConstraintDefinition]:
        return []

    def get_triggers(self, table: TableIdentifier) -> list[TriggerDefinition]:
        return []

    def get_grants(self, table: TableIdentifier) -> list[GrantDefinition]:
        return []

    def list_views(self, schema: str | None = None) -> list[ViewDefinition]:
        return []

    def list_sequences(self, schema: str | None = None) -> list[SequenceDefinition]:
        return []

    def _fetch(self, sql: str, params=None) -> list[tuple]:
        return self.connection.fetch_all(sql, params)

    @staticmethod
    def _group_columns(rows, name_index: int = 0) -> "OrderedDict[str, list[tuple]]":
        grouped: OrderedDict[str, list[tuple]] = OrderedDict()
        for row in rows:
            grouped.setdefault(row[name_index], []).append(row)
        return grouped


class PostgresCatalog(CatalogReader):
    """Catalog reader for PostgreSQL (pg_catalog and information_schema)."""

    def current_schema(self) -> str | None:
        return self.connection.fetch_value("SELECT current_schema()")

    def _table_candidates(self, name, schema):
        rows = self._fetch(
            "SELECT table_schema, table_name, table_type "
            "FROM information_schema.tables "
            "WHERE lower(table_name) = lower(%s) AND table_schema = %s",
            (name, schema),
        )
        return [(r[0], r[1], "VIEW" if r[2] == "VIEW" else "TABLE") for r in rows]

    def _read_columns(self, table):
        rows = self._fetch(
            """
            SELECT a.attname, format_type(a.atttypid, a.atttypmod), NOT a.attnotnull,
                   pg_get_expr(d.adbin, d.adrelid), col_description(a.attrelid, a.attnum),
                   a.attnum
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
            ORDER BY a.attnum
            """,
            (table.schema, table.name),
        )
        columns = []
        for name, type_name, nullable, default, comment, position in rows:
            size, digits = _parse_type_size(type_name)
            columns.append(
                ColumnDescriptor(
                    name=name,
                    dbms_type=type_name,
                    sql_type=SqlType.from_type_name(type_name),
                    nullable=bool(nullable),
                    comment=comment,
                    size=size,
                    digits=digits,
                    default=default,
                    position=int(position),
                )
            )
        return columns

    def get_primary_key(self, table):
        rows = self._fetch(
            """
            SELECT con.conname, a.attname
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN LATERAL unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord) ON true
            JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
            WHERE con.contype = 'p' AND n.nspname = %s AND c.relname = %s
            ORDER BY k.ord
            """,
            (table.schema, table.name),
        )
        if not rows:
            return None
        return PrimaryKeyDefinition(rows[0][0], tuple(r[1] for r in rows))

    def list_tables(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT table_schema, table_name FROM information_schema.tables "
            "WHERE table_schema = %s AND table_type = 'BASE TABLE' ORDER BY table_name",
            (schema,),
        )
        return [TableIdentifier(r[1], r[0]) for r in rows]

    def get_indexes(self, table):
        rows = self._fetch(
            """
            SELECT i.relname, ix.indisunique, ix.indisprimary, a.attname
            FROM pg_class t
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_index ix ON ix.indrelid = t.oid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord) ON true
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE n.nspname = %s AND t.relname = %s
            ORDER BY i.relname, k.ord
            """,
            (table.schema, table.name),
        )
        return [
            IndexDefinition(name, tuple(r[3] for r in group), bool(group[0][1]), bool(group[0][2]))
            for name, group in self._group_columns(rows).items()
        ]

    def get_foreign_keys(self, table):
        rows = self._fetch(
            """
            SELECT con.conname, a.attname, rn.nspname, rt.relname, ra.attname,
                   con.confupdtype, con.confdeltype
            FROM pg_constraint con
            JOIN pg_class t ON t.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_class rt ON rt.oid = con.confrelid
            JOIN pg_namespace rn ON rn.oid = rt.relnamespace
            JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(col, refcol, ord) ON true
            JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.col
            JOIN pg_attribute ra ON ra.attrelid = con.confrelid AND ra.attnum = k.refcol
            WHERE con.contype = 'f' AND n.nspname = %s AND t.relname = %s
            ORDER BY con.conname, k.ord
            """,
            (table.schema, table.name),
        )
        foreign_keys = []
        for name, group in self._group_columns(rows).items():
            first = group[0]
            foreign_keys.append(
                ForeignKeyDefinition(
                    name=name,
                    columns=tuple(r[1] for r in group),
                    referenced_table=TableIdentifier(first[3], first[2]),
                    referenced_columns=tuple(r[4] for r in group),
                    update_rule=_PG_FK_RULES.get(first[5]),
                    delete_rule=_PG_FK_RULES.get(first[6]),
                )
            )
        return foreign_keys

    def get_constraints(self, table):
        rows = self._fetch(
            """
            SELECT con.conname, pg_get_constraintdef(con.oid)
            FROM pg_constraint con
            JOIN pg_class t ON t.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            WHERE con.contype = 'c' AND n.nspname = %s AND t.relname = %s
            ORDER BY con.conname
            """,
            (table.schema, table.name),
        )
        return [ConstraintDefinition(r[0], r[1]) for r in rows]

    def get_triggers(self, table):
        rows = self._fetch(
            "SELECT trigger_name, event_manipulation, action_timing, action_statement "
            "FROM information_schema.triggers "
            "WHERE event_object_schema = %s AND event_object_table = %s "
            "ORDER BY trigger_name, event_manipulation",
            (table.schema, table.name),
        )
        return [
            TriggerDefinition(name, " OR ".join(r[1] for r in group), group[0][2], group[0][3])
            for name, group in self._group_columns(rows).items()
        ]

    def get_grants(self, table):
        rows = self._fetch(
            "SELECT grantee, privilege_type, is_grantable "
            "FROM information_schema.table_privileges "
            "WHERE table_schema = %s AND table_name = %s ORDER BY grantee, privilege_type",
            (table.schema, table.name),
        )
        return [GrantDefinition(r[0], r[1], r[2] == "YES") for r in rows]

    def list_views(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT table_name, view_definition FROM information_schema.views "
            "WHERE table_schema = %s ORDER BY table_name",
            (schema,),
        )
        return [ViewDefinition(r[0], r[1] or "", schema) for r in rows]

    def list_sequences(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT sequence_name, start_value, minimum_value, maximum_value, increment, cycle_option "
            "FROM information_schema.sequences WHERE sequence_schema = %s ORDER BY sequence_name",
            (schema,),
        )
        return [
            SequenceDefinition(r[0], _to_int(r[1]), _to_int(r[2]), _to_int(r[3]), _to_int(r[4]),
                               r[5] == "YES", schema)
            for r in rows
        ]


class SqlServerCatalog(CatalogReader):
    """Catalog reader for Microsoft SQL Server (sys views and INFORMATION_SCHEMA)."""

    def current_schema(self) -> str | None:
        return self.connection.fetch_value("SELECT SCHEMA_NAME()")

    def _object_name(self, table: TableIdentifier) -> str:
        quote = DatabaseType.SQLSERVER.quote_identifier
        return f"{quote(table.schema or 'dbo')}.{quote(table.name)}"

    def _table_candidates(self, name, schema):
        rows = self._fetch(
            "SELECT TABLE_SCHEMA, TABLE_NAME, TABLE_TYPE FROM INFORMATION_SCHEMA.TABLES "
            "WHERE LOWER(TABLE_NAME) = LOWER(?) AND TABLE_SCHEMA = ?",
            (name, schema),
        )
        return [(r[0], r[1], "VIEW" if r[2] == "VIEW" else "TABLE") for r in rows]

    def _read_columns(self, table):
        rows = self._fetch(
            """
            SELECT c.COLUMN_NAME, c.DATA_TYPE, c.IS_NULLABLE, c.COLUMN_DEFAULT,
                   c.CHARACTER_MAXIMUM_LENGTH, c.NUMERIC_PRECISION, c.NUMERIC_SCALE,
                   c.ORDINAL_POSITION, CAST(ep.value AS NVARCHAR(4000))
            FROM INFORMATION_SCHEMA.COLUMNS c
            LEFT JOIN sys.extended_properties ep
              ON ep.major_id = OBJECT_ID(QUOTENAME(c.TABLE_SCHEMA) + '.' + QUOTENAME(c.TABLE_NAME))
             AND ep.minor_id = COLUMNPROPERTY(ep.major_id, c.COLUMN_NAME, 'ColumnId')
             AND ep.name = 'MS_Description'
            WHERE c.TABLE_SCHEMA = ? AND c.TABLE_NAME = ?
            ORDER BY c.ORDINAL_POSITION
            """,
            (table.schema, table.name),
        )
        columns = []
        for name, data_type, nullable, default, char_len, precision, scale, position, comment in rows:
            size = char_len if char_len is not None else precision
            dbms_type = data_type
            if char_len is not None:
                dbms_type = f"{data_type}({'max' if char_len == -1 else char_len})"
            elif data_type in ("decimal", "numeric"):
                dbms_type = f"{data_type}({precision},{scale})"
            columns.append(
                ColumnDescriptor(
                    name=name,
                    dbms_type=dbms_type,
                    sql_type=SqlType.from_type_name(data_type),
                    nullable=nullable == "YES",
                    comment=comment,
                    size=_to_int(size),
                    digits=_to_int(scale),
                    default=default,
                    position=int(position),
                )
            )
        return columns

    def get_primary_key(self, table):
        rows = self._fetch(
            """
            SELECT tc.CONSTRAINT_NAME, kcu.COLUMN_NAME
            FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
            JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
              ON kcu.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
             AND kcu.TABLE_SCHEMA = tc.TABLE_SCHEMA
             AND kcu.TABLE_NAME = tc.TABLE_NAME
            WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY' AND tc.TABLE_SCHEMA = ? AND tc.TABLE_NAME = ?
            ORDER BY kcu.ORDINAL_POSITION
            """,
            (table.schema, table.name),
        )
        if not rows:
            return None
        return PrimaryKeyDefinition(rows[0][0], tuple(r[1] for r in rows))

    def list_tables(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT TABLE_SCHEMA, TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = ? AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME",
            (schema,),
        )
        return [TableIdentifier(r[1], r[0]) for r in rows]

    def get_indexes(self, table):
        rows = self._fetch(
            """
            SELECT i.name, i.is_unique, i.is_primary_key, c.name
            FROM sys.indexes i
            JOIN sys.index_columns ic ON ic.object_id = i.object_id AND ic.index_id = i.index_id
            JOIN sys.columns c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            WHERE i.object_id = OBJECT_ID(?) AND i.name IS NOT NULL AND ic.is_included_column = 0
            ORDER BY i.name, ic.key_ordinal
            """,
            (self._object_name(table),),
        )
        return [
            IndexDefinition(name, tuple(r[3] for r in group), bool(group[0][1]), bool(group[0][2]))
            for name, group in self._group_columns(rows).items()
        ]

    def get_foreign_keys(self, table):
        rows = self._fetch(
            """
            SELECT fk.name, pc.name, SCHEMA_NAME(rt.schema_id), rt.name, rc.name,
                   fk.update_referential_action_desc, fk.delete_referential_action_desc
            FROM sys.foreign_keys fk
            JOIN sys.foreign_key_columns fkc ON fkc.constraint_object_id = fk.object_id
            JOIN sys.columns pc ON pc.object_id = fkc.parent_object_id AND pc.column_id = fkc.parent_column_id
            JOIN sys.tables rt ON rt.object_id = fkc.referenced_object_id
            JOIN sys.columns rc ON rc.object_id = fkc.referenced_object_id AND rc.column_id = fkc.referenced_column_id
            WHERE fk.parent_object_id = OBJECT_ID(?)
            ORDER BY fk.name, fkc.constraint_column_id
            """,
            (self._object_name(table),),
        )
        foreign_keys = []
        for name, group in self._group_columns(rows).items():
            first = group[0]
            foreign_keys.append(
                ForeignKeyDefinition(
                    name=name,
                    columns=tuple(r[1] for r in group),
                    referenced_table=TableIdentifier(first[3], first[2]),
                    referenced_columns=tuple(r[4] for r in group),
                    update_rule=(first[5] or "").replace("_", " ") or None,
                    delete_rule=(first[6] or "").replace("_", " ") or None,
                )
            )
        return foreign_keys

    def get_constraints(self, table):
        rows = self._fetch(
            "SELECT name, definition, is_system_named FROM sys.check_constraints "
            "WHERE parent_object_id = OBJECT_ID(?) ORDER BY name",
            (self._object_name(table),),
        )
        return [ConstraintDefinition(r[0], r[1], bool(r[2])) for r in rows]

    def get_triggers(self, table):
        rows = self._fetch(
            "SELECT t.name, OBJECT_DEFINITION(t.object_id) FROM sys.triggers t "
            "WHERE t.parent_id = OBJECT_ID(?) ORDER BY t.name",
            (self._object_name(table),),
        )
        return [TriggerDefinition(r[0], source=r[1] or "") for r in rows]

    def get_grants(self, table):
        rows = self._fetch(
            "SELECT GRANTEE, PRIVILEGE_TYPE, IS_GRANTABLE FROM INFORMATION_SCHEMA.TABLE_PRIVILEGES "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? ORDER BY GRANTEE, PRIVILEGE_TYPE",
            (table.schema, table.name),
        )
        return [GrantDefinition(r[0], r[1], r[2] == "YES") for r in rows]

    def list_views(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT TABLE_NAME, VIEW_DEFINITION FROM INFORMATION_SCHEMA.VIEWS "
            "WHERE TABLE_SCHEMA = ? ORDER BY TABLE_NAME",
            (schema,),
        )
        return [ViewDefinition(r[0], r[1] or "", schema) for r in rows]

    def list_sequences(self, schema=None):
        schema = schema or self.current_schema()
        rows = self._fetch(
            "SELECT name, CAST(start_value AS BIGINT), CAST(minimum_value AS BIGINT), "
            "CAST(maximum_value AS BIGINT), CAST(increment AS BIGINT), is_cycling "
            "FROM sys.sequences WHERE schema_id = SCHEMA_ID(?) ORDER BY name",
            (schema,),
        )
        return [
            SequenceDefinition(r[0], _to_int(r[1]), _to_int(r[2]), _to_int(r[3]), _to_int(r[4]),
                               bool(r[5]), schema)
            for r in rows
        ]


class SqliteCatalog(CatalogReader):
    """
    Catalog reader for SQLite.

    SQLite has no schemas, grants or sequences; foreign keys have no names,
    so they are labelled ``<table>_fk_<id>`` and are best compared by
    definition.
    """

    def _pragma(self, pragma: str, name: str) -> list[tuple]:
        # PRAGMA arguments cannot be bound as parameters
        return self._fetch(f"PRAGMA {pragma}({DatabaseType.SQLITE.quote_identifier(name)})")

    def _table_candidates(self, name, schema):
        rows = self._fetch(
            "SELECT name, type FROM sqlite_master "
            "WHERE type IN ('table', 'view') AND lower(name) = lower(?)",
            (name,),
        )
        return [(None, r[0], r[1].upper()) for r in rows]

    def _read_columns(self, table):
        columns = []
        for cid, name, type_name, notnull, default, pk in self._pragma("table_info", table.name):
            size, digits = _parse_type_size(type_name)
            columns.append(
                ColumnDescriptor(
                    name=name,
                    dbms_type=type_name or "",
                    sql_type=SqlType.from_type_name(type_name),
                    nullable=not notnull and not pk,
                    size=size,
                    digits=digits,
                    default=default,
                    position=int(cid) + 1,
                )
            )
        return columns

    def get_primary_key(self, table):
        pk_columns = sorted(
            (r[5], r[1]) for r in self._pragma("table_info", table.name) if r[5]
        )
        if not pk_columns:
            return None
        return PrimaryKeyDefinition(None, tuple(name for _, name in pk_columns))

    def list_tables(self, schema=None):
        rows = self._fetch(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [TableIdentifier(r[0]) for r in rows]

    def get_indexes(self, table):
        indexes = []
        for _, name, unique, origin, *_ in self._pragma("index_list", table.name):
            columns = tuple(r[2] for r in sorted(self._pragma("index_info", name)))
            indexes.append(IndexDefinition(name, columns, bool(unique), origin == "pk"))
        return sorted(indexes, key=lambda i: i.name)

    def get_foreign_keys(self, table):
        rows = self._pragma("foreign_key_list", table.name)
        foreign_keys = []
        for fk_id, group in self._group_columns(rows).items():
            group.sort(key=lambda r: r[1])
            first = group[0]
            foreign_keys.append(
                ForeignKeyDefinition(
                    name=f"{table.name}_fk_{fk_id}",
                    columns=tuple(r[3] for r in group),
                    referenced_table=TableIdentifier(first[2]),
                    referenced_columns=tuple(r[4] for r in group),
                    update_rule=first[5],
                    delete_rule=first[6],
                )
            )
        return foreign_keys

    def get_triggers(self, table):
        rows = self._fetch(
            "SELECT name, sql FROM sqlite_master WHERE type = 'trigger' "
            "AND lower(tbl_name) = lower(?) ORDER BY name",
            (table.name,),
        )
        return [TriggerDefinition(r[0], source=r[1] or "") for r in rows]

    def list_views(self, schema=None):
        rows = self._fetch("SELECT name, sql FROM sqlite_master WHERE type = 'view' ORDER BY name")
        return [ViewDefinition(r[0], r[1] or "") for r in rows]


def create_catalog(connection) -> CatalogReader:
    """
    Create the catalog reader matching a connection's database type.

    Args:
        connection: DbConnection

    Returns:
        CatalogReader subclass instance

    Raises:
        ValueError: If the database type is not supported
    """
    readers = {
        DatabaseType.POSTGRESQL: PostgresCatalog,
        DatabaseType.SQLSERVER: SqlServerCatalog,
        DatabaseType.SQLITE: SqliteCatalog,
    }
    try:
        reader = readers[connection.db_type]
    except KeyError:
        raise ValueError(f"No catalog reader for database type {connection.db_type.value!r}") from None
    logger.debug(f"Using {reader.__name__} for {connection.name}")
    return reader(connection)
