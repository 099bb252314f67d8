"""
Structural comparison of two schemas.

SchemaDiff reads table, view and sequence definitions through the catalog
readers of two connections and produces one XML document describing how
the target schema has to change to match the reference schema.

Usage:
    diff = SchemaDiff(reference, target, SchemaDiffConfig(include_grants=True))
    diff.compare_schemas("public", "public")
    xml = diff.get_migration_xml()
"""

import logging
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from ..config import SchemaDiffConfig
from ..storage.columns import TableIdentifier
from ..storage.names import NamePolicy
from ..utils.tracing import trace_operation
from .objects import SequenceDefinition, TableSnapshot, ViewDefinition, normalize_source
from .table_diff import TableDiff, table_definition_element, text_element

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaSnapshot:
    """Tables, views and sequences of one side of the comparison."""

    tables: tuple[TableSnapshot, ...] = ()
    views: tuple[ViewDefinition, ...] = ()
    sequences: tuple[SequenceDefinition, ...] = ()
    schema: str | None = None
    database_type: str | None = None


def read_snapshot(catalog, table: TableIdentifier, config: SchemaDiffConfig) -> TableSnapshot | None:
    """
    Read everything the comparison needs about one table.

    Args:
        catalog: CatalogReader of the connection
        table: Table to read
        config: Decides which object types are read

    Returns:
        TableSnapshot, or None when the table does not exist
    """
    definition = catalog.get_table_definition(table)
    if definition is None:
        return None
    resolved = definition.table
    return TableSnapshot(
        definition=definition,
        primary_key=catalog.get_primary_key(resolved) if config.include_primary_keys else None,
        indexes=tuple(catalog.get_indexes(resolved)) if config.include_indexes else (),
        foreign_keys=tuple(catalog.get_foreign_keys(resolved)) if config.include_foreign_keys else (),
        constraints=tuple(catalog.get_constraints(resolved)) if config.include_constraints else (),
        triggers=tuple(catalog.get_triggers(resolved)) if config.include_triggers else (),
        grants=tuple(catalog.get_grants(resolved)) if config.include_grants else (),
    )


def _match(policy: NamePolicy, items: Iterable, name: str):
    return next((item for item in items if policy.equals(item.name, name)), None)


def _connection_element(tag: str, snapshot: SchemaSnapshot) -> ET.Element:
    element = ET.Element(tag)
    if snapshot.database_type:
        text_element(element, "database-type", snapshot.database_type)
    if snapshot.schema:
        text_element(element, "schema", snapshot.schema)
    return element


def _settings_element(config: SchemaDiffConfig) -> ET.Element:
    element = ET.Element("compare-settings")
    text_element(element, "include-index", config.include_indexes)
    text_element(element, "include-foreign-key", config.include_foreign_keys)
    text_element(element, "include-primary-key", config.include_primary_keys)
    text_element(element, "include-constraints", config.include_constraints)
    text_element(element, "include-views", config.include_views)
    text_element(element, "include-sequences", config.include_sequences)
    text_element(element, "include-triggers", config.include_triggers)
    text_element(element, "include-grants", config.include_grants)
    text_element(element, "compare-constraints-by-name", config.compare_constraints_by_name)
    text_element(element, "compare-jdbc-types", config.compare_jdbc_types)
    return element


def _view_element(tag: str, view: ViewDefinition) -> ET.Element:
    element = ET.Element(tag, name=view.name)
    text_element(element, "view-source", view.source)
    return element


def _sequence_element(tag: str, sequence: SequenceDefinition, properties: dict) -> ET.Element:
    element = ET.Element(tag, name=sequence.name)
    for key, value in properties.items():
        text_element(element, key, value)
    return element


def diff_schemas(
    reference: SchemaSnapshot,
    target: SchemaSnapshot,
    config: SchemaDiffConfig | None = None,
    table_pairs: Sequence[tuple[TableSnapshot, TableSnapshot | None]] | None = None,
) -> ET.Element:
    """
    Build the schema-diff document for two snapshots.

    Tables are paired by name unless ``table_pairs`` is given. Target
    tables without a reference counterpart are only reported as
    ``drop-table`` when tables are paired by name.

    Args:
        reference: Reference side
        target: Target side
        config: Comparison settings
        table_pairs: Explicit (reference, target-or-None) pairs

    Returns:
        The schema-diff root element
    """
    config = config or SchemaDiffConfig()
    policy = config.name_policy
    root = ET.Element("schema-diff")
    root.append(_connection_element("reference-connection", reference))
    root.append(_connection_element("target-connection", target))
    root.append(_settings_element(config))

    paired_by_name = table_pairs is None
    if paired_by_name:
        table_pairs = [
            (table, _match_table(policy, target.tables, table.table.name))
            for table in reference.tables
        ]

    for reference_table, target_table in table_pairs:
        if target_table is None:
            add = ET.SubElement(root, "add-table", name=reference_table.table.name)
            add.append(table_definition_element(reference_table, config))
            continue
        element = TableDiff(reference_table, target_table, config).to_element()
        if element is not None:
            root.append(element)

    if paired_by_name:
        for table in target.tables:
            if _match_table(policy, reference.tables, table.table.name) is None:
                drop = ET.SubElement(root, "drop-table", name=table.table.name)
                if table.table.schema:
                    drop.set("schema", table.table.schema)

    if config.include_views:
        for view in reference.views:
            counterpart = _match(policy, target.views, view.name)
            if counterpart is None:
                root.append(_view_element("create-view", view))
            elif normalize_source(view.source) != normalize_source(counterpart.source):
                root.append(_view_element("update-view", view))
        for view in target.views:
            if _match(policy, reference.views, view.name) is None:
                ET.SubElement(root, "drop-view", name=view.name)

    if config.include_sequences:
        for sequence in reference.sequences:
            counterpart = _match(policy, target.sequences, sequence.name)
            if counterpart is None:
                root.append(_sequence_element("create-sequence", sequence, sequence.properties()))
                continue
            target_properties = counterpart.properties()
            changed = {k: v for k, v in sequence.properties().items() if target_properties[k] != v}
            if changed:
                root.append(_sequence_element("update-sequence", sequence, changed))
        for sequence in target.sequences:
            if _match(policy, reference.sequences, sequence.name) is None:
                ET.SubElement(root, "drop-sequence", name=sequence.name)

    return root


def _match_table(policy: NamePolicy, tables: Iterable[TableSnapshot], name: str) -> TableSnapshot | None:
    return next((t for t in tables if policy.equals(t.table.name, name)), None)


def to_xml(root: ET.Element, encoding: str = "UTF-8") -> str:
    """Serialize a document with an XML declaration and two-space indentation."""
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="{encoding}"?>\n{body}\n'


class SchemaDiff:
    """
    Compares the structure of two schemas on two connections.

    Args:
        reference: DbConnection holding the reference schema
        target: DbConnection holding the schema to be aligned
        config: Comparison settings
    """

    def __init__(self, reference, target, config: SchemaDiffConfig | None = None):
        self.reference = reference
        self.target = target
        self.config = config or SchemaDiffConfig()
        self._cancel = threading.Event()
        self._reference_snapshot: SchemaSnapshot | None = None
        self._target_snapshot: SchemaSnapshot | None = None
        self._pairs: list[tuple[TableSnapshot, TableSnapshot | None]] | None = None

    def cancel(self) -> None:
        self._cancel.set()

    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def _read_tables(self, catalog, tables: Iterable[TableIdentifier]) -> list[TableSnapshot]:
        snapshots = []
        for table in tables:
            if self.is_cancelled():
                break
            snapshot = read_snapshot(catalog, table, self.config)
            if snapshot is None:
                logger.warning(f"Table {table} not found")
                continue
            snapshots.append(snapshot)
        return snapshots

    def _objects(self, catalog, schema: str | None) -> tuple[tuple, tuple]:
        views = tuple(catalog.list_views(schema)) if self.config.include_views else ()
        sequences = tuple(catalog.list_sequences(schema)) if self.config.include_sequences else ()
        return views, sequences

    def compare_schemas(
        self,
        reference_schema: str | None = None,
        target_schema: str | None = None,
        tables: Iterable[str] | None = None,
        exclude: Iterable[str] = (),
    ) -> None:
        """
        Compare all tables of two schemas, paired by name.

        Args:
            reference_schema: Reference schema (connection default when None)
            target_schema: Target schema (connection default when None)
            tables: Restrict the comparison to these table names
            exclude: Table names to leave out
        """
        self._cancel.clear()
        policy = self.config.name_policy
        wanted = list(tables) if tables is not None else None
        excluded = list(exclude)

        def selected(table: TableIdentifier) -> bool:
            if any(policy.equals(table.name, name) for name in excluded):
                return False
            return wanted is None or any(policy.equals(table.name, name) for name in wanted)

        with trace_operation("datadiff.schema_diff", reference_schema=reference_schema or "",
                             target_schema=target_schema or ""):
            reference_catalog = self.reference.catalog
            target_catalog = self.target.catalog
            reference_tables = [t for t in reference_catalog.list_tables(reference_schema) if selected(t)]
            target_tables = [t for t in target_catalog.list_tables(target_schema) if selected(t)]
            logger.info(
                f"Comparing {len(reference_tables)} reference tables with {len(target_tables)} target tables"
            )

            reference_views, reference_sequences = self._objects(reference_catalog, reference_schema)
            target_views, target_sequences = self._objects(target_catalog, target_schema)
            self._reference_snapshot = SchemaSnapshot(
                tables=tuple(self._read_tables(reference_catalog, reference_tables)),
                views=reference_views,
                sequences=reference_sequences,
                schema=reference_schema,
                database_type=self.reference.db_type.value,
            )
            self._target_snapshot = SchemaSnapshot(
                tables=tuple(self._read_tables(target_catalog, target_tables)),
                views=target_views,
                sequences=target_sequences,
                schema=target_schema,
                database_type=self.target.db_type.value,
            )
            self._pairs = None

    def compare_tables(self, pairs: Sequence[tuple[str | TableIdentifier, str | TableIdentifier]]) -> None:
        """
        Compare explicitly mapped tables; differently named pairs become renames.

        Args:
            pairs: (reference table, target table) pairs
        """
        self._cancel.clear()
        reference_catalog = self.reference.catalog
        target_catalog = self.target.catalog
        snapshot_pairs = []
        with trace_operation("datadiff.schema_diff", tables=len(pairs)):
            for reference_name, target_name in pairs:
                if self.is_cancelled():
                    break
                reference_table = _identifier(reference_name)
                reference = read_snapshot(reference_catalog, reference_table, self.config)
                if reference is None:
                    logger.warning(f"Reference table {reference_table} not found")
                    continue
                target = read_snapshot(target_catalog, _identifier(target_name), self.config)
                snapshot_pairs.append((reference, target))

        self._pairs = snapshot_pairs
        self._reference_snapshot = SchemaSnapshot(
            tables=tuple(r for r, _ in snapshot_pairs),
            database_type=self.reference.db_type.value,
        )
        self._target_snapshot = SchemaSnapshot(
            tables=tuple(t for _, t in snapshot_pairs if t is not None),
            database_type=self.target.db_type.value,
        )

    def build(self) -> ET.Element:
        if self._reference_snapshot is None:
            raise ValueError("compare_schemas() or compare_tables() must be called first")
        config = self.config
        if self._pairs is not None:
            # Views and sequences are only compared for whole schemas
            config = _without_schema_objects(config)
        return diff_schemas(self._reference_snapshot, self._target_snapshot, config, self._pairs)

    def get_migration_xml(self) -> str:
        """
        The schema-diff XML document.

        Returns:
            XML text including the declaration
        """
        return to_xml(self.build(), self.config.encoding)


def _identifier(table: str | TableIdentifier) -> TableIdentifier:
    return table if isinstance(table, TableIdentifier) else TableIdentifier.parse(table)


def _without_schema_objects(config: SchemaDiffConfig) -> SchemaDiffConfig:
    return replace(config, include_views=False, include_sequences=False)
