"""
Structural comparison of one table pair.

TableDiff describes how the target table has to change to get the
structure of the reference table. It works on TableSnapshot objects only,
so it can be tested without a database.
"""

import xml.etree.ElementTree as ET
from typing import Any, Callable, Iterable, TypeVar

from ..config import SchemaDiffConfig
from ..storage.columns import ColumnDescriptor
from .objects import (
    ConstraintDefinition,
    ForeignKeyDefinition,
    GrantDefinition,
    IndexDefinition,
    TableSnapshot,
    TriggerDefinition,
    normalize_source,
)

T = TypeVar("T")


def text_element(parent: ET.Element, tag: str, value: Any) -> ET.Element:
    element = ET.SubElement(parent, tag)
    if isinstance(value, bool):
        element.text = "true" if value else "false"
    elif value is not None:
        element.text = str(value)
    return element


def column_element(tag: str, column: ColumnDescriptor) -> ET.Element:
    element = ET.Element(tag, name=column.name)
    text_element(element, "dbms-data-type", column.dbms_type)
    text_element(element, "java-sql-type", int(column.sql_type))
    text_element(element, "nullable", column.nullable)
    text_element(element, "primary-key", column.is_pk)
    if column.default is not None:
        text_element(element, "default-value", column.default)
    if column.comment:
        text_element(element, "comment", column.comment)
    if column.size is not None:
        text_element(element, "dbms-size", column.size)
    if column.digits is not None:
        text_element(element, "decimal-digits", column.digits)
    text_element(element, "position", column.position)
    return element


def index_element(tag: str, index: IndexDefinition) -> ET.Element:
    element = ET.Element(tag, name=index.name)
    text_element(element, "unique", index.unique)
    columns = ET.SubElement(element, "columns")
    for name in index.columns:
        text_element(columns, "column", name)
    return element


def foreign_key_element(foreign_key: ForeignKeyDefinition) -> ET.Element:
    element = ET.Element("foreign-key", name=foreign_key.name)
    source = ET.SubElement(element, "source-columns")
    for name in foreign_key.columns:
        text_element(source, "column", name)
    text_element(element, "references", foreign_key.referenced_table.qualified_name)
    referenced = ET.SubElement(element, "referenced-columns")
    for name in foreign_key.referenced_columns:
        text_element(referenced, "column", name)
    if foreign_key.update_rule:
        text_element(element, "update-rule", foreign_key.update_rule)
    if foreign_key.delete_rule:
        text_element(element, "delete-rule", foreign_key.delete_rule)
    return element


def constraint_element(constraint: ConstraintDefinition) -> ET.Element:
    attributes = {"name": constraint.name}
    if constraint.system_name:
        attributes["generated-name"] = "true"
    element = ET.Element("constraint-definition", **attributes)
    element.text = constraint.expression
    return element


def trigger_element(tag: str, trigger: TriggerDefinition) -> ET.Element:
    element = ET.Element(tag, name=trigger.name)
    if trigger.event:
        text_element(element, "trigger-event", trigger.event)
    if trigger.timing:
        text_element(element, "trigger-type", trigger.timing)
    text_element(element, "trigger-source", trigger.source)
    return element


def grant_element(grant: GrantDefinition) -> ET.Element:
    element = ET.Element("grant")
    text_element(element, "grantee", grant.grantee)
    text_element(element, "privilege", grant.privilege)
    text_element(element, "grantable", grant.grantable)
    return element


def table_definition_element(snapshot: TableSnapshot, config: SchemaDiffConfig) -> ET.Element:
    """Full definition of a table, used for add-table."""
    table = snapshot.table
    element = ET.Element("table-def", name=table.name)
    if table.schema:
        element.set("schema", table.schema)
    if snapshot.definition.comment:
        text_element(element, "comment", snapshot.definition.comment)
    for column in snapshot.columns:
        element.append(column_element("column-def", column))
    if config.include_primary_keys and snapshot.primary_key is not None:
        pk = ET.SubElement(element, "primary-key", name=snapshot.primary_key.name or "")
        for name in snapshot.primary_key.columns:
            text_element(pk, "column-name", name)
    if config.include_indexes:
        for index in snapshot.indexes:
            if not index.primary_key:
                element.append(index_element("index-def", index))
    if config.include_foreign_keys and snapshot.foreign_keys:
        foreign_keys = ET.SubElement(element, "foreign-keys")
        for foreign_key in snapshot.foreign_keys:
            foreign_keys.append(foreign_key_element(foreign_key))
    if config.include_constraints and snapshot.constraints:
        constraints = ET.SubElement(element, "table-constraints")
        for constraint in snapshot.constraints:
            constraints.append(constraint_element(constraint))
    if config.include_triggers:
        for trigger in snapshot.triggers:
            element.append(trigger_element("trigger-def", trigger))
    return element


def column_changes(reference: ColumnDescriptor, target: ColumnDescriptor,
                   compare_jdbc_types: bool = False) -> dict[str, Any]:
    """
    Properties of ``reference`` that differ from ``target``.

    With ``compare_jdbc_types`` the generic type code plus size and digits
    are compared instead of the DBMS type name.

    Returns:
        Mapping of XML tag to the reference value
    """
    changes: dict[str, Any] = {}
    if compare_jdbc_types:
        if reference.sql_type != target.sql_type:
            changes["java-sql-type"] = int(reference.sql_type)
            changes["dbms-data-type"] = reference.dbms_type
        if reference.size != target.size:
            changes["dbms-size"] = reference.size
        if reference.digits != target.digits:
            changes["decimal-digits"] = reference.digits
    elif _type_name(reference.dbms_type) != _type_name(target.dbms_type):
        changes["dbms-data-type"] = reference.dbms_type
    if reference.nullable != target.nullable:
        changes["nullable"] = reference.nullable
    if normalize_source(reference.default) != normalize_source(target.default):
        changes["default-value"] = reference.default
    if (reference.comment or "") != (target.comment or ""):
        changes["comment"] = reference.comment
    return changes


def _type_name(type_name: str) -> str:
    return "".join((type_name or "").lower().split())


def _find(items: Iterable[T], key: Callable[[T], Any], wanted: Any) -> T | None:
    return next((item for item in items if key(item) == wanted), None)


class TableDiff:
    """
    Differences between a reference and a target table.

    Args:
        reference: Reference table snapshot
        target: Target table snapshot
        config: Comparison settings
    """

    def __init__(self, reference: TableSnapshot, target: TableSnapshot,
                 config: SchemaDiffConfig | None = None):
        self.reference = reference
        self.target = target
        self.config = config or SchemaDiffConfig()
        self.policy = self.config.name_policy

    def _name(self, name: str) -> str:
        return self.policy.normalize(name)

    def _column_diffs(self) -> list[ET.Element]:
        elements = []
        reference_columns = self.reference.columns
        target_columns = self.target.columns

        for column in reference_columns:
            counterpart = _find(target_columns, lambda c: self._name(c.name), self._name(column.name))
            if counterpart is None:
                add = ET.Element("add-column")
                add.append(column_element("column-def", column))
                elements.append(add)

        for column in target_columns:
            if _find(reference_columns, lambda c: self._name(c.name), self._name(column.name)) is None:
                elements.append(ET.Element("remove-column", name=column.name))

        for column in reference_columns:
            counterpart = _find(target_columns, lambda c: self._name(c.name), self._name(column.name))
            if counterpart is None:
                continue
            changes = column_changes(column, counterpart, self.config.compare_jdbc_types)
            if changes:
                modify = ET.Element("modify-column", name=counterpart.name)
                for tag, value in changes.items():
                    text_element(modify, tag, value)
                elements.append(modify)
        return elements

    def _primary_key_diff(self) -> list[ET.Element]:
        if not self.config.include_primary_keys:
            return []
        reference_pk = self.reference.primary_key
        target_pk = self.target.primary_key
        reference_columns = [self._name(c) for c in reference_pk.columns] if reference_pk else []
        target_columns = [self._name(c) for c in target_pk.columns] if target_pk else []
        if reference_columns == target_columns:
            return []

        if not reference_columns:
            tag, name, columns = "remove-primary-key", target_pk.name, target_pk.columns
        elif not target_columns:
            tag, name, columns = "add-primary-key", reference_pk.name, reference_pk.columns
        else:
            tag, name, columns = "modify-primary-key", target_pk.name, reference_pk.columns
        element = ET.Element(tag, name=name or "")
        for column in columns:
            text_element(element, "column-name", column)
        return [element]

    def _index_diff(self) -> list[ET.Element]:
        if not self.config.include_indexes:
            return []
        reference_indexes = [i for i in self.reference.indexes if not i.primary_key]
        target_indexes = [i for i in self.target.indexes if not i.primary_key]

        def same_structure(first: IndexDefinition, second: IndexDefinition) -> bool:
            return (first.unique == second.unique
                    and [self._name(c) for c in first.columns] == [self._name(c) for c in second.columns])

        to_add = []
        to_drop = []
        for index in reference_indexes:
            counterpart = _find(target_indexes, lambda i: self._name(i.name), self._name(index.name))
            if counterpart is None:
                to_add.append(index)
            elif not same_structure(index, counterpart):
                to_drop.append(counterpart)
                to_add.append(index)
        for index in target_indexes:
            if _find(reference_indexes, lambda i: self._name(i.name), self._name(index.name)) is None:
                to_drop.append(index)

        elements = [index_element("add-index", i) for i in to_add]
        elements.extend(ET.Element("drop-index", name=i.name) for i in to_drop)
        return elements

    def _fk_key(self, foreign_key: ForeignKeyDefinition):
        if self.config.compare_constraints_by_name:
            return self._name(foreign_key.name)
        return foreign_key.definition_key()

    def _foreign_key_diff(self) -> list[ET.Element]:
        if not self.config.include_foreign_keys:
            return []
        reference_fks = self.reference.foreign_keys
        target_fks = self.target.foreign_keys
        to_add = []
        to_drop = []
        for fk in reference_fks:
            counterpart = _find(target_fks, self._fk_key, self._fk_key(fk))
            if counterpart is None:
                to_add.append(fk)
            elif counterpart.definition_key() != fk.definition_key():
                to_drop.append(counterpart)
                to_add.append(fk)
        for fk in target_fks:
            if _find(reference_fks, self._fk_key, self._fk_key(fk)) is None:
                to_drop.append(fk)

        elements = []
        if to_add:
            add = ET.Element("add-foreign-keys")
            for fk in to_add:
                add.append(foreign_key_element(fk))
            elements.append(add)
        if to_drop:
            drop = ET.Element("drop-foreign-keys")
            for fk in to_drop:
                drop.append(foreign_key_element(fk))
            elements.append(drop)
        return elements

    def _constraints_match(self, first: ConstraintDefinition, second: ConstraintDefinition) -> bool:
        # Generated names differ between databases; those are matched by expression
        if self.config.compare_constraints_by_name and not (first.system_name or second.system_name):
            return self._name(first.name) == self._name(second.name)
        return first.normalized == second.normalized

    def _constraint_diff(self) -> list[ET.Element]:
        if not self.config.include_constraints:
            return []
        reference = self.reference.constraints
        target = self.target.constraints
        to_add, to_modify, to_drop = [], [], []
        for constraint in reference:
            counterpart = next((c for c in target if self._constraints_match(constraint, c)), None)
            if counterpart is None:
                to_add.append(constraint)
            elif counterpart.normalized != constraint.normalized:
                to_modify.append(constraint)
        for constraint in target:
            if not any(self._constraints_match(c, constraint) for c in reference):
                to_drop.append(constraint)

        if not (to_add or to_modify or to_drop):
            return []
        element = ET.Element("table-constraints")
        for tag, constraints in (("drop-constraint", to_drop), ("add-constraint", to_add),
                                 ("modify-constraint", to_modify)):
            if constraints:
                group = ET.SubElement(element, tag)
                for constraint in constraints:
                    group.append(constraint_element(constraint))
        return [element]

    def _trigger_diff(self) -> list[ET.Element]:
        if not self.config.include_triggers:
            return []
        reference = self.reference.triggers
        target = self.target.triggers
        elements = []
        for trigger in reference:
            counterpart = _find(target, lambda t: self._name(t.name), self._name(trigger.name))
            if counterpart is None:
                elements.append(trigger_element("create-trigger", trigger))
            elif (normalize_source(trigger.source) != normalize_source(counterpart.source)
                  or trigger.event.lower() != counterpart.event.lower()
                  or trigger.timing.lower() != counterpart.timing.lower()):
                elements.append(trigger_element("update-trigger", trigger))
        for trigger in target:
            if _find(reference, lambda t: self._name(t.name), self._name(trigger.name)) is None:
                elements.append(ET.Element("drop-trigger", name=trigger.name))
        return elements

    def _grant_diff(self) -> list[ET.Element]:
        if not self.config.include_grants:
            return []

        def key(grant: GrantDefinition):
            return (self._name(grant.grantee), grant.privilege.upper(), grant.grantable)

        target_keys = {key(g) for g in self.target.grants}
        reference_keys = {key(g) for g in self.reference.grants}
        to_add = [g for g in self.reference.grants if key(g) not in target_keys]
        to_revoke = [g for g in self.target.grants if key(g) not in reference_keys]

        elements = []
        if to_add:
            add = ET.Element("add-grants")
            add.extend(grant_element(g) for g in to_add)
            elements.append(add)
        if to_revoke:
            revoke = ET.Element("revoke-grants")
            revoke.extend(grant_element(g) for g in to_revoke)
            elements.append(revoke)
        return elements

    def is_renamed(self) -> bool:
        return not self.policy.equals(self.reference.table.name, self.target.table.name)

    def to_element(self) -> ET.Element | None:
        """
        The modify-table element for this pair.

        Returns:
            Element describing the changes, or None when both tables are equal
        """
        children = []
        if self.is_renamed():
            rename = ET.Element("rename")
            text_element(rename, "table-name", self.reference.table.name)
            children.append(rename)
        children.extend(self._column_diffs())
        children.extend(self._primary_key_diff())
        children.extend(self._constraint_diff())
        children.extend(self._index_diff())
        children.extend(self._foreign_key_diff())
        children.extend(self._trigger_diff())
        children.extend(self._grant_diff())
        if not children:
            return None

        element = ET.Element("modify-table", name=self.target.table.name)
        if self.target.table.schema:
            element.set("schema", self.target.table.schema)
        element.extend(children)
        return element

    def has_differences(self) -> bool:
        return self.to_element() is not None
