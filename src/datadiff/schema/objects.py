"""
Catalog object definitions compared by the schema diff.
"""

import re
from dataclasses import dataclass, field

from ..storage.columns import ColumnDescriptor, TableIdentifier

_WHITESPACE = re.compile(r"\s+")


def normalize_source(text: str | None) -> str:
    """
    Normalize SQL source text for comparison.

    Collapses whitespace, drops a trailing semicolon and folds case, so
    that view and constraint definitions that only differ in formatting
    compare equal.
    """
    if not text:
        return ""
    text = _WHITESPACE.sub(" ", text).strip().rstrip(";").strip()
    return text.lower()


@dataclass(frozen=True)
class TableDefinition:
    """A table with its columns as read from the catalog."""

    table: TableIdentifier
    columns: tuple[ColumnDescriptor, ...]
    table_type: str = "TABLE"
    comment: str | None = None

    @property
    def pk_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.is_pk]


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    columns: tuple[str, ...]
    unique: bool = False
    primary_key: bool = False


@dataclass(frozen=True)
class ForeignKeyDefinition:
    name: str
    columns: tuple[str, ...]
    referenced_table: TableIdentifier
    referenced_columns: tuple[str, ...]
    update_rule: str | None = None
    delete_rule: str | None = None

    def definition_key(self) -> tuple:
        """Structure of the constraint, ignoring its name."""
        return (
            tuple(c.lower() for c in self.columns),
            self.referenced_table.name.lower(),
            tuple(c.lower() for c in self.referenced_columns),
            (self.update_rule or "").lower(),
            (self.delete_rule or "").lower(),
        )


@dataclass(frozen=True)
class ConstraintDefinition:
    """Table level check constraint."""

    name: str
    expression: str
    system_name: bool = False

    @property
    def normalized(self) -> str:
        return normalize_source(self.expression)


@dataclass(frozen=True)
class PrimaryKeyDefinition:
    name: str | None
    columns: tuple[str, ...]


@dataclass(frozen=True)
class TriggerDefinition:
    name: str
    event: str = ""
    timing: str = ""
    source: str = ""


@dataclass(frozen=True)
class GrantDefinition:
    grantee: str
    privilege: str
    grantable: bool = False


@dataclass(frozen=True)
class ViewDefinition:
    name: str
    source: str = ""
    schema: str | None = None


@dataclass(frozen=True)
class SequenceDefinition:
    name: str
    start_value: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    increment: int | None = None
    cycle: bool = False
    schema: str | None = None

    def properties(self) -> dict[str, object]:
        return {
            "start-value": self.start_value,
            "min-value": self.min_value,
            "max-value": self.max_value,
            "increment": self.increment,
            "cycle": self.cycle,
        }


@dataclass(frozen=True)
class TableSnapshot:
    """Everything the schema diff knows about one table."""

    definition: TableDefinition
    primary_key: PrimaryKeyDefinition | None = None
    indexes: tuple[IndexDefinition, ...] = ()
    foreign_keys: tuple[ForeignKeyDefinition, ...] = ()
    constraints: tuple[ConstraintDefinition, ...] = ()
    triggers: tuple[TriggerDefinition, ...] = ()
    grants: tuple[GrantDefinition, ...] = field(default=())

    @property
    def table(self) -> TableIdentifier:
        return self.definition.table

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return self.definition.columns
