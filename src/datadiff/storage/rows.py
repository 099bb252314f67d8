"""
Row model: result shapes, rows and value equality.

A ResultShape describes one query projection; every Row carries the shape
it was read with, so rows from the reference and the target can be
compared column by column even when the two projections order their
columns differently.
"""

import datetime
import decimal
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Sequence

from .columns import ColumnDescriptor, SqlType, TableIdentifier
from .names import DEFAULT_NAME_POLICY, NamePolicy


@dataclass(frozen=True)
class ResultShape:
    """
    Ordered column list of a projection plus the table the rows belong to.

    Attributes:
        columns: Column descriptors in projection order
        update_table: Table used when generating DML for these rows
        key_columns: Names of the columns forming the active key
        policy: Name matching policy used by find_column
    """

    columns: tuple[ColumnDescriptor, ...]
    update_table: TableIdentifier | None = None
    key_columns: tuple[str, ...] = ()
    policy: NamePolicy = field(default=DEFAULT_NAME_POLICY, compare=False)

    def __post_init__(self):
        index = {}
        for position, column in enumerate(self.columns):
            index.setdefault(self.policy.normalize(column.name), position)
        object.__setattr__(self, "_index", index)
        for key in self.key_columns:
            if self.policy.normalize(key) not in index:
                raise ValueError(f"Key column {key!r} is not part of the result")

    @classmethod
    def from_description(
        cls,
        description: Sequence[Sequence[Any]] | None,
        known_columns: Iterable[ColumnDescriptor] = (),
        policy: NamePolicy = DEFAULT_NAME_POLICY,
    ) -> "ResultShape":
        """
        Build a shape from a DB-API cursor.description.

        Catalog descriptors in ``known_columns`` replace the sparse
        information drivers put into cursor.description (SQLite reports
        nothing but the name).

        Args:
            description: cursor.description
            known_columns: Catalog columns of the queried table
            policy: Name matching policy

        Returns:
            ResultShape without update table or key columns
        """
        known = {policy.normalize(c.name): c for c in known_columns}
        columns = []
        for position, entry in enumerate(description or (), start=1):
            name = entry[0]
            catalog_column = known.get(policy.normalize(name))
            if catalog_column is not None:
                columns.append(replace(catalog_column, name=name))
                continue
            type_code = entry[1] if len(entry) > 1 else None
            null_ok = entry[6] if len(entry) > 6 else None
            columns.append(
                ColumnDescriptor(
                    name=name,
                    sql_type=SqlType.from_python_type(type_code),
                    nullable=null_ok is not False,
                    size=entry[3] if len(entry) > 3 else None,
                    digits=entry[5] if len(entry) > 5 else None,
                    position=position,
                )
            )
        return cls(tuple(columns), policy=policy)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def find_column(self, name: str) -> int:
        """Return the position of a column, or -1 when absent."""
        return self._index.get(self.policy.normalize(name), -1)

    def column(self, name: str) -> ColumnDescriptor | None:
        position = self.find_column(name)
        return self.columns[position] if position >= 0 else None

    def is_key_column(self, name: str) -> bool:
        wanted = self.policy.normalize(name)
        return any(self.policy.normalize(k) == wanted for k in self.key_columns)

    def key_positions(self) -> list[int]:
        return [self.find_column(k) for k in self.key_columns]

    def with_keys(self, key_columns: Iterable[str]) -> "ResultShape":
        return replace(self, key_columns=tuple(key_columns))

    def with_update_table(self, table: TableIdentifier | None) -> "ResultShape":
        return replace(self, update_table=table)

    def subset(self, names: Iterable[str]) -> "ResultShape":
        """Shape restricted to ``names``, kept in this shape's column order."""
        wanted = {self.policy.normalize(n) for n in names}
        columns = tuple(c for c in self.columns if self.policy.normalize(c.name) in wanted)
        keys = tuple(k for k in self.key_columns if self.policy.normalize(k) in wanted)
        return replace(self, columns=columns, key_columns=keys)


class Row:
    """
    One database row aligned with a ResultShape.

    Values are kept exactly as the driver returned them; only LOB style
    objects are materialized by the reader before a Row is built.
    """

    __slots__ = ("shape", "values")

    def __init__(self, shape: ResultShape, values: Sequence[Any]):
        if len(values) != shape.column_count:
            raise ValueError(
                f"Row has {len(values)} values but the result has {shape.column_count} columns"
            )
        self.shape = shape
        self.values = tuple(values)

    def __getitem__(self, position: int) -> Any:
        return self.values[position]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __repr__(self):
        return f"Row({dict(zip(self.shape.column_names, self.values))!r})"

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value of a column by name."""
        position = self.shape.find_column(name)
        return self.values[position] if position >= 0 else default

    def has_column(self, name: str) -> bool:
        return self.shape.find_column(name) >= 0

    def key_values(self, key_columns: Iterable[str] | None = None) -> tuple:
        keys = self.shape.key_columns if key_columns is None else key_columns
        return tuple(self.get(k) for k in keys)

    def has_null_key(self, key_columns: Iterable[str] | None = None) -> bool:
        return any(v is None for v in self.key_values(key_columns))


def _as_number(value: Any) -> decimal.Decimal | float | None:
    if isinstance(value, bool):
        return decimal.Decimal(int(value))
    if isinstance(value, int):
        return decimal.Decimal(value)
    if isinstance(value, (float, decimal.Decimal)):
        return value
    if isinstance(value, str):
        try:
            return decimal.Decimal(value.strip())
        except decimal.InvalidOperation:
            return None
    return None


def _numbers_equal(first, second) -> bool:
    if isinstance(first, float) or isinstance(second, float):
        try:
            return float(first) == float(second)
        except (OverflowError, ValueError):
            return False
    return first == second


def _as_bytes(value: Any) -> bytes | None:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return None


def values_equal(first: Any, second: Any) -> bool:
    """
    Compare two column values the way the database would.

    NULL equals NULL. Integers, decimals, floats and numeric strings are
    compared by value, dates and midnight timestamps are equal, binary
    values compare by content regardless of their container type.

    Args:
        first: Value from one row
        second: Value from the other row

    Returns:
        True when both values represent the same data
    """
    if first is None or second is None:
        return first is None and second is None

    if type(first) is type(second) and not isinstance(first, (float, datetime.datetime)):
        return first == second

    first_bytes = _as_bytes(first)
    second_bytes = _as_bytes(second)
    if first_bytes is not None or second_bytes is not None:
        return first_bytes == second_bytes

    numeric_types = (int, float, decimal.Decimal)
    if isinstance(first, numeric_types) or isinstance(second, numeric_types):
        first_number = _as_number(first)
        second_number = _as_number(second)
        if first_number is None or second_number is None:
            return False
        return _numbers_equal(first_number, second_number)

    if isinstance(first, datetime.date) and isinstance(second, datetime.date):
        return _dates_equal(first, second)

    if isinstance(first, uuid.UUID) or isinstance(second, uuid.UUID):
        return str(first).lower() == str(second).lower()

    return first == second


def _dates_equal(first: datetime.date, second: datetime.date) -> bool:
    first_is_ts = isinstance(first, datetime.datetime)
    second_is_ts = isinstance(second, datetime.datetime)
    if first_is_ts and second_is_ts:
        if (first.tzinfo is None) != (second.tzinfo is None):
            return first.replace(tzinfo=None) == second.replace(tzinfo=None)
        return first == second
    if first_is_ts:
        return first.time() == datetime.time(0) and first.date() == second
    if second_is_ts:
        return second.time() == datetime.time(0) and second.date() == first
    return first == second


def keys_equal(first: Row, second: Row, key_columns: Sequence[str]) -> bool:
    """
    Key equality between two rows.

    Each key column is looked up by name in each row's own shape. A NULL in
    any key column on either side means the rows cannot match.
    """
    for key in key_columns:
        first_value = first.get(key)
        second_value = second.get(key)
        if first_value is None or second_value is None:
            return False
        if not values_equal(first_value, second_value):
            return False
    return True
