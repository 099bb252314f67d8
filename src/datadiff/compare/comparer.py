"""
Row level comparison.

RowDataComparer decides whether a reference row needs an INSERT (no
target row), an UPDATE (some compared column differs) or nothing at all,
and lets the run's output dialect render the result.
"""

from typing import Iterable

from ..errors import DataDiffError
from ..storage.columns import ColumnDescriptor, TableIdentifier
from ..storage.names import DEFAULT_NAME_POLICY, NamePolicy
from ..storage.rows import ResultShape, Row, values_equal
from .output import ColumnValue, OutputDialect


class RowDataComparer:
    """
    Compares one reference row with its target counterpart.

    The comparer is configured once per table pair and then fed row pairs
    with set_rows(). Columns are matched between both sides by name, so the
    two projections may differ in column order.

    Args:
        output: Output dialect of the run
        table: Table written into the generated DML (defaults to the
            reference shape's update table)
        key_columns: Active key (defaults to the reference shape's keys)
        target_columns: Target descriptors; reference columns without a
            counterpart are left out of the output
        policy: Column name matching policy
    """

    def __init__(
        self,
        output: OutputDialect,
        table: TableIdentifier | None = None,
        key_columns: Iterable[str] | None = None,
        target_columns: Iterable[ColumnDescriptor] | None = None,
        policy: NamePolicy = DEFAULT_NAME_POLICY,
    ):
        self.output = output
        self.table = table
        self.key_columns = tuple(key_columns) if key_columns is not None else None
        self.policy = policy
        self._target_columns = None
        if target_columns is not None:
            self._target_columns = {policy.normalize(c.name): c for c in target_columns}
        self._ignored: frozenset[str] = frozenset()
        self._excluded: frozenset[str] = frozenset()
        self._positions: dict[ResultShape, dict[str, int]] = {}
        self.reference: Row | None = None
        self.target: Row | None = None

    def set_rows(self, reference: Row, target: Row | None) -> None:
        self.reference = reference
        self.target = target

    def ignore_columns(self, names: Iterable[str]) -> None:
        """Columns that are not compared; they never show up in a SET list."""
        self._ignored = frozenset(self.policy.normalize(n) for n in names)

    def exclude_columns(self, names: Iterable[str]) -> None:
        """Columns that are never rendered in SET or INSERT column lists."""
        self._excluded = frozenset(self.policy.normalize(n) for n in names)

    def _position_map(self, shape: ResultShape) -> dict[str, int]:
        positions = self._positions.get(shape)
        if positions is None:
            positions = {}
            for position, column in enumerate(shape.columns):
                positions.setdefault(self.policy.normalize(column.name), position)
            self._positions[shape] = positions
        return positions

    def _active_keys(self) -> frozenset[str]:
        keys = self.key_columns if self.key_columns is not None else self.reference.shape.key_columns
        return frozenset(self.policy.normalize(k) for k in keys)

    def _target_column(self, column: ColumnDescriptor, normalized: str) -> ColumnDescriptor | None:
        if self._target_columns is None:
            return column
        return self._target_columns.get(normalized)

    def get_migration(self, row_number: int) -> str | None:
        """
        Build the fragment needed to align the target with the reference row.

        Args:
            row_number: Sequence number of the reference row (XML ``row``)

        Returns:
            INSERT fragment when there is no target row, UPDATE fragment
            when a compared column differs, None otherwise

        Raises:
            DataDiffError: If no reference row or no table is set
        """
        reference = self.reference
        if reference is None:
            raise DataDiffError("No reference row set")
        table = self.table or reference.shape.update_table
        if table is None:
            raise DataDiffError("No table to generate statements for")

        keys = self._active_keys()
        target = self.target
        target_positions = self._position_map(target.shape) if target is not None else None

        entries = []
        modified = False
        for position, column in enumerate(reference.shape.columns):
            normalized = self.policy.normalize(column.name)
            target_column = self._target_column(column, normalized)
            if target_column is None:
                continue
            is_key = normalized in keys
            value = reference[position]

            if target is None:
                if is_key or normalized not in self._excluded:
                    entries.append(ColumnValue(target_column, value, key=is_key))
                continue

            target_position = target_positions.get(normalized)
            if target_position is None:
                continue
            target_value = target[target_position]
            if is_key:
                entries.append(ColumnValue(target_column, target_value, key=True))
                continue
            if normalized in self._excluded:
                continue
            differs = normalized not in self._ignored and not values_equal(value, target_value)
            modified = modified or differs
            entries.append(ColumnValue(target_column, value, modified=differs))

        if target is None:
            return self.output.insert(row_number, table, entries)
        if not modified:
            return None
        return self.output.update(row_number, table, entries)
