"""
Key based row matching inside one chunk.
"""

from typing import Sequence

from ..storage.names import DEFAULT_NAME_POLICY, NamePolicy
from ..storage.rows import ResultShape, Row, values_equal


def key_positions(shape: ResultShape, key_columns: Sequence[str], policy: NamePolicy) -> list[int] | None:
    """Positions of the key columns in ``shape``, None if one is missing."""
    positions = []
    for key in key_columns:
        for position, column in enumerate(shape.columns):
            if policy.equals(column.name, key):
                positions.append(position)
                break
        else:
            return None
    return positions


def find_match(
    candidates: Sequence[Row],
    row: Row,
    key_columns: Sequence[str],
    policy: NamePolicy = DEFAULT_NAME_POLICY,
) -> int:
    """
    Find the candidate whose key equals the key of ``row``.

    Key values are looked up by name in each row's own shape, so the two
    sides may order their columns differently. A NULL key value never
    matches. Candidates are scanned in order; with duplicate keys the
    first one wins.

    Args:
        candidates: Rows fetched from the other side
        row: Row to find a partner for
        key_columns: Names of the active key columns
        policy: Name matching policy for the key lookup

    Returns:
        Index into ``candidates``, or -1 when nothing matches
    """
    own_positions = key_positions(row.shape, key_columns, policy)
    if own_positions is None:
        return -1
    wanted = [row[p] for p in own_positions]
    if any(v is None for v in wanted):
        return -1

    positions_by_shape: dict[int, list[int] | None] = {}
    for index, candidate in enumerate(candidates):
        shape_id = id(candidate.shape)
        if shape_id not in positions_by_shape:
            positions_by_shape[shape_id] = key_positions(candidate.shape, key_columns, policy)
        positions = positions_by_shape[shape_id]
        if positions is None:
            continue
        if all(
            candidate[p] is not None and values_equal(value, candidate[p])
            for p, value in zip(positions, wanted)
        ):
            return index
    return -1
