"""
Tabular projection of record trees for flatfile-tree.

Flattens emitted split units into one pandas DataFrame per record type, so
a parsed file can be analysed or exported like any other table.

Each output table includes:
- Lineage columns (optional): ``_unit`` (0-based index of the split unit),
  ``_line`` (1-based input line of the record) and ``_parent_line`` (input
  line of the owning record; for a unit root, its ancestor above the split
  boundary if that is still alive).
- One column per field, in schema field order.

Tables appear in the order their record type is first seen.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

from flatfile_tree.records import Record

logger = logging.getLogger(__name__)

LINEAGE_COLUMNS = ["_unit", "_line", "_parent_line"]


def units_to_frames(
    units: Iterable[Record | None],
    include_lineage: bool = True,
) -> dict[str, pd.DataFrame]:
    """Flatten split units into per-record-type DataFrames.

    Args:
        units: Emitted units, e.g. ``Parser.iter_units(...)``. ``None``
            entries (the push-mode terminal marker) are ignored.
        include_lineage: If True, prepend the ``_unit`` / ``_line`` /
            ``_parent_line`` columns.

    Returns:
        Dict mapping record type name -> DataFrame.
    """
    rows: dict[str, list[dict[str, Any]]] = {}
    unit_count = 0

    for unit_index, unit in enumerate(u for u in units if u is not None):
        unit_count += 1
        root_parent = unit.parent
        stack: list[tuple[Record, int | None]] = [
            (unit, root_parent.line_number if root_parent is not None else None)
        ]
        while stack:
            rec, parent_line = stack.pop()
            row: dict[str, Any] = {}
            if include_lineage:
                row["_unit"] = unit_index
                row["_line"] = rec.line_number
                row["_parent_line"] = parent_line
            row.update(rec.values())
            rows.setdefault(rec.type_name, []).append(row)
            stack.extend((child, rec.line_number) for child in reversed(rec.children))

    tables = {name: pd.DataFrame(records) for name, records in rows.items()}
    logger.info(
        "Flattened %d unit(s) into %d table(s): %s",
        unit_count,
        len(tables),
        {name: len(df) for name, df in tables.items()},
    )
    return tables
