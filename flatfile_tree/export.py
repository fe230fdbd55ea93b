"""
Writing parsed split units to disk.

``export_units`` consumes emitted units (e.g. ``Parser.iter_units(...)``)
and writes them in one of two shapes:

- **Tables** (``csv`` / ``parquet``) -- the units are flattened with
  ``frames.units_to_frames`` into one file per record type,
  ``{type_name}.{format}``. Given the ``SchemaDefinition`` the units came
  from, every record type that can occur inside a unit gets a file (empty
  if no record of it was seen), columns follow the schema's field order and
  are cast from the field type (``Number`` -> float, ``Date`` -> datetime,
  ``String`` -> string), and a ``_record_types`` table describes the
  hierarchy: parent type, split flag, field list and row count per type.
- **Trees** (``jsonl``) -- one ``Record.to_dict()`` per line in
  ``{split_type_name}.jsonl``, written while the units stream in, so the
  nesting survives and memory stays at one unit.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

import pandas as pd

from flatfile_tree.exceptions import ExportError
from flatfile_tree.frames import units_to_frames
from flatfile_tree.records import Record
from flatfile_tree.schema import SchemaDefinition

logger = logging.getLogger(__name__)

OutputFormat = Literal["csv", "parquet", "jsonl"]

MANIFEST_NAME = "_record_types"

_TABLE_FORMATS = {"csv", "parquet"}

# column dtypes for the built-in field types; other field types stay object
_FIELD_DTYPES = {
    "String": "string",
    "Number": "float64",
    "Date": "datetime64[ns]",
}

_LINEAGE_DTYPES = {"_unit": "int64", "_line": "int64", "_parent_line": "Int64"}


def export_units(
    units: Iterable[Record | None],
    output_dir: str | Path,
    output_format: OutputFormat = "parquet",
    schema: SchemaDefinition | None = None,
    include_lineage: bool = True,
) -> list[str]:
    """Write emitted split units under *output_dir*.

    Args:
        units: Emitted units; ``None`` entries are ignored.
        output_dir: Directory to write into (created if needed).
        output_format: ``"parquet"``, ``"csv"`` or ``"jsonl"``.
        schema: The schema the units were parsed with. Optional; enables
            typed columns, empty tables for unseen types and the
            ``_record_types`` table.
        include_lineage: Keep the ``_unit`` / ``_line`` / ``_parent_line``
            columns (table formats only).

    Returns:
        Paths (as strings) of the files written, in write order.

    Raises:
        ExportError: If *output_format* is unsupported or a write fails.
    """
    if output_format != "jsonl" and output_format not in _TABLE_FORMATS:
        raise ExportError(
            f"Unsupported output format: '{output_format}'. "
            f"Supported formats: {sorted(_TABLE_FORMATS | {'jsonl'})}"
        )

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    if output_format == "jsonl":
        return _write_trees(units, out, schema)

    tables = units_to_frames(units, include_lineage=include_lineage)
    if schema is not None:
        tables = _conform_to_schema(tables, schema, include_lineage)

    written = [
        _write_table(df, out / f"{type_name}.{output_format}", output_format)
        for type_name, df in tables.items()
    ]
    if schema is not None:
        manifest = record_type_manifest(schema, tables)
        written.append(
            _write_table(manifest, out / f"{MANIFEST_NAME}.{output_format}", output_format)
        )
    return written


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def unit_type_names(schema: SchemaDefinition) -> list[str]:
    """Record types that can occur inside a split unit, in schema order.

    That is the split type and every type descending from it; ancestors of
    the split type (and unrelated roots) are never emitted.
    """
    inside = {schema.split_type_name}
    changed = True
    while changed:
        changed = False
        for rtd in schema.record_types:
            if rtd.name not in inside and rtd.parent_type_name in inside:
                inside.add(rtd.name)
                changed = True
    return [name for name in schema.type_names if name in inside]


def _conform_to_schema(
    tables: dict[str, pd.DataFrame],
    schema: SchemaDefinition,
    include_lineage: bool,
) -> dict[str, pd.DataFrame]:
    conformed: dict[str, pd.DataFrame] = {}
    for type_name in unit_type_names(schema):
        rtd = schema.get(type_name)
        dtypes = dict(_LINEAGE_DTYPES) if include_lineage else {}
        for fdef in rtd.fields:
            dtypes[fdef.name] = _FIELD_DTYPES.get(fdef.type_name, "object")

        df = tables.get(type_name)
        if df is None:
            df = pd.DataFrame({col: pd.Series(dtype=dt) for col, dt in dtypes.items()})
            logger.info("No '%s' records parsed, writing an empty table", type_name)
        else:
            df = df.reindex(columns=list(dtypes)).astype(dtypes)
        conformed[type_name] = df
    return conformed


def record_type_manifest(
    schema: SchemaDefinition, tables: dict[str, pd.DataFrame]
) -> pd.DataFrame:
    """One row per exported record type: where it sits and what it holds."""
    rows = []
    for type_name in unit_type_names(schema):
        rtd = schema.get(type_name)
        rows.append(
            {
                "type_name": type_name,
                "parent_type_name": rtd.parent_type_name,
                "is_split_type": type_name == schema.split_type_name,
                "reader_kind": rtd.reader_kind,
                "fields": ", ".join(f"{f.name}:{f.type_name}" for f in rtd.fields),
                "rows": len(tables.get(type_name, ())),
            }
        )
    return pd.DataFrame(rows)


def _write_table(df: pd.DataFrame, path: Path, output_format: str) -> str:
    try:
        if output_format == "csv":
            df.to_csv(path, index=False, encoding="utf-8")
        else:
            df.to_parquet(path, index=False, engine="pyarrow")
    except Exception as exc:
        raise ExportError(f"Failed to write {path.name} as {output_format}: {exc}") from exc
    logger.info("Exported %s (%d rows, %d cols)", path.name, len(df), len(df.columns))
    return str(path)


# ---------------------------------------------------------------------------
# Trees
# ---------------------------------------------------------------------------

def _write_trees(
    units: Iterable[Record | None], out: Path, schema: SchemaDefinition | None
) -> list[str]:
    path = out / f"{schema.split_type_name}.jsonl" if schema is not None else None
    handle = None
    count = 0
    try:
        for unit in units:
            if unit is None:
                continue
            try:
                line = json.dumps(unit.to_dict(), ensure_ascii=False)
            except TypeError as exc:
                raise ExportError(
                    f"Unit at line {unit.line_number} is not JSON serializable: {exc}"
                ) from exc
            if handle is None:
                path = path or out / f"{unit.type_name}.jsonl"
                handle = _open_for_write(path)
            handle.write(line + "\n")
            count += 1
        if handle is None and path is not None:
            handle = _open_for_write(path)
    finally:
        if handle is not None:
            handle.close()

    if path is None:
        logger.info("No units to export")
        return []
    logger.info("Exported %s (%d unit(s))", path.name, count)
    return [str(path)]


def _open_for_write(path: Path):
    try:
        return open(path, "w", encoding="utf-8")
    except OSError as exc:
        raise ExportError(f"Failed to open {path.name} for writing: {exc}") from exc
