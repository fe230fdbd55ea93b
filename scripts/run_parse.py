"""
Demo script: parse a flat file against a schema and export the units.

Usage:
    uv run python scripts/run_parse.py SCHEMA DATA [OUTPUT_DIR] [--csv | --jsonl] [--keep-going]

Each emitted split unit is logged as it arrives and written under
OUTPUT_DIR (default: outputs/<data file stem>): one Parquet table per
record type plus a _record_types table by default, CSV tables with --csv,
or one JSON tree per unit with --jsonl.
With --keep-going, per-line errors are logged and collected instead of
aborting the run.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

OUTPUT_ROOT = Path("outputs")

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_parse")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    import flatfile_tree

    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    flags = {a for a in sys.argv[1:] if a.startswith("--")}
    if len(args) < 2:
        print(__doc__)
        sys.exit(2)

    schema_path, data_path = Path(args[0]), Path(args[1])
    output_dir = Path(args[2]) if len(args) > 2 else OUTPUT_ROOT / data_path.stem
    output_format = "parquet"
    if "--csv" in flags:
        output_format = "csv"
    elif "--jsonl" in flags:
        output_format = "jsonl"

    errors: list[flatfile_tree.FlatfileTreeError] = []
    handler = flatfile_tree.collect_errors(errors) if "--keep-going" in flags else None

    log.info("=" * 70)
    log.info("Schema     : %s", schema_path)
    log.info("Data       : %s", data_path)
    log.info("output_dir : %s", output_dir)
    log.info("=" * 70)

    def logged(units):
        for unit in units:
            log.info(
                "  Unit '%s' at line %d: %d record(s)",
                unit.type_name,
                unit.line_number,
                sum(1 for _ in unit.walk()),
            )
            yield unit

    parser = flatfile_tree.open_parser(schema_path, error_handler=handler)
    paths = flatfile_tree.export_units(
        logged(parser.iter_units(data_path)),
        output_dir,
        output_format=output_format,
        schema=parser.schema,
    )

    for path in paths:
        log.info("  Wrote %s", path)
    if errors:
        log.warning("%d line(s) had errors", len(errors))
    log.info("Wrote %d file(s) to %s", len(paths), output_dir)


if __name__ == "__main__":
    main()
