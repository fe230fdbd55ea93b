"""
flatfile-tree: schema-driven parsing of flat files into typed record trees.

Public API surface:

- ``open_parser(schema_path, ...)`` -- **recommended entry point**. Loads a
  YAML/JSON schema, resolves it against the type registries and returns a
  ``Parser``.

- ``parse_file(schema_path, data_path, processor, ...)`` -- one-shot push
  parse: the processor is called with each completed split unit.

- ``iter_units(schema_path, data_path, ...)`` -- one-shot pull parse: a
  lazy generator of completed split units.

Lower-level pieces (``Parser``, ``build_schema``, ``default_registries``,
record readers and field types) are re-exported for callers that build
schemas in code or register their own types.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from flatfile_tree.engine import Parser, RecordProcessor
from flatfile_tree.exceptions import (
    ConfigurationError,
    ExportError,
    FieldParseError,
    FlatfileTreeError,
    RecordParseError,
    UnmatchedLineError,
)
from flatfile_tree.export import export_units
from flatfile_tree.frames import units_to_frames
from flatfile_tree.policy import (
    ErrorHandler,
    collect_errors,
    default_error_handler,
    skip_field_errors,
)
from flatfile_tree.records import Field, Record
from flatfile_tree.registry import Registries, TypeRegistry, default_registries
from flatfile_tree.schema import (
    SchemaDefinition,
    SchemaDocument,
    build_schema,
    load_schema,
    load_schema_document,
    save_schema_document,
)

__all__ = [
    "open_parser",
    "parse_file",
    "iter_units",
    "Parser",
    "Record",
    "Field",
    "SchemaDefinition",
    "SchemaDocument",
    "build_schema",
    "load_schema",
    "load_schema_document",
    "save_schema_document",
    "Registries",
    "TypeRegistry",
    "default_registries",
    "ErrorHandler",
    "default_error_handler",
    "skip_field_errors",
    "collect_errors",
    "units_to_frames",
    "export_units",
    "FlatfileTreeError",
    "ConfigurationError",
    "RecordParseError",
    "UnmatchedLineError",
    "FieldParseError",
    "ExportError",
]

logger = logging.getLogger(__name__)


def open_parser(
    schema_path: str | Path,
    processor: RecordProcessor | None = None,
    error_handler: ErrorHandler | None = None,
    registries: Registries | None = None,
) -> Parser:
    """Load a schema file and return a ready ``Parser``.

    Args:
        schema_path: Path to a YAML or JSON schema document.
        processor: Push-mode callback for each emitted unit.
        error_handler: Error policy; defaults to abort on first error.
        registries: Type registries; defaults to ``default_registries()``.

    Raises:
        FileNotFoundError: If the schema file does not exist.
        ConfigurationError: If the schema cannot be loaded or resolved.
    """
    logger.info("open_parser() -- schema_path=%s", schema_path)
    return Parser.from_schema_file(
        schema_path,
        registries,
        processor=processor,
        error_handler=error_handler,
    )


def parse_file(
    schema_path: str | Path,
    data_path: str | Path,
    processor: RecordProcessor,
    error_handler: ErrorHandler | None = None,
    registries: Registries | None = None,
) -> None:
    """Parse *data_path* against the schema at *schema_path* (push mode).

    Raises:
        ConfigurationError: If the schema is unusable.
        OSError: If *data_path* cannot be opened.
        FlatfileTreeError: Whatever the error handler aborted with.
    """
    parser = open_parser(schema_path, processor, error_handler, registries)
    parser.parse_file(data_path)


def iter_units(
    schema_path: str | Path,
    data_path: str | Path,
    error_handler: ErrorHandler | None = None,
    registries: Registries | None = None,
) -> Iterator[Record]:
    """Parse *data_path* against the schema at *schema_path* (pull mode).

    The schema is loaded eagerly, so configuration errors surface on the
    call rather than on the first ``next()``.
    """
    parser = open_parser(schema_path, error_handler=error_handler, registries=registries)
    return parser.iter_units(Path(data_path))
