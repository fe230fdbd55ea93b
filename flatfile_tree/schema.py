"""
Schema models and YAML/JSON I/O for flatfile-tree.

Loading a schema is a two-phase polymorphic decode:

1. **Envelope** -- ``SchemaDocument.model_validate(raw)`` checks the shape
   of the document: required keys, the ``readerKind`` / ``typeName``
   discriminators, and keeps each ``readerConfig`` / ``typeConfig`` as an
   opaque mapping.
2. **Payload** -- ``build_schema(document, registries)`` resolves every
   discriminator in the registries and decodes its payload through the
   resolved factory, producing the immutable ``SchemaDefinition`` the
   engine runs on.

Every failure in either phase is a ``ConfigurationError`` and happens
before any input line is read.

Key functions:
- load_schema_document(path) -> SchemaDocument: read YAML or JSON.
- save_schema_document(document, path): write YAML.
- build_schema(raw_or_document, registries) -> SchemaDefinition.
- load_schema(path, registries) -> SchemaDefinition: both of the above.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flatfile_tree.exceptions import ConfigurationError
from flatfile_tree.fieldtypes.base import FieldType
from flatfile_tree.readers.base import RecordReader
from flatfile_tree.registry import Registries, default_registries

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Phase 1: document envelope
# ---------------------------------------------------------------------------

class _DocumentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FieldSpec(_DocumentModel):
    """One entry of a record type's ``fields`` list."""

    name: str = Field(..., min_length=1)
    type_name: str = Field(..., alias="typeName", min_length=1)
    type_config: dict[str, Any] = Field(default_factory=dict, alias="typeConfig")


class RecordTypeSpec(_DocumentModel):
    """One entry of the schema's ``recordTypes`` list."""

    name: str = Field(..., min_length=1)
    match_pattern: str | None = Field(None, alias="matchPattern")
    reader_kind: str = Field(..., alias="readerKind", min_length=1)
    reader_config: dict[str, Any] = Field(default_factory=dict, alias="readerConfig")
    parent_type_name: str | None = Field(None, alias="parentTypeName")
    fields: list[FieldSpec] = Field(default_factory=list)


class ParserOptions(_DocumentModel):
    """Parse-time behaviour switches, read from the ``options`` block."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    unmatched_lines: Literal["skip", "error"] = Field(
        "skip",
        alias="unmatchedLines",
        description="'skip' ignores lines no record type matches; 'error' reports them",
    )
    warn_unreferenced_roots: bool = Field(
        True,
        alias="warnUnreferencedRoots",
        description="Log a warning for root types that are neither split type nor a parent",
    )


class SchemaDocument(_DocumentModel):
    """Top-level schema document. Maps 1:1 to the YAML/JSON file."""

    split_type_name: str = Field(..., alias="splitTypeName", min_length=1)
    record_types: list[RecordTypeSpec] = Field(..., alias="recordTypes", min_length=1)
    options: ParserOptions = Field(default_factory=ParserOptions)


# ---------------------------------------------------------------------------
# Phase 2: resolved, immutable schema
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldDefinition:
    """A named instance of a field type."""

    name: str
    type_name: str
    field_type: FieldType


@dataclass(frozen=True)
class RecordTypeDefinition:
    """How to recognize, read and type one line shape."""

    name: str
    match_pattern: re.Pattern[bytes] | None
    reader_kind: str
    reader: RecordReader
    parent_type_name: str | None
    fields: tuple[FieldDefinition, ...]

    def matches(self, line: bytes) -> bool:
        """True if *line* belongs to this record type (no pattern matches all)."""
        if self.match_pattern is None:
            return True
        return self.match_pattern.search(line) is not None


@dataclass(frozen=True)
class SchemaDefinition:
    """Record type definitions in match-priority order, plus the split type."""

    record_types: tuple[RecordTypeDefinition, ...]
    split_type_name: str
    options: ParserOptions = field(default_factory=ParserOptions)

    def get(self, name: str) -> RecordTypeDefinition:
        for rtd in self.record_types:
            if rtd.name == name:
                return rtd
        raise KeyError(name)

    @property
    def type_names(self) -> list[str]:
        return [rtd.name for rtd in self.record_types]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_schema_document(path: str | Path) -> SchemaDocument:
    """Load a schema document from a YAML or JSON file.

    JSON is read through the YAML loader (JSON is a subset of YAML).

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is empty, malformed, or fails
            envelope validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Schema file is not valid YAML/JSON: {path}: {exc}") from exc
    if raw is None:
        raise ConfigurationError(f"Schema file is empty: {path}")
    logger.info("Loaded schema document from %s", path)
    return decode_document(raw)


def save_schema_document(document: SchemaDocument, path: str | Path) -> None:
    """Serialize a schema document to YAML, using the document's key names."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = document.model_dump(mode="json", by_alias=True, exclude_none=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("# flatfile-tree schema\n\n")
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved schema document to %s", path)


def decode_document(raw: Any) -> SchemaDocument:
    """Phase 1: validate the envelope of an already-decoded document."""
    if isinstance(raw, SchemaDocument):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigurationError(
            f"Schema document must be a mapping, got {type(raw).__name__}"
        )
    try:
        return SchemaDocument.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid schema document: {exc}") from exc


def build_schema(
    raw: SchemaDocument | Mapping[str, Any],
    registries: Registries | None = None,
) -> SchemaDefinition:
    """Decode a schema document into a resolved ``SchemaDefinition``.

    Args:
        raw: A ``SchemaDocument`` or the already-decoded mapping.
        registries: Where reader kinds and field type names are resolved.
            Defaults to ``default_registries()``.

    Raises:
        ConfigurationError: On any envelope, registry, payload, regex or
            cross-reference problem.
    """
    document = decode_document(raw)
    registries = registries or default_registries()

    record_types = tuple(
        _build_record_type(spec, registries) for spec in document.record_types
    )
    schema = SchemaDefinition(
        record_types=record_types,
        split_type_name=document.split_type_name,
        options=document.options,
    )
    _validate_references(schema)
    logger.info(
        "Built schema: %d record type(s), split on '%s'",
        len(record_types),
        schema.split_type_name,
    )
    return schema


def load_schema(
    path: str | Path, registries: Registries | None = None
) -> SchemaDefinition:
    """Load a YAML/JSON schema file and resolve it against *registries*."""
    return build_schema(load_schema_document(path), registries)


def _build_record_type(
    spec: RecordTypeSpec, registries: Registries
) -> RecordTypeDefinition:
    pattern: re.Pattern[bytes] | None = None
    if spec.match_pattern:
        try:
            pattern = re.compile(spec.match_pattern.encode("utf-8"))
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid matchPattern {spec.match_pattern!r} for record type "
                f"'{spec.name}': {exc}"
            ) from exc

    reader_factory = registries.record_readers.get(spec.reader_kind)
    try:
        reader = reader_factory(spec.reader_config)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(
            f"Invalid readerConfig for record type '{spec.name}' "
            f"({spec.reader_kind}): {exc}"
        ) from exc

    fields = tuple(_build_field(spec.name, fs, registries) for fs in spec.fields)

    return RecordTypeDefinition(
        name=spec.name,
        match_pattern=pattern,
        reader_kind=spec.reader_kind,
        reader=reader,
        parent_type_name=spec.parent_type_name or None,
        fields=fields,
    )


def _build_field(
    record_name: str, spec: FieldSpec, registries: Registries
) -> FieldDefinition:
    type_factory = registries.field_types.get(spec.type_name)
    try:
        field_type = type_factory(spec.type_config)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(
            f"Invalid typeConfig for field '{spec.name}' of record type "
            f"'{record_name}' ({spec.type_name}): {exc}"
        ) from exc
    return FieldDefinition(name=spec.name, type_name=spec.type_name, field_type=field_type)


def _validate_references(schema: SchemaDefinition) -> None:
    """Cross-check names: uniqueness, split type, parents, parent cycles."""
    names = schema.type_names
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ConfigurationError(f"Duplicate record type name '{name}'")
        seen.add(name)

    if schema.split_type_name not in seen:
        raise ConfigurationError(
            f"splitTypeName '{schema.split_type_name}' is not a defined record type. "
            f"Defined: {names}"
        )

    parents = {rtd.name: rtd.parent_type_name for rtd in schema.record_types}
    for rtd in schema.record_types:
        if rtd.parent_type_name and rtd.parent_type_name not in seen:
            raise ConfigurationError(
                f"Record type '{rtd.name}' names undefined parent "
                f"'{rtd.parent_type_name}'"
            )

    for name in names:
        chain = [name]
        current = parents[name]
        while current:
            if current in chain:
                raise ConfigurationError(
                    f"Parent cycle in record types: {' -> '.join(chain + [current])}"
                )
            chain.append(current)
            current = parents[current]

    if schema.options.warn_unreferenced_roots:
        referenced = {p for p in parents.values() if p}
        for rtd in schema.record_types:
            if (
                rtd.parent_type_name is None
                and rtd.name != schema.split_type_name
                and rtd.name not in referenced
            ):
                logger.warning(
                    "Record type '%s' has no parent, is not the split type and is "
                    "nobody's parent; its records will never be emitted",
                    rtd.name,
                )
