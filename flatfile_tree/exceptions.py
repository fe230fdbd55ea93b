"""
Custom exception hierarchy for flatfile-tree.

Three kinds of failure flow through the error policy:

- ConfigurationError: the schema itself is unusable (missing keys, unknown
  reader or field type names, bad regex). Always raised at load time.
- RecordParseError: a line could not be turned into a record (reader
  failure, too few values, missing parent). Carries the record type name
  and the 1-based line number.
- FieldParseError: a single value could not be converted. Carries the
  record type name, field name and line number.

Callers can catch the base class to handle every flatfile-tree failure.
"""

from __future__ import annotations


class FlatfileTreeError(Exception):
    """Base exception for all flatfile-tree errors."""


class ConfigurationError(FlatfileTreeError):
    """Raised when a schema document cannot be loaded or resolved.

    This can happen if:
    - A required key is missing or has the wrong type.
    - A readerKind or typeName is not present in the registries.
    - A matchPattern is not a valid regular expression.
    - splitTypeName or a parentTypeName names an undefined record type.
    """


class ParseError(FlatfileTreeError):
    """Base class for errors tied to a specific input line."""

    def __init__(self, message: str, type_name: str | None, line_number: int) -> None:
        super().__init__(message)
        self.message = message
        self.type_name = type_name
        self.line_number = line_number


class RecordParseError(ParseError):
    """Raised when a line cannot be read into a record."""

    def __str__(self) -> str:
        return f'Record "{self.type_name}": {self.message}'


class UnmatchedLineError(RecordParseError):
    """Raised for a line no record type matches, when unmatched lines are strict."""

    def __init__(self, line_number: int) -> None:
        super().__init__(
            f"no record type matches line {line_number}", None, line_number
        )

    def __str__(self) -> str:
        return self.message


class FieldParseError(ParseError):
    """Raised when a raw value cannot be converted by its field type."""

    def __init__(
        self, message: str, type_name: str, field_name: str, line_number: int
    ) -> None:
        super().__init__(message, type_name, line_number)
        self.field_name = field_name

    def __str__(self) -> str:
        return (
            f'Record "{self.type_name}", Field "{self.field_name}": {self.message}'
        )


class ExportError(FlatfileTreeError):
    """Raised when the exporter fails to write output files.

    For example, permission errors, disk full, or unsupported format.
    """
