"""
Error policies for flatfile-tree.

Every per-line failure funnels into a single handler::

    handler(error) -> error | None

A non-``None`` return aborts the parse: the engine raises the returned
exception. ``None`` means continue; the record is built with whatever
values could be obtained (``None`` for a field that failed to convert).

The default handler returns the error unchanged, so parsing stops at the
first problem with the record type, field and line number in the message.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from flatfile_tree.exceptions import FieldParseError, FlatfileTreeError

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[FlatfileTreeError], "FlatfileTreeError | None"]


def default_error_handler(error: FlatfileTreeError) -> FlatfileTreeError | None:
    """Abort on every error."""
    return error


def skip_field_errors(
    record_types: Iterable[str] | None = None,
    field_names: Iterable[str] | None = None,
) -> ErrorHandler:
    """Build a handler that lets selected field conversion failures through.

    Args:
        record_types: Record type names whose field errors are tolerated.
            ``None`` tolerates every record type.
        field_names: Field names whose errors are tolerated. ``None``
            tolerates every field.

    Record-level errors (and field errors outside the selection) still
    abort.
    """
    types = set(record_types) if record_types is not None else None
    names = set(field_names) if field_names is not None else None

    def handler(error: FlatfileTreeError) -> FlatfileTreeError | None:
        if not isinstance(error, FieldParseError):
            return error
        if types is not None and error.type_name not in types:
            return error
        if names is not None and error.field_name not in names:
            return error
        logger.debug("Skipping field error: %s", error)
        return None

    return handler


def collect_errors(sink: list[FlatfileTreeError]) -> ErrorHandler:
    """Build a handler that records every error in *sink* and never aborts."""

    def handler(error: FlatfileTreeError) -> FlatfileTreeError | None:
        logger.warning("Continuing past error: %s", error)
        sink.append(error)
        return None

    return handler
