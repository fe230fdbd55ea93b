"""
Streaming parse engine for flatfile-tree.

Per input line:

1. **Recognize** -- test record types in declaration order; the first whose
   ``matchPattern`` is found in the line wins (no pattern = always matches).
   Declaration order is the only tie-break, so put specific patterns first.
2. **Read** -- the record type's reader splits the line into raw values.
3. **Convert** -- each raw value goes through its field type, in field order.
4. **Assemble** -- the record becomes the latest of its type; a split-type
   record closes the previous split unit and hands it to the consumer; the
   record is then attached under the latest record of its parent type.

Memory stays bounded to one split unit: children are owned downward only,
records above the split boundary are referenced weakly, and once a unit is
handed over the engine forgets every record inside it.

Two ways to consume units, both synchronous and unbuffered:

- **Push** -- ``Parser.parse(source)`` calls ``processor(unit)`` at each
  emission, and once more at end of input with the last unit (``None``
  if no split-type line was ever seen).
- **Pull** -- ``Parser.iter_units(source)`` is a generator of units in
  emission order. No line is read until the next unit is requested.

The input source is closed on every exit path.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import closing, contextmanager
from pathlib import Path
from typing import IO, Any

from flatfile_tree.exceptions import (
    FieldParseError,
    FlatfileTreeError,
    RecordParseError,
    UnmatchedLineError,
)
from flatfile_tree.policy import ErrorHandler, default_error_handler
from flatfile_tree.records import Field, Record
from flatfile_tree.registry import Registries
from flatfile_tree.schema import (
    RecordTypeDefinition,
    SchemaDefinition,
    build_schema,
    load_schema,
)

logger = logging.getLogger(__name__)

RecordProcessor = Callable[[Record | None], None]

Source = str | os.PathLike | IO[bytes] | Iterable[bytes]


# ---------------------------------------------------------------------------
# Line source
# ---------------------------------------------------------------------------

def _strip_terminator(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line


def _numbered_lines(lines: Iterable[bytes | str]) -> Iterator[tuple[int, bytes]]:
    for number, line in enumerate(lines, start=1):
        if isinstance(line, str):
            line = line.encode("utf-8")
        yield number, _strip_terminator(line)


@contextmanager
def open_source(source: Source) -> Iterator[Iterator[tuple[int, bytes]]]:
    """Yield ``(line_number, raw_line)`` pairs and close the source afterwards.

    *source* may be a path (opened in binary mode), an open file object, or
    any iterable of byte (or str) lines. Failing to open a path raises
    ``OSError`` straight away; it never reaches the error handler.
    """
    if isinstance(source, (str, os.PathLike)):
        handle: Any = open(Path(source), "rb")
    else:
        handle = source
    try:
        yield _numbered_lines(handle)
    finally:
        close = getattr(handle, "close", None)
        if close is not None:
            close()


# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------

def recognize(schema: SchemaDefinition, line: bytes) -> RecordTypeDefinition | None:
    """Return the first record type (in declaration order) matching *line*."""
    for rtd in schema.record_types:
        if rtd.matches(line):
            return rtd
    return None


# ---------------------------------------------------------------------------
# Assembly state
# ---------------------------------------------------------------------------

class _Assembly:
    """Mutable state of one parse run: latest record per type and the open unit."""

    __slots__ = ("split_type_name", "last_by_type", "split_record", "ready")

    def __init__(self, split_type_name: str) -> None:
        self.split_type_name = split_type_name
        self.last_by_type: dict[str, Record] = {}
        self.split_record: Record | None = None
        self.ready: Record | None = None

    def register(self, record: Record) -> bool:
        """Make *record* the latest of its type; open a new unit on a split record.

        Returns True when the previous unit is complete and waiting in
        ``ready``.
        """
        self.last_by_type[record.type_name] = record
        if record.type_name != self.split_type_name:
            return False

        closed = self.split_record is not None
        if closed:
            self.ready = self.split_record
            # records of the closed unit must not take new children
            for name in [n for n, r in self.last_by_type.items() if r.within_split]:
                del self.last_by_type[name]
        self.split_record = record
        record.within_split = True
        return closed

    def take_ready(self) -> Record | None:
        unit, self.ready = self.ready, None
        return unit

    def finish(self) -> Record | None:
        unit, self.split_record = self.split_record, None
        return unit


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class Parser:
    """Parses flat files into record trees according to a ``SchemaDefinition``.

    Args:
        schema: The resolved schema.
        processor: Called with each emitted unit in push mode. Defaults to a
            no-op.
        error_handler: Decides, per error, whether to abort (return the
            error) or continue (return ``None``). Defaults to aborting.
        log: Where diagnostics go. Defaults to this module's logger.
    """

    def __init__(
        self,
        schema: SchemaDefinition,
        processor: RecordProcessor | None = None,
        error_handler: ErrorHandler | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.schema = schema
        self.processor: RecordProcessor = processor or (lambda record: None)
        self.error_handler: ErrorHandler = error_handler or default_error_handler
        self.log = log or logger

    @classmethod
    def from_document(
        cls,
        raw: Mapping[str, Any],
        registries: Registries | None = None,
        **kwargs: Any,
    ) -> Parser:
        """Build a parser from an already-decoded schema document."""
        return cls(build_schema(raw, registries), **kwargs)

    @classmethod
    def from_schema_file(
        cls,
        path: str | Path,
        registries: Registries | None = None,
        **kwargs: Any,
    ) -> Parser:
        """Build a parser from a YAML/JSON schema file."""
        return cls(load_schema(path, registries), **kwargs)

    # -- public entry points ------------------------------------------------

    def parse(self, source: Source) -> None:
        """Parse *source*, calling the processor for each emitted unit.

        The processor is called once more at end of input with the final
        unit, or with ``None`` when no line matched the split type.

        Raises:
            FlatfileTreeError: Whatever the error handler chose to abort with.
            OSError: If *source* is a path that cannot be opened.
        """
        with closing(self._scan(source)) as units:
            for unit in units:
                self.processor(unit)
                # the engine holds no reference while reading on
                del unit

    def parse_file(self, path: str | Path) -> None:
        """Open *path* and parse it (see ``parse``)."""
        self.parse(Path(path))

    def iter_units(self, source: Source) -> Iterator[Record]:
        """Yield each complete split unit, in input order.

        Lazy and unbuffered: the engine reads ahead only as far as the line
        that closes the current unit. Closing the generator early closes the
        source. An input without any split-type line yields nothing.
        """
        with closing(self._scan(source, terminal_none=False)) as units:
            yield from units

    # -- engine -------------------------------------------------------------

    def _scan(
        self, source: Source, terminal_none: bool = True
    ) -> Iterator[Record | None]:
        state = _Assembly(self.schema.split_type_name)
        strict = self.schema.options.unmatched_lines == "error"
        line_count = 0
        unit_count = 0

        self.log.info(
            "Parsing with %d record type(s), split on '%s'",
            len(self.schema.record_types),
            self.schema.split_type_name,
        )
        with open_source(source) as lines:
            for line_number, raw in lines:
                line_count = line_number
                rtd = recognize(self.schema, raw)
                if rtd is None:
                    if strict:
                        self._report(UnmatchedLineError(line_number))
                    else:
                        self.log.debug("Line %d matches no record type, skipped", line_number)
                    continue

                record = self._build_record(rtd, line_number, raw)
                if state.register(record):
                    unit_count += 1
                    yield state.take_ready()
                self._attach(rtd, record, state, line_number)

        if state.split_record is not None:
            unit_count += 1
        self.log.info("Parsed %d line(s), emitted %d unit(s)", line_count, unit_count)
        if terminal_none or state.split_record is not None:
            yield state.finish()
        state.last_by_type.clear()

    def _report(self, error: FlatfileTreeError) -> None:
        outcome = self.error_handler(error)
        if outcome is not None:
            raise outcome

    def _build_record(
        self, rtd: RecordTypeDefinition, line_number: int, raw: bytes
    ) -> Record:
        try:
            values = rtd.reader.split(raw)
        except Exception as exc:
            self._report(
                RecordParseError(
                    f"Error reading line {line_number} with {rtd.reader_kind} reader: {exc}",
                    rtd.name,
                    line_number,
                )
            )
            values = []
        else:
            if len(values) < len(rtd.fields):
                self._report(
                    RecordParseError(
                        f"Past the end of available data on line {line_number}: "
                        f"{len(rtd.fields)} fields defined, {len(values)} values read",
                        rtd.name,
                        line_number,
                    )
                )

        record = Record(rtd.name, line_number=line_number)
        for i, fdef in enumerate(rtd.fields):
            value = None
            if i < len(values):
                try:
                    value = fdef.field_type.convert(values[i])
                except Exception as exc:
                    self._report(
                        FieldParseError(
                            f"Error on line {line_number} getting field value: {exc}",
                            rtd.name,
                            fdef.name,
                            line_number,
                        )
                    )
            record.fields.append(Field(fdef.name, fdef.type_name, value))
        return record

    def _attach(
        self,
        rtd: RecordTypeDefinition,
        record: Record,
        state: _Assembly,
        line_number: int,
    ) -> None:
        parent_name = rtd.parent_type_name
        if not parent_name:
            return
        parent = state.last_by_type.get(parent_name)
        if parent is None:
            self._report(
                RecordParseError(
                    f'No available parent record "{parent_name}" on line {line_number}',
                    rtd.name,
                    line_number,
                )
            )
            return
        if parent.within_split:
            parent.children.append(record)
            record.within_split = True
        else:
            record.set_parent(parent)
            if rtd.name != self.schema.split_type_name:
                self.log.debug(
                    "Line %d: '%s' sits above the split boundary and will not be emitted",
                    line_number,
                    rtd.name,
                )
