"""
Record tree model for flatfile-tree.

A ``Record`` is one recognized input line: its typed fields in schema order
and the child records attached beneath it. Ownership only runs downward:

- ``children`` holds the records this one owns, in input order.
- ``parent`` is a non-owning (weak) link, set only for records whose parent
  lies above the split boundary (the split record's ancestors). Records
  inside a split unit reach their parent by walking down from the root
  instead, so an emitted unit never keeps earlier units or the rest of the
  file alive.

``to_dict()`` gives a JSON-ready projection; the parent link is left out
to avoid cycles.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Field:
    """A typed value produced by a field definition."""

    name: str
    type_name: str
    value: Any


@dataclass(eq=False)
class Record:
    """One record of a given type, with its owned children."""

    type_name: str
    line_number: int = 0
    fields: list[Field] = field(default_factory=list)
    children: list[Record] = field(default_factory=list)
    within_split: bool = False
    _parent_ref: weakref.ref[Record] | None = field(default=None, repr=False)

    @property
    def parent(self) -> Record | None:
        """The ancestor above the split boundary, if still alive."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def set_parent(self, parent: Record) -> None:
        self._parent_ref = weakref.ref(parent)

    def get_field(self, name: str) -> Field:
        """Return the field called *name*.

        Raises:
            KeyError: If this record has no such field.
        """
        for fld in self.fields:
            if fld.name == name:
                return fld
        raise KeyError(f'No Field named "{name}" in Record "{self.type_name}"')

    def value(self, name: str, default: Any = None) -> Any:
        """Return the value of field *name*, or *default* if absent."""
        for fld in self.fields:
            if fld.name == name:
                return fld.value
        return default

    def values(self) -> dict[str, Any]:
        return {fld.name: fld.value for fld in self.fields}

    def walk(self) -> Iterator[Record]:
        """Yield this record and every descendant, depth first, in input order."""
        stack = [self]
        while stack:
            rec = stack.pop()
            yield rec
            stack.extend(reversed(rec.children))

    def find_record(
        self, type_name: str, matches: Mapping[str, Any] | None = None
    ) -> Record | None:
        """Find the first record of *type_name* whose fields equal *matches*.

        Searches this record and its descendants depth first. ``None`` if
        nothing matches.
        """
        matches = matches or {}
        for rec in self.walk():
            if rec.type_name != type_name:
                continue
            if all(
                any(f.name == k and f.value == v for f in rec.fields)
                for k, v in matches.items()
            ):
                return rec
        return None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready nested dict (datetimes as ISO strings, no parent link)."""
        return {
            "type_name": self.type_name,
            "line_number": self.line_number,
            "fields": {f.name: _jsonable(f.value) for f in self.fields},
            "children": [child.to_dict() for child in self.children],
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
