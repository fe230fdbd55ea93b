"""
Base record reader ABC for flatfile-tree.

The contract is:
1. ``from_config()`` builds a reader from the decoded ``readerConfig``
   mapping of a record type. Invalid config raises ``ValueError``
   (pydantic's ``ValidationError`` included); the schema loader turns it
   into a ``ConfigurationError`` naming the record type.
2. ``split()`` takes one raw line without its line terminator and returns
   the positional raw values. Any exception it raises is reported as a
   ``RecordParseError`` for that line.
"""

from __future__ import annotations

import codecs
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


def check_encoding(encoding: str) -> str:
    """Validate that *encoding* names a codec Python knows."""
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise ValueError(f"unknown encoding: {encoding!r}") from None
    return encoding


class RecordReader(ABC):
    """Abstract base class for record readers."""

    @classmethod
    @abstractmethod
    def from_config(cls, config: Mapping[str, Any]) -> RecordReader:
        """Build a reader from its decoded config payload."""

    @abstractmethod
    def split(self, raw: bytes) -> list[str]:
        """Split a raw line into positional values.

        Args:
            raw: One input line, line terminator already removed.

        Returns:
            Raw string values in positional order.
        """
