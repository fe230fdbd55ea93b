"""
Base field type ABC for flatfile-tree.

``convert()`` raises on bad input (``ValueError`` is the norm); the engine
wraps the failure in a ``FieldParseError`` naming the record type and
field, and hands it to the error policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class FieldType(ABC):
    """Abstract base class for field types."""

    @classmethod
    @abstractmethod
    def from_config(cls, config: Mapping[str, Any]) -> FieldType:
        """Build a field type from its decoded ``typeConfig`` payload."""

    @abstractmethod
    def convert(self, raw: str) -> Any:
        """Convert a raw string value to a typed value."""
