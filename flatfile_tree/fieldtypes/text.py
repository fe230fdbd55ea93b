"""String field type: values pass through unchanged."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flatfile_tree.fieldtypes.base import FieldType


class StringFieldType(FieldType):

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> StringFieldType:
        return cls()

    def convert(self, raw: str) -> str:
        return raw

    def __repr__(self) -> str:
        return "StringFieldType()"
