"""
Date field type for flatfile-tree.

Uses ``datetime.strptime`` patterns (``%d-%b-%Y`` for ``17-JUL-2019``).
Month and weekday names match case-insensitively. The result is always a
naive ``datetime`` in UTC: patterns carrying an offset (``%z``) are
converted to UTC and the tzinfo dropped, so values from differently
configured fields compare directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flatfile_tree.fieldtypes.base import FieldType


class DateConfig(BaseModel):
    """``typeConfig`` payload for the ``Date`` field type."""

    model_config = ConfigDict(frozen=True)

    format: str = Field(..., min_length=1)


class DateFieldType(FieldType):

    def __init__(self, config: DateConfig) -> None:
        self.config = config

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> DateFieldType:
        return cls(DateConfig.model_validate(config or {}))

    def convert(self, raw: str) -> datetime:
        value = datetime.strptime(raw, self.config.format)
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def __repr__(self) -> str:
        return f"DateFieldType(format={self.config.format!r})"
