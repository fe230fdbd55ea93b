"""
Number field type for flatfile-tree.

Parses the raw value as a float, then divides by ``10 ** scaleDigits``.
Mainframe-style extracts often store amounts as integers with implied
decimal places, e.g. raw ``"12345"`` with ``scaleDigits: 2`` is ``123.45``.
With the default of 0 the value is returned as parsed (``"123"`` -> ``123.0``).

Surrounding whitespace is accepted; underscore digit grouping (``"1_000"``)
is not.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flatfile_tree.fieldtypes.base import FieldType


class NumberConfig(BaseModel):
    """``typeConfig`` payload for the ``Number`` field type."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    scale_digits: int = Field(0, alias="scaleDigits", ge=0)


class NumberFieldType(FieldType):

    def __init__(self, config: NumberConfig | None = None) -> None:
        self.config = config or NumberConfig()
        self._divisor = 10 ** self.config.scale_digits

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> NumberFieldType:
        return cls(NumberConfig.model_validate(config or {}))

    def convert(self, raw: str) -> float:
        try:
            if "_" in raw:
                raise ValueError(raw)
            value = float(raw)
        except ValueError:
            raise ValueError(f"not a number: {raw!r}") from None
        return value / self._divisor

    def __repr__(self) -> str:
        return f"NumberFieldType(scale_digits={self.config.scale_digits})"
