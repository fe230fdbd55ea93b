"""
Fixed-width record reader.

Each field is a half-open ``[start, end)`` byte range of the raw line,
sliced verbatim (no stripping) and then decoded. Coordinates are given in
the schema either as ``[start, end]`` pairs or ``{start, end}`` mappings.

A range that runs past the end of a line is an error for that line, not a
short value: fixed-width files that lose trailing bytes are usually
truncated, and a silently shortened field would hide it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flatfile_tree.readers.base import RecordReader, check_encoding


class FixedWidthCoordinate(BaseModel):
    """A half-open byte range within a line."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"coordinate must be a [start, end] pair, got {data!r}")
            return {"start": data[0], "end": data[1]}
        return data

    @model_validator(mode="after")
    def _check_order(self) -> FixedWidthCoordinate:
        if self.end < self.start:
            raise ValueError(f"coordinate end {self.end} is before start {self.start}")
        return self


class FixedWidthConfig(BaseModel):
    """``readerConfig`` payload for the ``FixedWidth`` reader."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    coordinates: list[FixedWidthCoordinate] = Field(..., min_length=1)
    encoding: str = "utf-8"

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        return check_encoding(value)


class FixedWidthReader(RecordReader):
    """Reader for fixed-width lines."""

    def __init__(self, config: FixedWidthConfig) -> None:
        self.config = config

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> FixedWidthReader:
        return cls(FixedWidthConfig.model_validate(config))

    def split(self, raw: bytes) -> list[str]:
        values: list[str] = []
        for coord in self.config.coordinates:
            if coord.end > len(raw):
                raise ValueError(
                    f"range [{coord.start}, {coord.end}) exceeds line length {len(raw)}"
                )
            values.append(raw[coord.start:coord.end].decode(self.config.encoding))
        return values

    def __repr__(self) -> str:
        ranges = [(c.start, c.end) for c in self.config.coordinates]
        return f"FixedWidthReader(coordinates={ranges})"
