"""
Delimited record reader.

Splits a line on a single-character delimiter with quoted-field CSV
semantics: a delimiter inside a quoted value does not split, and doubled
quotes inside a quoted value collapse to one. Parsing is strict, so an
unterminated quote is an error rather than a silently merged value.
"""

from __future__ import annotations

import csv
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flatfile_tree.readers.base import RecordReader, check_encoding


class DelimitedConfig(BaseModel):
    """``readerConfig`` payload for the ``Delimited`` reader."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    delimiter: str = Field(..., min_length=1, max_length=1)
    quote_char: str = Field('"', alias="quoteChar", min_length=1, max_length=1)
    encoding: str = "utf-8"

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        return check_encoding(value)

    @model_validator(mode="after")
    def _check_delimiter(self) -> DelimitedConfig:
        if self.delimiter in "\r\n":
            raise ValueError(f"delimiter {self.delimiter!r} is a line terminator")
        if self.delimiter == self.quote_char:
            raise ValueError(f"delimiter and quoteChar are both {self.delimiter!r}")
        return self


class DelimitedReader(RecordReader):
    """Reader for delimiter-separated lines."""

    def __init__(self, config: DelimitedConfig) -> None:
        self.config = config

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> DelimitedReader:
        return cls(DelimitedConfig.model_validate(config))

    def split(self, raw: bytes) -> list[str]:
        text = raw.decode(self.config.encoding)
        if not text:
            return []
        reader = csv.reader(
            [text],
            delimiter=self.config.delimiter,
            quotechar=self.config.quote_char,
            strict=True,
        )
        return next(reader, [])

    def __repr__(self) -> str:
        return f"DelimitedReader(delimiter={self.config.delimiter!r})"
