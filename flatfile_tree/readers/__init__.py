"""
Record readers sub-package for flatfile-tree.

A record reader splits one raw line (bytes) into an ordered list of raw
string values, one per field position.

Design: Strategy Pattern
- base.py defines the RecordReader ABC.
- delimited.py implements DelimitedReader (quoted-field CSV semantics).
- fixed_width.py implements FixedWidthReader (byte-range slicing).

Readers are looked up by name through ``registry.Registries.record_readers``;
new wire formats are added by registering another factory, not by editing
the engine.
"""

from flatfile_tree.readers.base import RecordReader
from flatfile_tree.readers.delimited import DelimitedConfig, DelimitedReader
from flatfile_tree.readers.fixed_width import (
    FixedWidthConfig,
    FixedWidthCoordinate,
    FixedWidthReader,
)

__all__ = [
    "RecordReader",
    "DelimitedConfig",
    "DelimitedReader",
    "FixedWidthConfig",
    "FixedWidthCoordinate",
    "FixedWidthReader",
]
