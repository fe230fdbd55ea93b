"""
Field types sub-package for flatfile-tree.

A field type converts one raw string value into a typed value.

- base.py: FieldType ABC.
- text.py: StringFieldType (identity).
- numbers.py: NumberFieldType (float, optional implied decimal places).
- dates.py: DateFieldType (strptime pattern, naive UTC datetime).

Field types are looked up by name through
``registry.Registries.field_types``.
"""

from flatfile_tree.fieldtypes.base import FieldType
from flatfile_tree.fieldtypes.dates import DateConfig, DateFieldType
from flatfile_tree.fieldtypes.numbers import NumberConfig, NumberFieldType
from flatfile_tree.fieldtypes.text import StringFieldType

__all__ = [
    "FieldType",
    "DateConfig",
    "DateFieldType",
    "NumberConfig",
    "NumberFieldType",
    "StringFieldType",
]
