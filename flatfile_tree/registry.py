"""
Type registries for flatfile-tree.

A schema names its record readers (``readerKind``) and field types
(``typeName``) by string. The registries map those names to factories
that turn the already-decoded config payload into a ready instance:

- ``field_types``:    name -> (config mapping) -> FieldType
- ``record_readers``: name -> (config mapping) -> RecordReader

Registries are plain objects, built explicitly and handed to the schema
loader. Nothing registers itself at import time, so two parsers in the
same process can use different type sets.

Adding a wire format or value type::

    registries = default_registries()
    registries.field_types.register("Boolean", BooleanFieldType.from_config)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from flatfile_tree.exceptions import ConfigurationError
from flatfile_tree.fieldtypes.base import FieldType
from flatfile_tree.readers.base import RecordReader

logger = logging.getLogger(__name__)

T = TypeVar("T")

Factory = Callable[[Mapping[str, Any]], T]


class TypeRegistry(Generic[T]):
    """A string-keyed map of factories for one kind of pluggable type."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._factories: dict[str, Factory[T]] = {}

    def register(self, name: str, factory: Factory[T], *, replace: bool = False) -> None:
        """Register *factory* under *name*.

        Raises:
            ConfigurationError: If *name* is already registered and
                *replace* is False.
        """
        if not name:
            raise ConfigurationError(f"{self.kind} name must not be empty")
        if name in self._factories and not replace:
            raise ConfigurationError(
                f'{self.kind} "{name}" is already registered'
            )
        self._factories[name] = factory
        logger.debug("Registered %s %r", self.kind, name)

    def get(self, name: str) -> Factory[T]:
        """Return the factory registered under *name*.

        Raises:
            ConfigurationError: If no factory is registered under *name*.
        """
        try:
            return self._factories[name]
        except KeyError:
            raise ConfigurationError(
                f'No {self.kind} named "{name}" exists in registry. '
                f"Registered: {self.names()}"
            ) from None

    def create(self, name: str, config: Mapping[str, Any]) -> T:
        """Resolve *name* and build an instance from *config*."""
        return self.get(name)(config)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


@dataclass
class Registries:
    """The pair of registries a schema is resolved against."""

    field_types: TypeRegistry[FieldType] = field(
        default_factory=lambda: TypeRegistry("FieldType")
    )
    record_readers: TypeRegistry[RecordReader] = field(
        default_factory=lambda: TypeRegistry("RecordReader")
    )


def default_registries() -> Registries:
    """Build a fresh ``Registries`` holding the built-in types.

    Built-ins: readers ``Delimited`` and ``FixedWidth``; field types
    ``String``, ``Number`` and ``Date``.
    """
    from flatfile_tree.fieldtypes import DateFieldType, NumberFieldType, StringFieldType
    from flatfile_tree.readers import DelimitedReader, FixedWidthReader

    registries = Registries()
    registries.record_readers.register("Delimited", DelimitedReader.from_config)
    registries.record_readers.register("FixedWidth", FixedWidthReader.from_config)
    registries.field_types.register("String", StringFieldType.from_config)
    registries.field_types.register("Number", NumberFieldType.from_config)
    registries.field_types.register("Date", DateFieldType.from_config)
    return registries
