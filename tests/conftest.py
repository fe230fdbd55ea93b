"""
Shared test fixtures and sample documents for flatfile-tree tests.

The invoice schema below is the running example: a delimited header split
type, delimited lines beneath it, and fixed-width distribution records
beneath each line. Tests write the sample text to ``tmp_path`` when they
need a real file.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from flatfile_tree.registry import default_registries

# ---------------------------------------------------------------------------
# Sample schema and data -- edit here if the running example changes
# ---------------------------------------------------------------------------
INVOICE_SCHEMA: dict[str, Any] = {
    "splitTypeName": "InvoiceHeader",
    "recordTypes": [
        {
            "name": "InvoiceHeader",
            "matchPattern": "^010",
            "readerKind": "Delimited",
            "readerConfig": {"delimiter": "~"},
            "fields": [
                {"name": "RecordID", "typeName": "String"},
                {"name": "InvoiceNumber", "typeName": "String"},
                {"name": "InvoiceAmount", "typeName": "Number", "typeConfig": {"scaleDigits": 2}},
                {"name": "InvoiceDate", "typeName": "Date", "typeConfig": {"format": "%d-%b-%Y"}},
            ],
        },
        {
            "name": "InvoiceLine",
            "matchPattern": "^030",
            "readerKind": "Delimited",
            "readerConfig": {"delimiter": "~"},
            "parentTypeName": "InvoiceHeader",
            "fields": [
                {"name": "RecordID", "typeName": "String"},
                {"name": "LineNumber", "typeName": "String"},
                {"name": "Description", "typeName": "String"},
            ],
        },
        {
            "name": "InvoiceLineDist",
            "matchPattern": "^033",
            "readerKind": "FixedWidth",
            "readerConfig": {"coordinates": [[0, 3], [3, 13]]},
            "parentTypeName": "InvoiceLine",
            "fields": [
                {"name": "RecordID", "typeName": "String"},
                {"name": "Account", "typeName": "String"},
            ],
        },
    ],
}

INVOICE_DATA = """\

010~INV98765~12345~17-JUL-2019
030~0001~Invoice One, Line One
033ACCTNUM001
030~0002~Invoice One, Line Two
033ACCTNUM002
010~INV22222222~12345~17-JUL-2019
030~0001~Invoice Two, Line One
033ACCTNUM221
"""


def as_lines(text: str) -> list[bytes]:
    """Split sample text into raw byte lines, terminators included."""
    return [line.encode("utf-8") for line in text.splitlines(keepends=True)]


@pytest.fixture
def invoice_schema() -> dict[str, Any]:
    """A fresh, mutable copy of the invoice schema document."""
    return copy.deepcopy(INVOICE_SCHEMA)


@pytest.fixture
def registries():
    return default_registries()


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (runs end to end against files on disk)",
    )
