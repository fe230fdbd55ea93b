"""
Unit tests for schema loading (flatfile_tree.schema).

Tests envelope validation, registry resolution, payload decoding,
cross-reference checks and YAML/JSON file I/O.
"""

from __future__ import annotations

import json
import logging

import pytest

from flatfile_tree.exceptions import ConfigurationError
from flatfile_tree.fieldtypes import DateFieldType, NumberFieldType, StringFieldType
from flatfile_tree.readers import DelimitedReader, FixedWidthReader
from flatfile_tree.schema import (
    SchemaDocument,
    build_schema,
    load_schema,
    load_schema_document,
    save_schema_document,
)


# ---------------------------------------------------------------------------
# Building from decoded documents
# ---------------------------------------------------------------------------

class TestBuildSchema:
    """Tests for build_schema() on valid documents."""

    def test_invoice_schema(self, invoice_schema, registries):
        schema = build_schema(invoice_schema, registries)
        assert schema.split_type_name == "InvoiceHeader"
        assert schema.type_names == ["InvoiceHeader", "InvoiceLine", "InvoiceLineDist"]

        header = schema.get("InvoiceHeader")
        assert isinstance(header.reader, DelimitedReader)
        assert header.parent_type_name is None
        assert [f.name for f in header.fields] == [
            "RecordID",
            "InvoiceNumber",
            "InvoiceAmount",
            "InvoiceDate",
        ]
        assert isinstance(header.fields[0].field_type, StringFieldType)
        assert isinstance(header.fields[2].field_type, NumberFieldType)
        assert isinstance(header.fields[3].field_type, DateFieldType)

        dist = schema.get("InvoiceLineDist")
        assert isinstance(dist.reader, FixedWidthReader)
        assert dist.parent_type_name == "InvoiceLine"

    def test_default_registries_used(self, invoice_schema):
        schema = build_schema(invoice_schema)
        assert len(schema.record_types) == 3

    def test_snake_case_keys(self, registries):
        schema = build_schema(
            {
                "split_type_name": "H",
                "record_types": [
                    {
                        "name": "H",
                        "reader_kind": "Delimited",
                        "reader_config": {"delimiter": ","},
                        "fields": [{"name": "a", "type_name": "String"}],
                    }
                ],
            },
            registries,
        )
        assert schema.get("H").fields[0].type_name == "String"

    def test_empty_parent_name_means_root(self, invoice_schema, registries):
        invoice_schema["recordTypes"][0]["parentTypeName"] = ""
        schema = build_schema(invoice_schema, registries)
        assert schema.get("InvoiceHeader").parent_type_name is None

    def test_schema_is_immutable(self, invoice_schema, registries):
        schema = build_schema(invoice_schema, registries)
        with pytest.raises(AttributeError):
            schema.split_type_name = "InvoiceLine"

    def test_options_default(self, invoice_schema, registries):
        schema = build_schema(invoice_schema, registries)
        assert schema.options.unmatched_lines == "skip"

    def test_options_block(self, invoice_schema, registries):
        invoice_schema["options"] = {"unmatchedLines": "error"}
        schema = build_schema(invoice_schema, registries)
        assert schema.options.unmatched_lines == "error"


class TestMatching:
    """Tests for RecordTypeDefinition.matches()."""

    def test_no_pattern_matches_everything(self, registries):
        schema = build_schema(
            {
                "splitTypeName": "Any",
                "recordTypes": [
                    {"name": "Any", "readerKind": "Delimited", "readerConfig": {"delimiter": ","}}
                ],
            },
            registries,
        )
        assert schema.get("Any").matches(b"")
        assert schema.get("Any").matches(b"whatever")

    def test_pattern_is_searched(self, invoice_schema, registries):
        invoice_schema["recordTypes"][2]["matchPattern"] = "ACCT"
        schema = build_schema(invoice_schema, registries)
        assert schema.get("InvoiceLineDist").matches(b"033ACCTNUM001")

    def test_anchored_pattern(self, invoice_schema, registries):
        schema = build_schema(invoice_schema, registries)
        header = schema.get("InvoiceHeader")
        assert header.matches(b"010~INV1")
        assert not header.matches(b"030~010")


# ---------------------------------------------------------------------------
# Failures -- every one is a ConfigurationError
# ---------------------------------------------------------------------------

class TestBuildSchemaErrors:
    """Tests that bad documents fail fast with ConfigurationError."""

    def test_missing_split_type_name(self, invoice_schema, registries):
        del invoice_schema["splitTypeName"]
        with pytest.raises(ConfigurationError, match="splitTypeName"):
            build_schema(invoice_schema, registries)

    def test_missing_reader_kind(self, invoice_schema, registries):
        del invoice_schema["recordTypes"][1]["readerKind"]
        with pytest.raises(ConfigurationError, match="readerKind"):
            build_schema(invoice_schema, registries)

    def test_missing_field_name(self, invoice_schema, registries):
        del invoice_schema["recordTypes"][0]["fields"][0]["name"]
        with pytest.raises(ConfigurationError):
            build_schema(invoice_schema, registries)

    def test_empty_record_types(self, registries):
        with pytest.raises(ConfigurationError):
            build_schema({"splitTypeName": "H", "recordTypes": []}, registries)

    def test_not_a_mapping(self, registries):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            build_schema(["not", "a", "schema"], registries)

    def test_unknown_reader_kind(self, invoice_schema, registries):
        invoice_schema["recordTypes"][1]["readerKind"] = "Json"
        with pytest.raises(ConfigurationError, match='No RecordReader named "Json"'):
            build_schema(invoice_schema, registries)

    def test_unknown_field_type(self, invoice_schema, registries):
        invoice_schema["recordTypes"][0]["fields"][1]["typeName"] = "Currency"
        with pytest.raises(ConfigurationError, match='No FieldType named "Currency"'):
            build_schema(invoice_schema, registries)

    def test_bad_reader_config(self, invoice_schema, registries):
        invoice_schema["recordTypes"][2]["readerConfig"] = {"coordinates": [[5, 1]]}
        with pytest.raises(ConfigurationError, match="InvoiceLineDist"):
            build_schema(invoice_schema, registries)

    @pytest.mark.parametrize(
        "reader_config, message",
        [
            ({"delimiter": '"'}, "delimiter and quoteChar"),
            ({"delimiter": "~", "quoteChar": "~"}, "delimiter and quoteChar"),
            ({"delimiter": "\n"}, "line terminator"),
            ({"delimiter": "\r"}, "line terminator"),
            ({"delimiter": "~", "encoding": "no-such-codec"}, "unknown encoding"),
        ],
    )
    def test_ambiguous_delimited_config(self, invoice_schema, registries, reader_config, message):
        invoice_schema["recordTypes"][1]["readerConfig"] = reader_config
        with pytest.raises(ConfigurationError, match=message):
            build_schema(invoice_schema, registries)

    def test_unknown_fixed_width_encoding(self, invoice_schema, registries):
        invoice_schema["recordTypes"][2]["readerConfig"]["encoding"] = "no-such-codec"
        with pytest.raises(ConfigurationError, match="(?s)InvoiceLineDist.*unknown encoding"):
            build_schema(invoice_schema, registries)

    def test_date_without_format(self, invoice_schema, registries):
        del invoice_schema["recordTypes"][0]["fields"][3]["typeConfig"]
        with pytest.raises(ConfigurationError, match="InvoiceDate"):
            build_schema(invoice_schema, registries)

    def test_invalid_regex(self, invoice_schema, registries):
        invoice_schema["recordTypes"][0]["matchPattern"] = "^(010"
        with pytest.raises(ConfigurationError, match="Invalid matchPattern"):
            build_schema(invoice_schema, registries)

    def test_duplicate_record_type(self, invoice_schema, registries):
        invoice_schema["recordTypes"][2]["name"] = "InvoiceLine"
        with pytest.raises(ConfigurationError, match="Duplicate record type name"):
            build_schema(invoice_schema, registries)

    def test_undefined_split_type(self, invoice_schema, registries):
        invoice_schema["splitTypeName"] = "Invoice"
        with pytest.raises(ConfigurationError, match="splitTypeName 'Invoice'"):
            build_schema(invoice_schema, registries)

    def test_undefined_parent(self, invoice_schema, registries):
        invoice_schema["recordTypes"][1]["parentTypeName"] = "Header"
        with pytest.raises(ConfigurationError, match="undefined parent 'Header'"):
            build_schema(invoice_schema, registries)

    def test_parent_cycle(self, invoice_schema, registries):
        invoice_schema["recordTypes"][0]["parentTypeName"] = "InvoiceLineDist"
        with pytest.raises(ConfigurationError, match="Parent cycle"):
            build_schema(invoice_schema, registries)

    def test_bad_unmatched_lines_option(self, invoice_schema, registries):
        invoice_schema["options"] = {"unmatchedLines": "sometimes"}
        with pytest.raises(ConfigurationError):
            build_schema(invoice_schema, registries)


class TestUnreferencedRoots:
    """An extra root type is legal but logged."""

    def _with_extra_root(self, invoice_schema):
        invoice_schema["recordTypes"].append(
            {
                "name": "Trailer",
                "matchPattern": "^999",
                "readerKind": "Delimited",
                "readerConfig": {"delimiter": "~"},
            }
        )
        return invoice_schema

    def test_warning_logged(self, invoice_schema, registries, caplog):
        with caplog.at_level(logging.WARNING, logger="flatfile_tree.schema"):
            build_schema(self._with_extra_root(invoice_schema), registries)
        assert "Record type 'Trailer'" in caplog.text

    def test_warning_can_be_disabled(self, invoice_schema, registries, caplog):
        doc = self._with_extra_root(invoice_schema)
        doc["options"] = {"warnUnreferencedRoots": False}
        with caplog.at_level(logging.WARNING, logger="flatfile_tree.schema"):
            build_schema(doc, registries)
        assert "Trailer" not in caplog.text

    def test_ancestor_of_split_type_is_not_flagged(self, invoice_schema, registries, caplog):
        invoice_schema["recordTypes"].insert(
            0,
            {
                "name": "File",
                "matchPattern": "^000",
                "readerKind": "Delimited",
                "readerConfig": {"delimiter": "~"},
            },
        )
        invoice_schema["recordTypes"][1]["parentTypeName"] = "File"
        with caplog.at_level(logging.WARNING, logger="flatfile_tree.schema"):
            build_schema(invoice_schema, registries)
        assert "File" not in caplog.text


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------

class TestSchemaFiles:
    """Tests for load_schema_document / save_schema_document / load_schema."""

    def test_load_json(self, tmp_path, invoice_schema, registries):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(invoice_schema), encoding="utf-8")
        schema = load_schema(path, registries)
        assert schema.split_type_name == "InvoiceHeader"

    def test_yaml_round_trip(self, tmp_path, invoice_schema):
        document = SchemaDocument.model_validate(invoice_schema)
        path = tmp_path / "nested" / "schema.yaml"
        save_schema_document(document, path)

        text = path.read_text(encoding="utf-8")
        assert text.startswith("# flatfile-tree schema")
        assert "splitTypeName: InvoiceHeader" in text
        assert "readerKind: FixedWidth" in text

        reloaded = load_schema_document(path)
        assert reloaded == document

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_schema_document(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="empty"):
            load_schema_document(path)

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("splitTypeName: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_schema_document(path)
