"""
Tests migration legacy — détection, types, props, parentRowId, safe_migrate, validation
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import patch

import pytest

from theme_builder.blocks import default_registry
from theme_builder.migration import (
    camel_to_kebab, is_legacy_document, load_theme_document, migrate_document,
    normalize_block_type, safe_migrate, validate_migrated,
)
from theme_builder.puck import theme_to_puck


# ── Détection ────────────────────────────────────────────────────────────────

class TestDetection:
    def test_blocks_without_updated_at(self):
        assert is_legacy_document({"blocks": []})

    def test_camel_case_type(self):
        doc = {"updatedAt": "2024-01-01", "blocks": [{"id": "a", "type": "section", "children": [
            {"id": "b", "type": "infoCard"},
        ]}]}
        assert is_legacy_document(doc)

    def test_current_document(self):
        assert not is_legacy_document({"updatedAt": "2024-01-01", "blocks": [{"id": "a", "type": "form-grid"}]})

    def test_not_a_dict(self):
        assert not is_legacy_document(["blocks"])


# ── Types ────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("legacy,current", [
    ("formGrid", "form-grid"),
    ("saveButton", "save-button"),
    ("infoCard", "info-card"),
    ("rowBlock", "row"),
    ("linkButton", "link-button"),
    ("text", "text"),
])
def test_normalize_block_type(legacy, current):
    assert normalize_block_type(legacy) == current


def test_unknown_type_kept():
    assert normalize_block_type("fancyWidget") == "fancyWidget"


def test_camel_to_kebab():
    assert camel_to_kebab("singleFieldBlock") == "single-field-block"
    assert camel_to_kebab("link_button") == "link-button"


# ── Document ─────────────────────────────────────────────────────────────────

def test_form_grid_scenario():
    out = safe_migrate({"blocks": [{"type": "formGrid", "props": {"fieldList": ["a", "b"]}}]})
    block = out["blocks"][0]
    assert block["type"] == "form-grid"
    assert block["props"]["fields"] == ["a", "b"]
    assert "fieldList" not in block["props"]
    assert block["id"]


def test_rename_never_overwrites_current_value():
    out = migrate_document({"blocks": [
        {"id": "x", "type": "formGrid", "props": {"fieldList": ["old"], "fields": ["new"]}},
    ]})
    assert out["blocks"][0]["props"] == {"fields": ["new"]}


def test_snake_case_fields_coalesced():
    out = migrate_document({
        "connection_id": "snake", "connectionId": "camel",
        "created_at": "2023-01-01",
        "blocks": [{"id": "x", "type": "text", "column_index": 1}],
    })
    assert out["connectionId"] == "camel"
    assert out["createdAt"] == "2023-01-01"
    assert "connection_id" not in out and "created_at" not in out
    assert out["blocks"][0]["columnIndex"] == 1


def test_recurses_into_children():
    out = migrate_document({"blocks": [{"id": "s", "type": "sectionBlock", "children": [
        {"id": "t", "type": "textBlock", "props": {"text": "Bonjour"}},
    ]}]})
    child = out["blocks"][0]["children"][0]
    assert out["blocks"][0]["type"] == "section"
    assert child["type"] == "text"
    assert child["props"] == {"staticText": "Bonjour"}


def test_input_not_mutated():
    doc = {"blocks": [{"type": "formGrid", "props": {"fieldList": ["a"]}}]}
    migrate_document(doc)
    assert doc == {"blocks": [{"type": "formGrid", "props": {"fieldList": ["a"]}}]}


# ── parentRowId ──────────────────────────────────────────────────────────────

class TestParentRowId:
    def test_nested_into_row(self):
        out = migrate_document({"blocks": [
            {"id": "r", "type": "row", "props": {"columns": 2}},
            {"id": "a", "type": "text", "props": {"parentRowId": "r"}, "columnIndex": 1},
            {"id": "b", "type": "badge", "props": {"parentRowId": "r"}},
            {"id": "c", "type": "divider", "props": {}},
        ]})
        assert [b["id"] for b in out["blocks"]] == ["r", "c"]
        kids = out["blocks"][0]["children"]
        assert [(k["id"], k["columnIndex"]) for k in kids] == [("a", 1), ("b", 0)]
        assert all("parentRowId" not in k["props"] for k in kids)

    def test_orphan_stays_at_root(self):
        out = migrate_document({"blocks": [
            {"id": "a", "type": "text", "props": {"parentRowId": "absent"}},
        ]})
        assert out["blocks"][0]["id"] == "a"
        assert "parentRowId" not in out["blocks"][0]["props"]

    def test_triggers_migration_on_current_document(self):
        doc = {"updatedAt": "2024-01-01", "blocks": [
            {"id": "r", "type": "row", "props": {}},
            {"id": "a", "type": "text", "props": {"parentRowId": "r"}},
        ]}
        out = safe_migrate(doc)
        assert out["blocks"][0]["children"][0]["id"] == "a"


# ── safe_migrate / validation ────────────────────────────────────────────────

def test_safe_migrate_returns_none_on_error():
    assert safe_migrate("pas un document") is None
    assert safe_migrate({"blocks": ["pas un bloc"]}) is None


def test_safe_migrate_internal_exception():
    with patch("theme_builder.migration.migrate_document", side_effect=RuntimeError("boom")):
        assert safe_migrate({"blocks": []}) is None


def test_safe_migrate_current_document_is_copy():
    doc = {"updatedAt": "2024-01-01", "blocks": [{"id": "a", "type": "text", "props": {}}]}
    out = safe_migrate(doc)
    assert out == doc and out is not doc


def test_validate_migrated_messages():
    errors = validate_migrated({"blocks": [
        {"id": "", "type": "text"},
        {"id": "b", "children": [{"id": "c", "type": ""}]},
    ]})
    assert "blocks[0] : id manquant" in errors
    assert "blocks[1] : type manquant" in errors
    assert "blocks[1].children[0] : type manquant" in errors


def test_validate_blocks_not_array():
    assert validate_migrated({"blocks": {}}) == ["Le champ « blocks » doit être un tableau"]


# ── load_theme_document ──────────────────────────────────────────────────────

class TestLoad:
    def test_legacy_document(self):
        schema, errors = load_theme_document({"name": "Ancien", "blocks": [
            {"id": "x", "type": "formGrid", "props": {"fieldList": ["a"]}},
        ]})
        assert errors == []
        assert schema.name == "Ancien"
        assert schema.blocks[0].type == "form-grid"

    def test_puck_document(self):
        registry = default_registry()
        schema, _ = load_theme_document({"blocks": [{"id": "t", "type": "text", "props": {}}],
                                         "updatedAt": "2024-01-01", "name": "N"})
        puck = theme_to_puck(schema, registry).to_dict()
        loaded, errors = load_theme_document(puck, registry)
        assert errors == []
        assert loaded.blocks == schema.blocks

    def test_invalid_document_reports_errors(self):
        schema, errors = load_theme_document({"updatedAt": "x", "blocks": [{"type": "text"}]})
        assert schema is None
        assert errors == ["blocks[0] : id manquant"]

    def test_unloadable_document(self):
        schema, errors = load_theme_document(42)
        assert schema is None
        assert errors
