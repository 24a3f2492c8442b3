"""
Tests prévisualisation — données d'exemple, alertes de champs, filtrage par visibilité
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from theme_builder.core.schemas import ThemeBlock, VisibilityCondition
from theme_builder.preview import (
    FieldMetadata, RenderContext, bound_fields, field_warnings, generate_sample_record, visible_blocks,
)


def _field(name, kind="text", **kw):
    return FieldMetadata(column_name=name, type=kind, **kw)


class TestSampleRecord:
    def test_types(self):
        rec = generate_sample_record([
            _field("age", "number"),
            _field("actif", "checkbox"),
            _field("email", "email"),
            _field("statut", "singleSelect", options=[{"title": "Nouveau"}, {"title": "Ancien"}]),
            _field("nom", "text", label="Nom complet"),
        ])
        assert rec["id"] == 1
        assert rec["age"] == 42
        assert rec["actif"] is True
        assert "@" in rec["email"]
        assert rec["statut"] == "Nouveau"
        assert rec["nom"] == "Exemple de Nom complet"

    def test_image_and_url_detection(self):
        rec = generate_sample_record([
            _field("avatar_photo"),
            _field("website"),
            _field("photo_url", "url"),
        ])
        assert rec["avatar_photo"].startswith("https://images.")
        assert rec["website"] == "https://exemple.fr"
        assert rec["photo_url"].startswith("https://images.")

    def test_accepts_camel_case_metadata(self):
        f = FieldMetadata.model_validate({"columnName": "prix", "type": "currency"})
        assert generate_sample_record([f])["prix"] == 199.99


def test_bound_fields():
    grid = ThemeBlock(id="g", type="form-grid", props={"fields": ["a", "b"], "title": "x"})
    avatar = ThemeBlock(id="a", type="avatar", props={"imageField": "photo", "nameField": ""})
    assert bound_fields(grid) == ["a", "b"]
    assert bound_fields(avatar) == ["photo"]


def test_field_warnings_nested():
    blocks = [
        ThemeBlock(id="ok", type="text", props={"textField": "nom"}),
        ThemeBlock(id="s", type="section", children=[
            ThemeBlock(id="ko", type="single-field", props={"fieldName": "supprimé"}),
        ]),
    ]
    assert field_warnings(blocks, ["nom"]) == {"ko"}


class TestVisibleBlocks:
    def _blocks(self):
        cond = [VisibilityCondition(field="statut", operator="equals", value="actif")]
        return [
            ThemeBlock(id="a", type="text", visibility=cond),
            ThemeBlock(id="s", type="section", children=[
                ThemeBlock(id="b", type="text", visibility=cond),
                ThemeBlock(id="c", type="text"),
            ]),
        ]

    def test_filters_recursively(self):
        ctx = RenderContext(record={"statut": "archivé"})
        out = visible_blocks(self._blocks(), ctx)
        assert [b.id for b in out] == ["s"]
        assert [c.id for c in out[0].children] == ["c"]

    def test_form_data_overrides_record(self):
        ctx = RenderContext(record={"statut": "archivé"}, form_data={"statut": "Actif"})
        out = visible_blocks(self._blocks(), ctx)
        assert [b.id for b in out] == ["a", "s"]
        assert len(out[1].children) == 2


def test_render_context_change_callback():
    seen = []
    ctx = RenderContext(on_record_change=seen.append)
    ctx.change({"a": 1})
    assert seen == [{"a": 1}]
    RenderContext().change({"a": 1})
