"""
Tests utilitaires d'arbre — recherche, duplication, mutations, colonnes
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from theme_builder.blocks import default_registry
from theme_builder.core.schemas import ThemeBlock, VisibilityCondition
from theme_builder.tree import (
    append_child, array_move, clamp_column_count, collect_ids, default_column_widths,
    duplicate_block, find_block, find_parent, generate_block_id, insert_after, is_descendant,
    move_block, move_block_down, move_block_up, normalize_columns, remove_block,
    tree_violations, update_block, validate_column_widths,
)


def _b(bid: str, btype: str = "text", children=None, **kw) -> ThemeBlock:
    return ThemeBlock(id=bid, type=btype, props=kw.pop("props", {}), children=children, **kw)


@pytest.fixture
def tree():
    """row(r1) → [a (col 0), b (col 1)] ; c ; section(s1) → [d]"""
    return [
        _b("r1", "row", props={"columns": 2, "columnWidths": ["50%", "50%"]}, children=[
            _b("a", column_index=0),
            _b("b", column_index=1),
        ]),
        _b("c"),
        _b("s1", "section", children=[_b("d")]),
    ]


# ── Recherche ────────────────────────────────────────────────────────────────

def test_find_block_nested(tree):
    assert find_block(tree, "b").id == "b"
    assert find_block(tree, "d").id == "d"


def test_find_block_absent_returns_none(tree):
    assert find_block(tree, "zzz") is None
    assert find_block(tree, None) is None


def test_find_parent(tree):
    assert find_parent(tree, "a").id == "r1"
    assert find_parent(tree, "c") is None
    assert find_parent(tree, "zzz") is None


def test_is_descendant(tree):
    assert is_descendant(tree, "r1", "a")
    assert not is_descendant(tree, "a", "r1")
    assert not is_descendant(tree, "c", "c")


def test_generate_block_id_format():
    bid = generate_block_id()
    assert bid.startswith("block-")
    assert generate_block_id() != bid


# ── Duplication ──────────────────────────────────────────────────────────────

class TestDuplicate:
    def test_ids_unique_and_disjoint(self, tree):
        before = collect_ids(tree)
        clone = duplicate_block(tree[0])
        clone_ids = collect_ids([clone])
        assert len(clone_ids) == 3
        assert not clone_ids & before

    def test_copies_values_not_references(self):
        src = _b("x", column_index=1, visibility=[VisibilityCondition(field="f", value="v")],
                 props={"tags": ["a"]})
        clone = duplicate_block(src)
        assert clone.column_index == 1
        assert clone.visibility == src.visibility
        clone.visibility[0].value = "autre"
        clone.props["tags"].append("b")
        assert src.visibility[0].value == "v"
        assert src.props["tags"] == ["a"]


# ── Mutations ────────────────────────────────────────────────────────────────

class TestMutations:
    def test_remove_drops_subtree(self, tree):
        out = remove_block(tree, "r1")
        assert [b.id for b in out] == ["c", "s1"]
        assert find_block(out, "a") is None
        assert len(tree) == 3

    def test_remove_nested_keeps_order(self, tree):
        out = remove_block(tree, "a")
        assert [b.id for b in out[0].children] == ["b"]

    def test_update_merges_and_shares_untouched(self, tree):
        out = update_block(tree, "d", {"props": {"staticText": "Bonjour"}, "columnIndex": 0})
        d = find_block(out, "d")
        assert d.props == {"staticText": "Bonjour"}
        assert d.column_index == 0
        assert out[0] is tree[0]
        assert out[1] is tree[1]
        assert find_block(tree, "d").props == {}

    def test_update_missing_id_is_noop(self, tree):
        assert update_block(tree, "zzz", {"props": {"x": 1}}) is tree

    def test_update_ignores_id_change(self, tree):
        out = update_block(tree, "c", {"id": "nouveau"})
        assert find_block(out, "c") is not None

    def test_move_up_down(self, tree):
        assert [b.id for b in move_block_up(tree, "c")] == ["c", "r1", "s1"]
        assert [b.id for b in move_block_down(tree, "c")] == ["r1", "s1", "c"]

    def test_move_at_boundary_noop(self, tree):
        assert [b.id for b in move_block_up(tree, "r1")] == ["r1", "c", "s1"]
        out = move_block_down(tree, "b")
        assert [b.id for b in out[0].children] == ["a", "b"]

    def test_insert_after(self, tree):
        out = insert_after(tree, "a", _b("n"))
        assert [b.id for b in out[0].children] == ["a", "n", "b"]

    def test_insert_after_missing_appends(self, tree):
        out = insert_after(tree, "zzz", _b("n"))
        assert out[-1].id == "n"

    def test_append_child_with_column(self, tree):
        out = append_child(tree, "r1", _b("n"), 1)
        assert out[0].children[-1].id == "n"
        assert out[0].children[-1].column_index == 1

    def test_array_move(self):
        assert array_move([1, 2, 3, 4], 0, 2) == [2, 3, 1, 4]

    def test_move_block_same_parent(self, tree):
        out = move_block(tree, "r1", "s1")
        assert [b.id for b in out] == ["c", "s1", "r1"]

    def test_move_block_across_parents_takes_target_column(self, tree):
        out = move_block(tree, "c", "b")
        assert [b.id for b in out[0].children] == ["a", "b", "c"]
        assert find_block(out, "c").column_index == 1

    def test_move_into_own_subtree_ignored(self, tree):
        assert move_block(tree, "r1", "a") is tree

    def test_move_block_same_row_takes_target_column(self, tree):
        out = move_block(tree, "a", "b")
        assert [(c.id, c.column_index) for c in out[0].children] == [("b", 1), ("a", 1)]
        assert find_block(tree, "a").column_index == 0


# ── Colonnes ─────────────────────────────────────────────────────────────────

class TestColumns:
    @pytest.mark.parametrize("value,expected", [
        (0, 1), (7, 4), (2.6, 3), (2.4, 2), (-3, 1), ("3", 3), ("abc", 1), (None, 1),
    ])
    def test_clamp_column_count(self, value, expected):
        assert clamp_column_count(value) == expected

    def test_default_widths_sum_to_100(self):
        assert default_column_widths(2) == ["50%", "50%"]
        widths = default_column_widths(3)
        assert widths == ["33.33%", "33.33%", "33.34%"]
        assert abs(sum(float(w[:-1]) for w in widths) - 100) < 1e-9

    def test_validate_percentages(self):
        assert validate_column_widths(["30%", "70%"], 2)
        assert validate_column_widths(["33.33%", "33.33%", "33.34%"], 3)
        assert not validate_column_widths(["30%", "60%"], 2)

    def test_validate_fr_units(self):
        assert validate_column_widths(["1fr", "2fr", "1fr"], 3)

    def test_mixed_units_rejected(self):
        assert not validate_column_widths(["50%", "1fr"], 2)

    def test_wrong_length_rejected(self):
        assert not validate_column_widths(["100%"], 2)

    def test_normalize_clamps_child_column(self):
        blocks = [_b("r", "row", props={"columns": 2}, children=[_b("x", column_index=5)])]
        out = normalize_columns(blocks)
        assert out[0].children[0].column_index == 1
        assert blocks[0].children[0].column_index == 5

    def test_normalize_repairs_row_props(self):
        blocks = [_b("r", "row", props={"columns": 6, "columnWidths": ["10%", "10%"]})]
        out = normalize_columns(blocks)
        assert out[0].props["columns"] == 4
        assert out[0].props["columnWidths"] == ["25%", "25%", "25%", "25%"]

    def test_normalize_unchanged_returns_same_list(self, tree):
        assert normalize_columns(tree) is tree


# ── Validation ───────────────────────────────────────────────────────────────

def test_tree_violations_reports_problems():
    registry = default_registry()
    blocks = [
        _b("x", "text", children=[_b("y")]),
        _b("x", "divider"),
        _b("r", "row", props={"columns": 2}, children=[_b("z", column_index=3)]),
    ]
    errors = tree_violations(blocks, registry)
    assert any("dupliqué" in e for e in errors)
    assert any("n'accepte pas d'enfants" in e for e in errors)
    assert any("columnIndex 3" in e for e in errors)


def test_tree_violations_clean_tree():
    registry = default_registry()
    blocks = [registry.create_block("text"), registry.create_block("divider")]
    assert tree_violations(blocks, registry) == []
