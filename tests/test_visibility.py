"""
Tests visibilité conditionnelle — opérateurs, types, combinateurs
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from theme_builder.core.schemas import VisibilityCondition
from theme_builder.visibility import evaluate, evaluate_all, evaluate_any, is_empty, merged_record


def _c(field, operator, value=None):
    return {"field": field, "operator": operator, "value": value}


def test_unknown_operator_is_visible():
    assert evaluate(_c("x", "unknown_op", 1), {"x": 1}) is True


def test_malformed_condition_is_visible():
    assert evaluate({"operator": "equals", "value": 1}, {"x": 1}) is True
    assert evaluate_all([{"field": "x", "operator": "equals", "value": 2}, {"value": 1}], {"x": 2}) is True


# ── equals / not_equals ──────────────────────────────────────────────────────

class TestEquals:
    @pytest.mark.parametrize("value", [True, "true", "TRUE", " True "])
    def test_boolean_field(self, value):
        assert evaluate(_c("active", "equals", value), {"active": True})

    def test_boolean_mismatch(self):
        assert not evaluate(_c("active", "equals", "false"), {"active": True})

    @pytest.mark.parametrize("value", [42, "42", "42.0", 42.0])
    def test_numeric_field(self, value):
        assert evaluate(_c("age", "equals", value), {"age": 42})

    def test_string_case_insensitive(self):
        assert evaluate(_c("status", "equals", "ACTIF"), {"status": "actif"})

    def test_missing_field_equals_empty(self):
        assert evaluate(_c("x", "equals", None), {})
        assert evaluate(_c("x", "equals", ""), {"x": None})
        assert not evaluate(_c("x", "equals", "a"), {})

    def test_not_equals(self):
        assert evaluate(_c("status", "not_equals", "archivé"), {"status": "actif"})
        assert not evaluate(_c("status", "not_equals", "Actif"), {"status": "actif"})


# ── contains / is_empty ──────────────────────────────────────────────────────

class TestContains:
    def test_substring_case_insensitive(self):
        assert evaluate(_c("email", "contains", "EXEMPLE"), {"email": "jean@exemple.fr"})

    def test_none_either_side_false(self):
        assert not evaluate(_c("email", "contains", "a"), {"email": None})
        assert not evaluate(_c("email", "contains", "a"), {})
        assert not evaluate(_c("email", "contains", None), {"email": "abc"})

    def test_array_field(self):
        assert evaluate(_c("tags", "contains", "vip"), {"tags": ["client", "VIP"]})


@pytest.mark.parametrize("value,expected", [
    (None, True), ("", True), ("   ", True), ([], True), ({}, True),
    ("a", False), (0, False), (False, False), ([0], False),
])
def test_is_empty(value, expected):
    assert is_empty(value) is expected
    assert evaluate(_c("f", "is_empty"), {"f": value}) is expected
    assert evaluate(_c("f", "is_not_empty"), {"f": value}) is (not expected)


def test_is_empty_missing_field():
    assert evaluate(_c("f", "is_empty"), {})


# ── Combinateurs ─────────────────────────────────────────────────────────────

def test_empty_list_visible():
    assert evaluate_all([], {}) and evaluate_any([], {})
    assert evaluate_all(None, {}) and evaluate_any(None, {})


def test_all_and_any():
    conds = [_c("a", "equals", 1), VisibilityCondition(field="b", operator="equals", value=2)]
    record = {"a": 1, "b": 3}
    assert not evaluate_all(conds, record)
    assert evaluate_any(conds, record)


def test_merged_record_form_data_wins():
    assert merged_record({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}
