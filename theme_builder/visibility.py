"""
Visibilité conditionnelle — évaluation de {field, operator, value} sur un record.

Opérateurs : equals, not_equals, contains, is_empty, is_not_empty.
Opérateur inconnu ou condition malformée → visible (on préfère afficher
que masquer en silence un contenu mal configuré).
"""
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from .core.schemas import VisibilityCondition

log = logging.getLogger(__name__)

ConditionLike = Union[VisibilityCondition, Mapping[str, Any]]

_MISSING = object()


def _as_condition(condition: ConditionLike) -> Optional[VisibilityCondition]:
    if isinstance(condition, VisibilityCondition):
        return condition
    try:
        return VisibilityCondition.model_validate(dict(condition))
    except (TypeError, ValidationError) as e:
        log.warning("Condition de visibilité invalide %r — bloc affiché : %s", condition, e)
        return None


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def is_empty(value: Any) -> bool:
    """None, chaîne vide/espaces, liste vide ou dict sans clé."""
    if value is None or value is _MISSING:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _equals(field_value: Any, expected: Any) -> bool:
    if field_value is None or field_value is _MISSING:
        return expected is None or expected == ""

    if isinstance(field_value, bool):
        if isinstance(expected, bool):
            return field_value is expected
        if isinstance(expected, str) and expected.strip().lower() in ("true", "false"):
            return field_value == (expected.strip().lower() == "true")
        return _stringify(field_value) == _stringify(expected).lower()

    if isinstance(field_value, (int, float)):
        n = _to_number(expected)
        if n is not None:
            return float(field_value) == n

    if expected is None:
        return False
    return _stringify(field_value).lower() == _stringify(expected).lower()


def evaluate(condition: ConditionLike, record: Optional[Mapping[str, Any]]) -> bool:
    """Évalue une condition ; True = bloc visible."""
    cond = _as_condition(condition)
    if cond is None:
        return True
    field_value = (record or {}).get(cond.field, _MISSING)
    op = cond.operator

    if op == "equals":
        return _equals(field_value, cond.value)
    if op == "not_equals":
        return not _equals(field_value, cond.value)
    if op == "contains":
        if field_value is None or field_value is _MISSING or cond.value is None:
            return False
        return _stringify(cond.value).lower() in _stringify(field_value).lower()
    if op == "is_empty":
        return is_empty(field_value)
    if op == "is_not_empty":
        return not is_empty(field_value)

    log.warning("Opérateur de visibilité inconnu %r (champ %s) — bloc affiché", op, cond.field)
    return True


def evaluate_all(conditions: Optional[Iterable[ConditionLike]], record: Optional[Mapping[str, Any]]) -> bool:
    """ET logique ; liste vide → visible."""
    return all(evaluate(c, record) for c in conditions or [])


def evaluate_any(conditions: Optional[Iterable[ConditionLike]], record: Optional[Mapping[str, Any]]) -> bool:
    """OU logique ; liste vide → visible."""
    conditions = list(conditions or [])
    if not conditions:
        return True
    return any(evaluate(c, record) for c in conditions)


def merged_record(record: Optional[Dict[str, Any]], form_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Record affiché : valeurs enregistrées écrasées par la saisie en cours."""
    return {**(record or {}), **(form_data or {})}
