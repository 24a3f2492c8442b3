"""
Utilitaires d'arbre — opérations pures sur List[ThemeBlock].

Aucune fonction ne modifie les blocs reçus : chaque mutation retourne une
nouvelle liste. Les branches non touchées sont réutilisées telles quelles
(model_copy superficiel sur le chemin modifié uniquement).

Les recherches (find_block, find_parent) retournent None si l'id est absent ;
les mutations sur un id absent sont des no-op (ou un ajout en fin pour insert_after).
"""
import logging
import math
import re
import time
import uuid
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from pydantic import TypeAdapter

from .core.schemas import ThemeBlock, VisibilityCondition

log = logging.getLogger(__name__)

MIN_COLUMNS = 1
MAX_COLUMNS = 4

_WIDTH_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(%|fr)")
_PATCH_ALIASES = {"columnIndex": "column_index"}

_children_adapter   = TypeAdapter(List[ThemeBlock])
_visibility_adapter = TypeAdapter(List[VisibilityCondition])


def generate_block_id() -> str:
    """Id opaque : block-<ms>-<9 hex>."""
    return f"block-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


# ── Parcours ─────────────────────────────────────────────────────────────────

def iter_blocks(blocks: List[ThemeBlock]) -> Iterator[ThemeBlock]:
    """Parcours en profondeur (préfixe)."""
    for b in blocks:
        yield b
        if b.children:
            yield from iter_blocks(b.children)


def collect_ids(blocks: List[ThemeBlock]) -> Set[str]:
    return {b.id for b in iter_blocks(blocks)}


def find_block(blocks: List[ThemeBlock], block_id: Optional[str]) -> Optional[ThemeBlock]:
    if not block_id:
        return None
    for b in iter_blocks(blocks):
        if b.id == block_id:
            return b
    return None


def find_parent(blocks: List[ThemeBlock], child_id: Optional[str]) -> Optional[ThemeBlock]:
    """Parent direct de child_id ; None si racine ou absent."""
    if not child_id:
        return None
    for b in iter_blocks(blocks):
        if b.children and any(c.id == child_id for c in b.children):
            return b
    return None


def is_descendant(blocks: List[ThemeBlock], ancestor_id: str, block_id: str) -> bool:
    """True si block_id se trouve dans le sous-arbre de ancestor_id (strictement)."""
    ancestor = find_block(blocks, ancestor_id)
    if ancestor is None or not ancestor.children:
        return False
    return find_block(ancestor.children, block_id) is not None


# ── Mutations ────────────────────────────────────────────────────────────────

def duplicate_block(block: ThemeBlock) -> ThemeBlock:
    """Copie profonde avec ids neufs sur tout le sous-arbre."""
    clone = block.model_copy(deep=True)
    return _reassign_ids(clone)


def _reassign_ids(block: ThemeBlock) -> ThemeBlock:
    update: Dict[str, Any] = {"id": generate_block_id()}
    if block.children is not None:
        update["children"] = [_reassign_ids(c) for c in block.children]
    return block.model_copy(update=update)


def _replace(
    blocks: List[ThemeBlock],
    block_id: str,
    fn: Callable[[ThemeBlock], ThemeBlock],
) -> Tuple[List[ThemeBlock], bool]:
    """Applique fn au bloc block_id ; retourne (nouvelle liste, trouvé)."""
    for i, b in enumerate(blocks):
        if b.id == block_id:
            out = list(blocks)
            out[i] = fn(b)
            return out, True
        if b.children:
            kids, found = _replace(b.children, block_id, fn)
            if found:
                out = list(blocks)
                out[i] = b.model_copy(update={"children": kids})
                return out, True
    return blocks, False


def _edit_siblings(
    blocks: List[ThemeBlock],
    block_id: str,
    edit: Callable[[List[ThemeBlock], int], List[ThemeBlock]],
) -> Tuple[List[ThemeBlock], bool]:
    """Applique edit(liste des frères, index) à la liste qui contient block_id."""
    for i, b in enumerate(blocks):
        if b.id == block_id:
            return edit(list(blocks), i), True
    for i, b in enumerate(blocks):
        if b.children:
            kids, found = _edit_siblings(b.children, block_id, edit)
            if found:
                out = list(blocks)
                out[i] = b.model_copy(update={"children": kids})
                return out, True
    return blocks, False


def _remove(blocks: List[ThemeBlock], block_id: str) -> Tuple[List[ThemeBlock], bool]:
    changed = False
    out = []
    for b in blocks:
        if b.id == block_id:
            changed = True
            continue
        if b.children:
            kids, kids_changed = _remove(b.children, block_id)
            if kids_changed:
                b = b.model_copy(update={"children": kids})
                changed = True
        out.append(b)
    return out, changed


def remove_block(blocks: List[ThemeBlock], block_id: str) -> List[ThemeBlock]:
    """Retire le bloc et tout son sous-arbre."""
    out, _ = _remove(blocks, block_id)
    return out


def _coerce_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, value in patch.items():
        key = _PATCH_ALIASES.get(key, key)
        if key == "id":
            log.warning("update_block : changement d'id ignoré (%s)", value)
            continue
        if key == "children" and value is not None:
            value = _children_adapter.validate_python(value)
        elif key == "visibility" and value is not None:
            value = _visibility_adapter.validate_python(value)
        elif key == "props":
            value = dict(value or {})
        out[key] = value
    return out


def update_block(blocks: List[ThemeBlock], block_id: str, patch: Dict[str, Any]) -> List[ThemeBlock]:
    """
    Fusionne patch dans les champs du bloc (props remplacées en bloc).
    Accepte les clés snake_case ou camelCase (columnIndex). Id absent → no-op.
    """
    update = _coerce_patch(patch)
    out, found = _replace(blocks, block_id, lambda b: b.model_copy(update=update))
    return out if found else blocks


def _swap(offset: int) -> Callable[[List[ThemeBlock], int], List[ThemeBlock]]:
    def edit(siblings: List[ThemeBlock], i: int) -> List[ThemeBlock]:
        j = i + offset
        if 0 <= j < len(siblings):
            siblings[i], siblings[j] = siblings[j], siblings[i]
        return siblings
    return edit


def move_block_up(blocks: List[ThemeBlock], block_id: str) -> List[ThemeBlock]:
    out, _ = _edit_siblings(blocks, block_id, _swap(-1))
    return out


def move_block_down(blocks: List[ThemeBlock], block_id: str) -> List[ThemeBlock]:
    out, _ = _edit_siblings(blocks, block_id, _swap(+1))
    return out


def insert_after(blocks: List[ThemeBlock], after_id: Optional[str], new_block: ThemeBlock) -> List[ThemeBlock]:
    """Insère new_block juste après after_id ; after_id introuvable → ajout en fin de racine."""
    def edit(siblings: List[ThemeBlock], i: int) -> List[ThemeBlock]:
        siblings.insert(i + 1, new_block)
        return siblings

    if after_id:
        out, found = _edit_siblings(blocks, after_id, edit)
        if found:
            return out
    return list(blocks) + [new_block]


def append_child(
    blocks: List[ThemeBlock],
    container_id: str,
    block: ThemeBlock,
    column_index: Optional[int] = None,
) -> List[ThemeBlock]:
    """Ajoute block en dernier enfant du conteneur (conteneur absent → fin de racine)."""
    child = block.model_copy(update={"column_index": column_index})

    def add(container: ThemeBlock) -> ThemeBlock:
        return container.model_copy(update={"children": list(container.children or []) + [child]})

    out, found = _replace(blocks, container_id, add)
    return out if found else list(blocks) + [child]


def array_move(items: List[Any], old_index: int, new_index: int) -> List[Any]:
    """Copie de items où l'élément old_index est déplacé en new_index."""
    out = list(items)
    out.insert(new_index, out.pop(old_index))
    return out


def move_block(blocks: List[ThemeBlock], block_id: str, target_id: str) -> List[ThemeBlock]:
    """
    Déplace block_id vers la position de target_id.

    Même parent → réordonnancement (arrayMove).
    Parents différents → retiré puis inséré après target_id.
    Dans les deux cas le bloc reprend la colonne de la cible.
    Un déplacement dans son propre sous-arbre est ignoré.
    """
    if block_id == target_id:
        return blocks
    moving = find_block(blocks, block_id)
    target = find_block(blocks, target_id)
    if moving is None or target is None or is_descendant(blocks, block_id, target_id):
        return blocks

    moved = moving.model_copy(update={"column_index": target.column_index})
    parent_a = find_parent(blocks, block_id)
    parent_t = find_parent(blocks, target_id)
    if (parent_a and parent_a.id) == (parent_t and parent_t.id):
        siblings = parent_a.children if parent_a else blocks
        old_index = next(i for i, b in enumerate(siblings) if b.id == block_id)
        new_index = next(i for i, b in enumerate(siblings) if b.id == target_id)

        def reorder(sib: List[ThemeBlock], i: int) -> List[ThemeBlock]:
            sib[i] = moved
            return array_move(sib, old_index, new_index)

        out, _ = _edit_siblings(blocks, block_id, reorder)
        return out

    return insert_after(remove_block(blocks, block_id), target_id, moved)


# ── Colonnes ─────────────────────────────────────────────────────────────────

def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(n) else n


def clamp_column_count(n: Any) -> int:
    """Borne à [1, 4] avec arrondi au plus proche (2.5 → 3)."""
    value = _as_number(n)
    if value is None:
        return MIN_COLUMNS
    value = max(float(MIN_COLUMNS), min(float(MAX_COLUMNS), value))
    return int(math.floor(value + 0.5))


def _fmt_pct(value: float) -> str:
    return f"{value:g}%"


def default_column_widths(n: int) -> List[str]:
    """n largeurs égales en % dont la somme vaut exactement 100 (le reste va à la dernière)."""
    if n < 1:
        return []
    base = math.floor(10000 / n) / 100
    last = round(100 - base * (n - 1), 2)
    return [_fmt_pct(base)] * (n - 1) + [_fmt_pct(last)]


def validate_column_widths(widths: Any, n: int) -> bool:
    """
    Accepte n pourcentages dont la somme vaut 100 (±0.01)
    ou n unités fr positives. Les mélanges %/fr sont refusés.
    """
    if not isinstance(widths, (list, tuple)) or n < 1 or len(widths) != n:
        return False
    units = set()
    total = 0.0
    for w in widths:
        m = _WIDTH_RE.fullmatch(w.strip()) if isinstance(w, str) else None
        if not m:
            return False
        value = float(m.group(1))
        if value <= 0:
            return False
        units.add(m.group(2))
        total += value
    if len(units) != 1:
        return False
    if units == {"%"}:
        return abs(total - 100) <= 0.01
    return True


def container_slot_count(block: ThemeBlock) -> Optional[int]:
    """Nombre de colonnes (row) ou d'onglets (tabs) ; None pour les autres types."""
    if block.type == "row":
        return clamp_column_count(block.props.get("columns", 2))
    if block.type == "tabs":
        tabs = block.props.get("tabs")
        return max(1, len(tabs)) if isinstance(tabs, list) else 1
    return None


def _normalize_row_props(block: ThemeBlock) -> ThemeBlock:
    raw = block.props.get("columns", 2)
    count = clamp_column_count(raw)
    props = block.props
    if _as_number(raw) != count:
        log.warning("Row %s : columns=%r ramené à %d", block.id, raw, count)
        props = {**props, "columns": count}
    widths = props.get("columnWidths")
    if widths is not None and not validate_column_widths(widths, count):
        log.warning("Row %s : columnWidths %r invalides, remplacées", block.id, widths)
        props = {**props, "columnWidths": default_column_widths(count)}
    return block if props is block.props else block.model_copy(update={"props": props})


def _clamp_child(child: ThemeBlock, slots: int) -> ThemeBlock:
    ci = child.column_index
    if ci is None or 0 <= ci < slots:
        return child
    clamped = min(max(ci, 0), slots - 1)
    log.warning("Bloc %s : columnIndex %d ramené à %d", child.id, ci, clamped)
    return child.model_copy(update={"column_index": clamped})


def normalize_columns(blocks: List[ThemeBlock]) -> List[ThemeBlock]:
    """
    Passe de réparation : columns de row bornées à [1, 4], columnWidths
    invalides remplacées, columnIndex des enfants de row/tabs bornés.
    Retourne la liste d'origine si rien n'a changé.
    """
    out = []
    changed = False
    for b in blocks:
        nb = _normalize_row_props(b) if b.type == "row" else b
        if nb.children:
            kids = normalize_columns(nb.children)
            slots = container_slot_count(nb)
            if slots is not None:
                kids = [_clamp_child(c, slots) for c in kids]
            if any(k is not c for k, c in zip(kids, nb.children)):
                nb = nb.model_copy(update={"children": kids})
        changed = changed or nb is not b
        out.append(nb)
    return out if changed else blocks


# ── Validation ───────────────────────────────────────────────────────────────

def tree_violations(blocks: List[ThemeBlock], registry) -> List[str]:
    """Liste des invariants violés (ids dupliqués, enfants interdits, props requises…)."""
    errors: List[str] = []
    seen: Set[str] = set()

    def walk(items: List[ThemeBlock], parent: Optional[ThemeBlock]):
        slots = container_slot_count(parent) if parent is not None else None
        for b in items:
            if not b.id:
                errors.append(f"Bloc de type {b.type!r} sans id")
            elif b.id in seen:
                errors.append(f"Id dupliqué : {b.id}")
            seen.add(b.id)
            if not b.type:
                errors.append(f"Bloc {b.id} sans type")
                continue
            if registry.has(b.type):
                errors.extend(registry.validate_props(b.type, b.props))
            if b.children and not registry.allows_children(b.type):
                errors.append(f"Bloc {b.id} ({b.type}) : ce type n'accepte pas d'enfants")
            if slots is not None and b.column_index is not None and not 0 <= b.column_index < slots:
                errors.append(f"Bloc {b.id} : columnIndex {b.column_index} hors de [0, {slots})")
            if b.children:
                walk(b.children, b)

    walk(blocks, None)
    return errors
