"""
Migration des documents legacy → schéma courant.

Détection (l'une suffit) :
  - `blocks` présent sans `updatedAt`
  - un type de bloc en camelCase (formGrid) au lieu du kebab-case (form-grid)

Migration :
  1. types : table legacy → courant, sinon camelCase → kebab-case,
     validé contre les types connus (inconnu → type d'origine conservé)
  2. renommage de props par type, seulement si le nouveau nom est absent
  3. champs du document snake_case → camelCase (camelCase prioritaire)
  4. blocs rattachés à une row par props.parentRowId → enfants de la row
  5. récursion dans children

safe_migrate() ne lève jamais : None = « ne pas charger ce document »
(et non « document vide »).
"""
import copy
import logging
import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import ValidationError

from .blocks import DEFAULT_BLOCKS, BlockRegistry
from .core.schemas import ThemeSchema
from .tree import generate_block_id

log = logging.getLogger(__name__)

LEGACY_TYPE_MAP: Dict[str, str] = {
    "headerBlock":  "header",
    "formGrid":     "form-grid",
    "fieldGrid":    "form-grid",
    "singleField":  "single-field",
    "avatarBlock":  "avatar",
    "sectionBlock": "section",
    "dividerBlock": "divider",
    "saveButton":   "save-button",
    "infoCard":     "info-card",
    "textBlock":    "text",
    "imageBlock":   "image",
    "badgeBlock":   "badge",
    "stat":         "stats",
    "statsBlock":   "stats",
    "linkButton":   "link-button",
    "listBlock":    "list",
    "tabsBlock":    "tabs",
    "rowBlock":     "row",
    "columns":      "row",
}

PROP_RENAMES: Dict[str, Dict[str, str]] = {
    "form-grid":    {"fieldList": "fields", "field_list": "fields", "numColumns": "columns"},
    "single-field": {"field": "fieldName", "field_name": "fieldName", "label": "customLabel"},
    "avatar":       {"image": "imageField", "name": "nameField", "status": "statusField"},
    "row":          {"columnCount": "columns", "widths": "columnWidths"},
    "tabs":         {"tabList": "tabs"},
    "link-button":  {"url": "staticUrl", "label": "staticLabel"},
    "text":         {"text": "staticText"},
}

DOC_FIELD_ALIASES: Dict[str, str] = {
    "connection_id": "connectionId",
    "created_at":    "createdAt",
    "updated_at":    "updatedAt",
    "theme_name":    "name",
}

BLOCK_FIELD_ALIASES: Dict[str, str] = {
    "column_index": "columnIndex",
}

KNOWN_TYPES = frozenset(d.type for d in DEFAULT_BLOCKS)

_CAMEL_RE = re.compile(r"[a-z]+[A-Z]")
_CAMEL_SPLIT_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


# ── Détection ────────────────────────────────────────────────────────────────

def _iter_raw_blocks(blocks: Any) -> Iterator[dict]:
    if not isinstance(blocks, list):
        return
    for b in blocks:
        if isinstance(b, dict):
            yield b
            yield from _iter_raw_blocks(b.get("children"))


def is_legacy_document(doc: Any) -> bool:
    if not isinstance(doc, dict):
        return False
    blocks = doc.get("blocks")
    if isinstance(blocks, list) and "updatedAt" not in doc:
        return True
    return any(
        isinstance(b.get("type"), str) and _CAMEL_RE.search(b["type"])
        for b in _iter_raw_blocks(blocks)
    )


def _has_parent_row_refs(blocks: Any) -> bool:
    return any(isinstance(b.get("props"), dict) and b["props"].get("parentRowId")
               for b in _iter_raw_blocks(blocks))


# ── Transformations ──────────────────────────────────────────────────────────

def camel_to_kebab(name: str) -> str:
    return _CAMEL_SPLIT_RE.sub("-", name).replace("_", "-").lower()


def normalize_block_type(block_type: str, known_types: Optional[Iterable[str]] = None) -> str:
    """Type legacy → type courant ; résultat inconnu → type d'origine."""
    known = set(known_types) if known_types is not None else KNOWN_TYPES
    if block_type in known:
        return block_type
    candidate = LEGACY_TYPE_MAP.get(block_type) or camel_to_kebab(block_type)
    if candidate in known:
        return candidate
    log.warning("Type legacy %r non reconnu — conservé", block_type)
    return block_type


def _coalesce(data: dict, aliases: Dict[str, str]) -> None:
    """snake_case → camelCase en place ; la valeur camelCase gagne si les deux existent."""
    for snake, camel in aliases.items():
        if snake not in data:
            continue
        value = data.pop(snake)
        if data.get(camel) is None:
            data[camel] = value


def _rename_props(block_type: str, props: dict) -> dict:
    for old, new in PROP_RENAMES.get(block_type, {}).items():
        if old not in props:
            continue
        value = props.pop(old)
        if new not in props:
            props[new] = value
        else:
            log.debug("%s.%s déjà présent — %s ignoré", block_type, new, old)
    return props


def migrate_block(block: dict, known_types: Optional[Iterable[str]] = None) -> dict:
    if not isinstance(block, dict):
        raise TypeError(f"Bloc invalide : {block!r}")
    known = set(known_types) if known_types is not None else KNOWN_TYPES

    out = dict(block)
    _coalesce(out, BLOCK_FIELD_ALIASES)

    if isinstance(out.get("type"), str):
        out["type"] = normalize_block_type(out["type"], known)

    props = dict(out.get("props") or {})
    out["props"] = _rename_props(out.get("type", ""), props)

    if not out.get("id"):
        out["id"] = generate_block_id()
        log.info("Bloc legacy sans id (%s) — id généré %s", out.get("type"), out["id"])

    if isinstance(out.get("children"), list):
        out["children"] = nest_parent_rows([migrate_block(c, known) for c in out["children"]])
    return out


def nest_parent_rows(blocks: List[dict]) -> List[dict]:
    """
    Rattache les blocs portant props.parentRowId à la row correspondante
    (children, columnIndex conservé ou 0). parentRowId orphelin → bloc laissé
    à sa place, référence retirée.
    """
    row_ids = {b.get("id") for b in blocks if b.get("type") == "row" and b.get("id")}
    attached: Dict[str, List[dict]] = {}
    kept: List[dict] = []

    for b in blocks:
        props = b.get("props") or {}
        parent_id = props.get("parentRowId")
        if not parent_id:
            kept.append(b)
            continue
        child = {**b, "props": {k: v for k, v in props.items() if k != "parentRowId"}}
        if parent_id in row_ids and parent_id != b.get("id"):
            child.setdefault("columnIndex", 0)
            if child["columnIndex"] is None:
                child["columnIndex"] = 0
            attached.setdefault(parent_id, []).append(child)
        else:
            log.warning("Bloc %s : parentRowId %r introuvable — laissé à la racine", b.get("id"), parent_id)
            kept.append(child)

    if not attached:
        return kept
    out = []
    for b in kept:
        if b.get("id") in attached:
            b = {**b, "children": list(b.get("children") or []) + attached[b["id"]]}
        out.append(b)
    return out


def migrate_document(doc: dict, known_types: Optional[Iterable[str]] = None) -> dict:
    """Retourne une copie migrée (le document d'origine n'est pas modifié)."""
    if not isinstance(doc, dict):
        raise TypeError(f"Document invalide : {type(doc).__name__}")
    out = copy.deepcopy(doc)
    _coalesce(out, DOC_FIELD_ALIASES)

    blocks = out.get("blocks")
    if isinstance(blocks, list):
        out["blocks"] = nest_parent_rows([migrate_block(b, known_types) for b in blocks])
    return out


def safe_migrate(doc: Any, known_types: Optional[Iterable[str]] = None) -> Optional[dict]:
    """
    Migre si nécessaire. Toute exception → None (l'appelant ne doit pas charger
    le document ; ce n'est pas un document vide).
    """
    try:
        if not isinstance(doc, dict):
            raise TypeError(f"Document invalide : {type(doc).__name__}")
        if is_legacy_document(doc) or _has_parent_row_refs(doc.get("blocks")):
            migrated = migrate_document(doc, known_types)
            log.info("Document %s migré depuis le format legacy", migrated.get("id") or "(sans id)")
            return migrated
        return copy.deepcopy(doc)
    except Exception:
        log.exception("Migration impossible — document non chargé")
        return None


# ── Validation ───────────────────────────────────────────────────────────────

def validate_migrated(doc: Any) -> List[str]:
    """Messages lisibles ; liste vide = document chargeable."""
    if not isinstance(doc, dict):
        return ["Document invalide : objet JSON attendu"]
    blocks = doc.get("blocks")
    if not isinstance(blocks, list):
        return ["Le champ « blocks » doit être un tableau"]

    errors: List[str] = []

    def walk(items: list, path: str):
        for i, b in enumerate(items):
            where = f"{path}[{i}]"
            if not isinstance(b, dict):
                errors.append(f"{where} : bloc invalide")
                continue
            if not isinstance(b.get("id"), str) or not b["id"].strip():
                errors.append(f"{where} : id manquant")
            if not isinstance(b.get("type"), str) or not b["type"].strip():
                errors.append(f"{where} : type manquant")
            children = b.get("children")
            if children is not None:
                if isinstance(children, list):
                    walk(children, f"{where}.children")
                else:
                    errors.append(f"{where}.children : tableau attendu")

    walk(blocks, "blocks")
    return errors


def _is_puck_document(raw: Any) -> bool:
    return isinstance(raw, dict) and "content" in raw and "blocks" not in raw


def load_theme_document(
    raw: Any,
    registry: Optional[BlockRegistry] = None,
) -> Tuple[Optional[ThemeSchema], List[str]]:
    """
    Point d'entrée de chargement : JSON brut (ThemeSchema courant, legacy ou Puck)
    → (ThemeSchema, []) ou (None, messages).
    """
    known = registry.known_types() if registry is not None else None

    if _is_puck_document(raw):
        from .puck import puck_to_theme
        try:
            raw = puck_to_theme(raw, registry).to_dict()
        except ValidationError as e:
            return None, [_format_error(err) for err in e.errors()]

    migrated = safe_migrate(raw, known)
    if migrated is None:
        return None, ["Migration impossible : document non chargé"]

    errors = validate_migrated(migrated)
    if errors:
        return None, errors

    try:
        return ThemeSchema.model_validate(migrated), []
    except ValidationError as e:
        return None, [_format_error(err) for err in e.errors()]


def _format_error(err: dict) -> str:
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc} : {err.get('msg')}" if loc else str(err.get("msg"))
