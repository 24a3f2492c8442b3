"""
Prévisualisation — contexte de rendu explicite, données d'exemple,
alertes de liaison de champs, filtrage par visibilité.

Le contexte est toujours passé en argument (pas d'état global « courant »).
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .core.schemas import ThemeBlock
from .visibility import evaluate_all, merged_record

_SAMPLE_IMAGE = "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=150&h=150&fit=crop&crop=face"
_SAMPLE_URL   = "https://exemple.fr"

_IMAGE_HINTS = ("image", "img", "avatar", "photo", "foto", "picture", "imagem")
_URL_HINTS   = ("url", "link", "website", "site")

# Champs liés par type de bloc (props contenant un nom de colonne)
_FIELD_PROPS: Dict[str, List[str]] = {
    "header":       ["titleField", "subtitleField"],
    "single-field": ["fieldName"],
    "avatar":       ["imageField", "nameField", "statusField"],
    "info-card":    ["fieldName"],
    "text":         ["textField"],
    "image":        ["imageField", "altTextField"],
    "badge":        ["textField"],
    "stats":        ["valueField", "labelField"],
    "link-button":  ["urlField", "labelField"],
    "list":         ["arrayField"],
}
_FIELD_LIST_PROPS: Dict[str, List[str]] = {
    "form-grid": ["fields"],
}


class FieldOption(BaseModel):
    title: str
    value: Optional[Any] = None


class FieldMetadata(BaseModel):
    """Métadonnées d'une colonne de la source de données."""
    model_config = ConfigDict(populate_by_name=True)

    column_name: str = Field(alias="columnName")
    type: str = "text"
    label: Optional[str] = None
    options: List[FieldOption] = Field(default_factory=list)


class RenderContext(BaseModel):
    """Données passées à chaque rendu de bloc."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    record: Dict[str, Any] = Field(default_factory=dict)
    form_data: Dict[str, Any] = Field(default_factory=dict)
    field_metadata: List[FieldMetadata] = Field(default_factory=list)
    on_record_change: Optional[Callable[[Dict[str, Any]], None]] = None
    connection: Optional[Dict[str, Any]] = None
    is_preview: bool = True

    def data(self) -> Dict[str, Any]:
        return merged_record(self.record, self.form_data)

    def change(self, data: Dict[str, Any]) -> None:
        if self.on_record_change is not None:
            self.on_record_change(data)


# ── Données d'exemple ────────────────────────────────────────────────────────

def _sample_value(field: FieldMetadata) -> Any:
    name = field.column_name.lower()
    label = field.label or field.column_name
    is_image = any(h in name for h in _IMAGE_HINTS)
    is_url = any(h in name for h in _URL_HINTS)
    kind = field.type.lower()

    if kind in ("number", "decimal"):
        return 42
    if kind == "currency":
        return 199.99
    if kind == "percent":
        return 75
    if kind in ("date", "datetime"):
        return datetime.now(timezone.utc).isoformat()
    if kind == "email":
        return "exemple@email.fr"
    if kind == "phonenumber":
        return "+33 6 12 34 56 78"
    if kind == "url":
        return _SAMPLE_IMAGE if is_image else _SAMPLE_URL
    if kind == "checkbox":
        return True
    if kind == "singleselect":
        return field.options[0].title if field.options else "Option 1"
    if kind == "multiselect":
        return [o.title for o in field.options[:2]] or ["Option 1", "Option 2"]
    if kind == "rating":
        return 4
    if kind == "attachment":
        return [{"url": "https://via.placeholder.com/150", "title": "Image"}]

    if is_image:
        return _SAMPLE_IMAGE
    if is_url:
        return _SAMPLE_URL
    if kind in ("text", "longtext", "singlelinetext"):
        return f"Exemple de {label}"
    return f"Valeur de {label}"


def generate_sample_record(fields: List[FieldMetadata]) -> Dict[str, Any]:
    """Record fictif pour prévisualiser un thème sans données réelles."""
    data: Dict[str, Any] = {"id": 1}
    for f in fields:
        data[f.column_name] = _sample_value(f)
    return data


# ── Liaisons de champs ───────────────────────────────────────────────────────

def bound_fields(block: ThemeBlock) -> List[str]:
    """Noms de colonnes référencés par les props du bloc."""
    out = [block.props.get(p) for p in _FIELD_PROPS.get(block.type, [])]
    for p in _FIELD_LIST_PROPS.get(block.type, []):
        value = block.props.get(p)
        if isinstance(value, list):
            out.extend(value)
    return [f for f in out if isinstance(f, str) and f]


def field_warnings(blocks: List[ThemeBlock], field_names: List[str]) -> Set[str]:
    """Ids des blocs liés à une colonne absente de la connexion courante."""
    available = set(field_names)
    warned: Set[str] = set()

    def walk(items: List[ThemeBlock]):
        for b in items:
            if any(f not in available for f in bound_fields(b)):
                warned.add(b.id)
            if b.children:
                walk(b.children)

    walk(blocks)
    return warned


# ── Visibilité ───────────────────────────────────────────────────────────────

def visible_blocks(blocks: List[ThemeBlock], ctx: RenderContext) -> List[ThemeBlock]:
    """Arbre filtré : blocs (et sous-arbres) dont toutes les conditions passent."""
    data = ctx.data()
    out = []
    for b in blocks:
        if not evaluate_all(b.visibility, data):
            continue
        if b.children:
            kids = visible_blocks(b.children, ctx)
            if len(kids) != len(b.children):
                b = b.model_copy(update={"children": kids})
        out.append(b)
    return out
