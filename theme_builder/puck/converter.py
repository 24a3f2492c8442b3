"""
Conversion ThemeSchema ⇄ PuckData.

Export : chaque bloc → {type: nom Puck, props: {id, ...props, _builder: {columnIndex, visibility, children}}}.
Les enfants sont exportés récursivement dans l'enveloppe (pas dans les zones Puck)
pour qu'un nœud garde toute sa configuration.

Import : inverse. Les types Puck inconnus sont conservés tels quels ;
les zones Puck natives ("<id>:column-<i>") deviennent des enfants.

Garantie : puck_to_theme(theme_to_puck(doc)) == doc pour les types connus du registry.
"""
import copy
import logging
import re
from typing import Any, Dict, List, Optional, Union

from ..blocks import BlockRegistry, default_registry
from ..core.schemas import ThemeBlock, ThemeSchema
from ..tree import generate_block_id
from .schema import (
    ENVELOPE_KEY,
    LEGACY_BLOCK_KEYS,
    LEGACY_ROOT_KEYS,
    BlockExtension,
    PuckComponent,
    PuckData,
    RootExtension,
)

log = logging.getLogger(__name__)

_ZONE_RE = re.compile(r"^(?P<owner>.+):(?P<zone>[\w-]+)$")
_COLUMN_ZONE_RE = re.compile(r"^column-(\d+)$")


# ── Export ───────────────────────────────────────────────────────────────────

def block_to_component(block: ThemeBlock, registry: BlockRegistry) -> PuckComponent:
    props = copy.deepcopy(block.props)
    props["id"] = block.id

    ext = BlockExtension(
        column_index=block.column_index,
        visibility=copy.deepcopy(block.visibility),
        children=(
            [block_to_component(c, registry) for c in block.children]
            if block.children is not None else None
        ),
    )
    envelope = ext.model_dump(by_alias=True, exclude_none=True)
    if envelope:
        props[ENVELOPE_KEY] = envelope

    return PuckComponent(type=registry.external_name(block.type), props=props)


def theme_to_puck(
    schema: ThemeSchema,
    registry: Optional[BlockRegistry] = None,
    *,
    theme_id: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    connection_id: Optional[str] = None,
) -> PuckData:
    """
    Exporte un document vers le format Puck.

    Les métadonnées passées en argument priment sur celles du document
    (renommer / recibler sans toucher au contenu).
    """
    registry = registry or default_registry()
    meta = RootExtension(
        id=theme_id if theme_id is not None else schema.id,
        name=name if name is not None else schema.name,
        description=description if description is not None else schema.description,
        connection_id=connection_id if connection_id is not None else schema.connection_id,
        created_at=schema.created_at,
        updated_at=schema.updated_at,
    )
    root_props: Dict[str, Any] = {
        "title": meta.name or "",
        ENVELOPE_KEY: meta.model_dump(by_alias=True, exclude_none=True),
    }
    return PuckData(
        root={"props": root_props},
        content=[block_to_component(b, registry) for b in schema.blocks],
    )


# ── Import ───────────────────────────────────────────────────────────────────

def _resolve_type(external: str, registry: BlockRegistry) -> str:
    block_type = registry.type_for_external(external)
    if block_type:
        return block_type
    if registry.has(external):
        return external
    log.warning("Type Puck inconnu %r — conservé tel quel", external)
    return external


def _extract_extension(props: Dict[str, Any]) -> BlockExtension:
    raw = props.pop(ENVELOPE_KEY, None)
    raw = dict(raw) if isinstance(raw, dict) else {}
    for legacy_key, alias in LEGACY_BLOCK_KEYS.items():
        if legacy_key in props:
            value = props.pop(legacy_key)
            raw.setdefault(alias, value)
    return BlockExtension.model_validate(raw)


def _zone_children(
    owner_id: str,
    zones: Dict[str, List[PuckComponent]],
    registry: BlockRegistry,
) -> List[ThemeBlock]:
    """Enfants déclarés dans les zones Puck du bloc owner_id (colonnes triées)."""
    found = []
    for key, items in zones.items():
        m = _ZONE_RE.match(key)
        if not m or m.group("owner") != owner_id:
            continue
        col = _COLUMN_ZONE_RE.match(m.group("zone"))
        column_index = int(col.group(1)) if col else None
        found.append((column_index if column_index is not None else -1, column_index, items))

    out = []
    for _, column_index, items in sorted(found, key=lambda t: t[0]):
        for item in items:
            child = component_to_block(item, registry, zones)
            if column_index is not None:
                child = child.model_copy(update={"column_index": column_index})
            out.append(child)
    return out


def component_to_block(
    item: Union[PuckComponent, dict],
    registry: BlockRegistry,
    zones: Optional[Dict[str, List[PuckComponent]]] = None,
) -> ThemeBlock:
    if not isinstance(item, PuckComponent):
        item = PuckComponent.model_validate(item)

    props = copy.deepcopy(item.props)
    block_id = props.pop("id", None) or generate_block_id()
    ext = _extract_extension(props)

    children: Optional[List[ThemeBlock]] = None
    if ext.children is not None:
        children = [component_to_block(c, registry, zones) for c in ext.children]
    if zones:
        zoned = _zone_children(block_id, zones, registry)
        if zoned:
            children = (children or []) + zoned

    return ThemeBlock(
        id=str(block_id),
        type=_resolve_type(item.type, registry),
        props=props,
        children=children,
        column_index=ext.column_index,
        visibility=ext.visibility,
    )


def _root_extension(root_props: Dict[str, Any]) -> RootExtension:
    raw = root_props.get(ENVELOPE_KEY)
    raw = dict(raw) if isinstance(raw, dict) else {}
    for legacy_key, alias in LEGACY_ROOT_KEYS.items():
        if legacy_key in root_props:
            raw.setdefault(alias, root_props[legacy_key])
    if "name" not in raw and root_props.get("title"):
        raw["name"] = root_props["title"]
    return RootExtension.model_validate(raw)


def puck_to_theme(
    data: Union[PuckData, dict],
    registry: Optional[BlockRegistry] = None,
    *,
    theme_id: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    connection_id: Optional[str] = None,
) -> ThemeSchema:
    """Importe un document Puck ; les arguments explicites priment sur root.props."""
    registry = registry or default_registry()
    if not isinstance(data, PuckData):
        data = PuckData.model_validate(data)

    meta = _root_extension(data.root.props)
    blocks = [component_to_block(c, registry, data.zones) for c in data.content]

    return ThemeSchema(
        id=theme_id if theme_id is not None else (meta.id or ""),
        name=name if name is not None else (meta.name or ""),
        description=description if description is not None else meta.description,
        connection_id=connection_id if connection_id is not None else meta.connection_id,
        blocks=blocks,
        created_at=meta.created_at,
        updated_at=meta.updated_at,
    )
