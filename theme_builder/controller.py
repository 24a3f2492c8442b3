"""
Builder Controller — orchestration de l'édition d'un thème.

Reçoit les événements glisser-déposer, résout la mutation structurelle via
tree.*, passe l'arbre dans normalize_columns, puis empile l'état dans
l'historique. Les restaurations undo/redo ne sont jamais ré-empilées.

Résolution de la cible de dépôt (deux modes, choisis selon l'élément glissé) :
  - bloc de la bibliothèque → pointeur contenu dans la zone (la plus petite
    gagne), sinon intersection de rectangles
  - bloc déjà sur le canvas  → intersection de rectangles uniquement

Identifiants de zones de dépôt :
  "canvas"               racine du document
  "<id>:column-<i>"      colonne i d'une row (ou onglet i d'un tabs)
  "<id>:content"         contenu d'une section
  "<id>"                 bloc existant (insertion juste après)
"""
import logging
import re
import time
from typing import Any, Callable, Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, Field

from .blocks import BlockRegistry, default_registry
from .core.schemas import BuilderSnapshot, ThemeBlock, ThemeSchema, ThemeValidationError, now_iso
from .history import HistoryManager
from .migration import load_theme_document
from .preview import FieldMetadata, field_warnings
from .tree import (
    append_child,
    collect_ids,
    duplicate_block,
    find_block,
    find_parent,
    insert_after,
    is_descendant,
    move_block,
    move_block_down,
    move_block_up,
    normalize_columns,
    remove_block,
    update_block,
)

log = logging.getLogger(__name__)

CANVAS_ID = "canvas"
LIBRARY_PREFIX = "library-"

_ZONE_ID_RE = re.compile(r"^(?P<owner>.+):(?:column-(?P<col>\d+)|content)$")


# ── Géométrie ────────────────────────────────────────────────────────────────

class Rect(BaseModel):
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return max(self.width, 0) * max(self.height, 0)

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


class Droppable(BaseModel):
    """Zone de dépôt mesurée à l'écran."""
    id: str
    rect: Rect


class DragSource(BaseModel):
    """Élément glissé : bloc de bibliothèque (nouveau) ou bloc existant."""
    kind: Literal["library-block", "canvas-block"]
    block_type: Optional[str] = None
    block_id: Optional[str] = None

    @property
    def active_id(self) -> str:
        if self.kind == "library-block":
            return f"{LIBRARY_PREFIX}{self.block_type}"
        return self.block_id or ""


def intersection_ratio(a: Rect, b: Rect) -> float:
    """Aire de l'intersection / aire de l'union (0 si disjoints)."""
    w = min(a.right, b.right) - max(a.left, b.left)
    h = min(a.bottom, b.bottom) - max(a.top, b.top)
    if w <= 0 or h <= 0:
        return 0.0
    inter = w * h
    union = a.area + b.area - inter
    return inter / union if union > 0 else 0.0


def pointer_within(pointer: Tuple[float, float], droppables: List[Droppable]) -> List[str]:
    """Zones contenant le pointeur, de la plus petite (la plus interne) à la plus grande."""
    x, y = pointer
    hits = [d for d in droppables if d.rect.contains(x, y)]
    hits.sort(key=lambda d: d.rect.area)
    return [d.id for d in hits]


def rect_intersection(drag_rect: Rect, droppables: List[Droppable]) -> List[str]:
    """Zones qui recouvrent le rectangle glissé, par taux de recouvrement décroissant."""
    scored = [(intersection_ratio(drag_rect, d.rect), d.id) for d in droppables]
    scored = [s for s in scored if s[0] > 0]
    scored.sort(key=lambda s: s[0], reverse=True)
    return [i for _, i in scored]


def resolve_drop_target(
    source: DragSource,
    droppables: List[Droppable],
    pointer: Optional[Tuple[float, float]],
    drag_rect: Optional[Rect],
    blocks: Optional[List[ThemeBlock]] = None,
) -> Optional[str]:
    """
    Id de la zone survolée au relâchement ; None = dépôt hors cible (no-op).

    Pour un bloc existant, ses propres zones et celles de tout son sous-arbre
    sont écartées (blocks fournit l'arbre courant).
    """
    excluded = _subtree_ids(blocks or [], source.block_id) if source.block_id else set()
    candidates = [d for d in droppables if _zone_owner(d.id) not in excluded]

    if source.kind == "library-block" and pointer is not None:
        hits = pointer_within(pointer, candidates)
        if hits:
            log.debug("Dépôt %s : pointeur dans %s", source.active_id, hits[0])
            return hits[0]

    if drag_rect is None:
        return None
    hits = rect_intersection(drag_rect, candidates)
    log.debug("Dépôt %s : intersection %s", source.active_id, hits[:1])
    return hits[0] if hits else None


def _subtree_ids(blocks: List[ThemeBlock], block_id: str) -> Set[str]:
    block = find_block(blocks, block_id)
    return collect_ids([block]) if block is not None else {block_id}


def _zone_owner(zone_id: str) -> str:
    zone = parse_zone_id(zone_id)
    return zone[0] if zone else zone_id


def parse_zone_id(over_id: str) -> Optional[Tuple[str, Optional[int]]]:
    """"<id>:column-<i>" → (id, i) ; "<id>:content" → (id, None) ; sinon None."""
    m = _ZONE_ID_RE.match(over_id)
    if not m:
        return None
    col = m.group("col")
    return m.group("owner"), (int(col) if col is not None else None)


# ── Contrôleur ───────────────────────────────────────────────────────────────

class BuilderState(BaseModel):
    blocks: List[ThemeBlock] = Field(default_factory=list)
    selected_block_id: Optional[str] = None
    theme_name: str = ""
    theme_description: str = ""
    connection_id: Optional[str] = None
    fields: List[FieldMetadata] = Field(default_factory=list)
    is_dragging: bool = False


class BuilderController:
    """
    Session d'édition d'un thème.

    Usage:
        >>> ctrl = BuilderController()
        >>> ctrl.drop(DragSource(kind="library-block", block_type="text"), "canvas")
        >>> ctrl.undo()
        >>> ctrl.save(lambda schema: store(schema))
    """

    def __init__(
        self,
        initial: Optional[ThemeSchema] = None,
        registry: Optional[BlockRegistry] = None,
        history: Optional[HistoryManager] = None,
    ):
        self.registry = registry or default_registry()
        self.history = history or HistoryManager()
        self.initial = initial
        self.active_id: Optional[str] = None
        self._restoring = False

        self.state = BuilderState(
            blocks=normalize_columns(list(initial.blocks)) if initial else [],
            theme_name=initial.name if initial else "",
            theme_description=(initial.description or "") if initial else "",
            connection_id=initial.connection_id if initial else None,
        )
        self.history.push(self.snapshot())

    @classmethod
    def load(cls, raw: Any, registry: Optional[BlockRegistry] = None) -> Tuple[Optional["BuilderController"], List[str]]:
        """JSON brut (courant, legacy ou Puck) → (contrôleur, []) ou (None, erreurs)."""
        schema, errors = load_theme_document(raw, registry)
        if schema is None:
            log.warning("Chargement refusé : %s", "; ".join(errors))
            return None, errors
        log.info("Thème %s chargé (%d blocs)", schema.id or "(nouveau)", len(schema.blocks))
        return cls(schema, registry=registry), []

    # ── État / historique ───────────────────────────────────────────────────

    @property
    def blocks(self) -> List[ThemeBlock]:
        return self.state.blocks

    @property
    def selected_block_id(self) -> Optional[str]:
        return self.state.selected_block_id

    @property
    def selected_block(self) -> Optional[ThemeBlock]:
        return find_block(self.state.blocks, self.state.selected_block_id)

    def snapshot(self) -> BuilderSnapshot:
        return BuilderSnapshot(
            blocks=self.state.blocks,
            selected_block_id=self.state.selected_block_id,
        )

    def _commit(self, blocks: List[ThemeBlock], selected: Any = ...) -> None:
        """Nouvel arbre → réparation des colonnes → historique (hors undo/redo)."""
        changed = blocks is not self.state.blocks
        update: Dict[str, Any] = {"blocks": normalize_columns(blocks)}
        if selected is not ...:
            update["selected_block_id"] = selected
        self.state = self.state.model_copy(update=update)
        if changed and not self._restoring:
            self.history.push(self.snapshot())

    def _restore(self, snap: Optional[BuilderSnapshot]) -> bool:
        if snap is None:
            return False
        self._restoring = True
        try:
            self._commit(snap.blocks, snap.selected_block_id)
        finally:
            self._restoring = False
        return True

    def undo(self) -> bool:
        restored = self._restore(self.history.undo())
        log.debug("Undo %s (pile : %d)", "ok" if restored else "indisponible", self.history.undo_depth)
        return restored

    def redo(self) -> bool:
        restored = self._restore(self.history.redo())
        log.debug("Redo %s (pile : %d)", "ok" if restored else "indisponible", self.history.undo_depth)
        return restored

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def handle_key(self, key: str, ctrl: bool = False, shift: bool = False) -> bool:
        """Ctrl+Z → undo, Ctrl+Shift+Z → redo. Retourne True si la touche est consommée."""
        if not ctrl or key.lower() != "z":
            return False
        if shift:
            self.redo()
        else:
            self.undo()
        return True

    # ── Glisser-déposer ─────────────────────────────────────────────────────

    def handle_drag_start(self, source: DragSource) -> None:
        self.active_id = source.active_id
        self.state = self.state.model_copy(update={"is_dragging": True})

    def handle_drag_end(self, source: DragSource, over_id: Optional[str]) -> bool:
        """Applique le dépôt ; retourne False si rien n'a changé."""
        self.active_id = None
        self.state = self.state.model_copy(update={"is_dragging": False})

        if not over_id:
            log.debug("Dépôt hors cible — ignoré")
            return False
        if source.kind == "library-block":
            return self._drop_new(source.block_type, over_id)
        return self._drop_existing(source.block_id, over_id)

    def drop(
        self,
        source: DragSource,
        over_id: Optional[str] = None,
        droppables: Optional[List[Droppable]] = None,
        pointer: Optional[Tuple[float, float]] = None,
        drag_rect: Optional[Rect] = None,
    ) -> bool:
        """Cycle complet : début, résolution de la cible (si non fournie), fin."""
        self.handle_drag_start(source)
        if over_id is None and droppables:
            over_id = resolve_drop_target(source, droppables, pointer, drag_rect, self.state.blocks)
        return self.handle_drag_end(source, over_id)

    def _place(self, blocks: List[ThemeBlock], block: ThemeBlock, over_id: str) -> Optional[List[ThemeBlock]]:
        if over_id == CANVAS_ID:
            return list(blocks) + [block.model_copy(update={"column_index": None})]

        zone = parse_zone_id(over_id)
        if zone is not None:
            owner_id, column_index = zone
            owner = find_block(blocks, owner_id)
            if owner is None or not self.registry.allows_children(owner.type):
                log.warning("Zone %s : conteneur introuvable", over_id)
                return None
            return append_child(blocks, owner_id, block, column_index)

        target = find_block(blocks, over_id)
        if target is None:
            log.warning("Cible de dépôt inconnue : %s", over_id)
            return None
        return insert_after(blocks, over_id, block.model_copy(update={"column_index": target.column_index}))

    def _drop_new(self, block_type: Optional[str], over_id: str) -> bool:
        if not block_type or self.registry.get(block_type) is None:
            log.warning("Type de bloc inconnu déposé : %r", block_type)
            return False
        block = self.registry.create_block(block_type)
        blocks = self._place(self.state.blocks, block, over_id)
        if blocks is None:
            return False
        self._commit(blocks, block.id)
        log.debug("Bloc %s (%s) ajouté sur %s", block.id, block_type, over_id)
        return True

    def _drop_existing(self, block_id: Optional[str], over_id: str) -> bool:
        blocks = self.state.blocks
        moving = find_block(blocks, block_id)
        if moving is None or over_id == block_id:
            return False

        zone = parse_zone_id(over_id)
        if zone is None and over_id != CANVAS_ID:
            if find_block(blocks, over_id) is None:
                log.warning("Cible de dépôt inconnue : %s", over_id)
                return False
            new_blocks = move_block(blocks, block_id, over_id)
        else:
            owner_id = zone[0] if zone else None
            if owner_id and (owner_id == block_id or is_descendant(blocks, block_id, owner_id)):
                log.warning("Bloc %s : dépôt dans son propre sous-arbre ignoré", block_id)
                return False
            new_blocks = self._place(remove_block(blocks, block_id), moving, over_id)
            if new_blocks is None:
                return False

        if new_blocks is blocks:
            return False
        self._commit(new_blocks)
        return True

    def active_block_name(self) -> Optional[str]:
        """Libellé affiché pendant le glisser (bibliothèque ou bloc existant)."""
        if not self.active_id:
            return None
        if self.active_id.startswith(LIBRARY_PREFIX):
            block_type = self.active_id[len(LIBRARY_PREFIX):]
        else:
            block = find_block(self.state.blocks, self.active_id)
            if block is None:
                return None
            block_type = block.type
        d = self.registry.get(block_type)
        return d.name if d else block_type

    # ── Sélection / édition ─────────────────────────────────────────────────

    def select(self, block_id: Optional[str]) -> None:
        self.state = self.state.model_copy(update={"selected_block_id": block_id})

    def delete(self, block_id: str) -> None:
        selected = self.state.selected_block_id
        removed = find_block(self.state.blocks, block_id)
        if removed is None:
            return
        if selected == block_id or (selected and is_descendant(self.state.blocks, block_id, selected)):
            selected = None
        self._commit(remove_block(self.state.blocks, block_id), selected)

    def duplicate(self, block_id: str) -> Optional[str]:
        block = find_block(self.state.blocks, block_id)
        if block is None:
            return None
        copy = duplicate_block(block)
        self._commit(insert_after(self.state.blocks, block_id, copy), copy.id)
        return copy.id

    def update_block_props(self, block_id: str, props: Dict[str, Any]) -> None:
        self._commit(update_block(self.state.blocks, block_id, {"props": props}))

    def update_block_meta(self, block_id: str, **meta: Any) -> None:
        """columnIndex / visibility (props exclues)."""
        meta.pop("props", None)
        self._commit(update_block(self.state.blocks, block_id, meta))

    def move_up(self, block_id: str) -> None:
        self._commit(move_block_up(self.state.blocks, block_id))

    def move_down(self, block_id: str) -> None:
        self._commit(move_block_down(self.state.blocks, block_id))

    def set_metadata(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        connection_id: Optional[str] = None,
        fields: Optional[List[FieldMetadata]] = None,
    ) -> None:
        """Métadonnées du thème (hors historique, comme la sélection)."""
        update: Dict[str, Any] = {}
        if name is not None:
            update["theme_name"] = name
        if description is not None:
            update["theme_description"] = description
        if connection_id is not None:
            update["connection_id"] = connection_id or None
        if fields is not None:
            update["fields"] = fields
        self.state = self.state.model_copy(update=update)

    def row_blocks(self) -> List[ThemeBlock]:
        return [b for b in self.state.blocks if b.type == "row"]

    def parent_of_selected(self) -> Optional[ThemeBlock]:
        return find_parent(self.state.blocks, self.state.selected_block_id)

    def field_warnings(self) -> set:
        return field_warnings(self.state.blocks, [f.column_name for f in self.state.fields])

    # ── Sauvegarde ──────────────────────────────────────────────────────────

    def to_schema(self) -> ThemeSchema:
        initial = self.initial
        now = now_iso()
        return ThemeSchema(
            id=(initial.id if initial and initial.id else f"custom-{int(time.time() * 1000)}"),
            name=self.state.theme_name,
            description=self.state.theme_description,
            connection_id=self.state.connection_id or None,
            blocks=self.state.blocks,
            created_at=(initial.created_at if initial and initial.created_at else now),
            updated_at=now,
        )

    def save(self, on_save: Callable[[ThemeSchema], Any]) -> ThemeSchema:
        """Contrôle le thème puis le passe à on_save ; lève ThemeValidationError sinon."""
        if not self.state.theme_name.strip():
            raise ThemeValidationError("Le nom du thème est obligatoire")
        if not self.state.blocks:
            raise ThemeValidationError("Ajoutez au moins un bloc au thème")
        schema = self.to_schema()
        on_save(schema)
        log.info("Thème %s sauvegardé (%d blocs)", schema.id, len(schema.blocks))
        return schema
