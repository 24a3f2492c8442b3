"""
Registry des blocs — table type → définition (props par défaut, schéma, conteneur).
Fourni par l'application hôte au démarrage ; ne modifie jamais un document.
"""
import copy
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..core.schemas import ThemeBlock
from ..tree import generate_block_id

log = logging.getLogger(__name__)

PropType = Literal["string", "number", "boolean", "select", "field-select", "field-multi-select", "json"]

_EMPTY_BY_TYPE: Dict[str, Any] = {
    "string": "",
    "field-select": "",
    "select": "",
    "number": 0,
    "boolean": False,
    "field-multi-select": [],
    "json": [],
}


class PropOption(BaseModel):
    value: Any
    label: str


class PropField(BaseModel):
    """Propriété déclarée dans le schéma d'un bloc (panneau de propriétés)."""
    name: str
    label: str
    type: PropType = "string"
    required: bool = False
    default_value: Any = None
    options: List[PropOption] = Field(default_factory=list)
    helper_text: Optional[str] = None


class BlockDefinition(BaseModel):
    """Définition d'un type de bloc."""
    type: str
    name: str
    description: str = ""
    category: Literal["layout", "fields", "display", "actions"] = "display"
    default_props: Dict[str, Any] = Field(default_factory=dict)
    props_schema: List[PropField] = Field(default_factory=list)
    allow_children: bool = False
    # Nom du composant côté renderer externe (Puck) — PascalCase du type par défaut
    external_name: Optional[str] = None

    def puck_name(self) -> str:
        if self.external_name:
            return self.external_name
        return "".join(part.capitalize() for part in self.type.split("-"))


class BlockRegistry:
    """
    Registry des types de blocs.

    Usage:
        >>> registry = BlockRegistry()
        >>> registry.register(BlockDefinition(type="text", name="Texte"))
        >>> block = registry.create_block("text")
    """

    def __init__(self, definitions: Optional[List[BlockDefinition]] = None):
        self._definitions: Dict[str, BlockDefinition] = {}
        for d in definitions or []:
            self.register(d)

    def register(self, definition: BlockDefinition) -> None:
        if definition.type in self._definitions:
            log.debug("Définition %s remplacée", definition.type)
        self._definitions[definition.type] = definition

    def clear(self) -> None:
        self._definitions.clear()

    def get(self, block_type: str) -> Optional[BlockDefinition]:
        return self._definitions.get(block_type)

    def has(self, block_type: str) -> bool:
        return block_type in self._definitions

    def all(self) -> List[BlockDefinition]:
        return list(self._definitions.values())

    def known_types(self) -> List[str]:
        return list(self._definitions)

    def by_category(self) -> Dict[str, List[BlockDefinition]]:
        out: Dict[str, List[BlockDefinition]] = {}
        for d in self._definitions.values():
            out.setdefault(d.category, []).append(d)
        return out

    def allows_children(self, block_type: str) -> bool:
        d = self.get(block_type)
        return bool(d and d.allow_children)

    # ── Noms externes (renderer Puck) ───────────────────────────────────────

    def external_name(self, block_type: str) -> str:
        """Nom Puck du type ; type inconnu → retourné tel quel."""
        d = self.get(block_type)
        return d.puck_name() if d else block_type

    def type_for_external(self, external: str) -> Optional[str]:
        for d in self._definitions.values():
            if d.puck_name() == external:
                return d.type
        return None

    # ── Props ───────────────────────────────────────────────────────────────

    def complete_props(self, block_type: str, props: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Props par défaut + props fournies, puis complète chaque clé du schéma
        encore absente (default_value du schéma, sinon valeur vide du type).
        """
        d = self.get(block_type)
        if d is None:
            return dict(props or {})

        out = copy.deepcopy(d.default_props)
        out.update(props or {})
        for f in d.props_schema:
            if f.name in out:
                continue
            if f.default_value is not None:
                out[f.name] = copy.deepcopy(f.default_value)
            elif f.required:
                out[f.name] = copy.deepcopy(_EMPTY_BY_TYPE.get(f.type, ""))
        return out

    def validate_props(self, block_type: str, props: Dict[str, Any]) -> List[str]:
        """Retourne la liste des problèmes (vide = OK)."""
        d = self.get(block_type)
        if d is None:
            return [f"Type de bloc inconnu : {block_type!r}"]

        errors = []
        for f in d.props_schema:
            if f.name not in props:
                if f.required:
                    errors.append(f"{block_type}.{f.name} : propriété requise manquante")
                continue
            value = props[f.name]
            if f.type == "boolean" and not isinstance(value, bool):
                errors.append(f"{block_type}.{f.name} : booléen attendu, reçu {value!r}")
            elif f.type == "select" and f.options:
                allowed = {str(o.value) for o in f.options}
                if str(value) not in allowed:
                    errors.append(f"{block_type}.{f.name} : {value!r} hors options {sorted(allowed)}")
            elif f.type == "field-multi-select" and not isinstance(value, list):
                errors.append(f"{block_type}.{f.name} : liste de champs attendue")
        return errors

    def create_block(self, block_type: str, block_id: Optional[str] = None) -> ThemeBlock:
        """Nouveau bloc avec props par défaut et id frais."""
        if not self.has(block_type):
            raise ValueError(f"Bloc inconnu : {block_type!r}. Registry : {self.known_types()}")
        return ThemeBlock(
            id=block_id or generate_block_id(),
            type=block_type,
            props=self.complete_props(block_type),
        )
