"""
Format du renderer externe (Puck) + enveloppes d'extension.

    {
      "root":    {"props": {"title": "...", "_builder": {...métadonnées...}}},
      "content": [{"type": "Text", "props": {"id": "...", ..., "_builder": {...}}}],
      "zones":   {"<id>:column-0": [...]}
    }

Tout ce que Puck ne connaît pas (columnIndex, visibilité, enfants, métadonnées
du document) voyage dans une seule clé d'enveloppe typée `_builder`.
Les anciennes clés à plat (_columnIndex, _children, _themeName…) restent lues.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.schemas import VisibilityCondition

ENVELOPE_KEY = "_builder"
ENVELOPE_VERSION = 2

# Clés à plat des documents v1 → champ d'enveloppe (alias)
LEGACY_BLOCK_KEYS = {
    "_columnIndex": "columnIndex",
    "_visibility":  "visibility",
    "_children":    "children",
}
LEGACY_ROOT_KEYS = {
    "_themeId":          "id",
    "_themeName":        "name",
    "_themeDescription": "description",
    "_connectionId":     "connectionId",
    "_createdAt":        "createdAt",
    "_updatedAt":        "updatedAt",
}


class PuckComponent(BaseModel):
    """Entrée de contenu Puck : {type, props}."""
    model_config = ConfigDict(extra="allow")

    type: str
    props: Dict[str, Any] = Field(default_factory=dict)


class PuckRoot(BaseModel):
    model_config = ConfigDict(extra="allow")

    props: Dict[str, Any] = Field(default_factory=dict)


class PuckData(BaseModel):
    """Document Puck complet."""
    root: PuckRoot = Field(default_factory=PuckRoot)
    content: List[PuckComponent] = Field(default_factory=list)
    zones: Dict[str, List[PuckComponent]] = Field(default_factory=dict)

    def to_dict(self) -> dict:
        out = self.model_dump()
        if not out["zones"]:
            out.pop("zones")
        return out


class BlockExtension(BaseModel):
    """Métadonnées d'un bloc hors props : colonne, visibilité, enfants."""
    model_config = ConfigDict(populate_by_name=True)

    column_index: Optional[int] = Field(default=None, alias="columnIndex")
    visibility: Optional[List[VisibilityCondition]] = None
    children: Optional[List[PuckComponent]] = None


class RootExtension(BaseModel):
    """Métadonnées du document portées par root.props."""
    model_config = ConfigDict(populate_by_name=True)

    version: int = ENVELOPE_VERSION
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    connection_id: Optional[str] = Field(default=None, alias="connectionId")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
