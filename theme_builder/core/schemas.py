"""
Schémas Pydantic du document de thème.
Structure récursive : ThemeSchema → ThemeBlock → children (ThemeBlock…)

Les noms de champs sont en snake_case côté Python ; le format JSON
(stockage, API) reste en camelCase via les alias (columnIndex, connectionId…).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_iso() -> str:
    """Horodatage ISO-8601 UTC au format JavaScript (2024-01-31T12:00:00.000Z)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ThemeValidationError(ValueError):
    """Thème refusé à la sauvegarde (nom vide, aucun bloc…)."""


class VisibilityCondition(BaseModel):
    """Condition d'affichage : {field, operator, value}."""
    field: str
    # equals | not_equals | contains | is_empty | is_not_empty
    # (un opérateur inconnu est conservé tel quel → bloc visible)
    operator: str = "equals"
    value: Any = None


class ThemeBlock(BaseModel):
    """Nœud de l'arbre du document."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    props: Dict[str, Any] = Field(default_factory=dict)
    children: Optional[List["ThemeBlock"]] = None
    column_index: Optional[int] = Field(default=None, alias="columnIndex")
    visibility: Optional[List[VisibilityCondition]] = None

    def to_dict(self) -> dict:
        """Dict JSON (camelCase, champs absents omis)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ThemeSchema(BaseModel):
    """Document complet : blocs racine + métadonnées."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    description: Optional[str] = None
    connection_id: Optional[str] = Field(default=None, alias="connectionId")
    blocks: List[ThemeBlock] = Field(default_factory=list)
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class BuilderSnapshot(BaseModel):
    """État capturé par l'historique : arbre + sélection."""
    blocks: List[ThemeBlock] = Field(default_factory=list)
    selected_block_id: Optional[str] = None
