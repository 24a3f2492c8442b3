"""
Router FastAPI — endpoints theme_builder.

GET    /theme-builder/catalog        → blocs disponibles + schémas de props
POST   /theme-builder/validate       → document brut → {"valid", "errors", "legacy"}
POST   /theme-builder/migrate        → document brut → document migré (422 si impossible)
POST   /theme-builder/export         → ThemeSchema → PuckData
POST   /theme-builder/import         → PuckData → ThemeSchema
POST   /theme-builder/themes         → enregistre un thème
GET    /theme-builder/themes         → liste des thèmes
GET    /theme-builder/themes/{id}    → thème (migré si besoin)
DELETE /theme-builder/themes/{id}    → suppression
"""
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .blocks import default_registry
from .core.schemas import ThemeSchema, now_iso
from .database import db_delete_theme, db_get_theme, db_list_themes, db_save_theme, get_db
from .migration import is_legacy_document, load_theme_document, safe_migrate, validate_migrated
from .puck import PuckData, puck_to_theme, theme_to_puck
from .tree import tree_violations

router = APIRouter(prefix="/theme-builder", tags=["theme_builder"])

_registry = default_registry()


@router.get("/catalog", summary="Liste les blocs disponibles et leurs schémas")
def catalog() -> JSONResponse:
    """Catalogue par catégorie : type, nom Puck, props par défaut, schéma des props."""
    data = []
    for d in _registry.all():
        item = d.model_dump()
        item["puck_name"] = d.puck_name()
        data.append(item)
    return JSONResponse({"blocks": data, "categories": sorted(_registry.by_category())})


@router.post("/validate", summary="Valide un document sans l'enregistrer")
def validate(doc: Dict[str, Any] = Body(...)) -> dict:
    """Migration éventuelle + contrôle de structure (ids, types, props, colonnes)."""
    legacy = is_legacy_document(doc)
    schema, errors = load_theme_document(doc, _registry)
    if schema is not None:
        errors = tree_violations(schema.blocks, _registry)
    return {"valid": not errors, "errors": errors, "legacy": legacy}


@router.post("/migrate", summary="Migre un document legacy vers le format courant")
def migrate(doc: Dict[str, Any] = Body(...)) -> dict:
    migrated = safe_migrate(doc, _registry.known_types())
    if migrated is None:
        raise HTTPException(422, "Migration impossible")
    errors = validate_migrated(migrated)
    if errors:
        raise HTTPException(422, {"errors": errors})
    return migrated


@router.post("/export", summary="Exporte un thème au format Puck")
def export(
    schema: ThemeSchema,
    theme_id: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    connection_id: Optional[str] = None,
) -> dict:
    """Les paramètres de requête priment sur les métadonnées du document."""
    data = theme_to_puck(
        schema, _registry,
        theme_id=theme_id, name=name, description=description, connection_id=connection_id,
    )
    return data.to_dict()


@router.post("/import", summary="Importe un document Puck")
def import_puck(data: PuckData) -> dict:
    return puck_to_theme(data, _registry).to_dict()


@router.post("/themes", summary="Enregistre un thème")
def save_theme(doc: Dict[str, Any] = Body(...), db: Session = Depends(get_db)) -> dict:
    schema, errors = load_theme_document(doc, _registry)
    if schema is None:
        raise HTTPException(422, {"errors": errors})
    if not schema.name.strip():
        raise HTTPException(422, "Le nom du thème est obligatoire")
    if not schema.id:
        schema = schema.model_copy(update={"id": f"custom-{int(time.time() * 1000)}"})
    schema = schema.model_copy(update={"updated_at": now_iso()})
    row = db_save_theme(db, schema, _registry)
    return {"id": row.theme_id, "block_count": row.block_count, "updated_at": row.updated_at}


@router.get("/themes", summary="Liste les thèmes enregistrés")
def list_themes(connection_id: Optional[str] = None, db: Session = Depends(get_db)) -> list:
    return [
        {
            "id":            r.theme_id,
            "name":          r.name,
            "description":   r.description,
            "connection_id": r.connection_id,
            "block_count":   r.block_count,
            "created_at":    r.created_at,
            "updated_at":    r.updated_at,
        }
        for r in db_list_themes(db, connection_id)
    ]


@router.get("/themes/{theme_id}", summary="Charge un thème (migré si nécessaire)")
def get_theme(theme_id: str, db: Session = Depends(get_db)) -> dict:
    schema, errors = db_get_theme(db, theme_id, _registry)
    if schema is None:
        if errors:
            raise HTTPException(422, {"errors": errors})
        raise HTTPException(404, "Thème introuvable")
    return schema.to_dict()


@router.delete("/themes/{theme_id}", summary="Supprime un thème")
def delete_theme(theme_id: str, db: Session = Depends(get_db)) -> dict:
    if not db_delete_theme(db, theme_id):
        raise HTTPException(404, "Thème introuvable")
    return {"deleted": theme_id}
