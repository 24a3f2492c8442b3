"""SQLite — init + session + CRUD thèmes (stockage au format Puck)"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from . import config
from .blocks import BlockRegistry
from .core.schemas import ThemeSchema, now_iso
from .migration import load_theme_document
from .models import Base, ThemeDB
from .puck import theme_to_puck

log = logging.getLogger(__name__)

ENGINE       = None
SessionLocal = None


def configure(db_path: Optional[str] = None):
    """(Re)crée l'engine et la fabrique de sessions ; DB_PATH par défaut."""
    global ENGINE, SessionLocal
    path = db_path or config.DB_PATH
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    ENGINE = create_engine(config.db_url(path), connect_args={"check_same_thread": False})
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=ENGINE)
    return ENGINE


def init_db(db_path: Optional[str] = None):
    if ENGINE is None or db_path:
        configure(db_path)
    Base.metadata.create_all(bind=ENGINE)
    log.info("Base thèmes prête : %s", ENGINE.url)


def get_db():
    if SessionLocal is None:
        configure()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── JSON helpers ──
def jd(o) -> str:
    return json.dumps(o, ensure_ascii=False)


# ── Themes ──
def db_save_theme(db: Session, schema: ThemeSchema, registry: Optional[BlockRegistry] = None) -> ThemeDB:
    """Exporte au format Puck puis insère ou met à jour la ligne."""
    if not schema.id:
        raise ValueError("Thème sans id")
    updated_at = schema.updated_at or now_iso()
    stamped = schema.model_copy(update={
        "created_at": schema.created_at or updated_at,
        "updated_at": updated_at,
    })
    data = jd(theme_to_puck(stamped, registry).to_dict())

    row = db.get(ThemeDB, schema.id)
    if row is None:
        row = ThemeDB(theme_id=schema.id)
        db.add(row)
    row.name          = stamped.name
    row.description   = stamped.description
    row.connection_id = stamped.connection_id
    row.data          = data
    row.block_count   = len(stamped.blocks)
    row.created_at    = stamped.created_at
    row.updated_at    = stamped.updated_at
    db.commit(); db.refresh(row)
    log.info("Thème %s enregistré (%d blocs)", row.theme_id, row.block_count)
    return row


def db_get_theme_row(db: Session, theme_id: str) -> Optional[ThemeDB]:
    return db.get(ThemeDB, theme_id)


def db_get_theme(
    db: Session,
    theme_id: str,
    registry: Optional[BlockRegistry] = None,
) -> Tuple[Optional[ThemeSchema], List[str]]:
    """(ThemeSchema, []) ; (None, []) si absent ; (None, erreurs) si illisible."""
    row = db.get(ThemeDB, theme_id)
    if row is None:
        return None, []
    try:
        raw = json.loads(row.data or "{}")
    except json.JSONDecodeError as e:
        log.warning("Thème %s : JSON illisible (%s)", theme_id, e)
        return None, [f"JSON illisible : {e}"]
    schema, errors = load_theme_document(raw, registry)
    if schema is not None and not schema.id:
        schema = schema.model_copy(update={"id": row.theme_id})
    return schema, errors


def db_list_themes(db: Session, connection_id: Optional[str] = None) -> List[ThemeDB]:
    q = db.query(ThemeDB)
    if connection_id:
        q = q.filter(ThemeDB.connection_id == connection_id)
    return q.order_by(ThemeDB.updated_at.desc()).all()


def db_delete_theme(db: Session, theme_id: str) -> bool:
    row = db.get(ThemeDB, theme_id)
    if row is None:
        return False
    db.delete(row); db.commit()
    log.info("Thème %s supprimé", theme_id)
    return True
