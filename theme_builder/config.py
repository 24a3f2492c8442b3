"""Configuration — variables d'environnement THEME_BUILDER_*"""
import os
from pathlib import Path

DATA_DIR = Path(os.getenv("THEME_BUILDER_DATA_DIR", str(Path(__file__).parent.parent / "data")))

DB_PATH       = os.getenv("THEME_BUILDER_DB_PATH", str(DATA_DIR / "theme_builder.db"))
HISTORY_LIMIT = int(os.getenv("THEME_BUILDER_HISTORY_LIMIT", "50"))
LOG_LEVEL     = os.getenv("THEME_BUILDER_LOG_LEVEL", "INFO").upper()


def db_url(path: str | None = None) -> str:
    """URL SQLAlchemy pour le fichier SQLite (DB_PATH par défaut)."""
    return f"sqlite:///{path or DB_PATH}"
