"""
Data models — ThemeDB
SQLAlchemy (SQLite). Le document est stocké au format Puck exporté (JSON texte).
"""
import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ThemeDB(Base):
    __tablename__ = "themes"
    theme_id:      Mapped[str]           = mapped_column(sa.String, primary_key=True, default=lambda: f"custom-{uuid.uuid4().hex[:12]}")
    name:          Mapped[str]           = mapped_column(sa.String, nullable=False)
    description:   Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    connection_id: Mapped[Optional[str]] = mapped_column(sa.String, nullable=True, index=True)
    data:          Mapped[str]           = mapped_column(sa.Text, nullable=False, default="{}")
    block_count:   Mapped[int]           = mapped_column(sa.Integer, default=0)
    created_at:    Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    updated_at:    Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    stored_at:     Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
