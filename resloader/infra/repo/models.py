"""SQLAlchemy models for persistence layer (module file dependencies)."""

from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, MetaData, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class ModuleDepsORM(Base):
    """Dépendances indirectes d'un module pour une variante `skin|langue`."""

    __tablename__ = "module_deps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    md_module = Column(String(255), nullable=False)
    md_skin = Column(String(64 + 1 + 35), nullable=False)
    md_deps = Column(JSON, nullable=False, default=list)

    __table_args__ = (UniqueConstraint("md_module", "md_skin", name="uq_module_skin"),)
