"""DB utilities for SQLAlchemy sessions/engine.

Uses the given URL, `DATABASE_URL`, or an in-memory SQLite database shared by all sessions.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from resloader.infra.repo.models import Base


def get_engine(url: str | None = None, create_tables: bool = False) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données."""
    db_url = url or os.getenv("DATABASE_URL") or "sqlite+pysqlite:///:memory:"
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in db_url:
            # Une seule connexion, sinon chaque session verrait une base vide.
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, future=True, echo=False, **kwargs)
    if create_tables:
        Base.metadata.create_all(engine)
    return engine


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Session transactionnelle: commit en sortie normale, rollback sur exception."""
    session = sessionmaker(bind=engine, class_=Session, expire_on_commit=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
