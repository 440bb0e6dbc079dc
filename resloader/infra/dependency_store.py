"""
Stores des dépendances indirectes de fichiers des modules.

Clé: `"{module}|{skin}|{langue}"`; valeur: liste ordonnée de chemins relatifs à la racine
d'installation. Trois implémentations: mémoire (dev/tests), hash Redis et table SQL `module_deps`.
Les erreurs des backends ne sont pas masquées: toute politique de retry appartient au backend.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, TypedDict

import redis
from sqlalchemy import delete, select
from sqlalchemy.engine import Engine

from resloader.infra.repo.db import session_scope
from resloader.infra.repo.models import ModuleDepsORM


class DependencyInfo(TypedDict):
    """Entrée renvoyée par `retrieve`."""

    paths: list[str]


def split_dep_key(key: str) -> tuple[str, str]:
    """Sépare `module|skin|langue` en (`module`, `skin|langue`)."""
    module, sep, variant = key.partition("|")
    if not sep or not module or not variant:
        raise ValueError(f"Invalid dependency key: {key!r}")
    return module, variant


class DependencyStore(ABC):
    """Interface des stores de dépendances."""

    def retrieve(self, key: str) -> DependencyInfo:
        """Retourne les chemins suivis pour une clé (liste vide si inconnue)."""
        return self.retrieve_multi([key])[key]

    @abstractmethod
    def retrieve_multi(self, keys: Iterable[str]) -> dict[str, DependencyInfo]:
        """Version en lot de `retrieve`."""
        raise NotImplementedError

    @abstractmethod
    def store_multi(self, data: Mapping[str, list[str]]) -> None:
        """Remplace les chemins suivis pour chaque clé."""
        raise NotImplementedError

    @abstractmethod
    def remove_multi(self, keys: Iterable[str]) -> None:
        """Supprime les entrées des clés données."""
        raise NotImplementedError


class InMemoryDependencyStore(DependencyStore):
    """Store en mémoire (non persistant)."""

    def __init__(self) -> None:
        """Initialise un store vide."""
        self._db: dict[str, list[str]] = {}

    def retrieve_multi(self, keys: Iterable[str]) -> dict[str, DependencyInfo]:
        return {key: {"paths": list(self._db.get(key, []))} for key in keys}

    def store_multi(self, data: Mapping[str, list[str]]) -> None:
        for key, paths in data.items():
            split_dep_key(key)
            self._db[key] = list(paths)

    def remove_multi(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._db.pop(key, None)


class RedisDependencyStore(DependencyStore):
    """Store adossé à un hash Redis (`rl:module_deps`, champ = clé, valeur = JSON)."""

    def __init__(self, url: str | None = None, client: Any = None, hash_key: str = "rl:module_deps"):
        """Crée un client Redis à partir de l'URL fournie (ou utilise `client`)."""
        self.client = client or redis.Redis.from_url(url, decode_responses=True)
        self.hash_key = hash_key

    def retrieve_multi(self, keys: Iterable[str]) -> dict[str, DependencyInfo]:
        keys = list(keys)
        if not keys:
            return {}
        raws = self.client.hmget(self.hash_key, keys)
        return {key: {"paths": json.loads(raw) if raw else []} for key, raw in zip(keys, raws)}

    def store_multi(self, data: Mapping[str, list[str]]) -> None:
        if not data:
            return
        for key in data:
            split_dep_key(key)
        self.client.hset(self.hash_key, mapping={k: json.dumps(list(v)) for k, v in data.items()})

    def remove_multi(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if keys:
            self.client.hdel(self.hash_key, *keys)


class SqlDependencyStore(DependencyStore):
    """Store SQL (table `module_deps`, une ligne par module et variante)."""

    def __init__(self, engine: Engine) -> None:
        """Construit le store avec un moteur SQLAlchemy."""
        self.engine = engine

    def retrieve_multi(self, keys: Iterable[str]) -> dict[str, DependencyInfo]:
        keys = list(keys)
        out: dict[str, DependencyInfo] = {key: {"paths": []} for key in keys}
        if not keys:
            return out
        modules = {split_dep_key(key)[0] for key in keys}
        with session_scope(self.engine) as session:
            stmt = select(ModuleDepsORM).where(ModuleDepsORM.md_module.in_(modules))
            for row in session.execute(stmt).scalars():
                key = f"{row.md_module}|{row.md_skin}"
                if key in out:
                    out[key] = {"paths": list(row.md_deps or [])}
        return out

    def store_multi(self, data: Mapping[str, list[str]]) -> None:
        with session_scope(self.engine) as session:
            for key, paths in data.items():
                module, variant = split_dep_key(key)
                stmt = select(ModuleDepsORM).where(
                    ModuleDepsORM.md_module == module, ModuleDepsORM.md_skin == variant
                )
                row = session.execute(stmt).scalars().first()
                if row is None:
                    session.add(ModuleDepsORM(md_module=module, md_skin=variant, md_deps=list(paths)))
                else:
                    row.md_deps = list(paths)

    def remove_multi(self, keys: Iterable[str]) -> None:
        with session_scope(self.engine) as session:
            for key in keys:
                module, variant = split_dep_key(key)
                session.execute(
                    delete(ModuleDepsORM).where(
                        ModuleDepsORM.md_module == module, ModuleDepsORM.md_skin == variant
                    )
                )
