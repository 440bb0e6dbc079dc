"""Cache objet partagé (Redis ou mémoire) avec sémantique get-or-compute.

- `ObjectCache.get_with_set_callback(key, ttl, callback)`: retourne la valeur en cache, ou exécute
  `callback` et stocke son résultat. `None` est une valeur cacheable comme une autre.
- Les clés sont préfixées par un espace de clés (identifiant du wiki) pour éviter les collisions
  entre installations partageant le même backend; `make_global_key` sert aux clés partagées.

Les valeurs sont sérialisées en JSON dans une enveloppe `{"v": ...}`, ce qui distingue une valeur
`None` stockée d'une clé absente.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import redis
import structlog

log = structlog.get_logger(__name__)

_MISSING = object()


def _encode(value: Any) -> str:
    return json.dumps({"v": value})


def _decode(raw: str | bytes | None) -> Any:
    if raw is None:
        return _MISSING
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)["v"]


class ObjectCache(ABC):
    """Interface commune des caches objet."""

    def __init__(self, keyspace: str = "local") -> None:
        """Initialise le cache avec l'espace de clés de l'installation."""
        self.keyspace = keyspace

    @staticmethod
    def _join(parts: tuple[Any, ...]) -> str:
        return ":".join(str(p).replace(" ", "_") for p in parts)

    def make_key(self, *parts: Any) -> str:
        """Clé propre à cette installation: `{keyspace}:{parts...}`."""
        return f"{self.keyspace}:{self._join(parts)}"

    def make_global_key(self, *parts: Any) -> str:
        """Clé partagée entre installations: `global:{parts...}`."""
        return f"global:{self._join(parts)}"

    @abstractmethod
    def _get_raw(self, key: str) -> Any:
        """Retourne la valeur décodée ou `_MISSING`."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        """Stocke une valeur avec une durée de vie en secondes."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Supprime une clé."""
        raise NotImplementedError

    def get(self, key: str, default: Any = None) -> Any:
        value = self._get_raw(key)
        return default if value is _MISSING else value

    def get_with_set_callback(self, key: str, ttl: int, callback: Callable[[], Any]) -> Any:
        """Retourne la valeur en cache ou la calcule via `callback` (miss uniquement)."""
        value = self._get_raw(key)
        if value is not _MISSING:
            return value
        value = callback()
        self.set(key, value, ttl)
        return value


class InMemoryObjectCache(ObjectCache):
    """Cache objet en mémoire avec expiration (dev/tests, un seul processus)."""

    def __init__(self, keyspace: str = "local") -> None:
        """Initialise un cache vide."""
        super().__init__(keyspace)
        self._vals: dict[str, str] = {}
        self._exp: dict[str, float] = {}

    def _get_raw(self, key: str) -> Any:
        exp = self._exp.get(key)
        if exp is not None and exp <= time.time():
            self._exp.pop(key, None)
            self._vals.pop(key, None)
        return _decode(self._vals.get(key))

    def _purge_expired(self, now: float) -> None:
        for key in [k for k, exp in self._exp.items() if exp <= now]:
            self._exp.pop(key, None)
            self._vals.pop(key, None)

    def set(self, key: str, value: Any, ttl: int) -> None:
        now = time.time()
        # Les clés dérivées du contenu ne sont jamais relues une fois périmées.
        self._purge_expired(now)
        self._vals[key] = _encode(value)
        if ttl:
            self._exp[key] = now + int(ttl)
        else:
            self._exp.pop(key, None)

    def delete(self, key: str) -> None:
        self._vals.pop(key, None)
        self._exp.pop(key, None)


class RedisObjectCache(ObjectCache):
    """Cache objet adossé à Redis.

    Au premier accès concurrent, un verrou court (`SET NX`) évite que plusieurs workers calculent la
    même valeur; un worker qui n'obtient pas le verrou attend brièvement la valeur puis calcule
    lui-même si elle n'apparaît pas.
    """

    lock_ttl = 10
    lock_wait_attempts = 5
    lock_wait_seconds = 0.05

    def __init__(self, url: str | None = None, keyspace: str = "local", client: Any = None) -> None:
        """Crée le client Redis à partir de l'URL fournie (ou utilise `client`)."""
        super().__init__(keyspace)
        self.client = client or redis.Redis.from_url(url, decode_responses=True)

    def _get_raw(self, key: str) -> Any:
        return _decode(self.client.get(key))

    def set(self, key: str, value: Any, ttl: int) -> None:
        if ttl:
            self.client.set(key, _encode(value), ex=int(ttl))
        else:
            self.client.set(key, _encode(value))

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def get_with_set_callback(self, key: str, ttl: int, callback: Callable[[], Any]) -> Any:
        value = self._get_raw(key)
        if value is not _MISSING:
            return value
        lock_key = f"{key}:lock"
        if not self.client.set(lock_key, "1", nx=True, ex=self.lock_ttl):
            for _ in range(self.lock_wait_attempts):
                time.sleep(self.lock_wait_seconds)
                value = self._get_raw(key)
                if value is not _MISSING:
                    return value
            log.info("object_cache_lock_busy", key=key)
        try:
            value = callback()
            self.set(key, value, ttl)
        finally:
            self.client.delete(lock_key)
        return value
