import json
import os

from resloader.core.settings import get_settings
from resloader.infra.content_repo import JSONMessageRepository, JSONPageRepository
from resloader.infra.dependency_store import (
    InMemoryDependencyStore,
    RedisDependencyStore,
    SqlDependencyStore,
)
from resloader.infra.message_blob_store import MessageBlobStore
from resloader.infra.object_cache import InMemoryObjectCache, RedisObjectCache
from resloader.infra.repo.db import get_engine
from resloader.services.loader import ResourceLoader


class Container:
    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        keyspace = self.settings.RL_KEYSPACE
        if self.settings.REDIS_URL:
            try:
                self.object_cache = RedisObjectCache(self.settings.REDIS_URL, keyspace=keyspace)
                self.storage_backend = "redis"
            except Exception as err:
                if getattr(self.settings, "REQUIRE_REDIS", False):
                    raise RuntimeError("Redis required but unavailable") from err
                self.object_cache = InMemoryObjectCache(keyspace)
                self.storage_backend = "memory-fallback"
        else:
            if getattr(self.settings, "REQUIRE_REDIS", False):
                raise RuntimeError("Redis required but REDIS_URL not set")
            self.object_cache = InMemoryObjectCache(keyspace)
            self.storage_backend = "memory"

        # Dépendances de fichiers: SQL > Redis > mémoire
        if self.settings.DATABASE_URL:
            self.dependency_store = SqlDependencyStore(
                get_engine(self.settings.DATABASE_URL, create_tables=True)
            )
        elif self.storage_backend == "redis":
            self.dependency_store = RedisDependencyStore(client=self.object_cache.client)
        else:
            self.dependency_store = InMemoryDependencyStore()

        self.message_repo = JSONMessageRepository(
            self.settings.RL_MESSAGES_PATH, fallback_language=self.settings.RL_CONTENT_LANGUAGE
        )
        self.page_repo = JSONPageRepository(self.settings.RL_PAGES_PATH)
        self.message_blob_store = MessageBlobStore(self.message_repo, self.object_cache)
        self.loader = ResourceLoader(
            self.settings,
            self.dependency_store,
            self.message_blob_store,
            self.object_cache,
            page_repo=self.page_repo,
        )
        self._load_module_definitions()

    def _load_module_definitions(self) -> None:
        path = self.settings.RL_MODULES_PATH
        if not path or not os.path.exists(path):
            return
        with open(path, encoding="utf-8") as f:
            definitions = json.load(f)
        self.loader.register_definitions(definitions, base_path=os.path.dirname(os.path.abspath(path)))


container = Container()
"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, cache objet, stores, registre des modules)
et expose un singleton `container` utilisé par le reste de l'application.
"""
