"""Configuration de test pour pytest avec gestion des chemins et fixtures partagées.

Ajoute la racine du projet au sys.path et fournit un registre de modules complet adossé aux
implémentations en mémoire (cache objet, store de dépendances, catalogue de messages).
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from resloader...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from resloader.core.settings import Settings  # noqa: E402
from resloader.domain.context import Context  # noqa: E402
from resloader.infra.content_repo import JSONMessageRepository, JSONPageRepository  # noqa: E402
from resloader.infra.dependency_store import InMemoryDependencyStore  # noqa: E402
from resloader.infra.message_blob_store import MessageBlobStore  # noqa: E402
from resloader.infra.object_cache import InMemoryObjectCache  # noqa: E402
from resloader.services.loader import ResourceLoader  # noqa: E402

INSTALL_ROOT = "/srv/wiki"

MESSAGES = {
    "en": {"greeting": "Hello", "farewell": "Goodbye"},
    "fr": {"greeting": "Bonjour"},
}


@pytest.fixture
def settings() -> Settings:
    """Settings isolés de l'environnement (pas de Redis ni de base SQL)."""
    return Settings(
        REDIS_URL=None,
        DATABASE_URL=None,
        RL_INSTALL_ROOT=INSTALL_ROOT,
        RL_VALIDATE_JS=True,
        RL_SOURCES={"remote": "https://remote.example/w/load.php"},
    )


@pytest.fixture
def object_cache() -> InMemoryObjectCache:
    return InMemoryObjectCache("testwiki")


@pytest.fixture
def dependency_store() -> InMemoryDependencyStore:
    return InMemoryDependencyStore()


@pytest.fixture
def message_repo() -> JSONMessageRepository:
    return JSONMessageRepository(data=MESSAGES)


@pytest.fixture
def page_repo() -> JSONPageRepository:
    return JSONPageRepository(
        data={
            "MediaWiki:Common.js": "var ok = true;",
            "MediaWiki:Common.css": ".site { color: red; }",
            "User:Alice/broken.js": "function ( {",
        }
    )


@pytest.fixture
def blob_store(message_repo, object_cache) -> MessageBlobStore:
    return MessageBlobStore(message_repo, object_cache)


@pytest.fixture
def loader(settings, dependency_store, blob_store, object_cache, page_repo) -> ResourceLoader:
    """Registre vide câblé sur les stores en mémoire."""
    return ResourceLoader(
        settings, dependency_store, blob_store, object_cache, page_repo=page_repo
    )


@pytest.fixture
def context() -> Context:
    return Context(language="en", skin="vector")
