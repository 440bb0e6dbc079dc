"""
Tests pour la résolution des variables d'environnement.

Ce module teste le chargement des paramètres du chargeur à partir de fichiers .env personnalisés.
"""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest

from resloader.core.container import Container
from resloader.core.settings import Settings


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """
    Teste que les settings lisent correctement les fichiers d'environnement.

    Vérifie que les variables définies dans un fichier .env personnalisé sont chargées et
    appliquées aux settings.
    """
    env = tmp_path / ".env.custom"
    env.write_text(
        "RL_VALIDATE_JS=false\nRL_KEYSPACE=frwiki\n"
        'RL_SOURCES={"wikidata": "https://wikidata.example/w/load.php"}\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("ENV_FILE", str(env))

    # Reload settings module to pick up new ENV_FILE
    settings_mod = importlib.import_module("resloader.core.settings")
    importlib.reload(settings_mod)
    get_settings = settings_mod.get_settings

    s = get_settings()
    assert s.RL_VALIDATE_JS is False
    assert s.RL_KEYSPACE == "frwiki"
    assert s.RL_SOURCES == {"wikidata": "https://wikidata.example/w/load.php"}

    monkeypatch.delenv("ENV_FILE")
    importlib.reload(settings_mod)


def test_container_requires_redis_when_configured() -> None:
    """REQUIRE_REDIS sans REDIS_URL est une erreur de démarrage."""
    with pytest.raises(RuntimeError):
        Container(Settings(REDIS_URL=None, REQUIRE_REDIS=True))


def test_container_memory_backends() -> None:
    container = Container(Settings(REDIS_URL=None, DATABASE_URL=None))
    assert container.storage_backend == "memory"
    assert container.loader.get_module_names() == []
