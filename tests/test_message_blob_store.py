"""Tests des blobs de messages et du catalogue de messages."""

from __future__ import annotations

import json
from unittest.mock import Mock

from resloader.domain.module import Module
from resloader.infra.content_repo import JSONMessageRepository
from resloader.infra.message_blob_store import MessageBlobStore
from resloader.infra.object_cache import InMemoryObjectCache
from tests.fakes import CountingSource


def test_message_fallbacks(message_repo) -> None:
    """Langue demandée, puis langue de base, puis langue de repli; clé inconnue en `⧼clé⧽`."""
    assert message_repo.get_messages(["greeting", "farewell", "nope"], "fr-ca") == {
        "greeting": "Bonjour",
        "farewell": "Goodbye",
        "nope": "⧼nope⧽",
    }


def test_repository_reads_json_file(tmp_path) -> None:
    path = tmp_path / "messages.json"
    path.write_text(json.dumps({"en": {"a": "A"}}), encoding="utf-8")
    assert JSONMessageRepository(str(path)).get_message("a", "de") == "A"
    assert JSONMessageRepository(str(tmp_path / "missing.json")).get_message("a", "en") is None


def test_blob_is_cached(message_repo) -> None:
    """Le catalogue n'est lu qu'une fois par module et langue."""
    repo = Mock(wraps=message_repo)
    store = MessageBlobStore(repo, InMemoryObjectCache())
    module = Module(CountingSource(messages=["greeting", "greeting"]), name="foo.bar")

    assert json.loads(store.get_blob(module, "fr")) == {"greeting": "Bonjour"}
    store.get_blob(module, "fr")
    assert repo.get_messages.call_count == 1

    store.clear(module, "fr")
    store.get_blob(module, "fr")
    assert repo.get_messages.call_count == 2


def test_get_blobs_skips_modules_without_messages(blob_store) -> None:
    with_msgs = Module(CountingSource(messages=["greeting"]), name="a")
    without = Module(CountingSource(), name="b")
    blobs = blob_store.get_blobs({"a": with_msgs, "b": without}, "en")
    assert blobs == {"a": '{"greeting": "Hello"}'}
