"""
Tests de la construction du contenu des modules.

Couvre la mémoïsation par empreinte de contexte, la forme du bundle (clés optionnelles absentes),
le traitement des styles selon le mode debug et la validation des scripts non fiables.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from prometheus_client import REGISTRY

from resloader.core.errors import ConfigNotSetError
from resloader.domain.context import Context
from resloader.domain.module import Module
from resloader.domain.sources import InlineModuleSource, Origin
from tests.fakes import CountingSource, ExplodingSource, NoURLSource


def test_content_is_memoized_per_context(loader, context) -> None:
    """Deux constructions pour la même empreinte retournent le même objet."""
    source = CountingSource(styles={"all": ".a{}"})
    module = loader.register("foo.bar", source)
    first = module.get_module_content(context)
    second = module.get_module_content(Context(language="en", skin="vector", modules=("x",)))
    assert first is second
    assert source.script_calls == 1
    assert source.style_calls == 1


def test_only_filter_still_builds_everything(loader, context) -> None:
    """Scripts et styles sont construits même avec un filtre `only`."""
    source = CountingSource(styles={"all": ".a{}"})
    module = loader.register("foo.bar", source)
    content = module.get_module_content(context.derive(only="styles"))
    assert source.script_calls == 1
    assert "scripts" in content and "styles" in content


def test_string_script_becomes_plain_scripts(loader, context) -> None:
    module = loader.register("foo.bar", CountingSource(script="mw.hello();"))
    content = module.get_module_content(context)
    assert content["scripts"] == {"plainScripts": [{"content": "mw.hello();"}]}


def test_minimal_bundle_has_no_optional_keys(loader, context) -> None:
    """Sans styles, messages, gabarits ni en-têtes: `styles == {}` et pas de clés optionnelles."""
    module = loader.register("foo.bar", CountingSource())
    content = module.get_module_content(context)
    assert content["styles"] == {}
    for key in ("messagesBlob", "templates", "headers", "deprecationWarning"):
        assert key not in content


def test_debug_styles_served_by_url(loader) -> None:
    """En debug sans filtre, les styles sont servis par une URL `only=styles` du module."""
    module = loader.register("foo.bar", CountingSource(styles={"all": ".a { color: red; }"}))
    ctx = Context(language="en", skin="vector", debug=1)
    content = module.get_module_content(ctx)
    assert content["styles"] == {
        "url": {"all": ["/load?debug=1&lang=en&modules=foo.bar&only=styles&skin=vector"]}
    }


def test_debug_styles_inline_when_filtered(loader) -> None:
    """En debug avec `only=styles`, le CSS est intégré sans minification."""
    css = ".a { color: red; }"
    module = loader.register("foo.bar", CountingSource(styles={"all": css}))
    content = module.get_module_content(Context(skin="vector", debug=1, only="styles"))
    assert content["styles"] == {"css": [css]}


def test_debug_styles_inline_without_url_support(loader) -> None:
    css = ".a { color: red; }"
    module = loader.register("foo.bar", NoURLSource(styles={"all": css}))
    content = module.get_module_content(Context(skin="vector", debug=1))
    assert content["styles"] == {"css": [css]}


def test_styles_minified_outside_debug(loader, context) -> None:
    """Hors debug, le CSS est minifié et enveloppé par média."""
    css = ".a  {\n  color : red ;\n}\n"
    module = loader.register("foo.bar", CountingSource(styles={"all": css, "print": css}))
    content = module.get_module_content(context)
    combined = content["styles"]["css"]
    assert len(combined) == 2
    assert "\n" not in combined[0] and len(combined[0]) < len(css)
    assert combined[1].startswith("@media print {")


def test_optional_keys_present_when_set(loader, context) -> None:
    """Gabarits, en-têtes de préchargement et avertissement de dépréciation."""
    source = InlineModuleSource(
        script="x();",
        templates={"row.html": "<tr></tr>"},
        preload_links={"https://example.org/a.png": {"as": "image"}},
    )
    module = loader.register("foo.bar", source, deprecated="Use foo.baz instead.")
    content = module.get_module_content(context)
    assert content["templates"] == {"row.html": "<tr></tr>"}
    assert content["headers"] == ["Link: <https://example.org/a.png>;rel=preload;as=image"]
    assert content["deprecationWarning"] == (
        'This page is using the deprecated ResourceLoader module "foo.bar".\nUse foo.baz instead.'
    )


def test_deprecation_warning_without_message(loader) -> None:
    module = loader.register("foo.bar", CountingSource(), deprecated=True)
    assert module.get_deprecation_warning() == (
        'This page is using the deprecated ResourceLoader module "foo.bar".'
    )


def test_preloaded_message_blob_is_used(loader, context, monkeypatch) -> None:
    """Un blob préchargé est utilisé sans chargement paresseux."""
    fake_log = Mock()
    monkeypatch.setattr("resloader.domain.module.log", fake_log)
    module = loader.register("foo.bar", CountingSource(messages=["greeting"]))
    module.set_message_blob('{"greeting":"Hi"}', "en")
    content = module.get_module_content(context)
    assert content["messagesBlob"] == '{"greeting":"Hi"}'
    fake_log.warning.assert_not_called()


def test_lazy_message_blob_logs_warning(loader, context, monkeypatch) -> None:
    """Un blob non préchargé est chargé à la demande avec un avertissement."""
    fake_log = Mock()
    monkeypatch.setattr("resloader.domain.module.log", fake_log)
    module = loader.register("foo.bar", CountingSource(messages=["greeting"]))
    content = module.get_module_content(context)
    assert content["messagesBlob"] == '{"greeting": "Hello"}'
    fake_log.warning.assert_called_once()
    assert fake_log.warning.call_args.args[0] == "message_blob_not_preloaded"


def test_no_messages_never_hits_blob_store(loader, context) -> None:
    loader.message_blob_store = Mock()
    loader.services.message_blob_store = loader.message_blob_store
    module = loader.register("foo.bar", CountingSource())
    assert "messagesBlob" not in module.get_module_content(context)
    loader.message_blob_store.get_blob.assert_not_called()


def test_untrusted_invalid_script_is_replaced(loader, context) -> None:
    """Un script utilisateur invalide devient un appel de log client."""
    source = InlineModuleSource(script={"plainScripts": [{"name": "User:Alice/x.js", "content": "var = ;"}]})
    module = loader.register("user.alice", source, origin=Origin.USER_INDIVIDUAL)
    content = module.get_module_content(context)
    replaced = content["scripts"]["plainScripts"][0]["content"]
    assert replaced.startswith("mw.log.error(")
    assert "Parse error:" in replaced
    assert "User:Alice/x.js" in replaced


def test_trusted_invalid_script_is_untouched(loader, context) -> None:
    module = loader.register("core.x", CountingSource(script="var = ;"))
    content = module.get_module_content(context)
    assert content["scripts"]["plainScripts"][0]["content"] == "var = ;"


def test_build_failure_propagates_and_is_not_cached(loader, context) -> None:
    """Une erreur de la source remonte et rien n'est mis en cache."""
    module = loader.register("foo.bar", ExplodingSource())
    with pytest.raises(RuntimeError):
        module.get_module_content(context)
    assert module.contents == {}


def test_build_time_is_recorded_with_safe_label(loader, context) -> None:
    """La durée de construction est observée sous le label `foo_bar`."""
    before = REGISTRY.get_sample_value("resourceloader_build_seconds_count", {"name": "foo_bar"}) or 0
    module = loader.register("foo.bar", CountingSource())
    module.get_module_content(context)
    after = REGISTRY.get_sample_value("resourceloader_build_seconds_count", {"name": "foo_bar"})
    assert after == before + 1


def test_module_without_services_cannot_build(context) -> None:
    """Un module non enregistré n'a pas de configuration."""
    module = Module(CountingSource(messages=["greeting"]), name="foo.bar")
    with pytest.raises(ConfigNotSetError):
        module.get_module_content(context)


def test_empty_string_script_is_still_wrapped(loader, context) -> None:
    module = loader.register("foo.bar", CountingSource(script=""))
    content = module.get_module_content(context)
    assert content["scripts"] == {"plainScripts": [{"content": ""}]}
