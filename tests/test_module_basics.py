"""Tests des métadonnées des modules (nom, configuration, direction, capacités optionnelles)."""

from __future__ import annotations

import pytest

from resloader.app.metrics import metric_label
from resloader.core.errors import ConfigNotSetError, InvalidModuleNameError
from resloader.domain.context import Context
from resloader.domain.module import Module, is_valid_module_name
from resloader.domain.sources import InlineModuleSource, WikiPageModuleSource
from tests.fakes import CountingSource


def test_name_can_be_set_once() -> None:
    module = Module(CountingSource())
    with pytest.raises(InvalidModuleNameError):
        _ = module.name
    module.set_name("foo.bar")
    module.set_name("foo.bar")
    with pytest.raises(InvalidModuleNameError):
        module.set_name("other")


@pytest.mark.parametrize(
    "name,valid",
    [("foo.bar", True), ("ext.a-b_c", True), ("", False), ("a|b", False), ("a,b", False),
     ("a!b", False), ("x" * 255, True), ("x" * 256, False)],
)
def test_is_valid_module_name(name, valid) -> None:
    assert is_valid_module_name(name) is valid


def test_config_before_injection_is_fatal() -> None:
    """Lire la configuration avant l'injection des services lève ConfigNotSetError."""
    module = Module(CountingSource(), name="foo.bar")
    with pytest.raises(ConfigNotSetError):
        _ = module.config


def test_metric_label() -> None:
    assert metric_label("foo.bar") == "foo_bar"
    assert metric_label("ext.a.b") == "ext_a_b"


def test_get_flip_compares_with_content_language(loader) -> None:
    module = loader.register("foo.bar", CountingSource())
    assert module.get_flip(Context(language="he")) is True
    assert module.get_flip(Context(language="fr")) is False


def test_group_and_origin_helpers(loader) -> None:
    private = loader.register("p", CountingSource(), group="private")
    site = loader.register("s", CountingSource(), group="site")
    ctx = Context()
    assert private.should_embed_module(ctx) is True
    assert site.should_embed_module(ctx) is False
    assert site.is_untrusted() is False
    assert private.supports_url_loading() is True


def test_is_known_empty(loader, page_repo) -> None:
    ctx = Context()
    assert loader.register("bare", CountingSource()).is_known_empty(ctx) is False
    assert loader.register("inline", InlineModuleSource()).is_known_empty(ctx) is True
    pages = loader.register("pages", WikiPageModuleSource(page_repo, ["User:Nobody/common.js"]))
    assert pages.is_known_empty(ctx) is True


def test_skin_override_ignored_without_capability(loader) -> None:
    module = loader.register("foo.bar", CountingSource())
    module.set_skin_styles_override({"vector": ["a.css"]})


def test_style_urls_for_debug_default(loader) -> None:
    """Sans capacité dédiée, l'URL de debug pointe sur le chargeur avec `only=styles`."""
    module = loader.register("foo.bar", CountingSource())
    urls = module.get_style_urls_for_debug(Context(skin="vector", debug=1, modules=("a", "b")))
    assert urls == {"all": ["/load?debug=1&lang=en&modules=foo.bar&only=styles&skin=vector"]}
