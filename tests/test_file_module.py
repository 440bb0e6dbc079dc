"""Tests de la source de modules à base de fichiers."""

from __future__ import annotations

import pytest

from resloader.domain.context import Context
from resloader.domain.sources import FileModuleSource


@pytest.fixture
def base(tmp_path):
    (tmp_path / "a.js").write_text("a();", encoding="utf-8")
    (tmp_path / "main.js").write_text("require('./data.json');", encoding="utf-8")
    (tmp_path / "data.json").write_text('{"k": 1}', encoding="utf-8")
    (tmp_path / "common.css").write_text(".c{}", encoding="utf-8")
    (tmp_path / "vector.css").write_text(".v{background:url(img/v.png)}", encoding="utf-8")
    (tmp_path / "default.css").write_text(".d{}", encoding="utf-8")
    (tmp_path / "row.html").write_text("<tr></tr>", encoding="utf-8")
    return tmp_path


def test_plain_scripts(base) -> None:
    source = FileModuleSource(str(base), scripts=["a.js"])
    assert source.get_script(Context()) == {"plainScripts": [{"name": "a.js", "content": "a();"}]}


def test_package_files(base) -> None:
    """Les fichiers JSON d'un paquet sont des données, le premier fichier est le point d'entrée."""
    source = FileModuleSource(str(base), package_files=["main.js", "data.json"])
    script = source.get_script(Context())
    assert script["main"] == "main.js"
    assert script["files"]["data.json"] == {"type": "data", "content": {"k": 1}}
    assert script["files"]["main.js"]["type"] == "script"


def test_skin_styles_and_default(base) -> None:
    source = FileModuleSource(
        str(base),
        styles={"all": ["common.css"]},
        skin_styles={"vector": "vector.css", "default": ["default.css"]},
    )
    assert source.get_styles(Context(skin="vector")) == {
        "all": [".c{}", ".v{background:url(img/v.png)}"]
    }
    assert source.get_styles(Context(skin="monobook")) == {"all": [".c{}", ".d{}"]}


def test_style_file_references_per_variant(base) -> None:
    source = FileModuleSource(str(base), skin_styles={"vector": ["vector.css"]})
    assert source.get_style_file_references(Context(skin="vector")) == [str(base / "img" / "v.png")]
    assert source.get_style_file_references(Context(skin="monobook")) == []


def test_skin_styles_override_merges(base) -> None:
    source = FileModuleSource(str(base), styles=["common.css"])
    source.set_skin_styles_override({"vector": ["vector.css"]})
    assert len(source.get_styles(Context(skin="vector"))["all"]) == 2


def test_debug_urls_and_templates(base) -> None:
    source = FileModuleSource(
        str(base), remote_base_path="/static/", styles={"print": ["common.css"]}, templates=["row.html"]
    )
    assert source.get_style_urls_for_debug(Context()) == {"print": ["/static/common.css"]}
    assert source.get_templates() == {"row.html": "<tr></tr>"}


def test_definition_summary_follows_declaration_order(base) -> None:
    ab = FileModuleSource(str(base), scripts=["a.js", "main.js"])
    ba = FileModuleSource(str(base), scripts=["main.js", "a.js"])
    sa = ab.get_definition_summary(Context(), {})["files"]
    sb = ba.get_definition_summary(Context(), {})["files"]
    assert sa["fileHashes"] == list(reversed(sb["fileHashes"]))


def test_is_known_empty(base) -> None:
    assert FileModuleSource(str(base)).is_known_empty(Context()) is True
    assert FileModuleSource(str(base), scripts=["a.js"]).is_known_empty(Context()) is False
