"""Tests des empreintes courtes et de la sérialisation canonique."""

from __future__ import annotations

from resloader.domain.hashing import (
    HASH_LENGTH,
    canonical_json,
    file_hash,
    fnv1_32,
    make_hash,
    to_base36,
)


def test_fnv1_offset_basis() -> None:
    """Sans donnée, FNV-1 retourne la base de décalage."""
    assert fnv1_32(b"") == 0x811C9DC5


def test_to_base36() -> None:
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36, 5) == "00010"


def test_make_hash_shape() -> None:
    """Empreinte déterministe de longueur fixe en base 36."""
    h = make_hash('{"_class":"x"}')
    assert len(h) == HASH_LENGTH
    assert h == make_hash('{"_class":"x"}')
    assert h != make_hash('{"_class":"y"}')
    assert set(h) <= set("0123456789abcdefghijklmnopqrstuvwxyz")


def test_canonical_json_keeps_insertion_order() -> None:
    """L'ordre d'insertion est conservé (jamais trié)."""
    assert canonical_json({"b": 1, "a": [2, "é"]}) == '{"b":1,"a":[2,"é"]}'


def test_file_hash(tmp_path) -> None:
    f = tmp_path / "a.css"
    f.write_text("a{}", encoding="utf-8")
    assert len(file_hash(str(f))) == 40
    assert file_hash(str(tmp_path / "missing.css")) == ""
