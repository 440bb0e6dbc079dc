"""Empreintes courtes et sérialisation canonique.

`make_hash` produit les empreintes de version exposées aux clients (5 caractères base 36 d'un FNV-1
32 bits); `file_hash` calcule l'empreinte du contenu d'un fichier pour les résumés de définition.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

HASH_LENGTH = 5

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def fnv1_32(data: bytes) -> int:
    """FNV-1 32 bits (multiplication puis xor)."""
    h = _FNV_OFFSET
    for byte in data:
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
        h ^= byte
    return h


def to_base36(value: int, pad: int = 0) -> str:
    """Représentation base 36 minuscule, complétée à gauche par des zéros."""
    if value == 0:
        digits = "0"
    else:
        out = []
        while value:
            value, rem = divmod(value, 36)
            out.append(_BASE36[rem])
        digits = "".join(reversed(out))
    return digits.rjust(pad, "0")


def make_hash(value: str) -> str:
    """Empreinte courte et déterministe d'une chaîne."""
    return to_base36(fnv1_32(value.encode("utf-8")), HASH_LENGTH)[:HASH_LENGTH]


def canonical_json(value: Any) -> str:
    """Sérialise en JSON compact en conservant l'ordre d'insertion (jamais trié)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def file_hash(path: str) -> str:
    """Empreinte du contenu d'un fichier, chaîne vide s'il est absent ou illisible."""
    try:
        with open(path, "rb") as f:
            return hashlib.sha1(f.read()).hexdigest()
    except OSError:
        return ""
