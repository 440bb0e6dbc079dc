"""Normalisation des chemins de dépendances de fichiers.

Les dépendances indirectes (images référencées par les feuilles de style) sont persistées relativement
à la racine d'installation afin de rester valides quand l'installation est déplacée ou mise à jour.
Toutes les fonctions travaillent en notation POSIX.

La normalisation est idempotente: `get_relative_path(get_relative_path(p)) == get_relative_path(p)`
et `get_relative_path(expand_relative_path(r)) == get_relative_path(r)`. Sans cela, la comparaison
faite lors de la sauvegarde verrait une différence à chaque requête.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable


def _to_posix(path: str) -> str:
    return path.replace("\\", "/")


def get_relative_path(path: str, root: str) -> str:
    """Retourne `path` relativement à `root`, sous forme normalisée.

    Un chemin déjà relatif est considéré comme relatif à la racine et seulement normalisé.
    """
    path = _to_posix(path)
    root = posixpath.normpath(_to_posix(root))
    if not posixpath.isabs(path):
        return posixpath.normpath(path)
    return posixpath.relpath(posixpath.normpath(path), root)


def expand_relative_path(path: str, root: str) -> str:
    """Retourne le chemin absolu d'un chemin relatif à `root` (absolu: normalisé tel quel)."""
    path = _to_posix(path)
    if posixpath.isabs(path):
        return posixpath.normpath(path)
    return posixpath.normpath(posixpath.join(_to_posix(root), path))


def get_relative_paths(paths: Iterable[str], root: str) -> list[str]:
    """Version liste de `get_relative_path`, ordre conservé."""
    return [get_relative_path(p, root) for p in paths]


def expand_relative_paths(paths: Iterable[str], root: str) -> list[str]:
    """Version liste de `expand_relative_path`, ordre conservé."""
    return [expand_relative_path(p, root) for p in paths]


def same_path_set(a: Iterable[str], b: Iterable[str]) -> bool:
    """Compare deux listes de chemins comme des ensembles (ordre et doublons ignorés)."""
    return set(a) == set(b)
