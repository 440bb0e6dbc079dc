"""Dépôts de contenus basés sur fichiers JSON.

- `JSONMessageRepository`: textes des messages localisés, `{langue: {clé: texte}}`.
- `JSONPageRepository`: pages éditables par les utilisateurs, `{titre: contenu}`.
"""

import json
import os


def _load_json(path: str | None) -> dict:
    if not path or not os.path.exists(path):
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


class JSONMessageRepository:
    """Catalogue de messages par langue avec repli sur la langue du contenu."""

    def __init__(self, path: str | None = None, fallback_language: str = "en", data: dict | None = None):
        """Charge le catalogue depuis `path` ou depuis `data` (tests)."""
        self.path = path
        self.fallback_language = fallback_language
        self._data: dict[str, dict[str, str]] = data if data is not None else _load_json(path)

    def get_message(self, key: str, language: str) -> str | None:
        """Texte d'un message, en essayant la langue demandée puis la langue de repli."""
        for lang in (language, language.split("-", 1)[0], self.fallback_language):
            text = self._data.get(lang, {}).get(key)
            if text is not None:
                return text
        return None

    def get_messages(self, keys: list[str], language: str) -> dict[str, str]:
        """Textes de plusieurs messages; une clé inconnue est rendue `⧼clé⧽`."""
        out: dict[str, str] = {}
        for key in keys:
            text = self.get_message(key, language)
            out[key] = text if text is not None else f"⧼{key}⧽"
        return out


class JSONPageRepository:
    """Pages éditables (scripts et styles utilisateurs) indexées par titre."""

    def __init__(self, path: str | None = None, data: dict | None = None):
        """Charge les pages depuis `path` ou depuis `data` (tests)."""
        self.path = path
        self._pages: dict[str, str] = data if data is not None else _load_json(path)

    def get_page(self, title: str) -> str | None:
        """Retourne le contenu d'une page ou None si elle n'existe pas."""
        return self._pages.get(title)

