"""Sources de contenu des modules et interfaces de capacités.

Une source fournit le contenu brut d'un module (scripts, styles, messages, gabarits). Le wrapper
`Module` se charge du cache, du versionnage et du suivi des dépendances; les comportements optionnels
sont découverts par capacités (`isinstance` sur des protocoles `runtime_checkable`) plutôt que par
héritage de méthodes par défaut.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol, runtime_checkable

from resloader.domain.context import Context
from resloader.domain.hashing import file_hash
from resloader.domain.styles import find_local_image_refs

Script = str | dict[str, Any]
StylePairs = dict[str, str | list[str]]


class Origin(IntEnum):
    """Niveau de confiance d'un module, du plus sûr au moins sûr."""

    CORE_SITEWIDE = 1
    CORE_INDIVIDUAL = 2
    USER_SITEWIDE = 3
    USER_INDIVIDUAL = 4


@runtime_checkable
class ModuleSource(Protocol):
    """Interface requise de toute source de module."""

    def get_script(self, context: Context) -> Script:
        """Retourne le code JS (chaîne) ou une structure multi-fichiers."""

    def get_styles(self, context: Context) -> StylePairs:
        """Retourne les styles indexés par type de média."""

    def get_messages(self) -> list[str]:
        """Retourne les clés de messages utilisées par le module."""

    def get_templates(self) -> dict[str, str]:
        """Retourne les gabarits nommés du module."""


@runtime_checkable
class SupportsPreloadLinks(Protocol):
    """Source proposant des ressources à précharger (`Link: rel=preload`)."""

    def get_preload_links(self, context: Context) -> dict[str, dict[str, str]]:
        """Retourne {url: {"as": ..., "media": ...}}."""


@runtime_checkable
class SupportsSkinOverrides(Protocol):
    """Source acceptant des styles supplémentaires par skin."""

    def set_skin_styles_override(self, module_skin_styles: dict[str, Any]) -> None:
        """Ajoute des styles propres à certains skins."""


@runtime_checkable
class SupportsDefinitionSummary(Protocol):
    """Source contribuant au résumé de définition utilisé pour la version."""

    def get_definition_summary(self, context: Context, summary: dict[str, Any]) -> dict[str, Any]:
        """Complète `summary` (qui contient déjà `_class` et `_cacheVersion`) et le retourne."""


@runtime_checkable
class SupportsDebugStyleURLs(Protocol):
    """Source capable de servir ses styles par URL directe en mode debug."""

    def get_style_urls_for_debug(self, context: Context) -> dict[str, list[str]]:
        """Retourne {média: [url, ...]}."""


@runtime_checkable
class SupportsFileDependencies(Protocol):
    """Source dont les styles référencent des fichiers indirects (images)."""

    def get_style_file_references(self, context: Context) -> list[str]:
        """Retourne les chemins absolus des fichiers référencés par les styles."""


@runtime_checkable
class SupportsKnownEmpty(Protocol):
    """Source sachant déterminer à peu de frais qu'elle est vide."""

    def is_known_empty(self, context: Context) -> bool:
        """True si le module produira un contenu vide."""


def _content_hash(value: Any) -> str:
    raw = value if isinstance(value, str) else json.dumps(value, sort_keys=True)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


@dataclass
class InlineModuleSource:
    """Source dont le contenu est fourni directement (enregistrement programmatique)."""

    script: Script = ""
    styles: StylePairs = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)
    templates: dict[str, str] = field(default_factory=dict)
    preload_links: dict[str, dict[str, str]] = field(default_factory=dict)

    def get_script(self, context: Context) -> Script:
        return self.script

    def get_styles(self, context: Context) -> StylePairs:
        return dict(self.styles)

    def get_messages(self) -> list[str]:
        return list(self.messages)

    def get_templates(self) -> dict[str, str]:
        return dict(self.templates)

    def get_preload_links(self, context: Context) -> dict[str, dict[str, str]]:
        return dict(self.preload_links)

    def get_definition_summary(self, context: Context, summary: dict[str, Any]) -> dict[str, Any]:
        summary["inline"] = {
            "script": _content_hash(self.script),
            "styles": _content_hash(self.styles),
            "templates": _content_hash(self.templates),
            "messages": list(self.messages),
        }
        return summary

    def is_known_empty(self, context: Context) -> bool:
        return not self.script and not self.styles


class FileModuleSource:
    """
    Source lisant ses scripts, styles et gabarits depuis des fichiers.

    Les listes de fichiers gardent l'ordre de déclaration: l'ordre de concaténation fait partie de la
    sortie et doit donc se refléter dans la version.
    """

    def __init__(
        self,
        local_base_path: str,
        remote_base_path: str = "",
        scripts: list[str] | None = None,
        package_files: list[str] | None = None,
        styles: Mapping[str, list[str]] | list[str] | None = None,
        skin_styles: Mapping[str, Any] | None = None,
        messages: list[str] | None = None,
        templates: list[str] | None = None,
    ) -> None:
        """Initialise la source à partir des listes de fichiers relatives à `local_base_path`."""
        self.local_base_path = local_base_path
        self.remote_base_path = remote_base_path.rstrip("/")
        self.scripts = list(scripts or [])
        self.package_files = list(package_files or [])
        self.styles = self._normalize_styles(styles)
        self.skin_styles: dict[str, dict[str, list[str]]] = {}
        for skin, files in (skin_styles or {}).items():
            self.skin_styles[skin] = self._normalize_styles(files)
        self.messages = list(messages or [])
        self.templates = list(templates or [])
        self._style_refs: dict[str, list[str]] = {}

    @staticmethod
    def _normalize_styles(styles: Mapping[str, Any] | list[str] | str | None) -> dict[str, list[str]]:
        if not styles:
            return {}
        if isinstance(styles, str):
            return {"all": [styles]}
        if isinstance(styles, list):
            return {"all": list(styles)}
        return {media: [files] if isinstance(files, str) else list(files) for media, files in styles.items()}

    def _local_path(self, name: str) -> str:
        return os.path.join(self.local_base_path, name)

    def _read(self, name: str) -> str:
        with open(self._local_path(name), encoding="utf-8") as f:
            return f.read()

    def _styles_for_skin(self, skin: str) -> dict[str, list[str]]:
        merged = {media: list(files) for media, files in self.styles.items()}
        extra = self.skin_styles.get(skin, self.skin_styles.get("default", {}))
        for media, files in extra.items():
            merged.setdefault(media, []).extend(files)
        return merged

    def _all_files(self, skin: str) -> list[str]:
        files = list(self.scripts) + list(self.package_files)
        for media_files in self._styles_for_skin(skin).values():
            files.extend(media_files)
        files.extend(self.templates)
        return files

    def get_script(self, context: Context) -> Script:
        if self.package_files:
            files: dict[str, dict[str, Any]] = {}
            for name in self.package_files:
                text = self._read(name)
                if name.endswith(".json"):
                    files[name] = {"type": "data", "content": json.loads(text)}
                else:
                    files[name] = {"type": "script", "content": text}
            return {"files": files, "main": self.package_files[0]}
        if not self.scripts:
            return ""
        return {"plainScripts": [{"name": name, "content": self._read(name)} for name in self.scripts]}

    def get_styles(self, context: Context) -> StylePairs:
        pairs: StylePairs = {}
        refs: list[str] = []
        for media, files in self._styles_for_skin(context.skin).items():
            texts = []
            for name in files:
                css = self._read(name)
                texts.append(css)
                for ref in find_local_image_refs(css, self._local_path(name)):
                    if ref not in refs:
                        refs.append(ref)
            if texts:
                pairs[media] = texts
        self._style_refs[context.get_vary()] = refs
        return pairs

    def get_style_file_references(self, context: Context) -> list[str]:
        vary = context.get_vary()
        if vary not in self._style_refs:
            self.get_styles(context)
        return list(self._style_refs[vary])

    def get_style_urls_for_debug(self, context: Context) -> dict[str, list[str]]:
        return {
            media: [f"{self.remote_base_path}/{name}" for name in files]
            for media, files in self._styles_for_skin(context.skin).items()
        }

    def get_messages(self) -> list[str]:
        return list(self.messages)

    def get_templates(self) -> dict[str, str]:
        return {name: self._read(name) for name in self.templates}

    def set_skin_styles_override(self, module_skin_styles: dict[str, Any]) -> None:
        for skin, files in module_skin_styles.items():
            extra = self._normalize_styles(files)
            target = self.skin_styles.setdefault(skin, {})
            for media, names in extra.items():
                target.setdefault(media, []).extend(names)

    def get_definition_summary(self, context: Context, summary: dict[str, Any]) -> dict[str, Any]:
        files = self._all_files(context.skin)
        summary["files"] = {
            "scripts": self.scripts,
            "packageFiles": self.package_files,
            "styles": self._styles_for_skin(context.skin),
            "templates": self.templates,
            "messages": self.messages,
            "fileHashes": [file_hash(self._local_path(name)) for name in files],
        }
        return summary

    def is_known_empty(self, context: Context) -> bool:
        return not self.scripts and not self.package_files and not self._styles_for_skin(context.skin)


class PageRepository(Protocol):
    """Accès en lecture aux pages éditables du wiki."""

    def get_page(self, title: str) -> str | None:
        """Retourne le contenu d'une page ou None si elle n'existe pas."""


class WikiPageModuleSource:
    """Source dont le contenu provient de pages éditables par les utilisateurs.

    Les pages `.js` forment les scripts, les pages `.css` les styles (média `all`). Les pages absentes
    sont ignorées.
    """

    # Pages éditables par les utilisateurs: leurs scripts sont validés avant d'être servis.
    default_origin = Origin.USER_SITEWIDE

    def __init__(self, repo: PageRepository, pages: list[str]) -> None:
        """Initialise la source avec un dépôt de pages et la liste ordonnée des titres."""
        self.repo = repo
        self.pages = list(pages)

    def _pages_with_suffix(self, suffix: str) -> list[tuple[str, str]]:
        out = []
        for title in self.pages:
            if not title.endswith(suffix):
                continue
            content = self.repo.get_page(title)
            if content is not None:
                out.append((title, content))
        return out

    def get_script(self, context: Context) -> Script:
        pages = self._pages_with_suffix(".js")
        if not pages:
            return ""
        return {"plainScripts": [{"name": title, "content": text} for title, text in pages]}

    def get_styles(self, context: Context) -> StylePairs:
        texts = [text for _, text in self._pages_with_suffix(".css")]
        return {"all": texts} if texts else {}

    def get_messages(self) -> list[str]:
        return []

    def get_templates(self) -> dict[str, str]:
        return {}

    def get_definition_summary(self, context: Context, summary: dict[str, Any]) -> dict[str, Any]:
        summary["pages"] = [
            [title, _content_hash(self.repo.get_page(title) or "")] for title in self.pages
        ]
        return summary

    def is_known_empty(self, context: Context) -> bool:
        return all(self.repo.get_page(title) in (None, "") for title in self.pages)
