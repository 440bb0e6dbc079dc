"""Wrapper d'exécution d'un module: construction, cache et versionnage du contenu.

Un `Module` enveloppe une `ModuleSource` et possède les caches en mémoire propres à une requête
(contenu et version par empreinte de contexte, blobs de messages par langue, dépendances de
fichiers par variante). Ces caches ne sont jamais évincés: un module vit le temps du processus qui
traite la requête.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypedDict

import structlog

from resloader.app.metrics import (
    RL_BUILD_SECONDS,
    RL_DEPENDENCY_WRITES,
    RL_MESSAGE_BLOB_LAZY,
    RL_VERSION_HASH_COMPUTED,
    metric_label,
)
from resloader.core.constants import (
    CACHE_VERSION,
    FORBIDDEN_NAME_CHARS,
    GROUP_PRIVATE,
    LOCAL_SOURCE,
    MAX_MODULE_NAME_LENGTH,
    ONLY_STYLES,
    TYPE_COMBINED,
)
from resloader.core.errors import (
    ConfigNotSetError,
    DefinitionSummaryError,
    InvalidModuleNameError,
)
from resloader.domain.context import Context, direction_for
from resloader.domain.hashing import canonical_json, file_hash, make_hash
from resloader.domain.paths import expand_relative_paths, get_relative_paths, same_path_set
from resloader.domain.sources import (
    ModuleSource,
    Origin,
    SupportsDebugStyleURLs,
    SupportsDefinitionSummary,
    SupportsFileDependencies,
    SupportsKnownEmpty,
    SupportsPreloadLinks,
    SupportsSkinOverrides,
)
from resloader.domain.styles import make_combined_styles, minify_style_pairs

if TYPE_CHECKING:
    from resloader.core.settings import Settings
    from resloader.infra.dependency_store import DependencyStore
    from resloader.infra.message_blob_store import MessageBlobStore
    from resloader.services.script_validator import ScriptValidator

log = structlog.get_logger(__name__)


class ModuleContent(TypedDict, total=False):
    """Bundle servi au client; les clés optionnelles sont absentes quand elles sont vides."""

    scripts: str | dict[str, Any]
    styles: dict[str, Any]
    messagesBlob: str
    templates: dict[str, str]
    headers: list[str]
    deprecationWarning: str


@dataclass
class ModuleServices:
    """Collaborateurs injectés dans un module à l'enregistrement."""

    settings: Settings
    dependency_store: DependencyStore
    message_blob_store: MessageBlobStore
    script_validator: ScriptValidator
    create_loader_url: Callable[[str, Context], str]


class Module:
    """
    Module enregistré: métadonnées, caches par contexte et pipeline de contenu.

    Attributs
    - source: fournisseur du contenu brut (`ModuleSource`).
    - origin: niveau de confiance (`Origin`); par défaut celui de la source (`default_origin`), sinon
      `CORE_SITEWIDE`. Les origines utilisateur déclenchent la validation JS.
    - group: groupe réservé (`site`, `user`, `private`, `noscript`) ou libre.
    - type: `scripts`, `styles` ou `combined`.
    - source_name: `local` ou nom d'une source distante.
    - deprecated: False, True ou message explicatif.
    - content_versioned: hache le contenu complet plutôt que le résumé de définition.
    """

    def __init__(
        self,
        source: ModuleSource,
        *,
        name: str | None = None,
        origin: Origin | None = None,
        group: str | None = None,
        type: str = TYPE_COMBINED,
        source_name: str = LOCAL_SOURCE,
        deprecated: bool | str = False,
        skins: list[str] | None = None,
        dependencies: list[str] | None = None,
        content_versioned: bool = False,
        services: ModuleServices | None = None,
    ) -> None:
        """Initialise le module; le nom et les services peuvent être fixés plus tard."""
        self.source = source
        self._name: str | None = None
        if name is not None:
            self.set_name(name)
        if origin is None:
            origin = getattr(source, "default_origin", Origin.CORE_SITEWIDE)
        self.origin = Origin(origin)
        self.group = group
        self.type = type
        self.source_name = source_name
        self.deprecated = deprecated
        self.skins = list(skins) if skins is not None else None
        self.dependencies = list(dependencies or [])
        self.content_versioned = content_versioned
        self._services = services

        self.contents: dict[str, ModuleContent] = {}
        self.version_hash: dict[str, str] = {}
        self.msg_blobs: dict[str, str | None] = {}
        self.file_deps: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Identité et configuration

    @property
    def name(self) -> str:
        if self._name is None:
            raise InvalidModuleNameError("Module name has not been set")
        return self._name

    def set_name(self, name: str) -> None:
        """Fixe le nom du module (une seule fois)."""
        if self._name is not None and self._name != name:
            raise InvalidModuleNameError(f"Module name already set to {self._name!r}")
        if not is_valid_module_name(name):
            raise InvalidModuleNameError(f"Invalid module name: {name!r}")
        self._name = name

    def set_services(self, services: ModuleServices) -> None:
        self._services = services

    @property
    def services(self) -> ModuleServices:
        if self._services is None:
            raise ConfigNotSetError(f"Services for module {self._name!r} have not been set")
        return self._services

    @property
    def config(self) -> Settings:
        """Configuration injectée; sa lecture avant injection est une erreur fatale."""
        return self.services.settings

    def set_skin_styles_override(self, module_skin_styles: dict[str, Any]) -> None:
        """Transmet des styles par skin à la source si elle le supporte (ignoré sinon)."""
        if isinstance(self.source, SupportsSkinOverrides):
            self.source.set_skin_styles_override(module_skin_styles)

    # ------------------------------------------------------------------
    # Métadonnées

    def get_deprecation_warning(self) -> str | None:
        if not self.deprecated:
            return None
        warning = f'This page is using the deprecated ResourceLoader module "{self.name}".'
        if isinstance(self.deprecated, str):
            warning += "\n" + self.deprecated
        return warning

    def get_flip(self, context: Context) -> bool:
        """True si la direction demandée diffère de celle de la langue du contenu."""
        return direction_for(self.config.RL_CONTENT_LANGUAGE) != context.direction

    def get_dependencies(self, context: Context | None = None) -> list[str]:
        return list(self.dependencies)

    def get_skins(self) -> list[str] | None:
        return self.skins

    def supports_url_loading(self) -> bool:
        return getattr(self.source, "supports_url_loading", True)

    def is_known_empty(self, context: Context) -> bool:
        if isinstance(self.source, SupportsKnownEmpty):
            return self.source.is_known_empty(context)
        return False

    def should_embed_module(self, context: Context) -> bool:
        return self.group == GROUP_PRIVATE

    def is_untrusted(self) -> bool:
        return self.origin >= Origin.USER_SITEWIDE

    # ------------------------------------------------------------------
    # Messages

    def get_message_blob(self, context: Context) -> str | None:
        """Blob JSON des messages pour la langue du contexte, None sans messages.

        Le blob doit normalement avoir été préchargé en lot; un chargement paresseux est journalisé.
        """
        if not self.source.get_messages():
            return None
        lang = context.language
        if lang not in self.msg_blobs:
            log.warning("message_blob_not_preloaded", module=self.name, language=lang)
            RL_MESSAGE_BLOB_LAZY.labels(name=metric_label(self.name)).inc()
            self.msg_blobs[lang] = self.services.message_blob_store.get_blob(self, lang)
        return self.msg_blobs[lang]

    def set_message_blob(self, blob: str | None, lang: str) -> None:
        self.msg_blobs[lang] = blob

    # ------------------------------------------------------------------
    # Dépendances de fichiers

    def _deps_key(self, context: Context) -> str:
        return f"{self.name}|{context.get_vary()}"

    def get_file_dependencies(self, context: Context) -> list[str]:
        """Chemins relatifs suivis pour la variante du contexte (chargés une fois du store)."""
        variant = context.get_vary()
        if variant not in self.file_deps:
            stored = self.services.dependency_store.retrieve(self._deps_key(context))
            self.file_deps[variant] = list(stored["paths"])
        return self.file_deps[variant]

    def set_file_dependencies(self, context: Context, paths: list[str]) -> None:
        self.file_deps[context.get_vary()] = list(paths)

    def save_file_dependencies(self, context: Context, cur_file_refs: list[str]) -> bool:
        """Persiste les dépendances si l'ensemble a changé; retourne True en cas d'écriture.

        La comparaison est ensembliste: un simple réordonnancement ou des doublons ne provoquent pas
        d'écriture.
        """
        root = self.config.RL_INSTALL_ROOT
        paths = get_relative_paths(cur_file_refs, root)
        prior = get_relative_paths(self.get_file_dependencies(context), root)
        if same_path_set(paths, prior):
            return False
        self.services.dependency_store.store_multi({self._deps_key(context): paths})
        RL_DEPENDENCY_WRITES.labels(name=metric_label(self.name)).inc()
        self.set_file_dependencies(context, paths)
        return True

    # ------------------------------------------------------------------
    # Contenu

    def get_headers(self, context: Context) -> list[str]:
        """En-têtes HTTP du module (préchargements regroupés en un seul `Link`)."""
        if not isinstance(self.source, SupportsPreloadLinks):
            return []
        links = []
        for url, attribs in self.source.get_preload_links(context).items():
            link = f"<{url}>;rel=preload"
            for key, val in attribs.items():
                link += f";{key}={val}"
            links.append(link)
        if links:
            return ["Link: " + ",".join(links)]
        return []

    def get_style_urls_for_debug(self, context: Context) -> dict[str, list[str]]:
        if isinstance(self.source, SupportsDebugStyleURLs):
            return self.source.get_style_urls_for_debug(context)
        derivative = context.derive(modules=(self.name,), only=ONLY_STYLES)
        url = self.services.create_loader_url(self.source_name, derivative)
        return {"all": [url]}

    def validate_script_file(self, file_name: str, contents: str) -> str:
        return self.services.script_validator.validate(file_name, contents)

    def _validate_scripts(self, scripts: dict[str, Any]) -> dict[str, Any]:
        if "plainScripts" in scripts:
            plain = []
            for index, item in enumerate(scripts["plainScripts"]):
                file_name = item.get("name") or f"{self.name}#{index}"
                plain.append({**item, "content": self.validate_script_file(file_name, item["content"])})
            return {**scripts, "plainScripts": plain}
        if "files" in scripts:
            files = {}
            for file_name, info in scripts["files"].items():
                if info.get("type", "script") == "script":
                    info = {**info, "content": self.validate_script_file(file_name, info["content"])}
                files[file_name] = info
            return {**scripts, "files": files}
        return scripts

    def get_module_content(self, context: Context) -> ModuleContent:
        """Bundle du module pour le contexte, construit une seule fois par empreinte."""
        context_hash = context.get_hash()
        if context_hash not in self.contents:
            self.contents[context_hash] = self._build_content(context)
        return self.contents[context_hash]

    def _build_content(self, context: Context) -> ModuleContent:
        start = time.perf_counter()
        # Scripts et styles sont toujours construits, quel que soit `only`: la version dérivée du
        # contenu doit être la même pour only=scripts et only=styles.
        content: ModuleContent = {}

        scripts = self.source.get_script(context)
        if isinstance(scripts, str):
            scripts = {"plainScripts": [{"content": scripts}]}
        if self.is_untrusted():
            scripts = self._validate_scripts(scripts)
        content["scripts"] = scripts

        styles: dict[str, Any] = {}
        style_pairs = self.source.get_styles(context)
        if isinstance(self.source, SupportsFileDependencies):
            self.save_file_dependencies(context, self.source.get_style_file_references(context))
        if style_pairs:
            if context.debug and not context.only and self.supports_url_loading():
                styles = {"url": self.get_style_urls_for_debug(context)}
            else:
                if not context.debug:
                    style_pairs = minify_style_pairs(style_pairs)
                styles = {"css": make_combined_styles(style_pairs)}
        content["styles"] = styles

        blob = self.get_message_blob(context)
        if blob:
            content["messagesBlob"] = blob

        templates = self.source.get_templates()
        if templates:
            content["templates"] = templates

        headers = self.get_headers(context)
        if headers:
            content["headers"] = headers

        deprecation_warning = self.get_deprecation_warning()
        if deprecation_warning is not None:
            content["deprecationWarning"] = deprecation_warning

        RL_BUILD_SECONDS.labels(name=metric_label(self.name)).observe(time.perf_counter() - start)
        return content

    # ------------------------------------------------------------------
    # Version

    def get_definition_summary(self, context: Context) -> dict[str, Any]:
        """Résumé déterministe des propriétés qui définissent la sortie du module."""
        summary: dict[str, Any] = {
            "_class": f"{type(self.source).__module__}.{type(self.source).__qualname__}",
            # Invalide aussi les URL et les stores clients quand le format de cache change.
            "_cacheVersion": CACHE_VERSION,
        }
        if isinstance(self.source, SupportsDefinitionSummary):
            summary = self.source.get_definition_summary(context, summary)
        return summary

    def get_version_hash(self, context: Context) -> str:
        """Empreinte courte de la sortie courante; chaîne vide en mode debug."""
        if context.debug:
            return ""
        context_hash = context.get_hash()
        if context_hash not in self.version_hash:
            if self.content_versioned:
                raw = canonical_json(self.get_module_content(context))
                strategy = "content"
            else:
                summary = self.get_definition_summary(context)
                if (
                    not isinstance(summary, dict)
                    or "_class" not in summary
                    or "_cacheVersion" not in summary
                ):
                    raise DefinitionSummaryError(
                        f"Definition summary of {self.name!r} must keep _class and _cacheVersion"
                    )
                summary = self._add_runtime_summary(context, summary)
                raw = canonical_json(summary)
                strategy = "summary"
            self.version_hash[context_hash] = make_hash(raw)
            RL_VERSION_HASH_COMPUTED.labels(strategy=strategy).inc()
        return self.version_hash[context_hash]

    def _add_runtime_summary(self, context: Context, summary: dict[str, Any]) -> dict[str, Any]:
        summary = dict(summary)
        blob = self.get_message_blob(context)
        if blob:
            summary["_messageBlob"] = hashlib.sha1(blob.encode("utf-8")).hexdigest()
        if isinstance(self.source, SupportsFileDependencies):
            root = self.config.RL_INSTALL_ROOT
            deps = self.get_file_dependencies(context)
            summary["_fileDependencies"] = [
                file_hash(path) for path in expand_relative_paths(deps, root)
            ]
        return summary


def is_valid_module_name(name: str) -> bool:
    """Un nom valide est non vide, borné en longueur et sans `|`, `,` ni `!`."""
    if not isinstance(name, str) or not name or len(name) > MAX_MODULE_NAME_LENGTH:
        return False
    return not any(ch in name for ch in FORBIDDEN_NAME_CHARS)
