"""Registre des modules et construction des réponses `/load`.

`ResourceLoader` enregistre les modules, leur injecte les services partagés (configuration, stores,
validateur), précharge en lot les informations coûteuses (blobs de messages, dépendances de fichiers)
et assemble la réponse servie au client pour une liste de modules.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlencode

import structlog

from resloader.app.metrics import RL_MODULE_ERRORS, metric_label
from resloader.core.constants import LOCAL_SOURCE, ONLY_SCRIPTS, ONLY_STYLES
from resloader.core.errors import DuplicateModuleError, InvalidModuleNameError
from resloader.core.settings import Settings
from resloader.domain.context import Context, make_loader_query
from resloader.domain.definitions import ModuleDefinition, build_module
from resloader.domain.hashing import make_hash
from resloader.domain.module import Module, ModuleServices
from resloader.domain.sources import ModuleSource, PageRepository
from resloader.infra.dependency_store import DependencyStore
from resloader.infra.message_blob_store import MessageBlobStore
from resloader.infra.object_cache import ObjectCache
from resloader.services.script_validator import ScriptValidator

log = structlog.get_logger(__name__)


class ResourceLoader:
    """Registre des modules d'une installation."""

    def __init__(
        self,
        settings: Settings,
        dependency_store: DependencyStore,
        message_blob_store: MessageBlobStore,
        object_cache: ObjectCache,
        page_repo: PageRepository | None = None,
        script_validator: ScriptValidator | None = None,
    ) -> None:
        """Initialise le registre et les services partagés par tous les modules."""
        self.settings = settings
        self.dependency_store = dependency_store
        self.message_blob_store = message_blob_store
        self.object_cache = object_cache
        self.page_repo = page_repo
        self.script_validator = script_validator or ScriptValidator(
            object_cache,
            enabled=settings.RL_VALIDATE_JS,
            ttl=settings.RL_USERJS_PARSE_TTL,
        )
        self.sources: dict[str, str] = {LOCAL_SOURCE: settings.RL_LOAD_SCRIPT, **settings.RL_SOURCES}
        self._modules: dict[str, Module] = {}
        self.services = ModuleServices(
            settings=settings,
            dependency_store=dependency_store,
            message_blob_store=message_blob_store,
            script_validator=self.script_validator,
            create_loader_url=self.create_loader_url,
        )

    # ------------------------------------------------------------------
    # Enregistrement

    def register(self, name: str, module: Module | ModuleSource, **info: Any) -> Module:
        """Enregistre un module (ou une source, enveloppée avec `info`) sous `name`."""
        if name in self._modules:
            raise DuplicateModuleError(f"Module {name!r} is already registered")
        if not isinstance(module, Module):
            module = Module(module, **info)
        elif info:
            raise TypeError("Module metadata must be given when wrapping a source")
        module.set_name(name)
        if module.source_name not in self.sources:
            raise InvalidModuleNameError(
                f"Module {name!r} uses unknown source {module.source_name!r}"
            )
        module.set_services(self.services)
        self._modules[name] = module
        return module

    def register_definitions(
        self, definitions: Mapping[str, Mapping[str, Any]], base_path: str | None = None
    ) -> list[str]:
        """Valide et enregistre des définitions déclaratives; retourne les noms enregistrés."""
        base = base_path or self.settings.RL_INSTALL_ROOT
        names = []
        for name, raw in definitions.items():
            definition = ModuleDefinition.model_validate(raw)
            module = build_module(name, definition, base_path=base, page_repo=self.page_repo)
            self.register(name, module)
            names.append(name)
        return names

    def set_skin_styles_overrides(self, overrides: Mapping[str, Mapping[str, Any]]) -> None:
        """Applique des styles par skin aux modules enregistrés (`{module: {skin: files}}`)."""
        for name, skin_styles in overrides.items():
            module = self._modules.get(name)
            if module is not None:
                module.set_skin_styles_override(dict(skin_styles))

    def get_module(self, name: str) -> Module | None:
        return self._modules.get(name)

    def get_module_names(self) -> list[str]:
        return list(self._modules)

    # ------------------------------------------------------------------
    # Préchargement et URL

    def preload_module_info(self, names: Iterable[str], context: Context) -> None:
        """Charge en lot les blobs de messages et les dépendances de fichiers des modules."""
        modules = {n: m for n in names if (m := self._modules.get(n)) is not None}
        if not modules:
            return
        keys = {f"{name}|{context.get_vary()}": module for name, module in modules.items()}
        deps = self.dependency_store.retrieve_multi(list(keys))
        for key, module in keys.items():
            module.set_file_dependencies(context, deps[key]["paths"])
        blobs = self.message_blob_store.get_blobs(modules, context.language)
        for name, module in modules.items():
            # Les modules sans messages reçoivent None, ce qui évite toute recherche ultérieure.
            module.set_message_blob(blobs.get(name), context.language)

    def create_loader_url(self, source: str, context: Context) -> str:
        """URL `/load` d'une source pour les modules et paramètres du contexte."""
        base = self.sources[source]
        return f"{base}?{urlencode(make_loader_query(context, context.modules))}"

    # ------------------------------------------------------------------
    # Versions et réponses

    def get_combined_version(self, context: Context, names: Iterable[str]) -> str:
        """Empreinte combinée des versions de plusieurs modules (vide en debug)."""
        if context.debug:
            return ""
        versions = []
        for name in names:
            module = self._modules.get(name)
            if module is not None:
                versions.append(module.get_version_hash(context))
        return make_hash("".join(versions))

    def get_startup_manifest(self, context: Context) -> dict[str, dict[str, Any]]:
        """Registre client: version, dépendances, groupe et source de chaque module.

        Un module dont la version ne peut être calculée est journalisé et omis.
        """
        self.preload_module_info(self._modules, context)
        manifest = {}
        for name, module in self._modules.items():
            skins = module.get_skins()
            if skins is not None and context.skin not in skins:
                continue
            try:
                version = module.get_version_hash(context)
            except Exception:
                log.error("module_version_failed", module=name, exc_info=True)
                RL_MODULE_ERRORS.labels(name=metric_label(name)).inc()
                continue
            manifest[name] = {
                "version": version,
                "dependencies": module.get_dependencies(context),
                "group": module.group,
                "source": module.source_name,
            }
        return manifest

    def _filter_content(self, content: Mapping[str, Any], only: str | None) -> dict[str, Any]:
        if only == ONLY_SCRIPTS:
            return {k: v for k, v in content.items() if k not in ("styles",)}
        if only == ONLY_STYLES:
            return {"styles": content.get("styles", {})}
        return dict(content)

    def make_module_response(self, context: Context, names: Iterable[str]) -> dict[str, Any]:
        """Assemble la réponse pour les modules demandés.

        Un module qui échoue à se construire est signalé dans `errors` sans interrompre les autres.
        """
        names = list(dict.fromkeys(names))
        found = [n for n in names if n in self._modules]
        missing = [n for n in names if n not in self._modules]
        self.preload_module_info(found, context)

        modules: dict[str, Any] = {}
        errors: dict[str, str] = {}
        headers: list[str] = []
        for name in found:
            module = self._modules[name]
            try:
                content = module.get_module_content(context)
                version = module.get_version_hash(context)
            except Exception as exc:
                log.error("module_build_failed", module=name, exc_info=True)
                RL_MODULE_ERRORS.labels(name=metric_label(name)).inc()
                errors[name] = f"{type(exc).__name__}: {exc}"
                continue
            modules[name] = {"version": version, **self._filter_content(content, context.only)}
            headers.extend(content.get("headers", []))
        return {
            "modules": modules,
            "missing": missing,
            "errors": errors,
            "headers": headers,
        }
