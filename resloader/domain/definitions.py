"""Définitions déclaratives de modules (fichier JSON de registre).

Format: `{"nom.du.module": {"class": "file", "scripts": [...], ...}, ...}`. Les définitions sont
validées par Pydantic puis transformées en `Module` par `build_module`.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from resloader.core.constants import LOCAL_SOURCE, TYPE_COMBINED
from resloader.domain.module import Module
from resloader.domain.sources import (
    FileModuleSource,
    InlineModuleSource,
    Origin,
    PageRepository,
    WikiPageModuleSource,
)


class ModuleDefinition(BaseModel):
    """Définition d'un module telle que déclarée dans le registre."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    module_class: Literal["inline", "file", "wikipage"] = Field("file", alias="class")
    # Absent: origine par défaut de la source (utilisateur pour `wikipage`).
    origin: Origin | None = None
    group: str | None = None
    type: Literal["scripts", "styles", "combined"] = TYPE_COMBINED
    source: str = LOCAL_SOURCE
    deprecated: bool | str = False
    skins: list[str] | None = None
    dependencies: list[str] = []
    content_versioned: bool = False

    # inline
    script: str = ""
    inline_styles: dict[str, str | list[str]] = {}

    # file
    local_base_path: str | None = Field(None, alias="localBasePath")
    remote_base_path: str = Field("", alias="remoteBasePath")
    scripts: list[str] = []
    package_files: list[str] = Field([], alias="packageFiles")
    styles: dict[str, list[str]] | list[str] = []
    skin_styles: dict[str, Any] = Field({}, alias="skinStyles")
    templates: list[str] = []

    # commun
    messages: list[str] = []

    # wikipage
    pages: list[str] = []


def build_module(
    name: str,
    definition: ModuleDefinition,
    *,
    base_path: str,
    page_repo: PageRepository | None = None,
) -> Module:
    """Instancie le module correspondant à une définition validée."""
    if definition.module_class == "inline":
        source = InlineModuleSource(
            script=definition.script,
            styles=dict(definition.inline_styles),
            messages=list(definition.messages),
        )
    elif definition.module_class == "wikipage":
        if page_repo is None:
            raise ValueError(f"Module {name!r} needs a page repository")
        source = WikiPageModuleSource(page_repo, definition.pages)
    else:
        local = definition.local_base_path or ""
        if not os.path.isabs(local):
            local = os.path.join(base_path, local)
        source = FileModuleSource(
            local_base_path=local,
            remote_base_path=definition.remote_base_path,
            scripts=definition.scripts,
            package_files=definition.package_files,
            styles=definition.styles,
            skin_styles=definition.skin_styles,
            messages=definition.messages,
            templates=definition.templates,
        )
    return Module(
        source,
        name=name,
        origin=definition.origin,
        group=definition.group,
        type=definition.type,
        source_name=definition.source,
        deprecated=definition.deprecated,
        skins=definition.skins,
        dependencies=definition.dependencies,
        content_versioned=definition.content_versioned,
    )
