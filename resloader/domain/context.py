"""Contexte de requête du chargeur de modules (objet domaine immuable).

Le contexte décrit les paramètres d'une requête `/load` qui peuvent modifier la sortie d'un module:
langue, habillage (skin), niveau de debug et filtre `only`. Son empreinte (`get_hash`) sert de clé à
tous les caches en mémoire des modules.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from resloader.core.constants import ONLY_SCRIPTS, ONLY_STYLES, RTL_LANGUAGES
from resloader.core.errors import InvalidContextError

_VALID_LANG_RE = re.compile(r"^[a-z0-9-]{1,35}$", re.IGNORECASE)
_VALID_SKIN_RE = re.compile(r"^[a-z0-9_-]{1,64}$", re.IGNORECASE)
_VALID_ONLY = (ONLY_SCRIPTS, ONLY_STYLES)
_DEBUG_MAX = 2


def direction_for(language: str) -> str:
    """Retourne la direction d'écriture (`ltr`/`rtl`) d'un code langue."""
    base = language.split("-", 1)[0].lower()
    return "rtl" if base in RTL_LANGUAGES else "ltr"


@dataclass(frozen=True)
class Context:
    """
    Descripteur immuable d'une requête.

    Attributs
    - language: code langue cible.
    - skin: habillage demandé.
    - debug: niveau de debug (0 = désactivé, 1 ou 2).
    - only: filtre de sortie (`scripts`, `styles` ou None).
    - modules: noms de modules demandés.
    - direction: `ltr`/`rtl`, déduite de la langue si absente.
    - user: nom d'utilisateur pour les modules individuels (optionnel).
    - version: empreinte combinée demandée par le client (optionnel).
    """

    language: str = "en"
    skin: str = "fallback"
    debug: int = 0
    only: str | None = None
    modules: tuple[str, ...] = ()
    direction: str | None = None
    user: str | None = None
    version: str | None = None
    _hash: str = field(default="", init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Normalise les champs dérivés et pré-calcule l'empreinte."""
        if self.direction is None:
            object.__setattr__(self, "direction", direction_for(self.language))
        object.__setattr__(self, "modules", tuple(self.modules))
        object.__setattr__(self, "debug", int(self.debug))
        # Un encodage JSON de la liste garde l'empreinte injective quel que soit le contenu des
        # champs (un simple join sur "|" ne l'est pas).
        raw = json.dumps(
            [self.language, self.skin, self.debug, self.only], separators=(",", ":")
        )
        object.__setattr__(self, "_hash", raw)

    def get_hash(self) -> str:
        """Empreinte stable sur (langue, skin, debug, only)."""
        return self._hash

    def get_vary(self) -> str:
        """Variante (skin, langue) utilisée pour les dépendances de fichiers."""
        return f"{self.skin}|{self.language}"

    def derive(self, **changes: Any) -> Context:
        """Retourne un contexte dérivé avec les champs modifiés."""
        if "language" in changes and "direction" not in changes:
            changes["direction"] = None
        return replace(self, **changes)

    @classmethod
    def from_query(
        cls,
        params: Mapping[str, str | None],
        *,
        default_language: str = "en",
        default_skin: str = "fallback",
    ) -> Context:
        """Construit un contexte à partir de paramètres de requête.

        Lève InvalidContextError si un paramètre est mal formé.
        """
        language = params.get("lang") or default_language
        if not _VALID_LANG_RE.match(language):
            raise InvalidContextError(f"Invalid language code: {language!r}", param="lang")
        skin = params.get("skin") or default_skin
        if not _VALID_SKIN_RE.match(skin):
            raise InvalidContextError(f"Invalid skin name: {skin!r}", param="skin")
        only = params.get("only") or None
        if only is not None and only not in _VALID_ONLY:
            raise InvalidContextError(f"Invalid only filter: {only!r}", param="only")
        raw_modules = params.get("modules") or ""
        modules = tuple(m for m in raw_modules.split("|") if m)
        return cls(
            language=language.lower(),
            skin=skin,
            debug=parse_debug(params.get("debug")),
            only=only,
            modules=modules,
            user=params.get("user") or None,
            version=params.get("version") or None,
        )


def parse_debug(value: str | None) -> int:
    """Interprète le paramètre `debug` (`true`, `1`, `2`, ...) en niveau entier."""
    if value is None:
        return 0
    raw = str(value).strip().lower()
    if raw in {"", "0", "false", "no", "off"}:
        return 0
    if raw in {"true", "yes", "on"}:
        return 1
    try:
        level = int(raw)
    except ValueError:
        return 1
    return max(0, min(level, _DEBUG_MAX))


def make_loader_query(context: Context, modules: list[str] | tuple[str, ...]) -> dict[str, str]:
    """Construit les paramètres de requête `/load` pour un contexte et des modules.

    Les clés sont triées pour obtenir des URL stables (cache HTTP).
    """
    query: dict[str, str] = {
        "lang": context.language,
        "modules": "|".join(sorted(modules)),
        "skin": context.skin,
    }
    if context.debug:
        query["debug"] = str(context.debug)
    if context.only:
        query["only"] = context.only
    if context.user:
        query["user"] = context.user
    if context.version:
        query["version"] = context.version
    return dict(sorted(query.items()))
