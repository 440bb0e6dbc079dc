"""Validation syntaxique des scripts éditables par les utilisateurs.

Un script utilisateur invalide ne doit pas casser une réponse groupée contenant d'autres modules: il
est remplacé par un appel à la fonction de log du client portant le message d'erreur. Le résultat de
l'analyse est mis en cache (succès compris, stocké comme `None`) sous une clé dérivée du contenu,
donc immédiatement correcte après une modification.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from typing import Any

import esprima
import structlog
from esprima.error_handler import Error as EsprimaError

from resloader.app.metrics import RL_USERJS_PARSE
from resloader.core.constants import CLIENT_ERROR_LOGGER, TTL_WEEK, USERJS_PARSE_CACHE_VERSION
from resloader.infra.object_cache import ObjectCache

log = structlog.get_logger(__name__)


def describe_parse_error(exc: Exception) -> str:
    """Formate une erreur d'analyse en `"<description> on line <n>"`."""
    description = getattr(exc, "description", None) or str(exc)
    line = getattr(exc, "lineNumber", None)
    if line is None:
        return description
    return f"{description} on line {line}"


class ScriptValidator:
    """Analyse et met en cache la validité des scripts utilisateurs."""

    def __init__(
        self,
        cache: ObjectCache,
        enabled: bool = True,
        parser: Callable[[str], Any] = esprima.parseScript,
        ttl: int = TTL_WEEK,
    ) -> None:
        """Initialise le validateur.

        Args:
            cache: Cache objet partagé (get-or-compute).
            enabled: False pour servir les scripts sans les analyser.
            parser: Fonction d'analyse levant une erreur de syntaxe esprima.
            ttl: Durée de vie des résultats en cache.
        """
        self.cache = cache
        self.enabled = enabled
        self.parser = parser
        self.ttl = ttl

    def cache_key(self, file_name: str, contents: str) -> str:
        digest = hashlib.sha256(contents.encode("utf-8")).hexdigest()
        return self.cache.make_key(
            "resourceloader-userjsparse", USERJS_PARSE_CACHE_VERSION, digest, file_name
        )

    def _parse(self, contents: str) -> str | None:
        try:
            self.parser(contents)
        except EsprimaError as exc:
            RL_USERJS_PARSE.labels(result="error").inc()
            return describe_parse_error(exc)
        RL_USERJS_PARSE.labels(result="ok").inc()
        return None

    def get_error(self, file_name: str, contents: str) -> str | None:
        """Erreur de syntaxe en cache (ou calculée), None si le script est valide."""
        return self.cache.get_with_set_callback(
            self.cache_key(file_name, contents), self.ttl, lambda: self._parse(contents)
        )

    def validate(self, file_name: str, contents: str) -> str:
        """Retourne `contents`, ou un appel de log client si le script ne s'analyse pas."""
        if not self.enabled:
            return contents
        error = self.get_error(file_name, contents)
        if error:
            log.info("user_script_parse_error", file=file_name, error=error)
            message = f"Parse error: {error} in {file_name}"
            return f"{CLIENT_ERROR_LOGGER}({json.dumps(message)});"
        return contents
