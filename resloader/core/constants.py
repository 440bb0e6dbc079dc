"""Constantes partagées par le chargeur de modules.

Regroupe les versions de format de cache, les TTL et les noms réservés utilisés à la fois par le
domaine, l'infrastructure et l'API.
"""

from __future__ import annotations

# Incrémenter invalide toutes les empreintes de version (minification, format du bundle).
CACHE_VERSION = 9

# Format du cache des erreurs de validation des scripts utilisateurs.
USERJS_PARSE_CACHE_VERSION = 4

TTL_DAY = 86400
TTL_WEEK = 7 * TTL_DAY

# Groupe dont le contenu est intégré à la page plutôt que chargé par URL
GROUP_PRIVATE = "private"

TYPE_COMBINED = "combined"

LOCAL_SOURCE = "local"

ONLY_SCRIPTS = "scripts"
ONLY_STYLES = "styles"

MAX_MODULE_NAME_LENGTH = 255
FORBIDDEN_NAME_CHARS = ("|", ",", "!")

# Fonction cliente recevant les erreurs de syntaxe des scripts utilisateurs.
CLIENT_ERROR_LOGGER = "mw.log.error"

RTL_LANGUAGES = frozenset(
    {"ar", "arc", "ckb", "dv", "fa", "he", "ks", "ps", "sd", "ug", "ur", "yi"}
)

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_ERROR = 500
