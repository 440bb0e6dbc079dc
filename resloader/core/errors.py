"""Hiérarchie d'exceptions du chargeur de modules.

Les erreurs de logique (configuration absente, résumé de définition incomplet) sont fatales et ne
doivent pas être interceptées par le code appelant; les erreurs de contexte sont remontées au client
HTTP sous forme d'enveloppe d'erreur.
"""

from __future__ import annotations


class ResourceLoaderError(Exception):
    """Erreur de base du chargeur de modules."""


class ConfigNotSetError(ResourceLoaderError, RuntimeError):
    """Lecture de la configuration d'un module avant son injection."""


class DefinitionSummaryError(ResourceLoaderError, RuntimeError):
    """Un résumé de définition ne contient pas les champs de base requis."""


class InvalidModuleNameError(ResourceLoaderError, ValueError):
    """Nom de module invalide ou déjà fixé."""


class DuplicateModuleError(ResourceLoaderError):
    """Un module de même nom est déjà enregistré."""


class InvalidContextError(ResourceLoaderError, ValueError):
    """Paramètres de requête invalides pour construire un contexte."""

    def __init__(self, message: str, param: str | None = None) -> None:
        """Conserve le nom du paramètre fautif pour l'enveloppe d'erreur."""
        super().__init__(message)
        self.param = param
