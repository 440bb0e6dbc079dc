"""
Endpoints de chargement des modules.

- `GET /load`: contenu des modules demandés (`modules=a|b`, `lang`, `skin`, `debug`, `only`,
  `version`), au format JSON.
- `GET /modules`: registre client (versions, dépendances) pour un skin et une langue.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from resloader.domain.context import Context
from resloader.services.loader import ResourceLoader

router = APIRouter(tags=["load"])


def _loader(request: Request) -> ResourceLoader:
    return request.app.state.container.loader


def _context(request: Request, loader: ResourceLoader) -> Context:
    return Context.from_query(
        request.query_params,
        default_language=loader.settings.RL_CONTENT_LANGUAGE,
        default_skin=loader.settings.RL_DEFAULT_SKIN,
    )


def cache_control(loader: ResourceLoader, context: Context, combined_version: str) -> str:
    """En-tête Cache-Control selon le mode debug et la version demandée."""
    if context.debug:
        return "private, no-cache, must-revalidate"
    if context.version and context.version == combined_version:
        max_age = loader.settings.RL_MAX_AGE_VERSIONED
    else:
        # Version absente ou périmée: cache court pour rattraper le déploiement.
        max_age = loader.settings.RL_MAX_AGE_UNVERSIONED
    return f"public, max-age={max_age}, s-maxage={max_age}"


@router.get("/load")
def load(request: Request):
    """Sert le contenu des modules demandés."""
    loader = _loader(request)
    context = _context(request, loader)
    payload = loader.make_module_response(context, context.modules)
    combined = loader.get_combined_version(context, payload["modules"])
    headers = {"Cache-Control": cache_control(loader, context, combined)}
    links = [h.split(":", 1)[1].strip() for h in payload.pop("headers") if h.startswith("Link:")]
    if links:
        headers["Link"] = ",".join(links)
    return JSONResponse(content=payload, headers=headers)


@router.get("/modules")
def modules(request: Request):
    """Retourne le registre client des modules."""
    loader = _loader(request)
    context = _context(request, loader)
    return {
        "skin": context.skin,
        "lang": context.language,
        "modules": loader.get_startup_manifest(context),
    }
