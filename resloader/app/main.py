"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares, routes de chargement des
modules, métriques et gestion des erreurs.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques, timing)
- Monter les routers (santé, chargement, métriques)
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from resloader.api.errors import install_error_handlers
from resloader.api.routes_health import router as health_router
from resloader.api.routes_load import router as load_router
from resloader.app.metrics import PrometheusMiddleware, metrics_router
from resloader.core.logging import setup_logging
from resloader.middlewares.request_id import RequestIDMiddleware
from resloader.middlewares.timing import TimingMiddleware


def create_app(container=None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Args:
        container: Conteneur de dépendances; le singleton global par défaut.
    """
    if container is None:
        from resloader.core.container import container  # noqa: PLC0415

    setup_logging()
    settings = container.settings
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.state.container = container
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(load_router)
    app.include_router(metrics_router)
    return app


def run() -> None:
    """Point d'entrée console: sert l'application avec uvicorn."""
    app = create_app()
    settings = app.state.container.settings
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
