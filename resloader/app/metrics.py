"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP et celles du pipeline de contenu des modules (construction,
versionnage, dépendances de fichiers, validation des scripts utilisateurs).
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Module content pipeline
RL_BUILD_SECONDS = Histogram(
    "resourceloader_build_seconds",
    "Time spent building module content",
    ["name"],
)
RL_VERSION_HASH_COMPUTED = Counter(
    "resourceloader_version_hash_total",
    "Version hashes computed (cache misses)",
    ["strategy"],
)
RL_MESSAGE_BLOB_LAZY = Counter(
    "resourceloader_message_blob_lazy_total",
    "Message blobs fetched lazily instead of being preloaded",
    ["name"],
)
RL_DEPENDENCY_WRITES = Counter(
    "resourceloader_dependency_writes_total",
    "Writes of indirect file dependencies to the dependency store",
    ["name"],
)
RL_USERJS_PARSE = Counter(
    "resourceloader_userjs_parse_total",
    "User script parses performed on validator cache misses",
    ["result"],
)
RL_MODULE_ERRORS = Counter(
    "resourceloader_module_errors_total",
    "Modules that failed to build in a load response",
    ["name"],
)


def metric_label(name: str) -> str:
    """Rend un nom de module sûr pour un label de métrique (`foo.bar` -> `foo_bar`)."""
    return name.replace(".", "_")


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte les métriques de comptage des requêtes et de latence par route pour l'exposition
    Prometheus.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Traite une requête HTTP et collecte les métriques.

        Args:
            request: Requête HTTP entrante.
            call_next: Fonction pour appeler le middleware suivant.

        Returns:
            Response: Réponse HTTP avec métriques collectées.
        """
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = request.scope.get("path", "unknown")
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
