"""
Endpoint de santé pour vérifier la disponibilité de l'API et du stockage.

Expose `/health` pour signaler l'état général de l'application et le nombre de modules enregistrés.
"""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    """Vérifie la disponibilité de l'API et le backend de stockage."""
    container = request.app.state.container
    return {
        "status": "ok",
        "storage": getattr(container, "storage_backend", "unknown"),
        "modules": len(container.loader.get_module_names()),
    }
