"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module fournit une gestion centralisée des erreurs avec des enveloppes standardisées
(`code`, `message`, `trace_id`, `details`) et les handlers FastAPI associés.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from resloader.core.constants import HTTP_BAD_REQUEST, HTTP_INTERNAL_ERROR, HTTP_NOT_FOUND
from resloader.core.errors import InvalidContextError, ResourceLoaderError

log = logging.getLogger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INVALID_CONTEXT = "INVALID_CONTEXT"
    LOADER_ERROR = "LOADER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers (X-Trace-ID, then X-Request-ID)."""
    return request.headers.get("X-Trace-ID") or request.headers.get("X-Request-ID")


def handle_invalid_context(request: Request, exc: InvalidContextError) -> JSONResponse:
    """Paramètres de requête invalides -> 400."""
    trace_id = extract_trace_id(request)
    log.warning(
        "Invalid load context",
        extra={"error_message": str(exc), "param": exc.param, "trace_id": trace_id},
    )
    return create_error_response(
        status_code=HTTP_BAD_REQUEST,
        code=ErrorCodes.INVALID_CONTEXT,
        message=str(exc),
        trace_id=trace_id,
        details={"param": exc.param} if exc.param else None,
    )


def handle_loader_error(request: Request, exc: ResourceLoaderError) -> JSONResponse:
    """Autres erreurs du chargeur -> 500 avec code dédié."""
    trace_id = extract_trace_id(request)
    log.error(
        "Resource loader error",
        extra={
            "code": ErrorCodes.LOADER_ERROR,
            "exception_type": type(exc).__name__,
            "error_message": str(exc),
            "trace_id": trace_id,
        },
        exc_info=True,
    )
    return create_error_response(
        status_code=HTTP_INTERNAL_ERROR,
        code=ErrorCodes.LOADER_ERROR,
        message=str(exc),
        trace_id=trace_id,
    )


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with standard envelope."""
    codes = {HTTP_BAD_REQUEST: ErrorCodes.BAD_REQUEST, HTTP_NOT_FOUND: ErrorCodes.NOT_FOUND}
    code = codes.get(exc.status_code, "HTTP_ERROR")
    return create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=extract_trace_id(request),
    )


def install_error_handlers(app: FastAPI) -> None:
    """Enregistre les handlers d'erreurs sur l'application."""
    app.add_exception_handler(InvalidContextError, handle_invalid_context)
    app.add_exception_handler(ResourceLoaderError, handle_loader_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
