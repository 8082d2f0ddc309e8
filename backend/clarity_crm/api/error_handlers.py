"""Error Handlers - global exception handlers for the Clarity CRM API.

Invariants:
    - ClarityError -> structured JSON with code, message, category, severity (+ its headers)
    - RequestValidationError -> 400 VALIDATION_ERROR with per-field details
    - IntegrityError that escaped a service -> mapped 409/400
    - Exception (catch-all) -> 500 that never leaks internal details

Design Decisions:
    - Field paths drop the body/query/path prefix so clients can match form inputs
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from clarity_crm.core.errors import ClarityError, ErrorSeverity
from clarity_crm.infrastructure.database import map_integrity_error

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_clarity_error_handler(app)
    _register_validation_error_handler(app)
    _register_integrity_error_handler(app)
    _register_generic_error_handler(app)


def _clarity_response(request: Request, exc: ClarityError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"ClarityError: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_response(),
        headers=exc.headers,
    )


def _register_clarity_error_handler(app: FastAPI) -> None:

    @app.exception_handler(ClarityError)
    async def clarity_error_handler(request: Request, exc: ClarityError):
        """Handle all Clarity domain/infrastructure errors."""
        return _clarity_response(request, exc)


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_integrity_error_handler(app: FastAPI) -> None:

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        return _clarity_response(request, map_integrity_error(exc))


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def field_path(loc: tuple) -> str:
    parts = list(loc)
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(p) for p in parts)


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Validation failed",
            "category": "validation",
            "severity": ErrorSeverity.WARNING.value,
            "details": [
                {
                    "field": field_path(e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
