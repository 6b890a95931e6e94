"""
Error types raised by routers/services and the FastAPI handlers that render them.

Every error body has the shape `{"error": {"code": "...", "message": "..."}}`.
Request validation errors keep FastAPI's default 422 response.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class NotFoundError(StoreError):
    status_code = 404
    code = "NOT_FOUND"


class BadRequestError(StoreError):
    status_code = 400
    code = "BAD_REQUEST"


class ConflictError(StoreError):
    status_code = 409
    code = "CONFLICT"


class UnauthorizedError(StoreError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(StoreError):
    status_code = 403
    code = "FORBIDDEN"


class ConfigurationError(StoreError):
    """A required integration secret is missing."""


class IntegrationError(StoreError):
    """An external service (payment gateway, image host) failed."""


def _body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def _store_error_handler(_request: Request, exc: StoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_body(exc.code, exc.message))


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error: %s", exc.orig)
    return JSONResponse(
        status_code=409,
        content=_body("CONFLICT", "A record with the same unique value already exists or a reference is invalid"),
    )


# PUBLIC_INTERFACE
def register_error_handlers(app: FastAPI) -> None:
    """Attach the storefront error handlers to an application."""
    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
