"""
HTTP Error Mapping

Translates the service exception taxonomy into JSON error responses:
- ValidationError -> 400 {"error"}
- ResolutionError -> 404 {"error", "short_code", "reason"}
- DatabaseError and anything unexpected -> 500; the detail is hidden in production
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shortlink.core.exceptions import (
    DatabaseError,
    ResolutionError,
    URLShortenerException,
    ValidationError,
)
from shortlink.core.setting import settings

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


def internal_error_message(exc: Exception) -> str:
    if settings.is_production:
        return GENERIC_ERROR_MESSAGE
    return str(exc)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.message},
    )


async def resolution_error_handler(request: Request, exc: ResolutionError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": str(exc), "short_code": exc.short_code, "reason": exc.reason},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, DatabaseError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": internal_error_message(exc)},
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ResolutionError, resolution_error_handler)
    app.add_exception_handler(DatabaseError, internal_error_handler)
    app.add_exception_handler(URLShortenerException, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)
