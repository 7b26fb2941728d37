"""
Application-level exception handlers.

Renders every typed APIException, and every transient store failure that
escaped a service, as the standard ``error_response`` envelope.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.database.retry import TRANSIENT_STORE_ERRORS
from common.utils.exceptions import APIException, TransientStoreException
from common.utils.responses import error_response

logger = logging.getLogger(__name__)


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Render an APIException with its code and short message."""
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, code=exc.code, details=exc.details),
        headers=exc.headers,
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map a raw pymongo transient failure to TransientStoreException."""
    logger.warning(f"Store unavailable during {request.method} {request.url.path}: {exc}")
    return await api_exception_handler(request, TransientStoreException(retry_after=1))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body and query validation failures in the standard envelope."""
    return JSONResponse(
        status_code=422,
        content=error_response(
            "Validation error",
            code="VALIDATION_ERROR",
            errors=jsonable_encoder(exc.errors()),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on a FastAPI application."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    for error_type in TRANSIENT_STORE_ERRORS:
        app.add_exception_handler(error_type, store_error_handler)
