"""
HTTP mapping of the domain exception taxonomy.

`register_exception_handlers` installs one handler per domain error plus the
global fallbacks (unhandled `Exception` -> 500, `RequestValidationError` ->
422). Used by `resourcehub.main` and by the test application.
"""

import json
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from resourcehub.core.errors import (
    InfrastructureError,
    InvalidTransitionError,
    ResourceConflictError,
    ResourceNotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


async def validation_failed_handler(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, ValidationFailedError)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.errors)


async def unauthorized_handler(request: Request, exc: Exception) -> Response:
    # No reason is ever returned to the caller
    return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)


async def not_found_handler(request: Request, exc: Exception) -> Response:
    logger.info(f"Not found [{id(request)}] {request.method} {request.url.path}: {exc}")
    return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)


async def conflict_handler(request: Request, exc: Exception) -> Response:
    logger.info(f"Conflict [{id(request)}] {request.method} {request.url.path}: {exc}")
    return PlainTextResponse("Conflict", status_code=status.HTTP_409_CONFLICT)


async def infrastructure_handler(request: Request, exc: Exception) -> Response:
    request_id = id(request)
    logger.error(
        f"Infrastructure failure [{request_id}] {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable, please retry.",
            "error_code": "SERVICE_UNAVAILABLE",
            "request_id": str(request_id),
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handles every exception not caught by an endpoint or a more specific handler.
    Logs the error with request context and returns a generic 500 body.
    """
    request_id = id(request)
    logger.exception(
        f"Unhandled exception [{request_id}] request: {request.method} {request.url.path}",
        exc_info=exc,
    )
    request_info = {
        "method": request.method,
        "url": str(request.url),
        "path_params": dict(request.path_params),
        "query_params": dict(request.query_params),
        "client": f"{request.client.host}:{request.client.port}"
        if request.client
        else "Unknown",
    }
    logger.error(
        f"Request context [{request_id}]: {json.dumps(request_info, indent=2, default=str)}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal server error occurred. Please try again later.",
            "error_code": "INTERNAL_SERVER_ERROR",
            "request_id": str(request_id),
        },
    )


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed query or path parameters rejected by FastAPI itself."""
    assert isinstance(exc, RequestValidationError)
    request_id = id(request)
    errors = exc.errors()
    logger.warning(
        f"Request validation failed [{request_id}] {request.method} {request.url.path}: {errors}"
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Request parameter validation failed, please check your input.",
            "errors": json.loads(json.dumps(errors, default=str)),
            "request_id": str(request_id),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationFailedError, validation_failed_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    app.add_exception_handler(ResourceNotFoundError, not_found_handler)
    app.add_exception_handler(ResourceConflictError, conflict_handler)
    app.add_exception_handler(InvalidTransitionError, conflict_handler)
    app.add_exception_handler(InfrastructureError, infrastructure_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)
