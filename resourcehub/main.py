"""
ResourceHub FastAPI application entry point.

Function:
1. Configures logging before anything else logs.
2. Creates the FastAPI app with the database `lifespan`.
3. Installs CORS, the signed-cookie `SessionMiddleware` that carries the
   session principal, and `DetailedLoggingMiddleware`.
4. Registers the exception handlers that map domain errors to HTTP.
5. Mounts the API router under `settings.api_prefix` plus `/` and `/health`.

Run with `uvicorn resourcehub.main:app` or `python -m resourcehub.main`.
"""

import json
import logging
import secrets
import time
import traceback
from functools import partial
from typing import Awaitable, Callable, Dict

from resourcehub.core.config import settings
from resourcehub.logging_config import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger("resourcehub.main")

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from resourcehub.api.api import api_router
from resourcehub.api.errors import register_exception_handlers
from resourcehub.core.db import lifespan

REDACTED_HEADERS = {"authorization", "cookie"}


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {
        name: ("<redacted>" if name.lower() in REDACTED_HEADERS else value)
        for name, value in headers.items()
    }


class DetailedLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Log request line, body and headers at DEBUG; 4xx/5xx responses louder."""
        request_id = id(request)
        start_time = time.time()
        path = request.url.path
        method = request.method
        client = (
            f"{request.client.host}:{request.client.port}" if request.client else "Unknown"
        )

        logger.debug(f"-> Request start [{request_id}] {method} {path} client: {client}")
        logger.debug(f"-> Query params [{request_id}]: {dict(request.query_params)}")

        if method in ("POST", "PUT", "PATCH"):
            body_bytes = await request.body()
            if body_bytes:
                try:
                    body_text = body_bytes.decode("utf-8")
                    try:
                        logger.debug(f"-> Body [{request_id}] (JSON): {json.loads(body_text)}")
                    except json.JSONDecodeError:
                        logger.debug(f"-> Body [{request_id}] (raw): {body_text[:1000]}")
                except UnicodeDecodeError:
                    logger.debug(
                        f"-> Body [{request_id}]: <binary data, {len(body_bytes)} bytes>"
                    )

        logger.debug(f"-> Headers [{request_id}]: {redact_headers(dict(request.headers))}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            stack_trace = "".join(traceback.format_exception(type(e), e, e.__traceback__))
            logger.error(
                f"! Request failed [{request_id}] {method} {path} - {process_time:.2f}ms: {e}"
            )
            logger.error(f"! Stack trace [{request_id}]:\n{stack_trace}")
            raise

        process_time = (time.time() - start_time) * 1000
        log_msg = (
            f"<- Response [{request_id}] {method} {path} - "
            f"status: {response.status_code} - {process_time:.2f}ms"
        )
        if response.status_code >= 500:
            logger.error(log_msg)
        elif response.status_code >= 400:
            logger.warning(log_msg)
        else:
            logger.debug(log_msg)
        return response


lifespan_with_settings = partial(lifespan, settings=settings)

app = FastAPI(
    title=f"{settings.project_name} API",
    description="Submission and moderation of curated resources.",
    version="1.0.0",
    lifespan=lifespan_with_settings,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Written by the external OAuth login flow; read here only.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret or secrets.token_urlsafe(32),
    session_cookie=settings.session_cookie,
    same_site="lax",
    https_only=settings.environment == "production",
)

app.add_middleware(DetailedLoggingMiddleware)

register_exception_handlers(app)


@app.get("/")
async def read_root() -> Dict[str, str]:
    logger.debug("Root endpoint accessed")
    return {"message": f"Welcome to {settings.project_name} API"}


@app.get("/health", status_code=200, tags=["Health"])
async def health_check() -> Dict[str, str]:
    """Liveness only; does not touch the database."""
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    logger.info(f"Starting Uvicorn server ({settings.environment})")
    logger.info(f"Listening on http://{settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "resourcehub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
