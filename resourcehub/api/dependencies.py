"""
FastAPI dependency providers.

Function:
1. Shared resources: `get_app_state` and `get_postgres_pool` read what the
   lifespan stored on `request.app.state`.
2. Repositories and services: `get_resource_repository`,
   `get_topic_repository` and `get_resource_service` build per-request
   instances on top of the pool.
3. Caller identity: `get_session_data` exposes the signed session and
   `get_caller` classifies the request through the `AuthorizationGate`.

Interaction:
- Endpoint modules under `resourcehub.api.endpoints` declare these with
  `Depends(...)`.
- Tests replace them through `app.dependency_overrides`.
"""

import logging
from typing import Any, Dict, Optional, cast

from fastapi import Depends, Header, HTTPException, Request, status
from psycopg_pool import AsyncConnectionPool
from starlette.datastructures import State

from resourcehub.core.authorization import AuthorizationGate, Caller
from resourcehub.core.config import Settings, settings
from resourcehub.repositories.resource_repo import ResourceRepository
from resourcehub.repositories.topic_repo import TopicRepository
from resourcehub.services.resource_service import ResourceService

logger = logging.getLogger(__name__)


# --- Shared resources --- #


def get_app_state(request: Request) -> State:
    """Return `app.state`, where the lifespan keeps the shared resources."""
    if not hasattr(request.app, "state"):
        logger.error(
            "Application state 'request.app.state' not found. Lifespan may not have run."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application state not initialized.",
        )
    return cast(State, request.app.state)


def get_postgres_pool(state: State = Depends(get_app_state)) -> AsyncConnectionPool:
    pool = getattr(state, "pg_pool", None)
    if pool is None:
        logger.error("PostgreSQL pool not initialized in application state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection pool is currently unavailable.",
        )
    return cast(AsyncConnectionPool, pool)


def get_settings() -> Settings:
    return settings


# --- Repositories and services --- #


def get_resource_repository(
    pool: AsyncConnectionPool = Depends(get_postgres_pool),
) -> ResourceRepository:
    return ResourceRepository(pool=pool)


def get_topic_repository(
    pool: AsyncConnectionPool = Depends(get_postgres_pool),
) -> TopicRepository:
    return TopicRepository(pool=pool)


def get_resource_service(
    resource_repo: ResourceRepository = Depends(get_resource_repository),
    topic_repo: TopicRepository = Depends(get_topic_repository),
) -> ResourceService:
    return ResourceService(resource_repo=resource_repo, topic_repo=topic_repo)


# --- Caller identity --- #


def get_session_data(request: Request) -> Dict[str, Any]:
    """The signed session written by SessionMiddleware; empty when absent."""
    return request.scope.get("session") or {}


def get_caller(
    session: Dict[str, Any] = Depends(get_session_data),
    authorization: Optional[str] = Header(default=None),
    app_settings: Settings = Depends(get_settings),
) -> Caller:
    caller = AuthorizationGate(app_settings.sudo_token).classify(session, authorization)
    logger.debug(f"Caller classified as '{caller.tier.value}'")
    return caller
