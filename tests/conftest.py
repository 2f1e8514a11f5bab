"""
Shared pytest fixtures.

- `test_settings`: a `Settings` instance with a known superuser token.
- `resource_repo` / `topic_repo`: in-memory repositories from `tests.fakes`.
- `test_app`: FastAPI app with the API router, the exception handlers and
  dependency overrides pointing at the in-memory repositories.
- `client`: `httpx.AsyncClient` over `ASGITransport`.
- `authenticate_as`: puts a principal into the session seen by `test_app`.

PostgreSQL-backed fixtures live in `tests/repositories/test_resource_repo.py`
and only run when `TEST_DATABASE_URL` is set.
"""

import logging
import os
from typing import Any, AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("PYTEST_RUNNING", "1")

from resourcehub.api.api import api_router
from resourcehub.api.dependencies import (
    get_resource_repository,
    get_session_data,
    get_settings,
    get_topic_repository,
)
from resourcehub.api.errors import register_exception_handlers
from resourcehub.core.config import Settings
from tests.fakes import (
    REACT_TOPIC,
    SQL_TOPIC,
    SUDO_TOKEN,
    InMemoryResourceRepository,
    InMemoryTopicRepository,
)

logger = logging.getLogger(__name__)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        sudo_token=SUDO_TOKEN,
        session_secret="test-session-secret",
        database_url=None,
    )


@pytest.fixture
def topic_repo() -> InMemoryTopicRepository:
    return InMemoryTopicRepository([REACT_TOPIC, SQL_TOPIC])


@pytest.fixture
def resource_repo() -> InMemoryResourceRepository:
    return InMemoryResourceRepository()


@pytest.fixture
def session_state() -> Dict[str, Any]:
    """The session dict `test_app` sees on every request."""
    return {}


@pytest.fixture
def authenticate_as(session_state: Dict[str, Any]) -> Callable[[Dict[str, Any]], None]:
    def _authenticate(principal: Dict[str, Any]) -> None:
        session_state["principal"] = principal

    return _authenticate


@pytest.fixture
def sudo_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {SUDO_TOKEN}"}


@pytest.fixture
def test_app(
    test_settings: Settings,
    resource_repo: InMemoryResourceRepository,
    topic_repo: InMemoryTopicRepository,
    session_state: Dict[str, Any],
) -> FastAPI:
    app = FastAPI(title="ResourceHub test app")
    register_exception_handlers(app)
    app.include_router(api_router, prefix=test_settings.api_prefix)

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_resource_repository] = lambda: resource_repo
    app.dependency_overrides[get_topic_repository] = lambda: topic_repo
    app.dependency_overrides[get_session_data] = lambda: session_state
    logger.debug("[test_app fixture] dependency overrides applied")
    return app


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app), base_url="http://test"
    ) as async_client:
        yield async_client
