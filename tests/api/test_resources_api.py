import re
import uuid
from typing import Any, Callable, Dict

import pytest
from httpx import AsyncClient
from pytest_mock import MockerFixture

from resourcehub.core.errors import RepositoryUnavailableError
from tests.fakes import REACT_TOPIC, InMemoryResourceRepository

pytestmark = pytest.mark.asyncio

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")

Authenticate = Callable[[Dict[str, Any]], None]


# --- POST /api/resources --- #


async def test_returns_the_created_resource(
    client: AsyncClient, authenticate_as: Authenticate
) -> None:
    authenticate_as({"id": 123, "login": "foo-bar"})
    principal = (await client.get("/api/auth/principal")).json()
    resource = {"title": "CYF Syllabus", "url": "https://syllabus.codeyourfuture.io/"}

    response = await client.post("/api/resources", json=resource)

    assert response.status_code == 201
    body = response.json()
    assert UUID_PATTERN.match(body["id"])
    assert DATETIME_PATTERN.match(body["accession"])
    assert body["description"] is None
    assert body["draft"] is True
    assert body["publication"] is None
    assert body["source"] == principal["id"]
    assert body["title"] == resource["title"]
    assert body["url"] == resource["url"]
    assert "topic_name" not in body


async def test_accepts_a_description(
    client: AsyncClient, authenticate_as: Authenticate
) -> None:
    authenticate_as({"id": 123, "login": "foo-bar"})
    resource = {
        "description": "Helpful tool for PostgreSQL DB migrations.",
        "title": "Node PG Migrate",
        "url": "https://salsita.github.io/node-pg-migrate/#/",
    }

    response = await client.post("/api/resources", json=resource)

    assert response.status_code == 201
    assert {key: response.json()[key] for key in resource} == resource


async def test_allows_a_topic(client: AsyncClient, authenticate_as: Authenticate) -> None:
    authenticate_as({"id": 0, "name": ""})

    response = await client.post(
        "/api/resources",
        json={"title": "Something", "topic": str(REACT_TOPIC.id), "url": "https://example.com"},
    )

    assert response.status_code == 201
    assert response.json()["topic"] == str(REACT_TOPIC.id)
    assert response.json()["topic_name"] == "React"


async def test_rejects_unknown_topics(
    client: AsyncClient, authenticate_as: Authenticate, resource_repo: InMemoryResourceRepository
) -> None:
    authenticate_as({"id": 0, "name": ""})

    response = await client.post(
        "/api/resources",
        json={"title": "Something", "topic": str(uuid.uuid4()), "url": "https://example.com"},
    )

    assert response.status_code == 400
    assert response.json() == {"topic": '"topic" must exist'}
    assert resource_repo.resources == {}


async def test_rejects_unauthenticated_users(
    client: AsyncClient, resource_repo: InMemoryResourceRepository
) -> None:
    response = await client.post(
        "/api/resources", json={"title": "Something", "url": "https://example.com"}
    )

    assert response.status_code == 401
    assert response.text == "Unauthorized"
    assert resource_repo.resources == {}


async def test_token_only_superuser_cannot_create(
    client: AsyncClient, sudo_headers: Dict[str, str]
) -> None:
    response = await client.post(
        "/api/resources",
        json={"title": "Something", "url": "https://example.com"},
        headers=sudo_headers,
    )

    assert response.status_code == 401


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({}, {"title": '"title" is required', "url": '"url" is required'}),
        ({"url": "https://example.com"}, {"title": '"title" is required'}),
        ({"title": "foo"}, {"url": '"url" is required'}),
        ({"title": "foo", "url": "/foo/bar"}, {"url": '"url" must be a valid uri'}),
        ([], {"value": '"value" must be of type object'}),
    ],
    ids=["everything missing", "missing title", "missing url", "invalid url", "not an object"],
)
async def test_rejects_invalid_request(
    client: AsyncClient, authenticate_as: Authenticate, payload: Any, expected: Dict[str, str]
) -> None:
    authenticate_as({"id": 0, "login": ""})

    response = await client.post("/api/resources", json=payload)

    assert response.status_code == 400
    assert response.json() == expected


async def test_rejects_duplicate_resources(
    client: AsyncClient, authenticate_as: Authenticate, resource_repo: InMemoryResourceRepository
) -> None:
    authenticate_as({"id": 0, "login": ""})
    url = "https://example.com"

    first = await client.post("/api/resources", json={"title": "Wuthering Heights", "url": url})
    second = await client.post("/api/resources", json={"title": "Other", "url": url})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.text == "Conflict"
    assert len(resource_repo.resources) == 1


@pytest.mark.parametrize(
    "variant",
    ["https://example.com\n", " https://example.com", "https://exa\nmple.com", "https://example.com\t"],
)
async def test_whitespace_variants_of_a_stored_url_are_rejected(
    client: AsyncClient,
    authenticate_as: Authenticate,
    resource_repo: InMemoryResourceRepository,
    variant: str,
) -> None:
    authenticate_as({"id": 0, "login": ""})
    await client.post("/api/resources", json={"title": "Wuthering Heights", "url": "https://example.com"})

    response = await client.post("/api/resources", json={"title": "Other", "url": variant})

    assert response.status_code == 400
    assert response.json() == {"url": '"url" must be a valid uri'}
    assert [r.url for r in resource_repo.resources.values()] == ["https://example.com"]


async def test_storage_timeout_is_a_503(
    client: AsyncClient, authenticate_as: Authenticate, resource_repo: InMemoryResourceRepository,
    mocker: MockerFixture,
) -> None:
    authenticate_as({"id": 1})
    mocker.patch.object(
        resource_repo, "create", side_effect=RepositoryUnavailableError("create")
    )

    response = await client.post(
        "/api/resources", json={"title": "t", "url": "https://example.com"}
    )

    assert response.status_code == 503
    assert "RepositoryUnavailableError" not in response.text
    assert response.json()["error_code"] == "SERVICE_UNAVAILABLE"


# --- GET /api/resources --- #


async def test_allows_superuser_to_see_drafts(
    client: AsyncClient, authenticate_as: Authenticate, sudo_headers: Dict[str, str],
    session_state: Dict[str, Any],
) -> None:
    authenticate_as({"id": 123, "login": ""})
    resource = {"title": "foo", "url": "https://example.com"}
    assert (await client.post("/api/resources", json=resource)).status_code == 201
    session_state.clear()

    response = await client.get(
        "/api/resources", params={"drafts": "true"}, headers=sudo_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    assert body[0]["title"] == "foo"
    assert body[0]["url"] == "https://example.com"


async def test_prevents_non_superusers_from_seeing_drafts(
    client: AsyncClient, authenticate_as: Authenticate, session_state: Dict[str, Any]
) -> None:
    authenticate_as({"id": 123, "login": ""})
    await client.post("/api/resources", json={"title": "title", "url": "https://example.com"})

    as_user = await client.get("/api/resources", params={"drafts": "true"})
    session_state.clear()
    as_anonymous = await client.get("/api/resources", params={"drafts": "true"})

    assert as_user.status_code == 200
    assert as_user.json() == []
    assert as_anonymous.json() == []


async def test_includes_the_topic_name_if_present(
    client: AsyncClient, authenticate_as: Authenticate, sudo_headers: Dict[str, str],
    session_state: Dict[str, Any],
) -> None:
    authenticate_as({"id": 0, "name": ""})
    await client.post(
        "/api/resources",
        json={"title": "Irrelevant", "topic": str(REACT_TOPIC.id), "url": "https://example.com"},
    )
    session_state.clear()

    response = await client.get(
        "/api/resources", params={"drafts": "true"}, headers=sudo_headers
    )

    [draft] = response.json()
    assert draft["topic_name"] == REACT_TOPIC.name


async def test_bad_authorization_header_is_anonymous(
    client: AsyncClient, authenticate_as: Authenticate
) -> None:
    authenticate_as({"id": 1})
    await client.post("/api/resources", json={"title": "t", "url": "https://example.com"})

    response = await client.get(
        "/api/resources",
        params={"drafts": "true"},
        headers={"Authorization": "Bearer not-the-token"},
    )

    assert response.status_code == 200
    assert response.json() == []


async def test_malformed_drafts_flag_is_a_422(client: AsyncClient) -> None:
    response = await client.get("/api/resources", params={"drafts": "maybe"})

    assert response.status_code == 422


# --- PATCH /api/resources/{id} --- #


async def test_allows_superusers_to_publish_a_draft(
    client: AsyncClient, authenticate_as: Authenticate, sudo_headers: Dict[str, str],
    session_state: Dict[str, Any],
) -> None:
    authenticate_as({"id": 123, "login": ""})
    created = (
        await client.post(
            "/api/resources",
            json={"title": "CYF Syllabus", "url": "https://syllabus.codeyourfuture.io/"},
        )
    ).json()
    session_state.clear()

    response = await client.patch(
        f"/api/resources/{created['id']}", json={"draft": False}, headers=sudo_headers
    )

    assert response.status_code == 200
    updated = response.json()
    assert DATETIME_PATTERN.match(updated["publication"])
    assert updated == {**created, "draft": False, "publication": updated["publication"]}

    public = (await client.get("/api/resources")).json()
    assert [item["id"] for item in public] == [created["id"]]


async def test_rejects_other_changes(
    client: AsyncClient, authenticate_as: Authenticate, sudo_headers: Dict[str, str],
    resource_repo: InMemoryResourceRepository,
) -> None:
    authenticate_as({"id": 123, "login": ""})
    created = (
        await client.post(
            "/api/resources",
            json={
                "title": "Mastering margin collapsing",
                "url": "https://developer.mozilla.org/en-US/docs/Web/CSS/CSS_Box_Model/Mastering_margin_collapsing",
            },
        )
    ).json()

    response = await client.patch(
        f"/api/resources/{created['id']}",
        json={"draft": True, "title": "Something else"},
        headers=sudo_headers,
    )

    assert response.status_code == 400
    assert response.json() == {
        "draft": '"draft" must be [false]',
        "title": '"title" is not allowed',
    }
    stored = resource_repo.resources[uuid.UUID(created["id"])]
    assert stored.draft is True
    assert stored.title == "Mastering margin collapsing"


async def test_handles_missing_resources(
    client: AsyncClient, sudo_headers: Dict[str, str]
) -> None:
    response = await client.patch(
        f"/api/resources/{uuid.uuid4()}", json={"draft": False}, headers=sudo_headers
    )

    assert response.status_code == 404
    assert response.text == "Not Found"


async def test_prevents_non_superusers_from_publishing(
    client: AsyncClient, authenticate_as: Authenticate, resource_repo: InMemoryResourceRepository
) -> None:
    authenticate_as({"id": 123, "login": ""})
    created = (
        await client.post(
            "/api/resources",
            json={"title": "PostgreSQL tutorial", "url": "https://www.postgresqltutorial.com/"},
        )
    ).json()

    response = await client.patch(f"/api/resources/{created['id']}", json={"draft": False})

    assert response.status_code == 401
    assert response.text == "Unauthorized"
    assert resource_repo.resources[uuid.UUID(created["id"])].draft is True


async def test_publishing_twice_conflicts(
    client: AsyncClient, authenticate_as: Authenticate, sudo_headers: Dict[str, str],
    resource_repo: InMemoryResourceRepository,
) -> None:
    authenticate_as({"id": 123})
    created = (
        await client.post("/api/resources", json={"title": "t", "url": "https://example.com"})
    ).json()

    first = await client.patch(
        f"/api/resources/{created['id']}", json={"draft": False}, headers=sudo_headers
    )
    second = await client.patch(
        f"/api/resources/{created['id']}", json={"draft": False}, headers=sudo_headers
    )

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.text == "Conflict"
    stored = resource_repo.resources[uuid.UUID(created["id"])]
    assert stored.publication is not None
    assert stored.publication.isoformat().startswith(first.json()["publication"][:19])
