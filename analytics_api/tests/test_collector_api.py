"""
API tests for the ingestion endpoints: POST /api/session, /api/event, /api/error.

Tests the full stack: HTTP request → schema parsing → required-field checks
→ store → SQLite persistence → HTTP response / uniform error body.
"""
from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from analytics_api import store
from analytics_api.main import app
from analytics_api.models.event import EventORM
from analytics_api.models.session import SessionORM


PAGEVIEW_EVENT = {
    "type": "pageview",
    "metadata": {
        "url": "https://shop.example/",
        "title": "Home",
        "timestamp": 1726221792000,
        "userAgent": "Mozilla/5.0",
        "viewport": {"width": 1280, "height": 800},
        "page": {"url": "https://shop.example/", "title": "Home"},
    },
    "data": {"page": {"url": "https://shop.example/", "title": "Home"}},
}


async def _create_session(client: AsyncClient, anonymous_id: str = "anon-1") -> str:
    response = await client.post(
        "/api/session",
        json={"anonymousId": anonymous_id, "metadata": {"referrer": "google"}},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _count_events(session_factory, session_id: str | None = None) -> int:
    async with session_factory() as session:
        query = select(func.count()).select_from(EventORM)
        if session_id is not None:
            query = query.where(EventORM.session_id == session_id)
        return (await session.execute(query)).scalar_one()


# ---------------------------------------------------------------------------
# POST /api/session
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_session_echoes_anonymous_id(client: AsyncClient) -> None:
    response = await client.post(
        "/api/session",
        json={"anonymousId": "visitor-42", "metadata": {"lang": "en"}},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["anonymousId"] == "visitor-42"
    assert isinstance(body["id"], str) and body["id"]


@pytest.mark.asyncio
async def test_create_session_generates_fresh_ids(client: AsyncClient) -> None:
    ids = {await _create_session(client, "same-visitor") for _ in range(5)}
    assert len(ids) == 5


@pytest.mark.asyncio
async def test_create_session_stores_metadata_verbatim(
    client: AsyncClient, session_factory
) -> None:
    metadata = {"screen": {"w": 390, "h": 844}, "tags": ["a", "b"], "returning": False}
    response = await client.post(
        "/api/session", json={"anonymousId": "anon-meta", "metadata": metadata}
    )
    session_id = response.json()["id"]

    async with session_factory() as session:
        row = await store.get_session(session, session_id)
    assert row is not None
    assert row.session_metadata == metadata
    assert row.project_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"metadata": {"a": 1}}, {"anonymousId": ""}])
async def test_create_session_requires_anonymous_id(client: AsyncClient, payload: dict) -> None:
    response = await client.post("/api/session", json=payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "anonymousId is required"}


@pytest.mark.asyncio
async def test_create_session_with_api_key_links_project(
    client: AsyncClient, session_factory
) -> None:
    signup = await client.post(
        "/api/auth/signup", json={"email": "owner@example.com", "password": "s3cret"}
    )
    user_id = signup.json()["id"]
    project = await client.post(
        "/api/projects", json={"name": "Shop"}, headers={"X-User-Id": user_id}
    )
    project_body = project.json()

    response = await client.post(
        "/api/session",
        json={"anonymousId": "anon-p", "device": "mobile", "browser": "Safari", "os": "iOS"},
        headers={"X-API-Key": project_body["apiKey"]},
    )
    assert response.status_code == 201

    async with session_factory() as session:
        row = await store.get_session(session, response.json()["id"])
    assert row.project_id == project_body["id"]
    assert (row.device, row.browser, row.os) == ("mobile", "Safari", "iOS")


@pytest.mark.asyncio
async def test_create_session_with_unknown_api_key_is_404(client: AsyncClient) -> None:
    response = await client.post(
        "/api/session",
        json={"anonymousId": "anon-x"},
        headers={"X-API-Key": "does-not-exist"},
    )
    assert response.status_code == 404
    assert response.json()["success"] is False


# ---------------------------------------------------------------------------
# POST /api/event
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_log_event_persists_whole_batch(client: AsyncClient, session_factory) -> None:
    session_id = await _create_session(client)
    events = [
        PAGEVIEW_EVENT,
        {"type": "click", "element": "#buy", "x": 120, "y": 340},
        {"type": "scroll", "scrollY": 900},
    ]

    response = await client.post("/api/event", json={"sessionId": session_id, "events": events})

    assert response.status_code == 201
    assert response.json() == {
        "success": True,
        "eventsProcessed": 3,
        "sessionId": session_id,
    }
    assert await _count_events(session_factory, session_id) == 3

    async with session_factory() as session:
        rows = (await session.execute(
            select(EventORM).where(EventORM.session_id == session_id)
        )).scalars().all()
    by_type = {row.type: row for row in rows}
    assert by_type["click"].element == "#buy"
    assert (by_type["click"].x, by_type["click"].y) == (120, 340)
    assert by_type["scroll"].scroll_y == 900
    assert by_type["pageview"].event_metadata["title"] == "Home"


@pytest.mark.asyncio
async def test_log_event_requires_session_id(client: AsyncClient) -> None:
    response = await client.post("/api/event", json={"events": [PAGEVIEW_EVENT]})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "sessionId is required"}


@pytest.mark.asyncio
@pytest.mark.parametrize("events", [[], [PAGEVIEW_EVENT], [{"not": "an event"}]])
async def test_log_event_unknown_session_is_404(client: AsyncClient, events: list) -> None:
    response = await client.post(
        "/api/event", json={"sessionId": "missing-session", "events": events}
    )

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Session not found"}


@pytest.mark.asyncio
async def test_log_event_malformed_batch_is_all_or_nothing(
    client: AsyncClient, session_factory
) -> None:
    session_id = await _create_session(client)
    events = [PAGEVIEW_EVENT, {"type": "click"}, {"bogus": True}]

    response = await client.post("/api/event", json={"sessionId": session_id, "events": events})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert await _count_events(session_factory) == 0


@pytest.mark.asyncio
async def test_log_event_empty_batch(client: AsyncClient) -> None:
    session_id = await _create_session(client)

    response = await client.post("/api/event", json={"sessionId": session_id, "events": []})

    assert response.status_code == 201
    assert response.json()["eventsProcessed"] == 0


@pytest.mark.asyncio
async def test_log_event_non_list_events_is_400(client: AsyncClient) -> None:
    session_id = await _create_session(client)

    response = await client.post(
        "/api/event", json={"sessionId": session_id, "events": "click"}
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "events must be an array"}


@pytest.mark.asyncio
@pytest.mark.parametrize("events", ["click", None, {"type": "click"}, 7])
async def test_log_event_unknown_session_is_404_for_any_events_value(
    client: AsyncClient, events
) -> None:
    response = await client.post(
        "/api/event", json={"sessionId": "missing-session", "events": events}
    )

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Session not found"}


@pytest.mark.asyncio
async def test_log_event_null_or_missing_events_is_empty_batch(client: AsyncClient) -> None:
    session_id = await _create_session(client)

    missing = await client.post("/api/event", json={"sessionId": session_id})
    null = await client.post("/api/event", json={"sessionId": session_id, "events": None})

    assert missing.status_code == null.status_code == 201
    assert missing.json()["eventsProcessed"] == null.json()["eventsProcessed"] == 0


# ---------------------------------------------------------------------------
# POST /api/error, framework errors, catch-all
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_log_client_error_is_acknowledged(client: AsyncClient) -> None:
    response = await client.post(
        "/api/error",
        json={"message": "TypeError: x is undefined", "url": "https://shop.example/cart"},
    )
    assert response.status_code == 202
    assert response.json() == {"success": True}


@pytest.mark.asyncio
async def test_unknown_route_uses_uniform_error_body(client: AsyncClient) -> None:
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_unhandled_exception_becomes_generic_500(
    override_db, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _explode(*args, **kwargs):
        raise RuntimeError("connection string with secrets")

    monkeypatch.setattr(store, "create_session", _explode)

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        response = await ac.post("/api/session", json={"anonymousId": "anon"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert "secrets" not in response.text


@pytest.mark.asyncio
async def test_session_rows_are_not_created_on_validation_error(
    client: AsyncClient, session_factory
) -> None:
    await client.post("/api/session", json={"metadata": {"a": 1}})

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(SessionORM))).scalar_one()
    assert count == 0
