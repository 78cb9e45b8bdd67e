"""Tests for the HTTP endpoints."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ssehub.api.app import create_api


@pytest.fixture
def app(manager):
    return create_api(manager)


@pytest.fixture
async def api_client(app):
    """Create an httpx.AsyncClient wired to the FastAPI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------


async def test_health_empty(api_client):
    resp = await api_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "groups": {"default": {"clients": 0, "connections": 0}},
        "clients": 0,
        "connections": 0,
    }


async def test_health_counts(api_client, manager, conn):
    manager.registry.register(conn(), None, "alice")
    manager.registry.register(conn(), "room", "bob")
    data = (await api_client.get("/api/health")).json()
    assert data["clients"] == 2
    assert data["connections"] == 2


# ---------------------------------------------------------------
# /api/clients
# ---------------------------------------------------------------


async def test_list_clients(api_client, manager, conn):
    c = conn()
    manager.registry.register(c, "room", "alice", {"tab": 1})
    resp = await api_client.get("/api/clients", params={"group": "room"})
    assert resp.status_code == 200
    assert resp.json() == [
        {
            "client_id": "alice",
            "group": "room",
            "metadata": {"tab": 1},
            "connections": [c.connection_id],
        }
    ]
    assert (await api_client.get("/api/clients")).json() == []


async def test_get_client(api_client, manager, conn):
    manager.registry.register(conn(), None, "alice")
    resp = await api_client.get("/api/clients/alice")
    assert resp.status_code == 200
    assert resp.json()["client_id"] == "alice"


async def test_get_client_missing(api_client):
    resp = await api_client.get("/api/clients/ghost")
    assert resp.status_code == 404


async def test_set_metadata(api_client, manager, conn):
    manager.registry.register(conn(), None, "alice", {"old": True})
    resp = await api_client.put("/api/clients/alice/metadata", json={"new": 1})
    assert resp.status_code == 200
    assert resp.json()["metadata"] == {"new": 1}
    assert manager.get_client("alice").metadata == {"new": 1}


async def test_set_metadata_missing(api_client):
    resp = await api_client.put("/api/clients/ghost/metadata", json={"a": 1})
    assert resp.status_code == 404


async def test_set_metadata_requires_object(api_client, manager, conn):
    manager.registry.register(conn(), None, "alice")
    resp = await api_client.put("/api/clients/alice/metadata", json=[1, 2])
    assert resp.status_code == 422


# ---------------------------------------------------------------
# POST /api/events/publish
# ---------------------------------------------------------------


async def test_publish_to_group(api_client, manager, conn):
    a, b = conn(), conn()
    manager.registry.register(a, "room", "alice")
    manager.registry.register(b, "room", "bob")
    resp = await api_client.post(
        "/api/events/publish",
        json={"data": {"n": 1}, "event": "tick", "id": 3, "group": "room"},
    )
    assert resp.status_code == 200
    assert resp.json()["delivered"] == 2
    assert a.written == b.written == ['event:tick\nid:3\ndata:{"n":1}\n\n']


async def test_publish_to_client(api_client, manager, conn):
    a, b = conn(), conn()
    manager.registry.register(a, None, "alice")
    manager.registry.register(b, None, "bob")
    resp = await api_client.post(
        "/api/events/publish", json={"data": "hi", "client_id": "bob"}
    )
    assert resp.json() == {"delivered": 1, "failed": [], "client_found": True}
    assert a.written == []
    assert b.written == ["data:hi\n\n"]


async def test_publish_to_missing_client(api_client):
    resp = await api_client.post(
        "/api/events/publish", json={"data": "hi", "client_id": "ghost"}
    )
    assert resp.status_code == 200
    assert resp.json()["client_found"] is False


@pytest.mark.parametrize(
    "body",
    [
        {"data": "hi\n\nevent:admin\ndata:injected"},
        {"data": "a\rb"},
        {"data": "hi", "event": "tick\ndata:forged"},
        {"data": "hi", "client_id": "alice", "event": "a\r\nb"},
    ],
)
async def test_publish_rejects_line_breaks(api_client, manager, conn, body):
    a, b = conn(), conn()
    manager.registry.register(a, None, "alice")
    manager.registry.register(b, None, "bob")
    resp = await api_client.post("/api/events/publish", json=body)
    assert resp.status_code == 422
    assert "line breaks" in resp.json()["detail"]
    assert a.written == []
    assert b.written == []


async def test_publish_reports_failures(api_client, manager, conn):
    manager.registry.register(conn(fail=True), None, "alice")
    resp = await api_client.post("/api/events/publish", json={"data": "hi"})
    body = resp.json()
    assert body["delivered"] == 0
    assert body["failed"][0]["client_id"] == "alice"


# ---------------------------------------------------------------
# GET /api/events/stream
# ---------------------------------------------------------------


async def test_stream_registers_and_cleans_up(app, manager):
    started = asyncio.Event()
    leave = asyncio.Event()
    sent: list[dict] = []

    async def receive():
        await leave.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)
        if message["type"] == "http.response.start":
            started.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/api/events/stream",
        "raw_path": b"/api/events/stream",
        "root_path": "",
        "query_string": b"client_id=bob&group=room",
        "headers": [(b"host", b"test"), (b"accept", b"text/event-stream")],
        "client": ("127.0.0.1", 5000),
        "server": ("test", 80),
    }
    task = asyncio.create_task(app(scope, receive, send))
    await asyncio.wait_for(started.wait(), 1)

    assert sent[0]["status"] == 200
    assert manager.get_client("bob", "room").connection_count == 1

    leave.set()
    await asyncio.wait_for(task, 1)
    assert manager.get_client("bob", "room") is None
