"""Publish, introspection, and health API tests.

Learn: These drive the HTTP routes in-process through httpx's
ASGITransport. Subscribers are inserted straight into the app's
registry with fake handles; the WebSocket path has its own tests.
"""

import pytest

from filterrelay.config import Settings
from filterrelay.main import create_app
from tests.fakes import FailingHandle, RecordingHandle


def _subscribe(relay, scope, attributes, handle=None):
    handle = handle or RecordingHandle()
    view = relay.connections.on_connect(handle, scope)
    relay.registry.set_filter(view.id, attributes)
    return view.id, handle


# ═══════════════════════════════════════════════════════════
# Publish
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_publish_delivers_to_matching(client, relay):
    _, a = _subscribe(relay, "orders", {"x": 1})
    _, b = _subscribe(relay, "orders", {"x": 2})
    _, c = _subscribe(relay, "orders", {"x": 1, "y": 5})

    r = await client.post(
        "/api/v1/publish",
        json={"scope": "orders", "filter": {"x": 1}, "payload": {"id": 7}, "event_type": "order.created"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body == {
        "success": True,
        "scope": "orders",
        "event_type": "order.created",
        "filter": {"service": "orders", "x": 1},
        "attempted": 2,
        "delivered": 2,
    }
    assert a.messages[0]["type"] == "order.created"
    assert a.messages[0]["data"] == {"id": 7}
    assert len(c.messages) == 1
    assert b.messages == []


@pytest.mark.asyncio
async def test_publish_defaults(client, relay):
    _, a = _subscribe(relay, "orders", {})
    r = await client.post("/api/v1/publish", json={"scope": "orders", "filter": {}})
    assert r.status_code == 200
    assert r.json()["event_type"] == "notification"
    assert a.messages[0]["data"] == {}


@pytest.mark.asyncio
async def test_publish_counts_failed_sends(client, relay):
    _subscribe(relay, "orders", {"x": 1})
    _subscribe(relay, "orders", {"x": 1}, handle=FailingHandle())
    r = await client.post("/api/v1/publish", json={"scope": "orders", "filter": {"x": 1}})
    assert r.status_code == 200
    assert (r.json()["attempted"], r.json()["delivered"]) == (2, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, field",
    [
        ({"scope": "orders"}, "filter"),
        ({"scope": "orders", "filter": None}, "filter"),
        ({"scope": "orders", "filter": [1, 2]}, "filter"),
        ({"scope": "orders", "filter": {}, "payload": "text"}, "payload"),
        ({"scope": "no spaces", "filter": {}}, "scope"),
        ({"scope": "", "filter": {}}, "scope"),
    ],
)
async def test_publish_rejects_malformed_shape(client, body, field):
    r = await client.post("/api/v1/publish", json=body)
    assert r.status_code == 422
    locations = [err["loc"][-1] for err in r.json()["detail"]]
    assert field in locations


@pytest.mark.asyncio
async def test_publish_requires_scope_when_partitioned(client):
    r = await client.post("/api/v1/publish", json={"filter": {"x": 1}})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("scope")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "criteria",
    [{"x": True}, {"x": None}, {"x": {"nested": 1}}, {"service": "billing"}],
)
async def test_publish_rejects_invalid_filter_values(client, relay, criteria):
    _, a = _subscribe(relay, "orders", {})
    r = await client.post("/api/v1/publish", json={"scope": "orders", "filter": criteria})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("filter")
    assert a.messages == []


@pytest.mark.asyncio
async def test_publish_is_type_sensitive(client, relay):
    _, a = _subscribe(relay, "orders", {"business_id": "1"})
    r = await client.post(
        "/api/v1/publish", json={"scope": "orders", "filter": {"business_id": 1}}
    )
    assert r.json()["delivered"] == 0
    assert a.messages == []


@pytest.mark.asyncio
async def test_publish_unpartitioned():
    from httpx import ASGITransport, AsyncClient

    app = create_app(Settings(environment="test", partitioned=False))
    relay = app.state.relay
    _, a = _subscribe(relay, None, {"service": "orders"})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.post("/api/v1/publish", json={"filter": {"service": "orders"}})
        assert r.status_code == 200
        assert r.json()["scope"] is None
        assert r.json()["delivered"] == 1

        r = await client.get("/api/v1/stats")
        stats = r.json()
        assert stats["partitioned"] is False
        assert stats["total_subscribers"] == 1
        assert stats["scopes"] == {}
        assert stats["subscribers"][0]["filter"] == {"service": "orders"}
    assert len(a.messages) == 1


# ═══════════════════════════════════════════════════════════
# Introspection
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_stats_groups_by_scope(client, relay):
    a_id, _ = _subscribe(relay, "orders", {"x": 1})
    _subscribe(relay, "orders", {"x": 2})
    _subscribe(relay, "billing", {})

    r = await client.get("/api/v1/stats")
    assert r.status_code == 200
    stats = r.json()
    assert stats["partitioned"] is True
    assert stats["total_scopes"] == 2
    assert stats["total_subscribers"] == 3
    assert stats["scopes"]["orders"]["subscriber_count"] == 2
    assert stats["scopes"]["billing"]["subscriber_count"] == 1

    first = stats["scopes"]["orders"]["subscribers"][0]
    assert first["id"] == a_id
    assert first["filter"] == {"service": "orders", "x": 1}
    assert "connected_at" in first


@pytest.mark.asyncio
async def test_stats_drops_empty_scope(client, relay):
    sid, _ = _subscribe(relay, "orders", {})
    relay.connections.on_disconnect(sid)

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["total_scopes"] == 0
    assert "orders" not in stats["scopes"]


@pytest.mark.asyncio
async def test_match_preview(client, relay):
    a_id, a = _subscribe(relay, "orders", {"x": 1})
    _subscribe(relay, "orders", {"x": 2})
    _subscribe(relay, "billing", {"x": 1})

    r = await client.post("/api/v1/subscribers/match", json={"scope": "orders", "filter": {"x": 1}})
    assert r.status_code == 200
    body = r.json()
    assert body["matching_subscribers"] == 1
    assert body["filter"] == {"service": "orders", "x": 1}
    assert body["subscribers"] == [{"id": a_id, "filter": {"service": "orders", "x": 1}}]
    assert a.messages == []


@pytest.mark.asyncio
async def test_match_preview_validation(client):
    r = await client.post("/api/v1/subscribers/match", json={"filter": {}})
    assert r.status_code == 400
    r = await client.post("/api/v1/subscribers/match", json={"scope": "orders"})
    assert r.status_code == 422
    r = await client.post(
        "/api/v1/subscribers/match", json={"scope": "orders", "filter": {"x": [1]}}
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_health(client, relay):
    _subscribe(relay, "orders", {})
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert "timestamp" in data
    assert data["total_scopes"] == 1
    assert data["total_subscribers"] == 1


@pytest.mark.asyncio
async def test_apps_do_not_share_registries(client, relay):
    _subscribe(relay, "orders", {})
    other = create_app(Settings(environment="test"))
    assert len(other.state.relay.registry) == 0
    assert len(relay.registry) == 1
