"""HTTP surface tests — /api/call, /queue/status, /queue/clear, /health.

Learn: The app is wired to FakeUpstream through create_app(dispatcher=...),
so these tests exercise the real routes and dispatcher without network.
"""

import asyncio

import httpx
import pytest

from conftest import wait_until

CALL_BODY = {"api_key": "key-123", "country_id": 7, "operator_id": 3}


# ═══════════════════════════════════════════════════════════
# POST /api/call
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_call_success(client, upstream):
    r = await client.post("/api/call", json=CALL_BODY)
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["phone_number"] == "+15550000000"
    assert set(data["queueStatus"]) == {"queueLength", "processing", "lastCallTime", "waitingTime"}
    assert "error" not in data
    assert "retryable" not in data


@pytest.mark.asyncio
async def test_call_passes_body_through(client, upstream):
    """The whole body, extras included, reaches the upstream unmodified."""
    body = {**CALL_BODY, "note": "from-test"}
    r = await client.post("/api/call", json=body)
    assert r.status_code == 200
    assert upstream.payloads == [body]


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["api_key", "country_id", "operator_id"])
async def test_call_missing_field_rejected(client, upstream, missing):
    body = {k: v for k, v in CALL_BODY.items() if k != missing}
    r = await client.post("/api/call", json=body)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Missing required fields"}
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_call_empty_field_rejected(client, upstream):
    r = await client.post("/api/call", json={**CALL_BODY, "api_key": ""})
    assert r.status_code == 400
    assert upstream.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["country_id", "operator_id"])
async def test_call_zero_id_rejected(client, upstream, field):
    r = await client.post("/api/call", json={**CALL_BODY, field: 0})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Missing required fields"}
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_call_numeric_api_key_accepted(client, upstream):
    body = {**CALL_BODY, "api_key": 12345}
    r = await client.post("/api/call", json=body)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert upstream.payloads == [body]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [b"{not json", b"[1, 2, 3]", b"\"key-123\""],
    ids=["malformed", "array", "string"],
)
async def test_call_unreadable_body_rejected(client, upstream, content):
    r = await client.post(
        "/api/call", content=content, headers={"content-type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Missing required fields"}
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_call_upstream_failure(client, upstream):
    """Upstream network errors come back as success=false, never a 500."""
    upstream.errors[0] = httpx.ReadTimeout("upstream too slow")

    r = await client.post("/api/call", json=CALL_BODY)
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is False
    assert data["phone_number"] == ""
    assert data["error"] == "upstream too slow"
    assert data["retryable"] is True


@pytest.mark.asyncio
async def test_concurrent_calls_all_complete(client, upstream):
    responses = await asyncio.gather(
        *(client.post("/api/call", json={**CALL_BODY, "n": i}) for i in range(4))
    )
    assert all(r.status_code == 200 for r in responses)
    numbers = {r.json()["phone_number"] for r in responses}
    assert len(numbers) == 4
    assert len(upstream.calls) == 4


# ═══════════════════════════════════════════════════════════
# /queue/*
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_queue_status_idle(client):
    r = await client.get("/queue/status")
    assert r.status_code == 200
    assert r.json() == {
        "queueLength": 0,
        "processing": False,
        "lastCallTime": 0,
        "waitingTime": 0,
    }


@pytest.mark.asyncio
async def test_queue_status_reflects_backlog(client, app_dispatcher, upstream):
    upstream.latency = 0.2
    for i in range(3):
        app_dispatcher.submit({"n": i})
    await wait_until(lambda: len(upstream.calls) == 1)

    r = await client.get("/queue/status")
    data = r.json()
    assert data["queueLength"] == 2
    assert data["processing"] is True
    assert data["lastCallTime"] > 0


@pytest.mark.asyncio
async def test_queue_clear(client, app_dispatcher, upstream):
    upstream.latency = 0.2
    for i in range(4):
        app_dispatcher.submit({"n": i})
    await wait_until(lambda: len(upstream.calls) == 1)

    r = await client.get("/queue/clear")
    assert r.status_code == 200
    assert r.json() == {"message": "Queue cleared", "cleared": 3}

    r = await client.get("/queue/status")
    assert r.json()["queueLength"] == 0


@pytest.mark.asyncio
async def test_queue_clear_empty(client):
    r = await client.get("/queue/clear")
    assert r.json() == {"message": "Queue cleared", "cleared": 0}


# ═══════════════════════════════════════════════════════════
# /health + request context
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_health_reports_dispatcher(client):
    await client.post("/api/call", json=CALL_BODY)

    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["server"] == "ok"
    assert "version" in data
    assert data["dispatcher"]["running"] is True
    assert data["dispatcher"]["min_interval_ms"] == 0
    assert data["dispatcher"]["dispatched"] == 1
    assert data["dispatcher"]["succeeded"] == 1


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert r1.headers["X-Request-ID"]
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/queue/status", headers={"X-Request-ID": "trace-42"})
    assert r.headers["X-Request-ID"] == "trace-42"
