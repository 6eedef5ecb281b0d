"""HTTP route tests — page render, session API, health, failure paths."""

import re

import pytest

from playground.errors import ProducerError
from playground.producers import Producer, list_producers, register_producer


class ExplodingProducer(Producer):
    """Fails while computing the initial result."""

    @property
    def name(self) -> str:
        return "exploding"

    def produce(self, params, channel):
        channel.send_nowait({"never": "delivered"})
        raise ZeroDivisionError("boom")


class RejectingProducer(Producer):
    @property
    def name(self) -> str:
        return "rejecting"

    def produce(self, params, channel):
        raise ProducerError("model not ready")


class OpaqueProducer(Producer):
    """Returns something the codec cannot encode."""

    @property
    def name(self) -> str:
        return "opaque"

    def produce(self, params, channel):
        return {"handle": object()}


@pytest.fixture()
def extra_producers(monkeypatch):
    from playground import producers

    # Registrations land in a copy that monkeypatch restores afterwards
    monkeypatch.setattr(producers, "_PRODUCERS", dict(producers._PRODUCERS))
    register_producer("exploding", ExplodingProducer)
    register_producer("rejecting", RejectingProducer)
    register_producer("opaque", OpaqueProducer)


# ═══════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_health_reports_sessions(client, registry):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["sessions"] == 0
    assert "version" in data

    registry.create()
    resp = await client.get("/api/v1/health")
    assert resp.json()["sessions"] == 1


# ═══════════════════════════════════════════════════════════
# Page
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_page_renders_data_and_session_id(client, registry):
    resp = await client.get("/", params={"principal": "1000", "rate": "5", "years": "2"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")

    match = re.search(r'var sessionId = "([0-9a-f-]{36})";', resp.text)
    assert match, resp.text
    session_id = match.group(1)
    assert registry.lookup(session_id) is not None
    assert "1102.50" in resp.text
    assert "/script.js" in resp.text


@pytest.mark.asyncio
async def test_each_page_view_gets_its_own_session(client, registry):
    r1 = await client.get("/")
    r2 = await client.get("/")
    assert r1.status_code == r2.status_code == 200
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_page_invalid_param_is_400_and_leaks_nothing(client, registry):
    resp = await client.get("/", params={"rate": "abc"})
    assert resp.status_code == 400
    assert resp.text.startswith("ERROR ")
    assert "rate" in resp.text
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_page_oversized_params_are_400(client, registry):
    for params in ({"years": "1e2000000"}, {"principal": "1e40"}, {"contribution": "1e30"}):
        resp = await client.get("/", params=params)
        assert resp.status_code == 400, params
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_page_unknown_producer(client, registry):
    resp = await client.get("/", params={"producer": "nope"})
    assert resp.status_code == 400
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_page_producer_crash_is_contained(client, registry, extra_producers):
    survivor = registry.create()
    resp = await client.get("/", params={"producer": "exploding"})
    assert resp.status_code == 500
    assert "boom" in resp.text
    # Only the survivor remains; its channel is untouched
    assert len(registry) == 1
    assert not survivor.channel.closed

    # The server keeps serving
    assert (await client.get("/api/v1/health")).status_code == 200


@pytest.mark.asyncio
async def test_page_unencodable_result(client, registry, extra_producers):
    resp = await client.get("/", params={"producer": "opaque"})
    assert resp.status_code == 500
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_script_served(client):
    resp = await client.get("/script.js")
    assert resp.status_code == 200
    assert "javascript" in resp.headers["content-type"]
    assert "window.onData" in resp.text


# ═══════════════════════════════════════════════════════════
# Session API
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_session(client, registry):
    resp = await client.post(
        "/api/v1/sessions",
        json={"params": {"principal": 1000, "rate": "5", "years": 2}},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["producer"] == "compound_growth"
    assert data["socket_path"] == "/socket"
    assert data["data"]["series"][-1] == {"year": 2, "balance": "1102.50"}
    assert registry.lookup(data["session_id"]) is not None


@pytest.mark.asyncio
async def test_create_session_invalid_params(client, registry):
    resp = await client.post("/api/v1/sessions", json={"params": {"years": 0}})
    assert resp.status_code == 400
    assert "years" in resp.json()["detail"]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_create_session_unknown_producer(client):
    resp = await client.post("/api/v1/sessions", json={"producer": "nope"})
    assert resp.status_code == 400
    assert "compound_growth" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_create_session_producer_error(client, registry, extra_producers):
    resp = await client.post("/api/v1/sessions", json={"producer": "rejecting"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == "model not ready"
    assert len(registry) == 0


def test_registered_producers_are_listed(extra_producers):
    assert {"exploding", "rejecting", "opaque"} <= set(list_producers())
