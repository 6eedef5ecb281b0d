"""Tests for HTTP middleware — security headers, request IDs."""

import pytest


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "connect-src 'self' ws: wss:" in r.headers["Content-Security-Policy"]


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/v1/health", headers={"X-Request-ID": "trace-123"})
    assert r.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers
