"""Test fixtures — a fresh registry and app per test.

Learn: Two kinds of clients are used:

1. `client` — httpx AsyncClient over ASGITransport for plain HTTP routes.
   No lifespan, no network; the app runs in the test's event loop.
2. `ws_client` — Starlette's TestClient, which runs the app (lifespan
   included) in a background thread so WebSocket conversations can be
   scripted synchronously.

Relay and channel unit tests skip both and drive a FakeWebSocket
directly (see helpers.py).
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from playground.main import create_app
from playground.producers import base as producer_base
from playground.realtime.registry import SessionRegistry


@pytest.fixture()
def registry():
    return SessionRegistry()


@pytest.fixture()
def app(registry):
    return create_app(registry=registry)


@pytest_asyncio.fixture()
async def background_tasks():
    """Cancel producer pushes still running when the test ends."""
    yield producer_base._background_tasks
    tasks = list(producer_base._background_tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


@pytest_asyncio.fixture()
async def client(app, background_tasks):
    """HTTP client bound to a test app with its own registry."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def ws_client(app):
    """Synchronous client that can open WebSockets against the test app."""
    with TestClient(app) as tc:
        yield tc
