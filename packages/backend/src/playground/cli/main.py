"""Playground CLI — run the server, or watch a session from the terminal.

Usage:
    playground serve                             # Run the API + page server
    playground watch rate=7 years=20             # Start a session, stream its events
    playground watch --limit 3 principal=500     # Stop after three events
    playground producers                         # List available producers
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import click
import httpx
import websockets

from playground.config import settings

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("PLAYGROUND_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the playground server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _socket_url(api_url: str, socket_path: str) -> str:
    """http(s)://host/... → ws(s)://host/<socket_path>."""
    parts = urlsplit(api_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return urlunsplit((scheme, parts.netloc, socket_path, "", ""))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    """KEY=VALUE arguments → dict (first occurrence wins)."""
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}")
        params.setdefault(key, value)
    return params


def _pretty_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="playground")
def main():
    """Playground — live computation pages with WebSocket updates."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: PLAYGROUND_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: PLAYGROUND_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the playground server."""
    import uvicorn

    uvicorn.run(
        "playground.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command()
def producers():
    """List the producers this installation can run."""
    from playground.producers import list_producers

    for name in list_producers():
        marker = " (default)" if name == settings.default_producer else ""
        click.echo(f"{name}{marker}")


@main.command()
@click.argument("params", nargs=-1)
@click.option("--producer", "-p", default=None, help="Producer name (server default if omitted)")
@click.option("--limit", "-n", type=int, default=None, help="Stop after N events")
@click.option("--raw", is_flag=True, help="Print events exactly as received")
def watch(params: tuple[str, ...], producer: Optional[str], limit: Optional[int], raw: bool):
    """Start a session and print its live events.

    PARAMS are KEY=VALUE pairs passed to the producer (e.g. rate=7).
    """
    _run(_watch_impl(_parse_params(params), producer, limit, raw))


async def _watch_impl(params: dict[str, str], producer: Optional[str],
                      limit: Optional[int], raw: bool):
    async with _client() as c:
        try:
            r = await c.post("/api/v1/sessions", json={"producer": producer, "params": params})
        except httpx.ConnectError:
            click.secho(f"Error: server not reachable at {_api_url()}", fg="red", err=True)
            sys.exit(1)
        if r.status_code != 201:
            try:
                detail = r.json().get("detail", r.text)
            except ValueError:
                detail = r.text
            click.secho(f"Error: {detail}", fg="red", err=True)
            sys.exit(1)
        created = r.json()

    session_id = created["session_id"]
    click.secho(f"Session {session_id} ({created['producer']})", bold=True)
    click.echo(_pretty_json(created["data"]))

    url = _socket_url(_api_url(), created.get("socket_path", "/socket"))
    received = 0
    async with websockets.connect(url) as ws:
        await ws.send(session_id)
        try:
            async for message in ws:
                received += 1
                if raw:
                    click.echo(message)
                else:
                    click.echo(f"[{received}] {_pretty_json(json.loads(message))}")
                if limit is not None and received >= limit:
                    break
        except websockets.ConnectionClosed as e:
            click.secho(f"Connection closed: {e}", fg="yellow", err=True)

    click.secho(f"{received} event(s) received", fg="green")


if __name__ == "__main__":
    main()
