#!/usr/bin/env python3
"""
Playground live updates — the browser flow, scripted.

Starts a compound-growth session over the JSON API, attaches to its
WebSocket with the session id, and prints every streamed year until the
producer runs out or the server closes the socket.

Run with: python examples/live_updates.py
Requires: pip install httpx websockets
Server must be running: http://localhost:8080 (playground serve)
"""

import asyncio
import json
import sys

import httpx
import websockets

BASE = "http://localhost:8080"
SOCKET = "ws://localhost:8080/socket"


async def main():
    # ── Health check ──────────────────────────────────────────────
    async with httpx.AsyncClient(base_url=BASE, timeout=10) as client:
        try:
            resp = await client.get("/api/v1/health")
        except httpx.ConnectError:
            print(f"Server not reachable at {BASE}")
            sys.exit(1)
        health = resp.json()
        print(f"Server {health['version']}, {health['sessions']} live session(s)")

        # ── Create session ────────────────────────────────────────
        print("\n1. Creating session...")
        resp = await client.post("/api/v1/sessions", json={
            "params": {"principal": 2500, "rate": 6, "years": 5, "contribution": 50, "interval": 0.5},
        })
        assert resp.status_code == 201, f"Failed: {resp.text}"
        created = resp.json()

    session_id = created["session_id"]
    print(f"   Session: {session_id}")
    for row in created["data"]["series"]:
        print(f"   year {row['year']:>2}: {row['balance']:>10} (yearly compounding)")

    # ── Attach and stream ─────────────────────────────────────────
    print("\n2. Attaching to the live stream...")
    async with websockets.connect(SOCKET) as ws:
        await ws.send(session_id)
        try:
            async for message in ws:
                event = json.loads(message)
                print(f"   year {event['year']:>2}: {event['balance']:>10} "
                      f"(monthly, {event['contributed']} contributed)")
                if event["year"] == 5:
                    break
        except websockets.ConnectionClosed as e:
            print(f"   Connection closed: {e}")

    print("\nDone. The session is removed as soon as the socket closes.")


if __name__ == "__main__":
    asyncio.run(main())
