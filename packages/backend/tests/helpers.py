"""Shared test helpers."""

import asyncio
import time

from starlette.datastructures import Address
from starlette.websockets import WebSocketDisconnect, WebSocketState


class FakeWebSocket:
    """In-memory stand-in for starlette's WebSocket, enough for RelayWorker.

    Incoming messages are scripted with push_text()/push_bytes()/disconnect();
    everything the server sends lands in `sent`.
    """

    def __init__(self):
        self.client = Address("127.0.0.1", 50000)
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTING
        self.sent: list[str] = []
        self.close_code = None
        self.close_reason = None
        self.fail_send = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    # ─── Scripting ────────────────────────────────────────

    def push_text(self, text: str) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self, code: int = 1000) -> None:
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    # ─── WebSocket API used by the relay ──────────────────

    async def accept(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED

    async def receive(self) -> dict:
        message = await self._incoming.get()
        if message["type"] == "websocket.disconnect":
            self.client_state = WebSocketState.DISCONNECTED
        return message

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise WebSocketDisconnect(code=1006)
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.close_reason = reason
        self.application_state = WebSocketState.DISCONNECTED


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll an async-side condition until true or fail."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def wait_until(predicate, timeout: float = 2.0) -> None:
    """Blocking variant of wait_for for synchronous TestClient tests."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.005)
