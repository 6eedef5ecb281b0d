"""Relay worker — streams one session's events to one WebSocket.

Learn: Each WebSocket gets its own worker, which walks a small state
machine:

  CONNECTING → AWAITING_HANDSHAKE → BOUND → RELAYING → CLOSED

1. Accept the socket.
2. Read exactly one message: the session id the page was rendered with.
3. Bind that id in the registry. Unknown ids close the socket with 4404
   straight away; a session that already has a worker closes with 4409.
4. Relay: two concurrent tasks run until either finishes
   - pump: channel.receive() → encode → websocket.send_text()
   - listener: waits on the socket so a client disconnect is seen even
     when the producer is quiet
5. Whatever happened, remove the session (its channel closes, which
   tells the producer to stop) and close the socket if it is still open.

Every failure here is terminal for this connection only. The worker
returns a RelayResult instead of raising, so nothing propagates to other
sessions or to the server. Events pushed after the socket drops are
lost; there is no reconnect or replay.
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Optional

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from playground.errors import (
    ChannelClosedError,
    SerializationError,
    SessionAlreadyBoundError,
    SessionNotFoundError,
)
from playground.realtime.codec import encode_event
from playground.realtime.registry import Session, SessionRegistry

logger = structlog.get_logger()

# Errors raised by Starlette/the ASGI server when the peer is gone
TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)

# Close codes (4000-4999 are reserved for applications)
CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011
CLOSE_BAD_HANDSHAKE = 4400
CLOSE_UNKNOWN_SESSION = 4404
CLOSE_ALREADY_BOUND = 4409


class RelayState(str, enum.Enum):
    CONNECTING = "connecting"
    AWAITING_HANDSHAKE = "awaiting_handshake"
    BOUND = "bound"
    RELAYING = "relaying"
    CLOSED = "closed"


class RelayOutcome(str, enum.Enum):
    """Why a relay worker stopped."""

    CLIENT_DISCONNECTED = "client_disconnected"
    HANDSHAKE_FAILED = "handshake_failed"
    UNKNOWN_SESSION = "unknown_session"
    ALREADY_BOUND = "already_bound"
    SERIALIZATION_FAILED = "serialization_failed"
    TRANSPORT_FAILED = "transport_failed"
    CHANNEL_CLOSED = "channel_closed"


# Close code sent to the client for each outcome (None = socket already gone)
_CLOSE_CODES: dict[RelayOutcome, Optional[int]] = {
    RelayOutcome.CLIENT_DISCONNECTED: None,
    RelayOutcome.HANDSHAKE_FAILED: CLOSE_BAD_HANDSHAKE,
    RelayOutcome.UNKNOWN_SESSION: CLOSE_UNKNOWN_SESSION,
    RelayOutcome.ALREADY_BOUND: CLOSE_ALREADY_BOUND,
    RelayOutcome.SERIALIZATION_FAILED: CLOSE_INTERNAL_ERROR,
    RelayOutcome.TRANSPORT_FAILED: CLOSE_INTERNAL_ERROR,
    RelayOutcome.CHANNEL_CLOSED: CLOSE_GOING_AWAY,
}

_CLOSE_REASONS: dict[RelayOutcome, str] = {
    RelayOutcome.HANDSHAKE_FAILED: "Expected session id",
    RelayOutcome.UNKNOWN_SESSION: "Unknown session",
    RelayOutcome.ALREADY_BOUND: "Session already attached",
    RelayOutcome.SERIALIZATION_FAILED: "Event could not be encoded",
    RelayOutcome.CHANNEL_CLOSED: "Session ended",
}


@dataclass
class RelayResult:
    """Terminal report of one relay worker."""

    outcome: RelayOutcome
    session_id: Optional[str] = None
    delivered: int = 0
    error: Optional[str] = None


class RelayWorker:
    """Owns one WebSocket from accept to close."""

    def __init__(
        self,
        websocket: WebSocket,
        registry: SessionRegistry,
        *,
        handshake_timeout: float = 30.0,
    ):
        self.websocket = websocket
        self.registry = registry
        self.handshake_timeout = handshake_timeout
        self.state = RelayState.CONNECTING
        self.session: Optional[Session] = None
        self.delivered = 0
        self._error: Optional[str] = None
        self.log = logger.bind(
            client=f"{websocket.client.host}:{websocket.client.port}"
            if websocket.client else "unknown",
        )

    async def run(self) -> RelayResult:
        """Run the connection to completion. Never raises for per-connection failures."""
        try:
            outcome = await self._run()
        finally:
            self.state = RelayState.CLOSED
            if self.session is not None:
                self.registry.remove(self.session.id)

        await self._close(outcome)
        result = RelayResult(
            outcome=outcome,
            session_id=self.session.id if self.session else None,
            delivered=self.delivered,
            error=self._error,
        )
        self.log.info(
            "relay.closed",
            outcome=outcome.value,
            delivered=self.delivered,
            error=self._error,
        )
        return result

    async def _run(self) -> RelayOutcome:
        try:
            await self.websocket.accept()
        except TRANSPORT_ERRORS as e:
            self._error = str(e)
            return RelayOutcome.TRANSPORT_FAILED

        # ── Handshake ───────────────────────────────────────
        self.state = RelayState.AWAITING_HANDSHAKE
        session_id, outcome = await self._read_handshake()
        if outcome is not None:
            return outcome

        try:
            self.session = self.registry.bind(session_id)
        except SessionNotFoundError as e:
            self._error = str(e)
            self.log.warning("relay.unknown_session", session_id=session_id)
            return RelayOutcome.UNKNOWN_SESSION
        except SessionAlreadyBoundError as e:
            self._error = str(e)
            self.log.warning("relay.already_bound", session_id=session_id)
            return RelayOutcome.ALREADY_BOUND

        self.state = RelayState.BOUND
        self.log = self.log.bind(session_id=session_id)
        self.log.info("relay.bound", pending=self.session.channel.qsize())

        # ── Relay loop ──────────────────────────────────────
        self.state = RelayState.RELAYING
        pump_task = asyncio.create_task(self._pump(self.session))
        listen_task = asyncio.create_task(self._listen())
        try:
            done, pending = await asyncio.wait(
                [pump_task, listen_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (pump_task, listen_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(pump_task, listen_task, return_exceptions=True)

        # The pump knows the more specific reason when both have finished
        if pump_task in done:
            return pump_task.result()
        return listen_task.result()

    async def _read_handshake(self) -> tuple[Optional[str], Optional[RelayOutcome]]:
        """Read the session id message. Returns (session_id, None) or (None, outcome)."""
        try:
            message = await asyncio.wait_for(
                self.websocket.receive(), timeout=self.handshake_timeout
            )
        except asyncio.TimeoutError:
            self._error = f"No session id within {self.handshake_timeout}s"
            return None, RelayOutcome.HANDSHAKE_FAILED
        except TRANSPORT_ERRORS as e:
            self._error = str(e)
            return None, RelayOutcome.TRANSPORT_FAILED

        if message["type"] == "websocket.disconnect":
            return None, RelayOutcome.CLIENT_DISCONNECTED

        text = message.get("text")
        if text is None and message.get("bytes") is not None:
            try:
                text = message["bytes"].decode("utf-8")
            except UnicodeDecodeError:
                text = None

        session_id = text.strip() if text else ""
        if not session_id:
            self._error = "Empty or undecodable handshake message"
            return None, RelayOutcome.HANDSHAKE_FAILED
        return session_id, None

    async def _pump(self, session: Session) -> RelayOutcome:
        """Forward every event on the channel to the socket, in order."""
        while True:
            try:
                event = await session.channel.receive()
            except ChannelClosedError:
                return RelayOutcome.CHANNEL_CLOSED

            try:
                message = encode_event(event)
            except SerializationError as e:
                self._error = str(e)
                self.log.error("relay.serialization_failed", error=str(e))
                return RelayOutcome.SERIALIZATION_FAILED

            try:
                await self.websocket.send_text(message)
            except TRANSPORT_ERRORS as e:
                self._error = str(e) or type(e).__name__
                return RelayOutcome.TRANSPORT_FAILED
            self.delivered += 1

    async def _listen(self) -> RelayOutcome:
        """Wait for the client to go away. Messages after the handshake are ignored."""
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return RelayOutcome.CLIENT_DISCONNECTED
        except TRANSPORT_ERRORS:
            return RelayOutcome.CLIENT_DISCONNECTED

    async def _close(self, outcome: RelayOutcome) -> None:
        code = _CLOSE_CODES[outcome]
        if code is None:
            return
        if (
            self.websocket.application_state != WebSocketState.CONNECTED
            or self.websocket.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self.websocket.close(code=code, reason=_CLOSE_REASONS.get(outcome))
        except TRANSPORT_ERRORS as e:
            self.log.debug("relay.close_failed", code=code, error=str(e))
