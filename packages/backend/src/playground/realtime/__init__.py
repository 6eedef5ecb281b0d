"""Real-time infrastructure — session registry, event channels, relay.

Learn: Events flow through one in-process channel per session:
1. Producer → EventChannel.send() (server-side computation pushes updates)
2. EventChannel.receive() → RelayWorker → WebSocket (delivery to the page)

The registry correlates the two halves through an opaque session id
that the page receives in its initial render and sends back as the
first WebSocket message.
"""

from playground.realtime.channel import EventChannel
from playground.realtime.registry import Session, SessionRegistry, registry
from playground.realtime.relay import RelayOutcome, RelayResult, RelayState, RelayWorker
from playground.realtime.sweeper import SessionSweeper

__all__ = [
    "EventChannel",
    "RelayOutcome",
    "RelayResult",
    "RelayState",
    "RelayWorker",
    "Session",
    "SessionRegistry",
    "SessionSweeper",
    "registry",
]
