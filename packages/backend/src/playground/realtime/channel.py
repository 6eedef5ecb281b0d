"""Event channel — per-session FIFO of events plus a done-signal.

Learn: A channel has exactly one consumer (the relay worker bound to the
session) and one producer context. Both sides can observe the
done-signal: the relay fires it when the WebSocket goes away, and the
producer checks `closed` (or gets ChannelClosedError from send) so it
stops pushing into a session nobody is listening to.

Events still queued when the channel closes are dropped. There is no
replay.
"""

import asyncio
from typing import Any, Awaitable

import structlog

from playground.errors import ChannelClosedError, ChannelFullError

logger = structlog.get_logger()


class EventChannel:
    """Single-consumer FIFO of arbitrary events for one session."""

    def __init__(self, maxsize: int = 0):
        self.maxsize = maxsize
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._done = asyncio.Event()
        self._closing = False
        # Loop that owns the queue; needed to hand events over from threads
        try:
            self._loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<EventChannel {state} pending={self.qsize()}>"

    @property
    def closed(self) -> bool:
        return self._closing

    def qsize(self) -> int:
        return self._queue.qsize()

    # ─── Producer side ────────────────────────────────────

    async def send(self, event: Any) -> None:
        """Enqueue an event, waiting for room if the channel is bounded and full."""
        if self.closed:
            raise ChannelClosedError("Channel is closed")
        self._bind_loop()
        if not self._queue.full():
            self._queue.put_nowait(event)
            return
        await self._race(self._queue.put(event))

    def send_nowait(self, event: Any) -> None:
        """Enqueue an event without waiting."""
        if self.closed:
            raise ChannelClosedError("Channel is closed")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            raise ChannelFullError(f"Channel is full ({self.maxsize} events)")

    def send_threadsafe(self, event: Any) -> None:
        """Enqueue an event from a thread other than the event loop's.

        Learn: asyncio.Queue is not thread-safe, so the put is scheduled
        on the owning loop. Delivery failures (closed or full channel)
        surface in the loop's log, not in the calling thread.
        """
        if self.closed:
            raise ChannelClosedError("Channel is closed")
        loop = self._loop
        if loop is None or loop.is_closed():
            # No consumer has touched the queue yet, nothing can be waiting on it
            self.send_nowait(event)
            return
        loop.call_soon_threadsafe(self._deliver, event)

    def _deliver(self, event: Any) -> None:
        try:
            self.send_nowait(event)
        except (ChannelClosedError, ChannelFullError) as e:
            logger.warning("channel.threadsafe_send_dropped", error=str(e))

    # ─── Consumer side ────────────────────────────────────

    async def receive(self) -> Any:
        """Return the next event in enqueue order, blocking while empty.

        Raises ChannelClosedError once the channel has been closed.
        """
        if self.closed:
            raise ChannelClosedError("Channel is closed")
        self._bind_loop()
        if not self._queue.empty():
            return self._queue.get_nowait()
        return await self._race(self._queue.get())

    # ─── Done-signal ──────────────────────────────────────

    def close(self) -> None:
        """Fire the done-signal and drop undelivered events. Idempotent.

        Safe to call from any thread: off the owning loop, `closed` flips
        at once and the wake-up of waiters is scheduled on the loop.
        """
        if self._closing:
            return
        self._closing = True
        loop = self._loop
        if loop is not None and loop.is_running() and not self._on_loop(loop):
            loop.call_soon_threadsafe(self._finish_close)
            return
        self._finish_close()

    def _finish_close(self) -> None:
        self._done.set()
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        if dropped:
            logger.debug("channel.events_dropped", count=dropped)

    async def wait_closed(self) -> None:
        """Block until the channel is closed."""
        await self._done.wait()

    # ─── Internals ────────────────────────────────────────

    @staticmethod
    def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _bind_loop(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

    async def _race(self, op: Awaitable[Any]) -> Any:
        """Await a queue operation, aborting with ChannelClosedError if the channel closes first."""
        op_task = asyncio.ensure_future(op)
        done_task = asyncio.ensure_future(self._done.wait())
        try:
            await asyncio.wait(
                [op_task, done_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (op_task, done_task):
                if not task.done():
                    task.cancel()

        if self.closed:
            raise ChannelClosedError("Channel is closed")
        return op_task.result()
