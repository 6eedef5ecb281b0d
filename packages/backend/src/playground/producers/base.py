"""Producer base — the computation behind a playground page.

Learn: A producer does two things for one session:
1. Computes the initial result synchronously; the route renders it into
   the page straight away.
2. Optionally keeps pushing follow-up events onto the session's channel
   from a background task (or a thread, via channel.send_threadsafe).

The producer owns the "when" and "what" of those pushes and must stop
once the channel is closed: check channel.closed, or let send() raise
ChannelClosedError. The channel closes when the page's WebSocket goes
away, when the session expires unattached, or at shutdown.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Coroutine

import structlog

from playground.producers.params import Params
from playground.realtime.channel import EventChannel

logger = structlog.get_logger()

# Strong references to running background pushes (the loop only keeps weak ones)
_background_tasks: set[asyncio.Task] = set()


def spawn(coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task:
    """Run a producer coroutine in the background on the current loop."""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "producer.background_failed",
            task=task.get_name(),
            error=str(exc),
            exc_info=exc,
        )


def background_task_count() -> int:
    return len(_background_tasks)


class Producer(ABC):
    """Abstract base for playground producers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, e.g. "compound_growth"."""

    @abstractmethod
    def produce(self, params: Params, channel: EventChannel) -> Any:
        """Compute the initial result and schedule any follow-up pushes.

        Raise ProducerError (or InvalidParameterError) for failures the
        caller should see.
        """
