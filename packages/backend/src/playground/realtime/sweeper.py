"""Session sweeper — expires sessions whose page never attached.

Learn: A session is created for every page render, but nothing forces
the browser to open the WebSocket afterwards (closed tab, crawler, curl).
Without a sweeper those entries and their producers would live for the
rest of the process. Bound sessions are left alone; their relay worker
removes them when the socket closes.

Usage:
    sweeper = SessionSweeper(registry, ttl=300)
    asyncio.create_task(sweeper.run_loop())
"""

import asyncio

import structlog

from playground.realtime.registry import SessionRegistry

logger = structlog.get_logger()


class SessionSweeper:
    """Background loop that calls registry.expire() periodically."""

    def __init__(self, registry: SessionRegistry, ttl: float, interval: float = 30.0):
        self.registry = registry
        self.ttl = ttl
        self.interval = interval
        self._running = False

    async def run_loop(self) -> None:
        """Main loop — expire stale sessions every `interval` seconds."""
        self._running = True
        logger.info("sweeper.started", ttl=self.ttl, interval=self.interval)

        while self._running:
            await asyncio.sleep(self.interval)
            self.sweep_once()

    def sweep_once(self) -> list[str]:
        expired = self.registry.expire(self.ttl)
        if expired:
            logger.info("sweeper.expired", count=len(expired), remaining=len(self.registry))
        return expired

    def stop(self) -> None:
        """Signal the loop to stop."""
        self._running = False
        logger.info("sweeper.stopping")
