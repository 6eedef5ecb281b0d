"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: the session sweeper runs
in the background for the life of the app, and every session still
open at shutdown is closed so producers stop pushing.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from playground import __version__
from playground.api import api_router, page_router
from playground.config import settings
from playground.log_config import configure_logging
from playground.realtime.registry import SessionRegistry, registry as default_registry
from playground.realtime.sweeper import SessionSweeper

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    registry: SessionRegistry = app.state.registry
    logger.info(
        "playground.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    sweeper = SessionSweeper(
        registry,
        ttl=settings.session_ttl_seconds,
        interval=settings.sweep_interval_seconds,
    )
    sweep_task = asyncio.create_task(sweeper.run_loop())

    yield

    # Shutdown
    logger.info("playground.shutdown")

    sweeper.stop()
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass

    closed = registry.clear()
    logger.info("playground.sessions_closed", count=closed)


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Playground",
        description="Live computation playground — initial render plus WebSocket updates",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = registry if registry is not None else default_registry

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from playground.middleware.request_id import RequestIdMiddleware
    from playground.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(page_router)

    return app


configure_logging()

# Default app instance (used by uvicorn: playground.main:app)
app = create_app()
