"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
reports how many sessions are live, which is the number to watch for
leaks (sessions should drop back when pages close).
"""

from fastapi import APIRouter, Depends

from playground import __version__
from playground.api.deps import get_registry
from playground.producers.base import background_task_count
from playground.realtime.registry import SessionRegistry
from playground.schemas.session import HealthRead

router = APIRouter()


@router.get("/health", response_model=HealthRead)
async def health_check(registry: SessionRegistry = Depends(get_registry)):
    """Check server health and report live sessions."""
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "sessions": len(registry),
        "background_tasks": background_task_count(),
    }
