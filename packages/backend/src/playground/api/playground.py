"""Playground page routes — initial render plus the live-update socket.

Learn: One page view is one session:
1. GET /?principal=...  creates the session, runs the producer, renders
   the result and the session id into index.html
2. The page loads /script.js and opens ws://.../socket
3. It sends the session id as its first message; a RelayWorker binds to
   the session and streams every event the producer pushes afterwards

Producer failures come back as a plain "ERROR ..." body and never
affect other sessions.
"""

from pathlib import Path

from fastapi import APIRouter, Depends, Request, WebSocket
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates

from playground.api.deps import get_registry, get_session_service
from playground.config import settings
from playground.errors import (
    InvalidParameterError,
    ProducerError,
    SerializationError,
    UnknownProducerError,
)
from playground.producers import Params
from playground.realtime.registry import SessionRegistry
from playground.realtime.relay import RelayWorker
from playground.services.session_service import SessionService

PACKAGE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = PACKAGE_DIR / "static"

templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))
router = APIRouter()


def _error_response(err: Exception, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(f"ERROR {err}", status_code=status_code)


@router.get("/", response_class=HTMLResponse)
async def playground_page(
    request: Request,
    svc: SessionService = Depends(get_session_service),
):
    """Render the playground with the producer's initial result."""
    params = Params.from_pairs(request.query_params.multi_items())
    producer = params.pop("producer", None) or settings.default_producer
    try:
        session, data = svc.start_session(params, producer)
        payload = svc.render_initial(session, data)
    except (InvalidParameterError, UnknownProducerError) as e:
        return _error_response(e, 400)
    except (ProducerError, SerializationError) as e:
        return _error_response(e, 500)

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "data": payload,
            "session_id": session.id,
            "socket_path": "/socket",
            "producer": producer,
        },
    )


@router.get("/script.js", include_in_schema=False)
async def playground_script():
    return FileResponse(STATIC_DIR / "script.js", media_type="application/javascript")


@router.websocket("/socket")
async def playground_socket(
    websocket: WebSocket,
    registry: SessionRegistry = Depends(get_registry),
):
    """Relay one session's events to this socket until either side goes away."""
    worker = RelayWorker(
        websocket,
        registry,
        handshake_timeout=settings.handshake_timeout_seconds,
    )
    await worker.run()
