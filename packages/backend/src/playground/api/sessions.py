"""Session API — JSON variant of the playground page.

Learn: Non-browser clients (the CLI `watch` command, scripts) start a
session here instead of scraping the HTML page. The response carries the
same initial data the page would render plus the session id to send as
the first WebSocket message on /socket.
"""

import json

from fastapi import APIRouter, Depends, HTTPException

from playground.api.deps import get_session_service
from playground.config import settings
from playground.errors import (
    InvalidParameterError,
    ProducerError,
    SerializationError,
    UnknownProducerError,
)
from playground.producers import Params
from playground.schemas.session import SessionCreate, SessionCreated
from playground.services.session_service import SessionService

router = APIRouter()


@router.post("/sessions", response_model=SessionCreated, status_code=201)
async def create_session(
    body: SessionCreate,
    svc: SessionService = Depends(get_session_service),
):
    """Start a session and return its initial result."""
    params = Params.from_pairs((k, str(v)) for k, v in body.params.items())
    producer = body.producer or settings.default_producer
    try:
        session, data = svc.start_session(params, producer)
        payload = svc.render_initial(session, data)
    except (InvalidParameterError, UnknownProducerError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (ProducerError, SerializationError) as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SessionCreated(
        session_id=session.id,
        producer=producer,
        data=json.loads(payload),
    )
