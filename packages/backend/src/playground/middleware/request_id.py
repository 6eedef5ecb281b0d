"""Request ID middleware — unique ID per HTTP request for tracing.

Learn: Every request gets an id, either from the incoming X-Request-ID
header or a fresh random hex string. It is bound to structlog's
contextvars, so the session log lines emitted while rendering a page
(registry.session_created, session.started, ...) carry the same
request_id, and it is echoed back in the response header.

WebSocket connections bypass this middleware; the relay binds its own
session_id instead.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Generate and propagate a request ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers[HEADER] = request_id
        return response
