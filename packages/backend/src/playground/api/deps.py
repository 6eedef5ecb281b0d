"""Shared route dependencies."""

from fastapi.requests import HTTPConnection

from playground.realtime.registry import SessionRegistry
from playground.services.session_service import SessionService


def get_registry(conn: HTTPConnection) -> SessionRegistry:
    """The app's session registry (works for HTTP and WebSocket routes)."""
    return conn.app.state.registry


def get_session_service(conn: HTTPConnection) -> SessionService:
    return SessionService(get_registry(conn))
