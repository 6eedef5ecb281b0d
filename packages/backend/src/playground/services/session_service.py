"""Session service — allocate a session and run its producer.

Learn: Both the HTML page and the JSON API start a session the same way:

  registry.create() → producer.produce(params, channel) → (session, data)

The session is registered before the producer runs so that anything the
producer pushes in the meantime is already queued for the relay. If the
producer fails, the session is removed again (its channel closes, which
stops any background pushes it managed to start) and the error goes back
to the caller as a ProducerError. Other sessions are never touched.
"""

from typing import Any, Optional

import structlog

from playground.config import settings
from playground.errors import ProducerError, SerializationError
from playground.producers import Params, get_producer
from playground.realtime.codec import encode_event
from playground.realtime.registry import Session, SessionRegistry

logger = structlog.get_logger()


class SessionService:
    """Starts playground sessions against one registry."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def start_session(
        self,
        params: Params,
        producer_name: Optional[str] = None,
    ) -> tuple[Session, Any]:
        """Create a session, run the producer, return (session, initial result).

        Raises ProducerError (UnknownProducerError, InvalidParameterError,
        or a wrapped unexpected failure).
        """
        name = producer_name or settings.default_producer
        producer = get_producer(name)

        session = self.registry.create()
        log = logger.bind(session_id=session.id, producer=name)
        try:
            data = producer.produce(params, session.channel)
        except ProducerError as e:
            self.registry.remove(session.id)
            log.warning("session.producer_rejected", error=str(e))
            raise
        except Exception as e:
            self.registry.remove(session.id)
            log.exception("session.producer_failed")
            raise ProducerError(f"Producer '{name}' failed: {e}") from e

        log.info("session.started", params=dict(params))
        return session, data

    def render_initial(self, session: Session, data: Any) -> str:
        """Encode the initial result for the page; drops the session if it cannot be encoded."""
        try:
            return encode_event(data)
        except SerializationError:
            self.registry.remove(session.id)
            logger.error("session.initial_not_serializable", session_id=session.id)
            raise
