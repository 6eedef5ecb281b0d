"""Event codec — one event to one WebSocket text message.

Learn: Events are application-defined structures, so the codec accepts
plain JSON values plus the types producers typically hold: Decimal
(sent as a string so no precision is lost), datetimes, UUIDs and
pydantic models. Anything else is a SerializationError, which the relay
treats as fatal for that one connection only.
"""

import json
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from playground.errors import SerializationError


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def encode_event(event: Any) -> str:
    """Serialize an event as compact JSON text."""
    try:
        return json.dumps(
            event,
            default=_default,
            allow_nan=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e
