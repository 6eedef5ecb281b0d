"""Exception hierarchy.

Every failure local to one session or one connection has its own class,
so the HTTP routes and the relay can map it to a response or a close
code without touching other sessions.
"""


class PlaygroundError(Exception):
    """Base class for all playground errors."""


class SessionNotFoundError(PlaygroundError):
    """Raised when a session identifier is not in the registry."""


class SessionAlreadyBoundError(PlaygroundError):
    """Raised when a second connection tries to attach to a session."""


class ChannelClosedError(PlaygroundError):
    """Raised when sending to or receiving from a closed channel."""


class ChannelFullError(PlaygroundError):
    """Raised by a non-blocking send on a full bounded channel."""


class SerializationError(PlaygroundError):
    """Raised when an event cannot be encoded for the wire."""


class ProducerError(PlaygroundError):
    """Raised when a producer fails to compute its initial result."""


class InvalidParameterError(ProducerError):
    """Raised when a request parameter cannot be parsed."""

    def __init__(self, key: str, value: str, reason: str = "invalid value"):
        self.key = key
        self.value = value
        super().__init__(f"Parameter {key!r}: {reason} ({value!r})")


class UnknownProducerError(ProducerError):
    """Raised when no producer is registered under the requested name."""
