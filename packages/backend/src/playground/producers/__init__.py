"""Producer registry — pluggable computations behind the playground page.

Learn: The page route looks producers up by name:
    producer = get_producer("compound_growth")
    result = producer.produce(params, session.channel)

The name comes from the `producer` query parameter, falling back to
PLAYGROUND_DEFAULT_PRODUCER.
"""

from playground.errors import UnknownProducerError
from playground.producers.base import Producer, spawn
from playground.producers.compound_growth import CompoundGrowthProducer
from playground.producers.params import Params

__all__ = [
    "Params",
    "Producer",
    "get_producer",
    "list_producers",
    "register_producer",
    "spawn",
]

# ─── Registry ──────────────────────────────────────────────

_PRODUCERS: dict[str, type[Producer]] = {
    "compound_growth": CompoundGrowthProducer,
}


def get_producer(name: str) -> Producer:
    """Get a producer instance by name.

    Raises UnknownProducerError if the producer is not registered.
    """
    cls = _PRODUCERS.get(name)
    if not cls:
        available = ", ".join(sorted(_PRODUCERS.keys()))
        raise UnknownProducerError(f"Unknown producer '{name}'. Available: {available}")
    return cls()


def list_producers() -> list[str]:
    """List registered producer names."""
    return sorted(_PRODUCERS.keys())


def register_producer(name: str, producer_cls: type[Producer]) -> None:
    """Register a custom producer.

    Learn: Extra computations plug in without touching the routes:
        register_producer("my_model", MyModelProducer)
    """
    _PRODUCERS[name] = producer_cls
