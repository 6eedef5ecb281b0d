"""Playground — live computation playground.

Renders the result of a computation into a page, then keeps pushing
follow-up updates for that page over a WebSocket bound to a one-off
session identifier.
"""

__version__ = "0.1.0"
