"""polaris-rest: HTTP to WebSocket gateway for the Polaris bot platform.

Callers issue plain GET requests; the gateway turns each into a JSON envelope
sent over one long-lived WebSocket session and, for ``/message``, waits for
the correlated reply.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
