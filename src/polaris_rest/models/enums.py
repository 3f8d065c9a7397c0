"""Enumerations for the Polaris gateway."""

from enum import Enum


class EnvelopeType(str, Enum):
    """Envelope variant tags carried in the ``type`` field."""

    INIT = "init"
    PING = "ping"
    MESSAGE = "message"
    BROADCAST = "broadcast"
    REDIRECT = "redirect"
    NOTIFY = "notify"


class SessionState(str, Enum):
    """Connection states of the WebSocket session.

    The manager cycles ``disconnected -> connecting -> open -> disconnected``
    until shutdown. A Session object itself only ever sees ``connecting``,
    ``open`` and ``closed``.

    Example:
        >>> SessionState.OPEN.is_ready()
        True
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"

    def is_ready(self) -> bool:
        return self is SessionState.OPEN
