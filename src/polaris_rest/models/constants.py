"""Constants for the Polaris gateway."""

# Envelope defaults
DEFAULT_CONTENT_TYPE = "text"
DEFAULT_FORMAT = "Markdown"
DEFAULT_TARGET = "all"
DEFAULT_PERSONALITY = "polaris"

# Gateway identity
DEFAULT_PLATFORM = "rest"
PLATFORM_QUERY_PARAM = "platform"

# Session timing (seconds)
HEARTBEAT_INTERVAL = 30.0
RECONNECT_DELAY = 3.0
READY_TIMEOUT = 30.0

# HTTP server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


def default_extra() -> dict[str, str]:
    """Fresh default formatting options; never share a mutable default."""
    return {"format": DEFAULT_FORMAT}
