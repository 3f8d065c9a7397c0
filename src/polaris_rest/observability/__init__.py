"""Observability helpers for the Polaris gateway.

Example:
    >>> from polaris_rest.observability import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("polaris.request.received", endpoint="/message")
"""

from polaris_rest.observability.logging import (
    bind_context,
    configure_logging,
    get_logger,
    is_debug_mode,
    sanitize_envelope,
    sanitize_for_logging,
)

__all__ = [
    "bind_context",
    "configure_logging",
    "get_logger",
    "is_debug_mode",
    "sanitize_envelope",
    "sanitize_for_logging",
]
