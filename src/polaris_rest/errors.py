"""Polaris gateway error taxonomy.

This module defines the error hierarchy for the gateway, providing
structured error handling with specific error codes and context
information. Each error maps to one recovery path: local HTTP error
bodies, 503 responses, the reconnect loop, or a fatal startup exit.
"""
from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        code: Error code following the polaris:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class MissingParametersError(GatewayError):
    """Raised when a required query parameter is absent.

    Recovered locally by the handler, which answers with a 200 and an
    ``{error, message}`` body so existing callers keep working.

    Attributes:
        parameters: Names of the parameters that were required
    """

    def __init__(self, parameters: list[str], details: dict[str, Any] | None = None) -> None:
        quoted = " or ".join(f"'{name}'" for name in parameters)
        message = f"Missing required parameters {quoted}"
        super().__init__(
            code="polaris:request/missing_parameters",
            message=message,
            details={"parameters": list(parameters), **(details or {})},
        )
        self.parameters = list(parameters)


class SessionUnavailableError(GatewayError):
    """Raised when the WebSocket session is not open when a handler needs it.

    Attributes:
        state: Session state observed when the check failed
        timeout: Seconds waited before giving up, None for an immediate check
    """

    def __init__(
        self,
        state: str,
        timeout: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if timeout is None:
            message = f"WebSocket session is not open (state: {state})"
        else:
            message = f"WebSocket session not open after {timeout:g}s (state: {state})"
        super().__init__(
            code="polaris:session/unavailable",
            message=message,
            details={"timeout": timeout, "state": state, **(details or {})},
        )
        self.timeout = timeout
        self.state = state


class ConnectionLostError(GatewayError):
    """Raised when the session closes while a correlated request is pending.

    Pending ledger entries are rejected with this error so waiting
    handlers resume instead of hanging until the next reconnect.
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        message = f"WebSocket connection lost: {reason}"
        super().__init__(
            code="polaris:session/connection_lost",
            message=message,
            details={"reason": reason, **(details or {})},
        )
        self.reason = reason


class TransportError(GatewayError):
    """Low-level socket failure. Logged and fed into the reconnect loop."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="polaris:transport/error",
            message=f"WebSocket transport error: {reason}",
            details={"reason": reason, **(details or {})},
        )
        self.reason = reason


class ConfigurationError(GatewayError):
    """Raised when required environment configuration is missing or invalid.

    Fatal at startup: the process logs the problems and exits rather than
    running degraded.

    Attributes:
        problems: One human-readable line per configuration problem
    """

    def __init__(self, problems: list[str], details: dict[str, Any] | None = None) -> None:
        message = "Invalid configuration: " + "; ".join(problems)
        super().__init__(
            code="polaris:config/invalid",
            message=message,
            details={"problems": list(problems), **(details or {})},
        )
        self.problems = list(problems)
