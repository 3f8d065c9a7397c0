"""HTTP-facing handlers translating query parameters into Polaris envelopes.

Each handler follows the same steps:
1. Extract parameters, falling back to the configured defaults
2. Short-circuit with a ``Missing parameters`` body if a required one is absent
3. Wait for the WebSocket session to be open
4. Build the envelope and send it (or send and await the reply for ``message``)

Handlers take a plain mapping of query parameters so they can be exercised
without an HTTP stack; the server passes ``request.query_params``.

Example:
    >>> handlers = GatewayHandlers(session_manager, settings)
    >>> response = await handlers.broadcast({"chatId": "42", "content": "hi"})
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse, PlainTextResponse, Response

from polaris_rest.errors import (
    ConnectionLostError,
    MissingParametersError,
    SessionUnavailableError,
)
from polaris_rest.models.constants import DEFAULT_CONTENT_TYPE, default_extra
from polaris_rest.models.envelope import Envelope
from polaris_rest.observability import bind_context, get_logger
from polaris_rest.transport.envelopes import (
    build_broadcast,
    build_message,
    build_notify,
    decode_frame,
)

if TYPE_CHECKING:
    from polaris_rest.config import GatewaySettings
    from polaris_rest.transport.session import SessionManager

logger = get_logger(__name__)

__all__ = ["GatewayHandlers", "is_truthy", "parse_extra", "reply_response"]

ERROR_MISSING_PARAMETERS = "Missing parameters"
ERROR_SESSION_UNAVAILABLE = "WebSocket unavailable"
ERROR_CONNECTION_LOST = "WebSocket connection lost"

_EXTRA_KEY = re.compile(r"extra\[([^\]]+)\]")
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def parse_extra(params: Mapping[str, str]) -> Any:
    """Read the ``extra`` formatting options from query parameters.

    ``extra[format]=HTML`` style keys are collected into an object. Otherwise
    ``extra`` holding a JSON object is decoded and any other value is passed
    through as the raw string. Returns None when no extra was given.

    Example:
        >>> parse_extra({"extra[format]": "HTML"})
        {'format': 'HTML'}
        >>> parse_extra({"extra": '{"format": "HTML"}'})
        {'format': 'HTML'}
        >>> parse_extra({"extra": "HTML"})
        'HTML'
    """
    bracketed = {}
    for key, value in params.items():
        match = _EXTRA_KEY.fullmatch(key)
        if match:
            bracketed[match.group(1)] = value
    if bracketed:
        return bracketed

    raw = params.get("extra")
    if not raw:
        return None
    try:
        decoded = json.loads(raw)
    except ValueError:
        return raw
    return decoded if isinstance(decoded, dict) else raw


def is_truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def reply_response(reply: Any) -> Response:
    """Return the platform reply as JSON when it parses, otherwise as text."""
    try:
        return JSONResponse(status_code=200, content=decode_frame(reply))
    except (TypeError, ValueError):
        return PlainTextResponse(status_code=200, content=str(reply))


def _param(params: Mapping[str, str], name: str) -> str | None:
    value = params.get(name)
    return value if value else None


class GatewayHandlers:
    """One coroutine per gateway operation, sharing a single SessionManager.

    Attributes:
        session_manager: Owner of the WebSocket session
        settings: Provides the parameter defaults
    """

    def __init__(self, session_manager: "SessionManager", settings: "GatewaySettings") -> None:
        self.session_manager = session_manager
        self.settings = settings

    def _missing(self, error: MissingParametersError, operation: str) -> JSONResponse:
        logger.info(
            "polaris.handler.missing_parameters",
            operation=operation,
            parameters=error.parameters,
        )
        return JSONResponse(
            status_code=200,
            content={"error": ERROR_MISSING_PARAMETERS, "message": error.message},
        )

    def _unavailable(self, error: SessionUnavailableError, operation: str) -> JSONResponse:
        logger.warning(
            "polaris.handler.session_unavailable",
            operation=operation,
            state=error.state,
            timeout=error.timeout,
        )
        return JSONResponse(
            status_code=503,
            content={"error": ERROR_SESSION_UNAVAILABLE, "message": error.message},
        )

    def _connection_lost(self, error: ConnectionLostError, operation: str) -> JSONResponse:
        logger.warning(
            "polaris.handler.connection_lost",
            operation=operation,
            reason=error.reason,
        )
        return JSONResponse(
            status_code=503,
            content={"error": ERROR_CONNECTION_LOST, "message": error.message},
        )

    async def _deliver(self, envelope: Envelope, operation: str) -> JSONResponse | None:
        """Send a fire-and-forget envelope; return an error response on failure."""
        try:
            await self.session_manager.await_ready()
            await self.session_manager.send(envelope)
        except SessionUnavailableError as e:
            return self._unavailable(e, operation)
        except ConnectionLostError as e:
            return self._connection_lost(e, operation)
        return None

    async def message(self, params: Mapping[str, str]) -> Response:
        """Send a ``message`` envelope and answer with the platform's reply."""
        chat_id = _param(params, "chatId") or self.settings.default_chat_id
        content = _param(params, "content")
        if not chat_id or content is None:
            return self._missing(MissingParametersError(["chatId", "content"]), "message")

        # Context vars are task-local; one task per request
        bind_context(operation="message", chat_id=chat_id)
        try:
            await self.session_manager.await_ready()
        except SessionUnavailableError as e:
            return self._unavailable(e, "message")

        envelope = build_message(
            self.session_manager.user,
            self.session_manager.platform,
            chat_id,
            content,
            _param(params, "type") or DEFAULT_CONTENT_TYPE,
            parse_extra(params),
        )
        try:
            reply = await self.session_manager.request(envelope)
        except SessionUnavailableError as e:
            return self._unavailable(e, "message")
        except ConnectionLostError as e:
            return self._connection_lost(e, "message")
        logger.debug("polaris.handler.reply_received", size=len(str(reply)))
        return reply_response(reply)

    async def _broadcast(self, params: Mapping[str, str], redirect: bool) -> Response:
        operation = "redirect" if redirect else "broadcast"
        chat_id = _param(params, "chatId") or self.settings.default_chat_id
        content = _param(params, "content")
        if not chat_id or content is None:
            return self._missing(MissingParametersError(["chatId", "content"]), operation)

        envelope = build_broadcast(
            self.session_manager.user,
            self.session_manager.platform,
            chat_id,
            content,
            _param(params, "type") or DEFAULT_CONTENT_TYPE,
            parse_extra(params),
            target=_param(params, "target") or self.settings.default_target,
            redirect=redirect,
        )
        error = await self._deliver(envelope, operation)
        if error is not None:
            return error
        logger.info("polaris.handler.sent", operation=operation, target=envelope.target)
        return JSONResponse(status_code=200, content=envelope.to_wire())

    async def broadcast(self, params: Mapping[str, str]) -> Response:
        """Send a ``broadcast`` envelope and echo it back."""
        return await self._broadcast(params, redirect=False)

    async def redirect(self, params: Mapping[str, str]) -> Response:
        return await self._broadcast(params, redirect=True)

    async def notify(self, params: Mapping[str, str]) -> Response:
        """Ask the platform to message a user as a personality.

        ``silent`` adds ``"silent": true`` to an object ``extra``; a raw
        string ``extra`` is sent unchanged.
        """
        user_id = _param(params, "userId") or self.settings.default_user_id
        content = _param(params, "content")
        if not user_id or content is None:
            return self._missing(MissingParametersError(["userId", "content"]), "notify")

        extra = parse_extra(params)
        if is_truthy(params.get("silent")):
            if extra is None:
                extra = {**default_extra(), "silent": True}
            elif isinstance(extra, dict):
                extra = {**extra, "silent": True}

        envelope = build_notify(
            self.session_manager.user,
            self.session_manager.platform,
            user_id,
            _param(params, "personality") or self.settings.default_personality,
            content,
            _param(params, "type") or DEFAULT_CONTENT_TYPE,
            extra,
        )
        error = await self._deliver(envelope, "notify")
        if error is not None:
            return error
        logger.info("polaris.handler.sent", operation="notify", user_id=user_id)
        return JSONResponse(status_code=200, content={"success": True})
