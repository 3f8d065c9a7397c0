"""Structured logging for the Polaris gateway.

structlog renders through stdlib logging so that uvicorn and websockets
records share one handler and one format. Envelopes are passed through
``sanitize_envelope`` before they are logged: the bot configuration sent
with ``init`` carries credentials, and message content is user text.

Environment Variables:
    POLARIS_LOG_FORMAT: "json" for one JSON object per line, "console" otherwise
    POLARIS_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR
    POLARIS_SERVICE_NAME: Value of the ``service`` key on every line
    POLARIS_DEBUG: "true" or "1" to log envelopes and settings unredacted
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import Processor

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "polaris-rest"

ENV_LOG_FORMAT = "POLARIS_LOG_FORMAT"
ENV_LOG_LEVEL = "POLARIS_LOG_LEVEL"
ENV_SERVICE_NAME = "POLARIS_SERVICE_NAME"
ENV_DEBUG = "POLARIS_DEBUG"

REDACTED_PLACEHOLDER = "***REDACTED***"
CONTENT_PREVIEW_CHARS = 64

# Third-party loggers that log every frame or request at INFO/DEBUG
NOISY_LOGGERS = ("websockets.client", "uvicorn.access")

_SENSITIVE_KEY_PATTERNS = frozenset({"password", "token", "secret", "key", "authorization", "auth"})

_logging_configured = False


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED_PLACEHOLDER if _is_sensitive_key(str(k)) else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def is_debug_mode() -> bool:
    """Return True if POLARIS_DEBUG is set to a truthy value (e.g. true, 1)."""
    value = os.environ.get(ENV_DEBUG, "").strip().lower()
    return value in ("true", "1", "yes", "on")


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive values redacted.

    Keys containing password, token, secret, key or auth (any case) are
    replaced with REDACTED_PLACEHOLDER, at any depth including inside lists.
    Debug mode returns a plain copy.

    Example:
        >>> sanitize_for_logging({"name": "rest", "config": {"apiToken": "abc"}})
        {'name': 'rest', 'config': {'apiToken': '***REDACTED***'}}
    """
    if not data:
        return {}
    if is_debug_mode():
        return dict(data)
    return _redact(data)


def _preview(content: Any) -> Any:
    if isinstance(content, str) and len(content) > CONTENT_PREVIEW_CHARS:
        return content[:CONTENT_PREVIEW_CHARS] + "..."
    return content


def sanitize_envelope(wire: dict[str, Any]) -> dict[str, Any]:
    """Return a loggable copy of an envelope in wire form.

    The ``config`` of an init envelope is reduced to its sorted key names,
    ``message.content`` is cut to CONTENT_PREVIEW_CHARS characters, and any
    remaining sensitive keys are redacted. Debug mode returns a plain copy.

    Example:
        >>> sanitize_envelope({"type": "init", "config": {"token": "abc", "name": "rest"}})
        {'type': 'init', 'config': ['name', 'token']}
    """
    if is_debug_mode():
        return dict(wire)
    result = _redact(wire)
    config = wire.get("config")
    if isinstance(config, dict):
        result["config"] = sorted(config)
    message = result.get("message")
    if isinstance(message, dict) and "content" in message:
        message["content"] = _preview(message["content"])
    return result


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structlog and the root stdlib logger for the gateway process.

    Args:
        log_format: "json" or "console". Defaults to POLARIS_LOG_FORMAT or "console"
        log_level: Minimum log level. Defaults to POLARIS_LOG_LEVEL or "INFO"
        service_name: Bound as ``service`` on every line
        force: Reconfigure even if logging was already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = (log_format or os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT)).lower()
    log_level = (log_level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()
    service_name = service_name or os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME)
    level = getattr(logging, log_level, logging.INFO)

    shared_processors = _shared_processors()
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    structlog.contextvars.bind_contextvars(service=service_name)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring defaults on first use."""
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind key/values onto every log line of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)
