"""Environment configuration for the Polaris gateway.

All settings come from environment variables. ``SERVER`` and ``CONFIG`` are
required; every problem found is collected and raised together as a
ConfigurationError so operators can fix the environment in one pass.

Example:
    >>> settings = GatewaySettings.from_env({
    ...     "SERVER": "wss://polaris.example/ws",
    ...     "CONFIG": '{"name": "rest"}',
    ... })
    >>> settings.platform
    'rest'
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from polaris_rest.errors import ConfigurationError
from polaris_rest.models.constants import (
    DEFAULT_HOST,
    DEFAULT_PERSONALITY,
    DEFAULT_PLATFORM,
    DEFAULT_PORT,
    DEFAULT_TARGET,
    HEARTBEAT_INTERVAL,
    READY_TIMEOUT,
    RECONNECT_DELAY,
)
from polaris_rest.models.entities import User, default_user

ENV_SERVER = "SERVER"
ENV_CONFIG = "CONFIG"
ENV_PLATFORM = "PLATFORM"
ENV_HOST = "HOST"
ENV_PORT = "PORT"
ENV_DEFAULT_CHAT_ID = "DEFAULT_CHAT_ID"
ENV_DEFAULT_TARGET = "DEFAULT_TARGET"
ENV_DEFAULT_USER_ID = "DEFAULT_USER_ID"
ENV_DEFAULT_PERSONALITY = "DEFAULT_PERSONALITY"
ENV_HEARTBEAT_INTERVAL = "HEARTBEAT_INTERVAL"
ENV_RECONNECT_DELAY = "RECONNECT_DELAY"
ENV_READY_TIMEOUT = "READY_TIMEOUT"

_WEBSOCKET_SCHEMES = frozenset({"ws", "wss"})


class GatewaySettings(BaseModel):
    """Resolved gateway configuration.

    Attributes:
        server_url: WebSocket URL of the Polaris platform
        bot_config: Decoded CONFIG payload sent in the init envelope
        platform: Gateway identity tag sent in every envelope
        user: Bot identity presented to the platform
        default_chat_id: Fallback for a missing ``chatId`` query parameter
        default_target: Fallback broadcast target
        default_user_id: Fallback for a missing ``userId`` (notify)
        default_personality: Fallback personality (notify)
        heartbeat_interval: Seconds between ``ping`` envelopes
        reconnect_delay: Seconds to wait before reconnecting
        ready_timeout: Seconds a handler waits for an open session
    """

    model_config = ConfigDict(frozen=True)

    server_url: str
    bot_config: dict[str, Any] = Field(default_factory=dict)
    platform: str = DEFAULT_PLATFORM
    user: User = Field(default_factory=default_user)
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    default_chat_id: str | None = None
    default_target: str = DEFAULT_TARGET
    default_user_id: str | None = None
    default_personality: str = DEFAULT_PERSONALITY
    heartbeat_interval: float = Field(default=HEARTBEAT_INTERVAL, gt=0)
    reconnect_delay: float = Field(default=RECONNECT_DELAY, ge=0)
    ready_timeout: float = Field(default=READY_TIMEOUT, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewaySettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Raises:
            ConfigurationError: Listing every missing or malformed variable.
        """
        env = os.environ if environ is None else environ
        problems: list[str] = []

        server_url = _get(env, ENV_SERVER)
        if server_url is None:
            problems.append(f"{ENV_SERVER} is required (WebSocket URL of the Polaris server)")
        elif urlparse(server_url).scheme not in _WEBSOCKET_SCHEMES:
            problems.append(f"{ENV_SERVER} must be a ws:// or wss:// URL, got '{server_url}'")

        bot_config: dict[str, Any] = {}
        raw_config = _get(env, ENV_CONFIG)
        if raw_config is None:
            problems.append(f"{ENV_CONFIG} is required (JSON bot configuration)")
        else:
            try:
                decoded = json.loads(raw_config)
            except json.JSONDecodeError as exc:
                problems.append(f"{ENV_CONFIG} is not valid JSON: {exc.msg}")
            else:
                if isinstance(decoded, dict):
                    bot_config = decoded
                else:
                    problems.append(f"{ENV_CONFIG} must be a JSON object")

        port = _get_number(env, ENV_PORT, int, DEFAULT_PORT, problems)
        heartbeat_interval = _get_number(
            env, ENV_HEARTBEAT_INTERVAL, float, HEARTBEAT_INTERVAL, problems
        )
        reconnect_delay = _get_number(env, ENV_RECONNECT_DELAY, float, RECONNECT_DELAY, problems)
        ready_timeout = _get_number(env, ENV_READY_TIMEOUT, float, READY_TIMEOUT, problems)

        if problems:
            raise ConfigurationError(problems)

        try:
            return cls(
                server_url=server_url,
                bot_config=bot_config,
                platform=_get(env, ENV_PLATFORM) or DEFAULT_PLATFORM,
                host=_get(env, ENV_HOST) or DEFAULT_HOST,
                port=port,
                default_chat_id=_get(env, ENV_DEFAULT_CHAT_ID),
                default_target=_get(env, ENV_DEFAULT_TARGET) or DEFAULT_TARGET,
                default_user_id=_get(env, ENV_DEFAULT_USER_ID),
                default_personality=_get(env, ENV_DEFAULT_PERSONALITY) or DEFAULT_PERSONALITY,
                heartbeat_interval=heartbeat_interval,
                reconnect_delay=reconnect_delay,
                ready_timeout=ready_timeout,
            )
        except ValueError as exc:
            # pydantic.ValidationError subclasses ValueError
            raise ConfigurationError([str(exc)]) from exc

    def describe(self) -> dict[str, Any]:
        """Settings as a plain dict, for ``check-config`` output and startup logs."""
        return self.model_dump(mode="json")


def _get(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_number(
    env: Mapping[str, str],
    name: str,
    kind: type[int] | type[float],
    default: int | float,
    problems: list[str],
) -> Any:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError:
        problems.append(f"{name} must be a number, got '{raw}'")
        return default
