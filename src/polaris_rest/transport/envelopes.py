"""Envelope construction for the Polaris WebSocket protocol.

One pure function per envelope variant. Builders perform no I/O and no
validation: optional values the caller supplies are passed through as-is,
and omitted ones take the protocol defaults (``type="text"``,
``extra={"format": "Markdown"}``, ``target="all"``).

Frames are JSON text: one WebSocket text frame carries one envelope.
"""

from __future__ import annotations

import json
import time
from typing import Any

from polaris_rest.models.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_TARGET,
    default_extra,
)
from polaris_rest.models.entities import Conversation, User
from polaris_rest.models.enums import EnvelopeType
from polaris_rest.models.envelope import (
    BroadcastEnvelope,
    BroadcastMessage,
    ChatMessage,
    Envelope,
    InitEnvelope,
    MessageEnvelope,
    NotifyEnvelope,
    NotifyMessage,
    PingEnvelope,
)

__all__ = [
    "build_broadcast",
    "build_init",
    "build_message",
    "build_notify",
    "build_ping",
    "build_redirect",
    "decode_frame",
    "encode_frame",
]


def _extra_or_default(extra: Any) -> Any:
    return default_extra() if extra is None else extra


def build_init(user: User, platform: str, config: dict[str, Any]) -> InitEnvelope:
    """Handshake envelope sent once per connection, before anything else."""
    return InitEnvelope(bot=user.username, platform=platform, user=user, config=config)


def build_ping(user: User, platform: str) -> PingEnvelope:
    return PingEnvelope(bot=user.username, platform=platform)


def build_message(
    user: User,
    platform: str,
    chat_id: str,
    content: Any,
    content_type: str = DEFAULT_CONTENT_TYPE,
    extra: Any = None,
) -> MessageEnvelope:
    """Request/response envelope; the platform answers with one reply frame.

    Example:
        >>> from polaris_rest.models import default_user
        >>> env = build_message(default_user(), "rest", "42", "hi")
        >>> env.message.conversation.id, env.message.extra
        ('42', {'format': 'Markdown'})
    """
    return MessageEnvelope(
        bot=user.username,
        platform=platform,
        message=ChatMessage(
            id=0,
            conversation=Conversation(id=chat_id),
            sender=user,
            content=content,
            type=content_type,
            date=time.time(),
            reply=None,
            extra=_extra_or_default(extra),
        ),
    )


def build_broadcast(
    user: User,
    platform: str,
    chat_id: str,
    content: Any,
    content_type: str = DEFAULT_CONTENT_TYPE,
    extra: Any = None,
    target: str = DEFAULT_TARGET,
    redirect: bool = False,
) -> BroadcastEnvelope:
    """Fire-and-forget envelope delivered to ``target`` bots.

    With ``redirect=True`` the envelope is tagged ``redirect`` instead; the
    shape is otherwise identical. Broadcasts are sent as ``user.id``, not
    the username the other envelopes carry.
    """
    return BroadcastEnvelope(
        bot=user.id,
        platform=platform,
        type=EnvelopeType.REDIRECT.value if redirect else EnvelopeType.BROADCAST.value,
        target=target,
        message=BroadcastMessage(
            conversation=Conversation(id=chat_id),
            content=content,
            type=content_type,
            extra=_extra_or_default(extra),
        ),
    )


def build_redirect(
    user: User,
    platform: str,
    chat_id: str,
    content: Any,
    content_type: str = DEFAULT_CONTENT_TYPE,
    extra: Any = None,
    target: str = DEFAULT_TARGET,
) -> BroadcastEnvelope:
    return build_broadcast(
        user, platform, chat_id, content, content_type, extra, target, redirect=True
    )


def build_notify(
    user: User,
    platform: str,
    user_id: str,
    personality: str,
    content: Any,
    content_type: str = DEFAULT_CONTENT_TYPE,
    extra: Any = None,
) -> NotifyEnvelope:
    """Envelope asking the platform to message ``user_id`` as ``personality``."""
    return NotifyEnvelope(
        bot=user.username,
        platform=platform,
        user_id=user_id,
        personality=personality,
        message=NotifyMessage(
            content=content,
            type=content_type,
            extra=_extra_or_default(extra),
        ),
    )


def encode_frame(envelope: Envelope) -> str:
    return json.dumps(envelope.to_wire())


def decode_frame(raw: str | bytes) -> Any:
    """Decode an inbound frame as JSON.

    Raises:
        ValueError: If the frame is not valid UTF-8 JSON.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"Invalid binary frame (utf-8): {e}") from e
    return json.loads(raw)
