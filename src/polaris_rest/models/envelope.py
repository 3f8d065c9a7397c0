"""Envelope models for the Polaris WebSocket protocol.

Every frame the gateway sends is one of these envelopes serialized with
``to_wire()``. All variants share ``bot``, ``platform`` and ``type``; the
rest of the shape depends on the variant. Inbound frames are not modelled:
the platform's replies are opaque and handed back to HTTP callers as-is.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from polaris_rest.models.base import PolarisBaseModel
from polaris_rest.models.entities import Conversation, User


class Envelope(PolarisBaseModel):
    """Fields common to all envelope variants.

    Attributes:
        bot: Sender identity (the gateway user's username)
        platform: Gateway instance type, e.g. "rest" or "api"
        type: Variant tag
    """

    bot: str = Field(..., description="Sender identity")
    platform: str = Field(..., description="Gateway platform identifier")
    type: str = Field(..., description="Envelope variant tag")


class InitEnvelope(Envelope):
    type: Literal["init"] = "init"
    user: User
    config: dict[str, Any] = Field(default_factory=dict, description="Bot configuration payload")


class PingEnvelope(Envelope):
    type: Literal["ping"] = "ping"


class ChatMessage(PolarisBaseModel):
    """Body of a ``message`` envelope."""

    id: int = 0
    conversation: Conversation
    sender: User
    content: Any = None
    type: str = "text"
    date: float
    reply: Any = None
    extra: Any = None


class MessageEnvelope(Envelope):
    type: Literal["message"] = "message"
    message: ChatMessage


class BroadcastMessage(PolarisBaseModel):
    """Body of a ``broadcast`` or ``redirect`` envelope."""

    conversation: Conversation
    content: Any = None
    type: str = "text"
    extra: Any = None


class BroadcastEnvelope(Envelope):
    type: Literal["broadcast", "redirect"] = "broadcast"
    target: str = "all"
    message: BroadcastMessage


class NotifyMessage(PolarisBaseModel):
    """Body of a ``notify`` envelope; addressed by user, not conversation."""

    content: Any = None
    type: str = "text"
    extra: Any = None


class NotifyEnvelope(Envelope):
    type: Literal["notify"] = "notify"
    user_id: str
    personality: str
    message: NotifyMessage
