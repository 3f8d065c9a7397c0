"""Wire models for the Polaris gateway."""

from polaris_rest.models.entities import Conversation, User, default_user
from polaris_rest.models.enums import EnvelopeType, SessionState
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
    "BroadcastEnvelope",
    "BroadcastMessage",
    "ChatMessage",
    "Conversation",
    "Envelope",
    "EnvelopeType",
    "InitEnvelope",
    "MessageEnvelope",
    "NotifyEnvelope",
    "NotifyMessage",
    "PingEnvelope",
    "SessionState",
    "User",
    "default_user",
]
