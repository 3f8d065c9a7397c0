"""Polaris gateway transport layer.

This package bridges HTTP and the Polaris WebSocket protocol using:
- FastAPI for the HTTP endpoints
- websockets for the single long-lived platform session
- A FIFO ledger correlating ``message`` requests with reply frames

Public exports:
    create_app: FastAPI application factory
    GatewayHandlers: Per-endpoint request handlers
    SessionManager: Owner of the WebSocket session and its reconnect loop
    Session: One connection attempt to the platform
    PendingRequestLedger: FIFO reply correlation
    build_*: Envelope builders

Example:
    >>> from polaris_rest.config import GatewaySettings
    >>> from polaris_rest.transport import create_app
    >>> app = create_app(GatewaySettings.from_env())
"""

from polaris_rest.transport.envelopes import (
    build_broadcast,
    build_init,
    build_message,
    build_notify,
    build_ping,
    build_redirect,
    decode_frame,
    encode_frame,
)
from polaris_rest.transport.handlers import GatewayHandlers
from polaris_rest.transport.ledger import PendingRequest, PendingRequestLedger
from polaris_rest.transport.server import create_app
from polaris_rest.transport.session import Session, SessionManager

__all__ = [
    "GatewayHandlers",
    "PendingRequest",
    "PendingRequestLedger",
    "Session",
    "SessionManager",
    "build_broadcast",
    "build_init",
    "build_message",
    "build_notify",
    "build_ping",
    "build_redirect",
    "create_app",
    "decode_frame",
    "encode_frame",
]
