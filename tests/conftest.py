"""Shared pytest fixtures for Polaris gateway tests.

Session-level tests run against an in-memory WebSocket: FakeConnector hands
out FakeWebSocket objects whose inbound frames are fed by the test and whose
outbound frames are recorded. Handler and server tests use StubSessionManager
so no socket is involved at all.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest
import websockets

from polaris_rest.config import GatewaySettings
from polaris_rest.models import Envelope, SessionState, User, default_user

TEST_SERVER_URL = "ws://polaris.test/ws"
TEST_BOT_CONFIG = {"name": "rest", "token": "secret-token"}

_REMOTE_CLOSE = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, frame: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(frame)

    async def recv(self) -> str:
        item = await self._inbox.get()
        if item is _REMOTE_CLOSE:
            raise websockets.ConnectionClosedOK(None, None)
        return item

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_REMOTE_CLOSE)

    def feed(self, frame: str) -> None:
        """Deliver an inbound frame from the platform."""
        self._inbox.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the platform closing the connection."""
        self._inbox.put_nowait(_REMOTE_CLOSE)

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]

    def sent_types(self) -> list[str]:
        return [frame["type"] for frame in self.sent_json()]


class FakeConnector:
    """Connector recording every URL; fails the first ``failures`` attempts.

    ``socket_factory`` builds the socket handed out on each successful connect.
    """

    def __init__(
        self,
        failures: int = 0,
        socket_factory: Callable[[], FakeWebSocket] = FakeWebSocket,
    ) -> None:
        self.failures = failures
        self.socket_factory = socket_factory
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []

    async def __call__(self, url: str) -> FakeWebSocket:
        self.urls.append(url)
        if self.failures:
            self.failures -= 1
            raise OSError("connection refused")
        ws = self.socket_factory()
        self.sockets.append(ws)
        return ws


class StubSessionManager:
    """Session manager double recording envelopes instead of sending them."""

    def __init__(
        self,
        reply: Any = '{"ok": true}',
        ready_error: Exception | None = None,
        request_error: Exception | None = None,
        send_error: Exception | None = None,
        platform: str = "rest",
        user: User | None = None,
    ) -> None:
        self.reply = reply
        self.ready_error = ready_error
        self.request_error = request_error
        self.send_error = send_error
        self.platform = platform
        self.user = user or default_user()
        self.url = f"{TEST_SERVER_URL}?platform={platform}"
        self.state = SessionState.OPEN
        self.sent: list[Envelope] = []
        self.requests: list[Envelope] = []
        self.ready_calls = 0
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def await_ready(self, timeout: float | None = None) -> None:
        self.ready_calls += 1
        if self.ready_error is not None:
            raise self.ready_error

    async def send(self, envelope: Envelope) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(envelope)

    async def request(self, envelope: Envelope) -> Any:
        self.requests.append(envelope)
        if self.request_error is not None:
            raise self.request_error
        return self.reply


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds or fail after ``timeout``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture(autouse=True)
def _no_debug_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log redaction on regardless of the developer's environment."""
    monkeypatch.delenv("POLARIS_DEBUG", raising=False)


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(server_url=TEST_SERVER_URL, bot_config=dict(TEST_BOT_CONFIG))


@pytest.fixture
def stub_manager() -> StubSessionManager:
    return StubSessionManager()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
