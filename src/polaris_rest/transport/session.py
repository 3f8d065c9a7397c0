"""WebSocket session management for the Polaris gateway.

The SessionManager owns the gateway's single WebSocket connection to the
Polaris platform and runs its lifecycle in one background task:

- connect to ``SERVER`` with ``?platform=<platform>`` appended
- send the ``init`` handshake, then mark the session open
- send a ``ping`` envelope every ``heartbeat_interval`` seconds
- hand every inbound frame to the PendingRequestLedger
- on close or error: stop the heartbeat, reject pending requests with
  ConnectionLostError, wait ``reconnect_delay`` seconds and connect again

Reconnection is unconditional and indefinite: fixed delay, no cap. Each
connection attempt gets a fresh Session object; nothing is reused across
reconnects.

Example:
    >>> manager = SessionManager.from_settings(settings)
    >>> await manager.start()
    >>> await manager.await_ready()
    >>> reply = await manager.request(build_message(user, "rest", "42", "hi"))
    >>> await manager.stop()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets

from polaris_rest.errors import ConnectionLostError, SessionUnavailableError, TransportError
from polaris_rest.models.constants import (
    DEFAULT_PLATFORM,
    HEARTBEAT_INTERVAL,
    PLATFORM_QUERY_PARAM,
    READY_TIMEOUT,
    RECONNECT_DELAY,
)
from polaris_rest.models.entities import User, default_user
from polaris_rest.models.enums import SessionState
from polaris_rest.models.envelope import Envelope
from polaris_rest.observability import get_logger, sanitize_envelope
from polaris_rest.transport.envelopes import build_init, build_ping, encode_frame
from polaris_rest.transport.ledger import PendingRequestLedger

if TYPE_CHECKING:
    from polaris_rest.config import GatewaySettings

logger = get_logger(__name__)

__all__ = [
    "Connector",
    "Session",
    "SessionManager",
    "default_connector",
    "url_with_platform",
]

# Opens a WebSocket to the given URL; the result needs async send/recv/close
Connector = Callable[[str], Awaitable[Any]]

SHUTDOWN_REASON = "gateway shutting down"


def default_connector(url: str) -> Awaitable[Any]:
    # Application-level ping envelopes replace protocol pings
    return websockets.connect(
        url,
        open_timeout=10.0,
        close_timeout=5.0,
        ping_interval=None,
        max_size=2**20,
    )


def url_with_platform(url: str, platform: str) -> str:
    """Return ``url`` with ``platform=<platform>`` set, keeping other query params."""
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k != PLATFORM_QUERY_PARAM
    ]
    query.append((PLATFORM_QUERY_PARAM, platform))
    return urlunsplit(parts._replace(query=urlencode(query)))


@dataclass
class Session:
    """One connection attempt to the platform.

    Attributes:
        generation: 1 for the first connection, incremented per reconnect
        url: URL the connection was opened against
        connection: WebSocket handle, None until the connect succeeds
        state: connecting, open or closed
        last_heartbeat: Monotonic time of the last successful ping (or open)
        reconnect_delay: Delay applied after this session closes
    """

    generation: int
    url: str
    reconnect_delay: float = RECONNECT_DELAY
    connection: Any = None
    state: SessionState = SessionState.CONNECTING
    created_at: float = field(default_factory=time.monotonic)
    last_heartbeat: float | None = None

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN


class SessionManager:
    """Owns the single WebSocket session and its reconnect loop."""

    def __init__(
        self,
        url: str,
        user: User | None = None,
        platform: str = DEFAULT_PLATFORM,
        bot_config: dict[str, Any] | None = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        reconnect_delay: float = RECONNECT_DELAY,
        ready_timeout: float = READY_TIMEOUT,
        connector: Connector | None = None,
        ledger: PendingRequestLedger | None = None,
    ) -> None:
        self._url = url_with_platform(url, platform)
        self._user = user or default_user()
        self._platform = platform
        self._bot_config = bot_config or {}
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._ready_timeout = ready_timeout
        self._connector = connector or default_connector
        self._ledger = ledger or PendingRequestLedger()
        self._session: Session | None = None
        self._generation = 0
        self._ready = asyncio.Event()
        self._send_lock = asyncio.Lock()
        self._run_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    def from_settings(cls, settings: "GatewaySettings", **kwargs: Any) -> "SessionManager":
        return cls(
            url=settings.server_url,
            user=settings.user,
            platform=settings.platform,
            bot_config=settings.bot_config,
            heartbeat_interval=settings.heartbeat_interval,
            reconnect_delay=settings.reconnect_delay,
            ready_timeout=settings.ready_timeout,
            **kwargs,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def user(self) -> User:
        return self._user

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> SessionState:
        session = self._session
        if session is None or session.state is SessionState.CLOSED:
            return SessionState.DISCONNECTED
        return session.state

    @property
    def pending_count(self) -> int:
        return len(self._ledger)

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the connection loop in the background. Returns immediately."""
        if self._run_task is not None and not self._run_task.done():
            return
        self._closed = False
        self._run_task = asyncio.create_task(self._run_loop(), name="polaris-session")

    async def stop(self) -> None:
        """Stop reconnecting, close the socket and reject pending requests."""
        self._closed = True
        if self._run_task is not None:
            self._run_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._run_task
            self._run_task = None
        if self._session is not None:
            await self._close_session(self._session, SHUTDOWN_REASON)
        logger.info("polaris.session.stopped", url=self._url)

    async def _run_loop(self) -> None:
        attempt = 0
        while not self._closed:
            await self._connect_once()
            if self._closed:
                break
            attempt += 1
            logger.info(
                "polaris.session.reconnect_scheduled",
                delay=self._reconnect_delay,
                attempt=attempt,
            )
            await asyncio.sleep(self._reconnect_delay)

    async def _connect_once(self) -> None:
        self._generation += 1
        session = Session(
            generation=self._generation,
            url=self._url,
            reconnect_delay=self._reconnect_delay,
        )
        self._session = session
        reason = "connection closed"
        logger.info("polaris.session.connecting", url=self._url, generation=session.generation)
        try:
            session.connection = await self._connector(self._url)
            await self._open(session)
            await self._recv_loop(session)
        except asyncio.CancelledError:
            reason = SHUTDOWN_REASON
            raise
        except websockets.ConnectionClosed as e:
            reason = f"connection closed ({e})"
            logger.info(
                "polaris.session.remote_closed",
                generation=session.generation,
                reason=str(e),
            )
        except Exception as e:
            error = TransportError(str(e) or type(e).__name__)
            reason = error.reason
            logger.warning(
                "polaris.session.transport_error",
                generation=session.generation,
                error=error.message,
                error_type=type(e).__name__,
            )
        finally:
            await self._close_session(session, reason)

    async def _open(self, session: Session) -> None:
        init = build_init(self._user, self._platform, self._bot_config)
        await session.connection.send(encode_frame(init))
        logger.debug(
            "polaris.session.init_sent",
            generation=session.generation,
            envelope=sanitize_envelope(init.to_wire()),
        )
        session.state = SessionState.OPEN
        session.last_heartbeat = time.monotonic()
        self._ready.set()
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(session), name="polaris-heartbeat"
        )
        logger.info("polaris.session.connected", url=self._url, generation=session.generation)

    async def _recv_loop(self, session: Session) -> None:
        while True:
            raw = await session.connection.recv()
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            if not self._ledger.dispatch(raw):
                logger.debug(
                    "polaris.session.unsolicited_frame",
                    generation=session.generation,
                    size=len(raw),
                )

    async def _heartbeat_loop(self, session: Session) -> None:
        while session.is_open:
            await asyncio.sleep(self._heartbeat_interval)
            if not session.is_open:
                return
            frame = encode_frame(build_ping(self._user, self._platform))
            try:
                async with self._send_lock:
                    await session.connection.send(frame)
            except Exception as e:
                # The receive loop sees the same failure and runs the close path
                logger.warning(
                    "polaris.session.heartbeat_error",
                    generation=session.generation,
                    error=str(e),
                )
                return
            session.last_heartbeat = time.monotonic()

    async def _close_session(self, session: Session, reason: str) -> None:
        if session.state is SessionState.CLOSED:
            return
        session.state = SessionState.CLOSED
        if self._session is session:
            self._ready.clear()
        heartbeat, self._heartbeat_task = self._heartbeat_task, None
        if heartbeat is not None and heartbeat is not asyncio.current_task():
            heartbeat.cancel()
            with suppress(asyncio.CancelledError):
                await heartbeat
        rejected = self._ledger.drain(ConnectionLostError(reason))
        if session.connection is not None:
            with suppress(OSError):
                await session.connection.close()
        logger.info(
            "polaris.session.closed",
            generation=session.generation,
            reason=reason,
            rejected_requests=rejected,
        )

    # --- Handler API ---

    async def await_ready(self, timeout: float | None = None) -> Session:
        """Wait until the session is open and return it.

        Returns immediately when already open. Other callers keep running
        while this one waits on the readiness event.

        Args:
            timeout: Seconds to wait; defaults to the configured ready timeout.

        Raises:
            SessionUnavailableError: If no session opened within the budget.
        """
        budget = self._ready_timeout if timeout is None else timeout
        session = self._session
        if session is not None and session.is_open:
            return session
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise SessionUnavailableError(self.state.value, budget)
            try:
                await asyncio.wait_for(self._ready.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                raise SessionUnavailableError(self.state.value, budget) from None
            session = self._session
            if session is not None and session.is_open:
                return session

    def _require_open(self) -> Session:
        session = self._session
        if session is None or not session.is_open:
            raise SessionUnavailableError(self.state.value)
        return session

    async def _send_frame(self, session: Session, frame: str) -> None:
        try:
            await session.connection.send(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ConnectionLostError(str(e) or type(e).__name__) from e

    async def send(self, envelope: Envelope) -> None:
        """Send a fire-and-forget envelope over the open session.

        Raises:
            SessionUnavailableError: If the session is not open.
            ConnectionLostError: If the socket fails while sending.
        """
        async with self._send_lock:
            session = self._require_open()
            await self._send_frame(session, encode_frame(envelope))
        logger.debug(
            "polaris.session.sent",
            type=envelope.type,
            generation=session.generation,
            envelope=sanitize_envelope(envelope.to_wire()),
        )

    async def request(self, envelope: Envelope) -> Any:
        """Send ``envelope`` and wait for the reply frame correlated to it.

        The ledger entry is created and the frame written under one lock, so
        ledger order always equals wire order. There is no reply timeout:
        the wait ends with the reply or with ConnectionLostError when the
        session closes.

        Returns:
            The raw text of the reply frame.

        Raises:
            SessionUnavailableError: If the session is not open.
            ConnectionLostError: If the session is lost before the reply.
        """
        async with self._send_lock:
            session = self._require_open()
            future = self._ledger.enqueue()
            try:
                await self._send_frame(session, encode_frame(envelope))
            except ConnectionLostError:
                self._ledger.discard(future)
                raise
            except asyncio.CancelledError:
                # Frame may already be on the wire; the entry must still consume its reply
                future.cancel()
                raise
        logger.debug(
            "polaris.session.request_sent",
            type=envelope.type,
            generation=session.generation,
            pending=len(self._ledger),
            envelope=sanitize_envelope(envelope.to_wire()),
        )
        return await future
