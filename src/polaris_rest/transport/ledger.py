"""Pending-request ledger: FIFO correlation of replies to ``message`` requests.

The Polaris wire protocol carries no request id, so the Nth correlated send
is answered by the Nth inbound frame received after it. The ledger keeps one
future per outstanding request in send order and resolves the oldest one
whenever a frame arrives.

All methods are synchronous and must be called from the event loop thread;
that is what serializes enqueue, dispatch and drain relative to each other.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from polaris_rest.observability import get_logger

logger = get_logger(__name__)

__all__ = ["PendingRequest", "PendingRequestLedger"]


@dataclass
class PendingRequest:
    future: asyncio.Future[Any]
    created_at: float = field(default_factory=time.monotonic)

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at


class PendingRequestLedger:
    """Ordered queue of outstanding correlated requests.

    Example:
        >>> ledger = PendingRequestLedger()
        >>> future = ledger.enqueue()
        >>> ledger.dispatch('{"ok": true}')
        True
        >>> future.result()
        '{"ok": true}'
    """

    def __init__(self) -> None:
        self._entries: deque[PendingRequest] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def enqueue(self) -> asyncio.Future[Any]:
        """Append a new entry and return the future its reply will resolve."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._entries.append(PendingRequest(future=future))
        return future

    def dispatch(self, payload: Any) -> bool:
        """Resolve the oldest entry with ``payload``.

        An entry whose caller went away (future already done) still consumes
        the payload so that later entries stay aligned with their replies.

        Returns:
            False when there was no entry and the payload was dropped.
        """
        if not self._entries:
            return False
        entry = self._entries.popleft()
        if entry.future.done():
            logger.debug("polaris.ledger.reply_for_abandoned_request", age=entry.age)
        else:
            entry.future.set_result(payload)
        return True

    def drain(self, reason: BaseException) -> int:
        """Reject every outstanding entry with ``reason`` and empty the ledger.

        Returns:
            Number of entries that were still waiting.
        """
        rejected = 0
        while self._entries:
            entry = self._entries.popleft()
            if not entry.future.done():
                entry.future.set_exception(reason)
                rejected += 1
        return rejected

    def discard(self, future: asyncio.Future[Any]) -> bool:
        """Remove the entry owning ``future``; used when its send never hit the wire."""
        for entry in self._entries:
            if entry.future is future:
                self._entries.remove(entry)
                return True
        return False
