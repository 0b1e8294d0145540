"""Resource governor: caps concurrent browser sessions and watches memory.

All bookkeeping happens on the event loop thread between awaits, so the
counter needs no lock. Call sites must pair every ``acquire`` with a
``release`` on all exit paths (use ``session()``); an unmatched acquire
leaks a slot.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Optional

import psutil

logger = logging.getLogger(__name__)

Closer = Callable[[], Awaitable[None]]


@dataclass
class SessionHandle:
    session_id: int
    label: str = ""
    acquired_at: float = field(default_factory=time.monotonic)
    closer: Optional[Closer] = None
    evicted: bool = False


def process_memory_bytes() -> int:
    """Resident set size of the current process."""
    return psutil.Process().memory_info().rss


class ResourceGovernor:
    """Bounds the number of live rendering sessions."""

    def __init__(
        self,
        max_sessions: int = 3,
        memory_threshold: int = 1024 * 1024 * 1024,
        poll_interval: float = 1.0,
        memory_probe: Callable[[], int] = process_memory_bytes,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.memory_threshold = memory_threshold
        self.poll_interval = poll_interval
        self._memory_probe = memory_probe
        self._active: OrderedDict[int, SessionHandle] = OrderedDict()
        self._ids = itertools.count(1)
        self.peak_sessions = 0
        self.evictions = 0

    @property
    def active_count(self) -> int:
        return len(self._active)

    async def acquire(self, label: str = "") -> SessionHandle:
        """Wait for a free slot, then claim it."""
        while len(self._active) >= self.max_sessions:
            logger.info("Waiting for session slot (%d/%d in use)...",
                        len(self._active), self.max_sessions)
            await asyncio.sleep(self.poll_interval)

        handle = SessionHandle(session_id=next(self._ids), label=label)
        self._active[handle.session_id] = handle
        self.peak_sessions = max(self.peak_sessions, len(self._active))
        logger.debug("Acquired session %d (%s), %d/%d in use",
                     handle.session_id, label, len(self._active), self.max_sessions)
        return handle

    def attach(self, handle: SessionHandle, closer: Closer) -> None:
        """Register how to close the session if it has to be evicted."""
        handle.closer = closer

    async def release(self, handle: SessionHandle) -> None:
        """Free the slot held by ``handle``. Releasing twice is a no-op."""
        if self._active.pop(handle.session_id, None) is not None:
            logger.debug("Released session %d (%s), %d/%d in use",
                         handle.session_id, handle.label,
                         len(self._active), self.max_sessions)

    async def check_memory(self) -> bool:
        """Evict the oldest session when memory is over the threshold.

        Best-effort: the evicted session is simply the oldest one, not the
        largest, and only when more than one session is active. Returns
        True when a session was evicted.
        """
        used = self._memory_probe()
        if used <= self.memory_threshold:
            return False

        logger.warning("Memory usage high: %dMB", used // (1024 * 1024))
        if len(self._active) <= 1:
            return False

        _, oldest = next(iter(self._active.items()))
        await self._evict(oldest)
        return True

    async def _evict(self, handle: SessionHandle) -> None:
        logger.warning("Evicting oldest session %d (%s)", handle.session_id, handle.label)
        handle.evicted = True
        self.evictions += 1
        try:
            if handle.closer is not None:
                await handle.closer()
        except Exception as e:
            logger.warning("Error closing evicted session %d: %s", handle.session_id, e)
        finally:
            await self.release(handle)

    @asynccontextmanager
    async def session(self, label: str = "") -> AsyncIterator[SessionHandle]:
        """Hold a slot for the duration of the block, released on any exit."""
        handle = await self.acquire(label)
        try:
            yield handle
        finally:
            await self.release(handle)
