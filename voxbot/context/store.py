"""Per-session conversation state store."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from loguru import logger

from voxbot.context.state import ConversationState


class ConversationStore:
    """
    Holds one ConversationState per session id.

    Access goes through ``session()``, which serializes callers per session
    id (not globally). Idle sessions are garbage-collected by ``sweep()``.
    """

    def __init__(
        self,
        history_size: int = 50,
        retention_seconds: float = 1800.0,
        session_ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.history_size = history_size
        self.retention_seconds = retention_seconds
        self.session_ttl_seconds = session_ttl_seconds
        self._clock = clock
        self._states: dict[str, ConversationState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._running = False

    def get_or_create(self, session_id: str) -> ConversationState:
        """Get a session's state without locking (read-only use, tests)."""
        state = self._states.get(session_id)
        if state is None:
            state = ConversationState(
                session_id=session_id,
                history_size=self.history_size,
                retention_seconds=self.retention_seconds,
                clock=self._clock,
            )
            self._states[session_id] = state
        return state

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[ConversationState]:
        """Exclusive access to one session's state."""
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            yield self.get_or_create(session_id)

    def end(self, session_id: str) -> bool:
        """Forget a session. Returns True if it existed."""
        self._locks.pop(session_id, None)
        return self._states.pop(session_id, None) is not None

    def sweep(self) -> int:
        """
        Evict expired history and drop sessions idle longer than the TTL.

        Returns:
            Number of sessions removed.
        """
        now = self._clock()
        stale = []
        for session_id, state in self._states.items():
            lock = self._locks.get(session_id)
            if lock is not None and lock.locked():
                continue
            state.evict_expired(now)
            if now - state.updated_at > self.session_ttl_seconds:
                stale.append(session_id)

        for session_id in stale:
            self.end(session_id)

        if stale:
            logger.debug(f"ConversationStore: removed {len(stale)} idle sessions")
        return len(stale)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep periodically until ``stop()``. Run as a background task."""
        self._running = True
        while self._running:
            await asyncio.sleep(interval)
            self.sweep()

    def stop(self) -> None:
        """Stop the sweeper loop."""
        self._running = False

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._states

    def __len__(self) -> int:
        return len(self._states)
