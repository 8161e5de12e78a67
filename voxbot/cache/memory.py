"""In-process cache backend."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from voxbot.cache.base import CacheStore


@dataclass
class CacheEntry:
    """A stored payload and its sliding expiration state."""
    key: str
    payload: bytes
    sliding_expiration: float
    expires_at: float


class InMemoryCacheStore(CacheStore):
    """
    Dict-backed cache with sliding expiration.

    Expired entries are dropped lazily on read and in bulk by ``sweep()``.
    The clock is injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self._running = False

    async def get(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.expires_at <= now:
            del self._entries[key]
            return None
        entry.expires_at = now + entry.sliding_expiration
        return entry.payload

    async def set(self, key: str, value: bytes, sliding_expiration: float) -> None:
        if sliding_expiration <= 0:
            raise ValueError(f"sliding_expiration must be > 0, got {sliding_expiration}")
        self._entries[key] = CacheEntry(
            key=key,
            payload=bytes(value),
            sliding_expiration=sliding_expiration,
            expires_at=self._clock() + sliding_expiration,
        )

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"InMemoryCacheStore: swept {len(expired)} expired entries")
        return len(expired)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep periodically until ``stop()``. Run as a background task."""
        self._running = True
        while self._running:
            await asyncio.sleep(interval)
            self.sweep()

    def stop(self) -> None:
        """Stop the sweeper loop."""
        self._running = False

    def __contains__(self, key: str) -> bool:
        """Membership check that does not slide the expiration."""
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        return len(self._entries)
