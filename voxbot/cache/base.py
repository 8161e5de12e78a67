"""Abstract key/value cache with sliding expiration and invalidation groups."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

from loguru import logger


@dataclass(frozen=True)
class GroupIndex:
    """Keys sharing one invalidation scope."""

    group: str
    keys: frozenset[str]
    sliding_expiration: float


class CacheStore(ABC):
    """
    Abstract base for cache backends.

    Backends implement the byte-level primitives (``get``/``set``/``remove``).
    Group bookkeeping is built on top of them here: a group is stored as a
    JSON list of member keys under the group key, plus its sliding expiration
    (seconds) under ``"<group>SlidingExpiration"``. Group updates are
    read-modify-write and run under a per-group ``asyncio.Lock`` so
    concurrent writers never lose each other's keys.
    """

    EXPIRATION_SUFFIX = "SlidingExpiration"

    def __init__(self) -> None:
        self._group_locks: dict[str, asyncio.Lock] = {}

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """
        Read a value, resetting its sliding expiration on a hit.

        Returns:
            The stored bytes, or None if missing or expired.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: bytes, sliding_expiration: float) -> None:
        """
        Store a value.

        Args:
            key: Cache key.
            value: Serialized payload.
            sliding_expiration: Seconds of inactivity before the entry expires.
        """
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        ...

    # ── Groups ──────────────────────────────────────────────────

    def _group_lock(self, group: str) -> asyncio.Lock:
        return self._group_locks.setdefault(group, asyncio.Lock())

    def _expiration_key(self, group: str) -> str:
        return f"{group}{self.EXPIRATION_SUFFIX}"

    async def _read_keys(self, group: str) -> set[str]:
        raw = await self.get(group)
        if raw is None:
            return set()
        try:
            keys = json.loads(raw)
            return {str(k) for k in keys}
        except (ValueError, TypeError) as e:
            logger.warning(f"Cache group {group} index unreadable, starting fresh: {e}")
            return set()

    async def _read_expiration(self, group: str) -> float | None:
        raw = await self.get(self._expiration_key(group))
        if raw is None:
            return None
        try:
            return float(json.loads(raw))
        except (ValueError, TypeError):
            return None

    async def add_to_group(self, group: str, key: str, sliding_expiration: float) -> GroupIndex:
        """
        Register ``key`` in ``group``.

        The group's expiration becomes the max of its recorded value and
        ``sliding_expiration``, so it never shrinks as members are added.
        """
        async with self._group_lock(group):
            keys = await self._read_keys(group)
            keys.add(key)

            expiration = sliding_expiration
            existing = await self._read_expiration(group)
            if existing is not None:
                expiration = max(expiration, existing)

            await self.set(group, json.dumps(sorted(keys)).encode("utf-8"), expiration)
            await self.set(self._expiration_key(group), json.dumps(expiration).encode("utf-8"), expiration)

        logger.debug(f"Added to cache group -> {group} ({len(keys)} keys, {expiration:.0f}s)")
        return GroupIndex(group=group, keys=frozenset(keys), sliding_expiration=expiration)

    async def touch_group(self, group: str, key: str, sliding_expiration: float) -> None:
        """
        Slide ``group``'s index after a hit on its member ``key``.

        A member may never outlive its index: if the index has lapsed or no
        longer lists ``key``, the key is registered again.
        """
        async with self._group_lock(group):
            keys = await self._read_keys(group)
            existing = await self._read_expiration(group)
            if key in keys and existing is not None:
                return
        await self.add_to_group(group, key, sliding_expiration)

    async def get_group(self, group: str) -> GroupIndex | None:
        """Read a group's index, or None if it doesn't exist."""
        async with self._group_lock(group):
            raw = await self.get(group)
            if raw is None:
                return None
            keys = await self._read_keys(group)
            expiration = await self._read_expiration(group)
        return GroupIndex(group=group, keys=frozenset(keys), sliding_expiration=expiration or 0.0)

    async def remove_group(self, group: str) -> list[str]:
        """
        Remove every key registered in ``group`` along with the index itself.

        Returns:
            The member keys that were removed.
        """
        async with self._group_lock(group):
            keys = await self._read_keys(group)
            for key in sorted(keys):
                await self.remove(key)
            await self.remove(group)
            await self.remove(self._expiration_key(group))

        logger.info(f"Removed cache group -> {group} ({len(keys)} keys)")
        return sorted(keys)
