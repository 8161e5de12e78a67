"""Command result cache."""

from voxbot.cache.base import CacheStore, GroupIndex
from voxbot.cache.memory import CacheEntry, InMemoryCacheStore

__all__ = ["CacheEntry", "CacheStore", "GroupIndex", "InMemoryCacheStore"]
