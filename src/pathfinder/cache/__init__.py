"""
Pathfinder - Local Cache.

Synchronous, always-available persistence for the current device.
"""

from pathfinder.cache.backends import CacheBackend, FileCacheBackend, MemoryCacheBackend
from pathfinder.cache.store import (
    COMMUNITY_ITINERARIES,
    CURRENT_USER,
    SAVED_ITINERARIES,
    CacheAuthStorage,
    LocalCacheStore,
)

__all__ = [
    "CacheBackend",
    "FileCacheBackend",
    "MemoryCacheBackend",
    "LocalCacheStore",
    "CacheAuthStorage",
    "CURRENT_USER",
    "SAVED_ITINERARIES",
    "COMMUNITY_ITINERARIES",
]
