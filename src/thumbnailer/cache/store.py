"""
Cache Store
===========

Key/value stores with per-entry expiry, keyed by source locator.

This module provides the CacheStore protocol and two backends:
    - InMemoryCacheStore: process-local dict, expiry swept on write, injectable clock
    - RedisCacheStore: redis-py asyncio client, server-side expiry (SET EX)

Design Rules:
    - set() on an existing key overwrites, never errors
    - Expiry is honored by the store itself; an expired entry is a miss
    - Values are stored as-is: complete JPEG bytes only
    - Backend failures surface as CacheUnavailableError
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Protocol

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

from thumbnailer.errors import CacheUnavailableError
from thumbnailer.models.task import CacheEntry


logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Protocol for cache backends consumed by the orchestrator."""

    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None on a miss or expired entry."""
        ...

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store value under key for ttl seconds, overwriting any entry."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class InMemoryCacheStore:
    """
    Process-local cache with TTL.

    Expired entries are evicted when read, and every write sweeps out
    all other expired entries so unread keys do not accumulate. Suitable
    for a single process and for tests (pass a fake clock to control expiry).

    Attributes:
        clock: Monotonic time source in seconds
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._writes: int = 0

    @property
    def size(self) -> int:
        """Number of stored entries, expired ones included."""
        return len(self._entries)

    @property
    def writes(self) -> int:
        """Total successful set() calls."""
        return self._writes

    async def get(self, key: str) -> Optional[bytes]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if entry.is_expired(self.clock()):
                del self._entries[key]
                return None

            return entry.value

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        async with self._lock:
            now = self.clock()
            self._purge_expired(now)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=now + ttl,
            )
            self._writes += 1

    async def close(self) -> None:
        self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")


class RedisCacheStore:
    """
    Redis-backed cache.

    Thumbnails are stored as raw bytes with `SET key value EX ttl`, so
    expiry is enforced by the server.

    Example:
        store = RedisCacheStore("redis://localhost:6379/0")
        await store.set(url, jpeg_bytes, ttl=60)
        cached = await store.get(url)
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        client: Optional[redis_asyncio.Redis] = None,
    ) -> None:
        self.url = url
        self._client = client or redis_asyncio.Redis.from_url(url)

    async def ping(self) -> None:
        """Check connectivity at startup."""
        try:
            await self._client.ping()
            logger.info(f"Redis connected: {self.url}")
        except RedisError as e:
            raise CacheUnavailableError(f"Redis unreachable at {self.url}: {e}") from e

    async def get(self, key: str) -> Optional[bytes]:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis GET failed: {e}") from e

        return bytes(value) if value is not None else None

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        try:
            await self._client.set(key, value, ex=ttl)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis SET failed: {e}") from e

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as e:
            logger.warning(f"Error closing Redis client: {e}")
