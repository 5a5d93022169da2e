"""
Thumbnail Service
=================

Orchestrator composing the cache store and the bounded dispatcher into
the cache-aside request flow.

Request flow:
    generate(url)
        -> cache hit:  return stored bytes, dispatcher untouched
        -> cache miss: join in-flight generation for url, or submit a Task
                       -> on success: one cache write, bytes to every waiter
                       -> on failure: error to every waiter, nothing cached

Design Rules:
    - Constructed once, with explicit start() and stop()
    - Invalid locators never reach the cache or the dispatcher
    - peek_cache_status() is read-only
    - Cache outages are bypassed (fail_open) or fatal, per configuration
"""

import asyncio
import logging
from typing import Dict, Optional

from thumbnailer.cache import CacheStore
from thumbnailer.dispatch import BoundedDispatcher
from thumbnailer.errors import CacheUnavailableError, InputError
from thumbnailer.models.api import CacheStatus
from thumbnailer.models.task import Task


logger = logging.getLogger(__name__)


MAX_LOCATOR_LENGTH = 2048


def validate_locator(key: Optional[str]) -> str:
    """
    Normalise a source locator or reject it.

    Raises:
        InputError: If the locator is missing, blank, too long or
            contains control characters
    """
    if not isinstance(key, str):
        raise InputError("Missing or incorrect URL")

    key = key.strip()
    if not key:
        raise InputError("Missing or incorrect URL")
    if len(key) > MAX_LOCATOR_LENGTH:
        raise InputError(f"URL longer than {MAX_LOCATOR_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in key):
        raise InputError("URL contains control characters")

    return key


def _consume_exception(task: asyncio.Task) -> None:
    # Marks a failure as retrieved when every waiter was cancelled first.
    if not task.cancelled():
        task.exception()


class ThumbnailService:
    """
    Cache-aside thumbnail orchestrator.

    Attributes:
        cache: Cache backend
        dispatcher: Worker pool running the generation pipeline
        ttl_seconds: Lifetime of a cache entry
        cache_enabled: When False every request is generated
        fail_open: Bypass the cache on CacheUnavailableError instead of failing

    Example:
        service = ThumbnailService(cache, dispatcher, ttl_seconds=60)
        await service.start()

        jpeg = await service.generate("https://example.com/a.mp4")
        status = await service.peek_cache_status("https://example.com/a.mp4")

        await service.stop()
    """

    def __init__(
        self,
        cache: CacheStore,
        dispatcher: BoundedDispatcher,
        ttl_seconds: int = 60,
        cache_enabled: bool = True,
        fail_open: bool = True,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.cache = cache
        self.dispatcher = dispatcher
        self.ttl_seconds = ttl_seconds
        self.cache_enabled = cache_enabled
        self.fail_open = fail_open

        self._inflight: Dict[str, asyncio.Task] = {}
        self._cache_hits: int = 0
        self._cache_misses: int = 0
        self._cache_errors: int = 0
        self._coalesced: int = 0

    @property
    def inflight_count(self) -> int:
        """Distinct keys currently being generated."""
        return len(self._inflight)

    async def start(self) -> None:
        await self.dispatcher.start()
        logger.info(
            f"Thumbnail service started: cache_enabled={self.cache_enabled}, "
            f"ttl={self.ttl_seconds}s, fail_open={self.fail_open}"
        )

    async def stop(self, drain: bool = True) -> None:
        await self.dispatcher.shutdown(drain=drain)
        await self.cache.close()
        logger.info("Thumbnail service stopped")

    async def generate(self, key: Optional[str]) -> bytes:
        """
        Return the thumbnail for a locator, generating it on a miss.

        Args:
            key: Source locator

        Returns:
            JPEG bytes

        Raises:
            InputError: Invalid locator
            UpstreamFetchError, TransformError: Generation failed
            QueueFullError: Dispatcher at capacity
            CacheUnavailableError: Cache down and fail_open disabled
        """
        key = validate_locator(key)

        cached = await self._cache_get(key)
        if cached is not None:
            self._cache_hits += 1
            logger.info(f"Cache hit for URL: {key}")
            return cached

        self._cache_misses += 1
        logger.info(f"Cache miss for URL: {key}")

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._generate_and_store(key))
            self._inflight[key] = pending
            pending.add_done_callback(lambda _, key=key: self._inflight.pop(key, None))
            pending.add_done_callback(_consume_exception)
        else:
            self._coalesced += 1
            logger.debug(f"Joining in-flight generation for URL: {key}")

        return await asyncio.shield(pending)

    async def peek_cache_status(self, key: Optional[str]) -> CacheStatus:
        """
        Report whether a locator is cached, without side effects.

        Raises:
            InputError: Invalid locator
            CacheUnavailableError: Cache backend unreachable
        """
        key = validate_locator(key)
        if not self.cache_enabled:
            return CacheStatus(hit=False)

        return CacheStatus(hit=await self.cache.get(key) is not None)

    def metrics(self) -> dict:
        """Service counters for observability."""
        return {
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "cache_errors": self._cache_errors,
            "coalesced": self._coalesced,
            "inflight": self.inflight_count,
            "dispatcher": {
                **self.dispatcher.metrics.to_dict(),
                "queue_depth": self.dispatcher.queue_depth,
                "workers": self.dispatcher.workers,
            },
        }

    async def _generate_and_store(self, key: str) -> bytes:
        """Submit one task and write its result to the cache."""
        result = await self.dispatcher.submit(Task(key=key))

        if self.cache_enabled:
            try:
                await self.cache.set(key, result.data, self.ttl_seconds)
            except CacheUnavailableError as e:
                self._cache_errors += 1
                if not self.fail_open:
                    raise
                logger.warning(f"Cache write skipped for {key}: {e}")

        return result.data

    async def _cache_get(self, key: str) -> Optional[bytes]:
        if not self.cache_enabled:
            return None

        try:
            return await self.cache.get(key)
        except CacheUnavailableError as e:
            self._cache_errors += 1
            if not self.fail_open:
                raise
            logger.warning(f"Cache unavailable, generating without cache: {e}")
            return None
