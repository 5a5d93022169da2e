"""
Cache Module
============

Short-lived thumbnail storage keyed by source locator.

Example:
    from thumbnailer.cache import InMemoryCacheStore

    store = InMemoryCacheStore()
    await store.set("https://example.com/a.mp4", jpeg_bytes, ttl=60)
"""

from thumbnailer.cache.store import CacheStore, InMemoryCacheStore, RedisCacheStore


__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
