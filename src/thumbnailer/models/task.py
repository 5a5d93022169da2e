"""
Task and Result Models
======================

Units of work flowing through the dispatcher and the cache.

Lifecycle:
    Task              - created by the orchestrator on a cache miss
    GenerationResult  - produced by a worker, owned by the caller once returned
    CacheEntry        - written on a successful miss, expires, never deleted
"""

import time
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Task:
    """
    One thumbnail generation request.

    Tasks are not deduplicated at this level; coalescing of identical
    keys happens in the orchestrator before submission.

    Attributes:
        key: Source locator (video URL)
        submitted_at: UNIX timestamp of submission
    """

    key: str
    submitted_at: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """
    Encoded thumbnail produced by a worker.

    Attributes:
        data: JPEG bytes, ready to be sent as-is
        source_key: Locator the thumbnail was generated from
        letterboxed: Whether padding was applied
        source_width: Native width of the extracted frame
        source_height: Native height of the extracted frame
    """

    data: bytes
    source_key: str
    letterboxed: bool = False
    source_width: int = 0
    source_height: int = 0

    def __repr__(self) -> str:
        return (
            f"GenerationResult(source_key={self.source_key!r}, "
            f"bytes={len(self.data)}, letterboxed={self.letterboxed})"
        )


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """
    Stored thumbnail with an absolute expiry.

    Attributes:
        key: Source locator
        value: Fully encoded JPEG
        expires_at: Clock reading after which the entry is a miss
    """

    key: str
    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
