"""
Test Configuration
==================

Pytest fixtures and test doubles for the thumbnail service.
"""

import threading
import time
from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest

from thumbnailer.cache import InMemoryCacheStore
from thumbnailer.dispatch import BoundedDispatcher
from thumbnailer.models.frame import FrameSample, OutputSpec
from thumbnailer.pipeline import ThumbnailGenerator
from thumbnailer.service import ThumbnailService


SAMPLE_URL = "https://example.com/a.mp4"


def make_frame(width: int, height: int, bgr: Tuple[int, int, int] = (40, 80, 160)) -> FrameSample:
    """Uniformly colored frame."""
    pixels = np.empty((height, width, 3), dtype=np.uint8)
    pixels[:, :] = bgr
    return FrameSample.from_array(pixels)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingExtractor:
    """
    Frame extractor returning fixed-size frames.

    Records every call and the peak number of concurrent extractions.
    """

    def __init__(
        self,
        width: int = 1920,
        height: int = 1080,
        delay: float = 0.0,
        fail_for: Optional[Callable[[str], Optional[Exception]]] = None,
    ) -> None:
        self.width = width
        self.height = height
        self.delay = delay
        self.fail_for = fail_for
        self.calls: List[str] = []
        self.active = 0
        self.peak_active = 0
        self._lock = threading.Lock()

    def extract(self, locator: str) -> FrameSample:
        with self._lock:
            self.calls.append(locator)
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.fail_for is not None:
                error = self.fail_for(locator)
                if error is not None:
                    raise error
            return make_frame(self.width, self.height)
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def output_spec() -> OutputSpec:
    return OutputSpec(width=640, height=360)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def extractor() -> RecordingExtractor:
    return RecordingExtractor()


def build_test_service(
    extractor,
    cache,
    spec: Optional[OutputSpec] = None,
    workers: int = 2,
    max_queue_depth: int = 0,
    ttl_seconds: int = 60,
    **kwargs,
) -> ThumbnailService:
    generator = ThumbnailGenerator(extractor=extractor, spec=spec or OutputSpec())
    dispatcher = BoundedDispatcher(
        process=generator.generate,
        workers=workers,
        max_queue_depth=max_queue_depth,
    )
    return ThumbnailService(
        cache=cache,
        dispatcher=dispatcher,
        ttl_seconds=ttl_seconds,
        **kwargs,
    )
