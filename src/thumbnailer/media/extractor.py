"""
Frame Extraction
================

Media transform adapters: given a source locator, produce one decoded
frame plus its pixel dimensions.

This module provides the FrameExtractor protocol and two backends:
    - OpenCVFrameExtractor: decodes remote or local video through
      cv2.VideoCapture (FFmpeg backend)
    - SyntheticFrameExtractor: deterministic frames, no network access

Design Rules:
    - extract() is BLOCKING and runs inside a dispatcher worker thread
    - Capture handles are always released
    - Failures are reported as UpstreamFetchError, never as None
"""

import hashlib
import logging
from typing import Protocol

import cv2
import numpy as np

from thumbnailer.errors import UpstreamFetchError
from thumbnailer.models.frame import FrameSample


logger = logging.getLogger(__name__)


class FrameExtractor(Protocol):
    """
    Protocol for media backends.

    All implementations must provide a blocking `extract` method that
    takes a source locator and returns a FrameSample.
    """

    def extract(self, locator: str) -> FrameSample:
        """
        Extract one representative frame.

        Args:
            locator: Video URL or path

        Returns:
            FrameSample with BGR pixels

        Raises:
            UpstreamFetchError: If the source cannot be opened or decoded
        """
        ...


class OpenCVFrameExtractor:
    """
    Frame extractor backed by cv2.VideoCapture.

    Seeks `seek_seconds` into the stream and grabs one frame. Clips
    shorter than the offset fall back to their first frame.

    Attributes:
        seek_seconds: Offset of the representative frame
    """

    def __init__(self, seek_seconds: float = 1.0) -> None:
        if seek_seconds < 0:
            raise ValueError("seek_seconds must be >= 0")

        self.seek_seconds = seek_seconds

    def extract(self, locator: str) -> FrameSample:
        capture = cv2.VideoCapture(locator)
        try:
            if not capture.isOpened():
                raise UpstreamFetchError(f"Unable to open input: {locator}")

            pixels = self._read_at_offset(capture)
            if pixels is None:
                raise UpstreamFetchError(f"No decodable video stream: {locator}")

            return FrameSample.from_array(_to_bgr(pixels))
        finally:
            capture.release()

    def _read_at_offset(self, capture: cv2.VideoCapture):
        """Read the frame at the seek offset, or the first frame."""
        if self.seek_seconds > 0:
            capture.set(cv2.CAP_PROP_POS_MSEC, self.seek_seconds * 1000.0)
            ok, pixels = capture.read()
            if ok and pixels is not None:
                return pixels

            logger.debug(
                f"No frame at {self.seek_seconds:.2f}s, falling back to first frame"
            )
            capture.set(cv2.CAP_PROP_POS_FRAMES, 0)

        ok, pixels = capture.read()
        return pixels if ok else None


class SyntheticFrameExtractor:
    """
    Deterministic extractor for development and tests.

    Generates a gradient frame tinted by a hash of the locator, so the
    same locator always produces the same pixels.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
    """

    def __init__(self, width: int = 1280, height: int = 720) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")

        self.width = width
        self.height = height

    def extract(self, locator: str) -> FrameSample:
        digest = hashlib.sha256(locator.encode("utf-8")).digest()
        tint = np.array(digest[:3], dtype=np.uint16)

        ramp = np.linspace(0, 255, self.width, dtype=np.uint16)
        pixels = np.empty((self.height, self.width, 3), dtype=np.uint8)
        for channel in range(3):
            pixels[:, :, channel] = ((ramp + tint[channel]) // 2).astype(np.uint8)

        return FrameSample.from_array(pixels)


def _to_bgr(pixels: np.ndarray) -> np.ndarray:
    """Normalise grayscale and BGRA frames to 3-channel BGR."""
    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR)
    if pixels.shape[2] == 4:
        return cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR)
    return pixels
