"""
Frame and Output Geometry Models
================================

Typed records passed between the media adapter and the compositor.

Design Rules:
    - FrameSample is ephemeral: produced by a FrameExtractor, consumed
      immediately by the compositor, never persisted
    - OutputSpec is a process-wide constant fixing the canonical canvas
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class FrameSample:
    """
    One decoded video frame.

    Attributes:
        pixels: BGR image as np.ndarray (H, W, 3), dtype=uint8
        width: Frame width in pixels
        height: Frame height in pixels
    """

    pixels: np.ndarray
    width: int
    height: int

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("frame dimensions must be positive")

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "FrameSample":
        """Build a sample whose dimensions are read from the array shape."""
        height, width = pixels.shape[:2]
        return cls(pixels=pixels, width=int(width), height=int(height))

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return f"FrameSample(width={self.width}, height={self.height})"


@dataclass(frozen=True, slots=True)
class OutputSpec:
    """
    Canonical output geometry for every thumbnail.

    Attributes:
        width: Output canvas width in pixels
        height: Output canvas height in pixels
        jpeg_quality: JPEG encoder quality (1-100)
        aspect_tolerance: Relative tolerance when comparing aspect ratios
    """

    width: int = 640
    height: int = 360
    jpeg_quality: int = 90
    aspect_tolerance: float = 1e-3

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("output dimensions must be positive")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be in [1, 100]")

    @property
    def target_aspect_ratio(self) -> float:
        """Aspect ratio of the output canvas (width / height)."""
        return self.width / self.height
