"""
Compositor
==========

Converts one raw frame into the final thumbnail bitmap and encodes it.

Policy:
    - Source aspect ratio matches the target (within tolerance):
      pure resize to the output size, no padding
    - Otherwise: letterbox. The frame is scaled to fit inside the output
      canvas, centered, and the remaining area is filled with the
      frame's dominant color

Design Rules:
    - Output bitmap is ALWAYS exactly (OutputSpec.height, OutputSpec.width)
    - This is the ONLY place in the codebase that encodes images
    - Fails fast with TransformError on empty buffers or encoder failure
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from thumbnailer.errors import TransformError
from thumbnailer.models.frame import FrameSample, OutputSpec


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompositeResult:
    """
    Encoded thumbnail plus the branch taken to produce it.

    Attributes:
        data: JPEG bytes
        letterboxed: True if padding was applied
    """

    data: bytes
    letterboxed: bool


def needs_letterbox(frame: FrameSample, spec: OutputSpec) -> bool:
    """Return True when the frame's aspect ratio differs from the target."""
    return not math.isclose(
        frame.aspect_ratio,
        spec.target_aspect_ratio,
        rel_tol=spec.aspect_tolerance,
    )


def dominant_color(frame: FrameSample) -> Tuple[int, int, int]:
    """
    Compute the frame's dominant color as the per-channel mean.

    Args:
        frame: Frame with BGR pixels

    Returns:
        (r, g, b) triple of ints in [0, 255]
    """
    pixels = _validated_pixels(frame)
    b, g, r = pixels.reshape(-1, 3).mean(axis=0)
    return int(round(r)), int(round(g)), int(round(b))


def fit_within(width: int, height: int, box_width: int, box_height: int) -> Tuple[int, int]:
    """
    Scale (width, height) to fit inside the box, preserving aspect ratio.

    The result is clamped to [1, box] on both axes.
    """
    scale = min(box_width / width, box_height / height)
    scaled_w = min(box_width, max(1, int(round(width * scale))))
    scaled_h = min(box_height, max(1, int(round(height * scale))))
    return scaled_w, scaled_h


def compose_frame(frame: FrameSample, spec: OutputSpec) -> np.ndarray:
    """
    Produce the output bitmap for a frame.

    Args:
        frame: Decoded source frame
        spec: Output geometry

    Returns:
        BGR bitmap as np.ndarray (spec.height, spec.width, 3), dtype=uint8

    Raises:
        TransformError: If the pixel buffer is unusable or resizing fails
    """
    pixels = _validated_pixels(frame)

    try:
        if not needs_letterbox(frame, spec):
            return cv2.resize(
                pixels,
                (spec.width, spec.height),
                interpolation=cv2.INTER_AREA,
            )

        scaled_w, scaled_h = fit_within(frame.width, frame.height, spec.width, spec.height)
        scaled = cv2.resize(pixels, (scaled_w, scaled_h), interpolation=cv2.INTER_AREA)

        r, g, b = dominant_color(frame)
        canvas = np.empty((spec.height, spec.width, 3), dtype=np.uint8)
        canvas[:, :] = (b, g, r)

        x = (spec.width - scaled_w) // 2
        y = (spec.height - scaled_h) // 2
        canvas[y:y + scaled_h, x:x + scaled_w] = scaled
        return canvas

    except cv2.error as e:
        raise TransformError(f"Resize failed for {frame!r}: {e}") from e


def encode_jpeg(bitmap: np.ndarray, quality: int = 90) -> bytes:
    """
    Encode a BGR bitmap as JPEG.

    Raises:
        TransformError: If the encoder rejects the bitmap
    """
    try:
        ok, encoded = cv2.imencode(".jpg", bitmap, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        raise TransformError(f"JPEG encode failed: {e}") from e

    if not ok:
        raise TransformError("JPEG encode failed: cv2.imencode returned False")

    return encoded.tobytes()


def render_thumbnail(frame: FrameSample, spec: OutputSpec) -> CompositeResult:
    """
    Compose and encode a frame in one step.

    Args:
        frame: Decoded source frame
        spec: Output geometry

    Returns:
        CompositeResult with JPEG bytes and the branch taken
    """
    letterboxed = needs_letterbox(frame, spec)
    bitmap = compose_frame(frame, spec)
    data = encode_jpeg(bitmap, spec.jpeg_quality)

    logger.debug(
        f"Rendered {frame.width}x{frame.height} -> {spec.width}x{spec.height} "
        f"({'letterbox' if letterboxed else 'resize'}, {len(data)} bytes)"
    )
    return CompositeResult(data=data, letterboxed=letterboxed)


def _validated_pixels(frame: FrameSample) -> np.ndarray:
    """Check shape and dtype of the frame buffer."""
    pixels = frame.pixels

    if pixels is None or pixels.size == 0:
        raise TransformError(f"Empty pixel buffer for {frame!r}")

    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise TransformError(f"Invalid pixel shape for {frame!r}: {pixels.shape}")

    if pixels.dtype != np.uint8:
        raise TransformError(f"Invalid dtype for {frame!r}: {pixels.dtype}")

    return pixels
