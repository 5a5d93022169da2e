"""
Media Module
============

Frame extraction backends.

Design Philosophy:
    Extraction is treated as an opaque capability. The pipeline consumes
    only the FrameSample it returns, never the decoder internals.
"""

from thumbnailer.media.extractor import (
    FrameExtractor,
    OpenCVFrameExtractor,
    SyntheticFrameExtractor,
)

__all__ = [
    "FrameExtractor",
    "OpenCVFrameExtractor",
    "SyntheticFrameExtractor",
]
