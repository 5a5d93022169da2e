"""
Compositor Module
=================

Aspect-ratio-aware resizing, letterboxing and JPEG encoding.

Example:
    from thumbnailer.compositor import render_thumbnail
    from thumbnailer.models import OutputSpec

    result = render_thumbnail(frame, OutputSpec(width=640, height=360))
    response_body = result.data
"""

from thumbnailer.compositor.compositor import (
    CompositeResult,
    compose_frame,
    dominant_color,
    encode_jpeg,
    fit_within,
    needs_letterbox,
    render_thumbnail,
)


__all__ = [
    "CompositeResult",
    "compose_frame",
    "dominant_color",
    "encode_jpeg",
    "fit_within",
    "needs_letterbox",
    "render_thumbnail",
]
