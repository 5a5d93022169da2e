"""
Video Thumbnailer
=================

Turns a video URL into a small JPEG preview still and caches it for a
freshness window.

Components:
    - media: Frame extraction (OpenCV / synthetic)
    - compositor: Resize or letterbox, then JPEG encode
    - cache: TTL stores (in-memory / Redis)
    - dispatch: Bounded worker pool with admission control
    - service: Cache-aside orchestrator
    - main: FastAPI front end

Example:
    from thumbnailer.config import load_config
    from thumbnailer.main import create_app

    app = create_app(load_config())
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
