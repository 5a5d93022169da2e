"""
Generation Pipeline
===================

The unit of work run inside a dispatcher worker:

    locator -> FrameExtractor -> FrameSample -> compositor -> GenerationResult

Blocking by design; never call from the event loop thread.
"""

import logging
import time

from thumbnailer.compositor import render_thumbnail
from thumbnailer.media import FrameExtractor
from thumbnailer.models.frame import OutputSpec
from thumbnailer.models.task import GenerationResult, Task


logger = logging.getLogger(__name__)


class ThumbnailGenerator:
    """
    Extract, compose and encode one thumbnail.

    Attributes:
        extractor: Media backend producing the source frame
        spec: Output geometry
    """

    def __init__(self, extractor: FrameExtractor, spec: OutputSpec) -> None:
        self.extractor = extractor
        self.spec = spec

    def generate(self, task: Task) -> GenerationResult:
        """
        Run the full pipeline for a task.

        Raises:
            UpstreamFetchError: Source unreachable or without video
            TransformError: Composition or encoding failed
        """
        waited = time.time() - task.submitted_at
        started = time.monotonic()
        logger.debug(f"Worker picked up {task.key}")

        frame = self.extractor.extract(task.key)
        composite = render_thumbnail(frame, self.spec)

        logger.info(
            f"Thumbnail ready for {task.key}: "
            f"{frame.width}x{frame.height}, "
            f"{'letterboxed' if composite.letterboxed else 'resized'}, "
            f"waited={waited:.2f}s "
            f"took={time.monotonic() - started:.2f}s"
        )

        return GenerationResult(
            data=composite.data,
            source_key=task.key,
            letterboxed=composite.letterboxed,
            source_width=frame.width,
            source_height=frame.height,
        )
