"""
Data Models
===========

Typed records for the thumbnail pipeline.

Models:
    Pipeline:
        - FrameSample: One decoded frame plus its dimensions
        - OutputSpec: Canonical output geometry
        - Task: Unit of work submitted to the dispatcher
        - GenerationResult: Encoded thumbnail returned by a worker
        - CacheEntry: Stored thumbnail with expiry

    API:
        - GenerateThumbnailRequest: POST /generate-thumbnail body
        - CacheStatus: GET /cache-status response
        - ErrorResponse: Error payload
"""

from thumbnailer.models.frame import FrameSample, OutputSpec
from thumbnailer.models.task import CacheEntry, GenerationResult, Task
from thumbnailer.models.api import CacheStatus, ErrorResponse, GenerateThumbnailRequest

__all__ = [
    # Pipeline
    "FrameSample",
    "OutputSpec",
    "Task",
    "GenerationResult",
    "CacheEntry",
    # API
    "GenerateThumbnailRequest",
    "CacheStatus",
    "ErrorResponse",
]
