"""
Error Taxonomy
==============

Exceptions raised by the thumbnail pipeline.

Every error carries the HTTP status the front end answers with, so the
route layer can map failures without inspecting messages.

Hierarchy:
    ThumbnailerError
        InputError             - 400, never enqueued, never cached
        UpstreamFetchError     - 500, source unreachable / no video stream
        TransformError         - 500, decode / resize / encode failure
        CacheUnavailableError  - 500, cache backend unreachable
        QueueFullError         - 503, admission control rejected the task
        DispatcherClosedError  - 503, submission after shutdown
"""


class ThumbnailerError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500
    public_message: str = "Error processing video"


class InputError(ThumbnailerError):
    """Missing or malformed source locator, or unsupported task type."""

    status_code = 400
    public_message = "Missing or incorrect URL"


class UpstreamFetchError(ThumbnailerError):
    """Source could not be opened or holds no decodable video stream."""


class TransformError(ThumbnailerError):
    """Frame could not be composed or encoded."""


class CacheUnavailableError(ThumbnailerError):
    """Cache backend could not be reached."""

    public_message = "Internal Server Error"


class QueueFullError(ThumbnailerError):
    """Dispatcher queue is at its configured depth."""

    status_code = 503
    public_message = "Server busy, retry later"


class DispatcherClosedError(ThumbnailerError):
    """Dispatcher is not accepting work."""

    status_code = 503
    public_message = "Service shutting down"
