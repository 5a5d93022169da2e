"""
Dispatch Module
===============

Bounded-concurrency execution of thumbnail generation tasks.
"""

from thumbnailer.dispatch.dispatcher import BoundedDispatcher, DispatcherMetrics


__all__ = [
    "BoundedDispatcher",
    "DispatcherMetrics",
]
