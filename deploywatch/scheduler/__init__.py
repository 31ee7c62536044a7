# deploywatch scheduling
"""Periodic job scheduling with cooperative cancellation."""

from .checker import CancellationToken, RenderChannel, TaskScheduler

__all__ = ["CancellationToken", "RenderChannel", "TaskScheduler"]
