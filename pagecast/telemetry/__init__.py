"""Telemetry and observability helpers.

This package emits structured run events and tracks live generation progress.
"""

from .logger import RunLogger
from .progress import ProgressTracker

__all__ = ["ProgressTracker", "RunLogger"]
