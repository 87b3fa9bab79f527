"""Shared typed data models for Pagecast.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AssemblyResult,
    Entry,
    EntryStatus,
    ExtractedArticle,
    FetchedDocument,
    ProgressSnapshot,
    RunResult,
    Segment,
    SegmentType,
)

__all__ = [
    "AssemblyResult",
    "Entry",
    "EntryStatus",
    "ExtractedArticle",
    "FetchedDocument",
    "ProgressSnapshot",
    "RunResult",
    "Segment",
    "SegmentType",
]
