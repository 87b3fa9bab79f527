"""Input/output components for Pagecast.

This package contains the fetch delegate, article extraction, entry ledger,
and stage-artifact storage used by the pipeline.
"""

from .extractor import ArticleExtractor, TrafilaturaExtractor
from .fetcher import DocumentFetcher, HttpFetcher
from .ledger import EntryLedger
from .storage import ArtifactKind, ArtifactStore

__all__ = [
    "ArticleExtractor",
    "ArtifactKind",
    "ArtifactStore",
    "DocumentFetcher",
    "EntryLedger",
    "HttpFetcher",
    "TrafilaturaExtractor",
]
