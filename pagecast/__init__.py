"""Top-level package for Pagecast.

This package turns web pages or supplied HTML into one narrated MP3 track
through a resumable five-stage pipeline. The main orchestration entry point is
`PagecastPipeline`.
"""

from .pipeline import PagecastPipeline

__all__ = ["PagecastPipeline", "__version__"]

__version__ = "0.1.0"
