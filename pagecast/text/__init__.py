"""Text modeling components.

This package converts article markup into typed narration segments.
"""

from .chunker import SemanticChunker, collapse_whitespace

__all__ = ["SemanticChunker", "collapse_whitespace"]
