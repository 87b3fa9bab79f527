"""Article extraction collaborator.

Responsibilities:
- Reduce raw page markup to the article body and its title.
- Signal "no article found" with `ExtractionError`.
"""

from __future__ import annotations

from typing import Protocol

import trafilatura

from ..errors import ExtractionError
from ..models.datatypes import ExtractedArticle
from ..parsing import normalize_optional_string


class ArticleExtractor(Protocol):
    """Protocol for readability-style extraction collaborators."""

    def extract(self, markup: str, origin: str) -> ExtractedArticle:
        """Return the article body and metadata for raw markup."""


class TrafilaturaExtractor:
    """Extract article body markup with `trafilatura`."""

    def __init__(self, *, include_tables: bool = True, favor_recall: bool = False) -> None:
        self.include_tables = include_tables
        self.favor_recall = favor_recall

    def extract(self, markup: str, origin: str) -> ExtractedArticle:
        if not markup or not markup.strip():
            raise ExtractionError(f"No markup available to extract an article from `{origin}`.")

        url = origin if origin.startswith(("http://", "https://")) else None
        body = trafilatura.extract(
            markup,
            url=url,
            output_format="html",
            include_comments=False,
            include_tables=self.include_tables,
            include_formatting=True,
            include_links=False,
            include_images=False,
            favor_recall=self.favor_recall,
        )
        if not body or not body.strip():
            raise ExtractionError(
                f"Failed to extract a readable article from `{origin}`.",
                hint="The page may be empty, script-rendered, or not an article.",
            )

        metadata = trafilatura.extract_metadata(markup, default_url=url)
        if metadata is None:
            return ExtractedArticle(title=None, content=body)
        return ExtractedArticle(
            title=normalize_optional_string(metadata.title),
            content=body,
            byline=normalize_optional_string(metadata.author),
            site_name=normalize_optional_string(metadata.sitename),
            excerpt=normalize_optional_string(metadata.description),
        )
