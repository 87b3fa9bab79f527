"""Semantic chunking of article markup into typed narration segments.

Responsibilities:
- Walk a parsed document tree in document order and emit typed segments.
- Serialize ordered/unordered lists as single newline-joined blocks.
- Merge consecutive untyped (`other`) fragments produced by inline markup.
- Never raise on malformed input; degrade to a single fallback segment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.element import CData, Declaration, Doctype, ProcessingInstruction

from ..models.datatypes import Segment, SegmentType

_HEADING_TAG_PATTERN = re.compile(r"^h([1-6])$")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_EXCLUDED_TAGS = ("script", "style")
_NON_TEXT_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)
_UNORDERED_BULLET = "• "


def collapse_whitespace(text: str) -> str:
    """Collapse internal whitespace runs to single spaces and trim."""

    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def _heading_level(tag_name: str) -> int | None:
    match = _HEADING_TAG_PATTERN.match(tag_name)
    if match is None:
        return None
    return int(match.group(1))


@dataclass(slots=True)
class _Candidate:
    """Mutable traversal record before the merge post-pass."""

    text: str
    type: SegmentType
    level: int | None = None


class SemanticChunker:
    """Convert article markup into an ordered sequence of typed segments."""

    def __init__(self, parser: str = "html.parser") -> None:
        self._parser = parser

    def chunk(self, markup: str) -> list[Segment]:
        """Return document-ordered segments for markup, never raising."""

        if not markup or not markup.strip():
            return []
        try:
            soup = BeautifulSoup(markup, self._parser)
        except Exception:
            return self._fallback_from_text(markup)

        try:
            for excluded in soup(list(_EXCLUDED_TAGS)):
                excluded.decompose()
            root = soup.body if soup.body is not None else soup
            candidates: list[_Candidate] = []
            for child in list(root.children):
                self._walk(child, candidates)
            segments = self._merge(candidates)
        except Exception:
            return self._fallback(soup)

        if segments:
            return segments
        return self._fallback(soup)

    def _walk(self, node: object, candidates: list[_Candidate]) -> None:
        """Depth-first traversal appending candidate segments in document order."""

        if isinstance(node, NavigableString):
            if isinstance(node, _NON_TEXT_STRINGS):
                return
            text = str(node).strip()
            if not text:
                return
            candidates.append(self._text_node_candidate(node, text))
            return

        if not isinstance(node, Tag):
            return

        tag_name = (node.name or "").lower()
        level = _heading_level(tag_name)
        if level is not None or tag_name == "p":
            text = collapse_whitespace(node.get_text())
            if text:
                if level is not None:
                    candidates.append(_Candidate(text, SegmentType.HEADING, level))
                else:
                    candidates.append(_Candidate(text, SegmentType.PARAGRAPH))
            return

        if tag_name in {"ol", "ul"}:
            block = self._serialize_list(node, ordered=tag_name == "ol")
            if block:
                candidates.append(_Candidate(block, SegmentType.OTHER))
            return

        for child in list(node.children):
            self._walk(child, candidates)

    def _text_node_candidate(self, node: NavigableString, text: str) -> _Candidate:
        """Type a bare text node by its immediate parent element."""

        parent = node.parent
        parent_name = (parent.name or "").lower() if isinstance(parent, Tag) else ""
        level = _heading_level(parent_name)
        if level is not None:
            return _Candidate(text, SegmentType.HEADING, level)
        if parent_name == "p":
            return _Candidate(text, SegmentType.PARAGRAPH)
        return _Candidate(text, SegmentType.OTHER)

    def _serialize_list(self, node: Tag, *, ordered: bool) -> str:
        """Render direct `li` children as one newline-joined block."""

        lines: list[str] = []
        items = node.find_all("li", recursive=False)
        for index, item in enumerate(items, start=1):
            item_text = collapse_whitespace(item.get_text())
            if not item_text:
                continue
            prefix = f"{index}. " if ordered else _UNORDERED_BULLET
            lines.append(f"{prefix}{item_text}")
        return "\n".join(lines)

    def _merge(self, candidates: list[_Candidate]) -> list[Segment]:
        """Normalize candidates and merge consecutive `other` fragments."""

        merged: list[_Candidate] = []
        for candidate in candidates:
            if "\n" in candidate.text:
                clean_text = candidate.text.strip()
            else:
                clean_text = collapse_whitespace(candidate.text)
            if not clean_text:
                continue

            if candidate.type is not SegmentType.OTHER:
                merged.append(_Candidate(clean_text, candidate.type, candidate.level))
                continue

            previous = merged[-1] if merged else None
            if previous is not None and previous.type is SegmentType.OTHER:
                if "\n" in candidate.text or "\n" in previous.text:
                    previous.text = f"{previous.text}\n{clean_text}"
                else:
                    previous.text = f"{previous.text} {clean_text}"
                continue
            merged.append(_Candidate(clean_text, SegmentType.OTHER))

        return [
            Segment(text=item.text, type=item.type, level=item.level)
            for item in merged
        ]

    def _fallback(self, soup: BeautifulSoup) -> list[Segment]:
        """Return the whole document's flattened text as one `other` segment."""

        try:
            root = soup.body if soup.body is not None else soup
            text = collapse_whitespace(root.get_text(" "))
        except Exception:
            return []
        if not text:
            return []
        return [Segment(text=text, type=SegmentType.OTHER)]

    def _fallback_from_text(self, markup: str) -> list[Segment]:
        text = collapse_whitespace(re.sub(r"<[^>]*>", " ", markup))
        if not text:
            return []
        return [Segment(text=text, type=SegmentType.OTHER)]
