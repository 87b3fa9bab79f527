"""Unit tests for semantic chunking of article markup."""

from __future__ import annotations

from pagecast.models.datatypes import Segment, SegmentType, heading, other, paragraph
from pagecast.text.chunker import SemanticChunker


def _chunk(markup: str) -> list[Segment]:
    return SemanticChunker().chunk(markup)


def test_inline_text_around_paragraph_is_split_by_parent_type() -> None:
    """Bare text beside a paragraph should become `other` segments on each side."""

    segments = _chunk("<div>hello <p>world <a>link</a> foo</p> bar</div>")

    assert segments == [other("hello"), paragraph("world link foo"), other("bar")]


def test_headings_keep_levels_and_are_never_merged() -> None:
    """Headings and paragraphs should map one element to one typed segment."""

    segments = _chunk("<h1>Main Title</h1><h2>Subtitle</h2><p>Content</p>")

    assert segments == [heading("Main Title", 1), heading("Subtitle", 2), paragraph("Content")]


def test_ordered_list_becomes_one_numbered_block() -> None:
    """Ordered list items should be numbered and newline-joined in one segment."""

    segments = _chunk("<ol><li>a</li><li>b</li><li>c</li></ol>")

    assert segments == [other("1. a\n2. b\n3. c")]


def test_unordered_list_uses_bullets() -> None:
    """Unordered list items should be bullet-prefixed and newline-joined."""

    segments = _chunk("<ul><li>a</li><li>b</li><li>c</li></ul>")

    assert segments == [other("• a\n• b\n• c")]


def test_blank_list_items_are_skipped_but_still_counted() -> None:
    """Numbering should count blank items even though they are not emitted."""

    segments = _chunk("<ol><li>a</li><li>   </li><li>c</li></ol>")

    assert segments == [other("1. a\n3. c")]


def test_script_and_style_content_is_never_narrated() -> None:
    """Script and style subtrees should be removed before traversal."""

    segments = _chunk(
        "<body><script>var x = 1;</script><style>p { color: red; }</style>"
        "<p>Visible text</p></body>"
    )

    assert segments == [paragraph("Visible text")]


def test_whitespace_inside_paragraph_is_collapsed() -> None:
    """Internal whitespace runs should collapse to single spaces."""

    segments = _chunk("<p>  spread \n\n across\tlines  </p>")

    assert segments == [paragraph("spread across lines")]


def test_consecutive_other_fragments_merge_with_space() -> None:
    """Adjacent inline fragments should merge into one `other` segment."""

    segments = _chunk("<div>alpha <span>beta</span> <em>gamma</em></div>")

    assert segments == [other("alpha beta gamma")]


def test_list_block_merges_with_adjacent_text_by_newline() -> None:
    """A multi-line block should join its `other` neighbor with a newline."""

    segments = _chunk("<div>Before<ul><li>one</li><li>two</li></ul></div>")

    assert segments == [other("Before\n• one\n• two")]


def test_comments_are_not_treated_as_text() -> None:
    """HTML comments should never produce narration text."""

    segments = _chunk("<div><!-- hidden note --><p>Shown</p></div>")

    assert segments == [paragraph("Shown")]


def test_empty_and_blank_input_yield_no_segments() -> None:
    """Empty input and whitespace-only documents should produce nothing."""

    assert _chunk("") == []
    assert _chunk("   ") == []
    assert _chunk("<div>   </div>") == []


def test_plain_text_without_markup_becomes_one_other_segment() -> None:
    """Text with no elements should still be narrated as one segment."""

    segments = _chunk("just some words")

    assert segments == [other("just some words")]


def test_malformed_markup_never_raises() -> None:
    """Unclosed and mismatched tags should degrade instead of raising."""

    segments = _chunk("<div><p>Unclosed paragraph<h2>Heading</div></span>")

    assert segments
    assert all(segment.text for segment in segments)


def test_empty_heading_is_dropped() -> None:
    """Headings without text should not produce segments."""

    segments = _chunk("<h2>   </h2><p>Body</p>")

    assert segments == [paragraph("Body")]


def test_every_segment_satisfies_level_invariant() -> None:
    """Only heading segments should carry a level."""

    segments = _chunk(
        "<body><h3>Section</h3>loose text<p>Para</p><ol><li>x</li></ol></body>"
    )

    for segment in segments:
        if segment.type is SegmentType.HEADING:
            assert segment.level is not None and 1 <= segment.level <= 6
        else:
            assert segment.level is None
