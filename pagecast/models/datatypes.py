"""Core datatypes shared across Pagecast modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Enforce segment invariants at construction and deserialization time.

Key types:
- `Segment`, `SegmentType`, `Entry`, `FetchedDocument`, `ExtractedArticle`,
  `AssemblyResult`, `RunResult`, `ProgressSnapshot`, and `EntryStatus`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from hashlib import md5, sha256
from pathlib import Path
from typing import Any, Mapping

from ..errors import ArtifactError
from ..parsing import parse_permissive_boolean

INLINE_ORIGIN_PREFIX = "html://"


class SegmentType(str, Enum):
    """Semantic role of one narration segment."""

    HEADING = "h"
    PARAGRAPH = "p"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Segment:
    """One semantically typed unit of narration text.

    Attributes:
        text: Normalized, non-empty narration text.
        type: Segment role (`h`, `p`, or `other`).
        level: Heading level 1..6, present only for headings.
    """

    text: str
    type: SegmentType
    level: int | None = None

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Segment text must be non-empty.")
        if self.type is SegmentType.HEADING:
            if self.level is None or not 1 <= self.level <= 6:
                raise ValueError("Heading segments require a level between 1 and 6.")
        elif self.level is not None:
            raise ValueError("Only heading segments may carry a level.")

    @property
    def is_heading(self) -> bool:
        return self.type is SegmentType.HEADING

    @property
    def fingerprint(self) -> str:
        """Return the md5 hex digest used to key per-segment audio artifacts."""

        return md5(self.text.encode("utf-8")).hexdigest()

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"text": self.text, "type": self.type.value}
        if self.level is not None:
            payload["level"] = self.level
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Segment:
        """Rebuild a segment from its JSON payload, rejecting invalid records."""

        if not isinstance(payload, Mapping):
            raise ArtifactError("Segment record must be a JSON object.")
        text = payload.get("text")
        raw_type = payload.get("type")
        level = payload.get("level")
        if not isinstance(text, str):
            raise ArtifactError("Segment record is missing string `text`.")
        try:
            segment_type = SegmentType(raw_type)
        except ValueError as exc:
            raise ArtifactError(f"Unsupported segment type `{raw_type}`.") from exc
        if level is not None and (isinstance(level, bool) or not isinstance(level, int)):
            raise ArtifactError("Segment `level` must be an integer when present.")
        try:
            return cls(text=text, type=segment_type, level=level)
        except ValueError as exc:
            raise ArtifactError(str(exc)) from exc


def heading(text: str, level: int) -> Segment:
    return Segment(text=text, type=SegmentType.HEADING, level=level)


def paragraph(text: str) -> Segment:
    return Segment(text=text, type=SegmentType.PARAGRAPH)


def other(text: str) -> Segment:
    return Segment(text=text, type=SegmentType.OTHER)


def origin_fingerprint(origin: str) -> str:
    """Return the sha256 hex digest identifying the entry for an origin string."""

    return sha256(origin.encode("utf-8")).hexdigest()


def inline_origin(markup: str) -> str:
    """Build the pseudo-origin used for directly supplied markup."""

    return f"{INLINE_ORIGIN_PREFIX}{origin_fingerprint(markup.strip())}"


@dataclass(frozen=True, slots=True)
class Entry:
    """One tracked unit of work.

    Attributes:
        origin: Fetched URL or `html://<hash>` pseudo-origin for inline markup.
        added_at: ISO-8601 UTC creation timestamp.
        is_inline: Whether markup was supplied directly instead of fetched.
        comment: Optional free-text annotation.
    """

    origin: str
    added_at: str
    is_inline: bool = False
    comment: str | None = None

    @property
    def entry_id(self) -> str:
        return origin_fingerprint(self.origin)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "url": self.origin,
            "addedAt": self.added_at,
            "isHtml": self.is_inline,
        }
        if self.comment:
            payload["comment"] = self.comment
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Entry:
        origin = payload.get("url")
        if not isinstance(origin, str) or not origin.strip():
            raise ArtifactError("Ledger entry is missing `url`.")
        added_at = payload.get("addedAt")
        comment = payload.get("comment")
        is_inline = parse_permissive_boolean(payload.get("isHtml"))
        if is_inline is None:
            is_inline = origin.startswith(INLINE_ORIGIN_PREFIX)
        return cls(
            origin=origin,
            added_at=added_at if isinstance(added_at, str) else "",
            is_inline=is_inline,
            comment=comment if isinstance(comment, str) and comment.strip() else None,
        )


@dataclass(frozen=True, slots=True)
class FetchedDocument:
    """Raw markup plus transport metadata returned by the fetch delegate."""

    content: str
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExtractedArticle:
    """Article body reduced from raw markup by the extraction collaborator."""

    title: str | None
    content: str
    byline: str | None = None
    site_name: str | None = None
    excerpt: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "title": self.title,
            "content": self.content,
            "byline": self.byline,
            "siteName": self.site_name,
            "excerpt": self.excerpt,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ExtractedArticle:
        content = payload.get("content")
        if not isinstance(content, str):
            raise ArtifactError("Article artifact is missing string `content`.")

        def _optional(key: str) -> str | None:
            value = payload.get(key)
            return value if isinstance(value, str) and value.strip() else None

        return cls(
            title=_optional("title"),
            content=content,
            byline=_optional("byline"),
            site_name=_optional("siteName"),
            excerpt=_optional("excerpt"),
        )


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    """Outcome of one audio assembly run.

    Attributes:
        output_path: Final concatenated track.
        total: Number of input segments.
        succeeded: Segments with usable audio (cached or synthesized).
        failed: Segments whose synthesis failed after retries.
        failed_indices: 0-based sequence indices of failed segments.
    """

    output_path: Path
    total: int
    succeeded: int
    failed: int
    failed_indices: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class RunResult:
    """Structured outcome of driving one entry through the stage machine."""

    entry_id: str
    origin: str
    success: bool
    message: str
    failed_stage: int | None = None
    failed_stage_name: str | None = None
    steps: Mapping[str, str] = field(default_factory=dict)
    failed_segments: int = 0


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Read-only view of one in-flight audio generation."""

    entry_id: str
    state: str
    current_index: int
    total: int
    successful: int
    failed: int
    started_at: float
    elapsed_seconds: float
    average_seconds_per_segment: float
    estimated_remaining_seconds: float


@dataclass(frozen=True, slots=True)
class EntryStatus:
    """Processing status derived from artifact presence and live progress."""

    status: str
    step: int
    step_name: str
    total_steps: int = 5
    progress: ProgressSnapshot | None = None

    @property
    def progress_percent(self) -> int:
        return round(self.step / self.total_steps * 100)
