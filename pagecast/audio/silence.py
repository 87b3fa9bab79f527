"""Type-aware silence policy between narrated segments."""

from __future__ import annotations

from dataclasses import dataclass

from ..models.datatypes import Segment


@dataclass(frozen=True, slots=True)
class SilencePolicy:
    """Pause durations, in seconds, inserted between adjacent surviving segments.

    Attributes:
        paragraph_seconds: Baseline pause between any two segments.
        before_heading_seconds: Minimum pause when the following segment is a heading.
        after_heading_seconds: Minimum pause when the current segment is a heading.
    """

    paragraph_seconds: float = 0.2
    before_heading_seconds: float = 0.5
    after_heading_seconds: float = 0.5

    def __post_init__(self) -> None:
        for name in ("paragraph_seconds", "before_heading_seconds", "after_heading_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"`{name}` must be non-negative.")

    def gap_between(self, current: Segment, following: Segment) -> float:
        gap = self.paragraph_seconds
        if current.is_heading:
            gap = max(gap, self.after_heading_seconds)
        if following.is_heading:
            gap = max(gap, self.before_heading_seconds)
        return gap

    def gaps_for(self, segments: list[Segment]) -> list[float]:
        """Return one gap per adjacent pair, in sequence order."""

        return [
            self.gap_between(current, following)
            for current, following in zip(segments, segments[1:])
        ]
