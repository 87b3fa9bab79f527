"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic stage-level runtime logs through `loguru`.
- Keep segment diagnostics on one line with sanitized key/value context.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs for CLI-observable pipeline activity."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._sink = sink or sys.stdout
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, /, **context: object) -> None:
        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        self._emit("INFO", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        self._emit("INFO", "complete", stage, **context)

    def log_stage_skipped(self, stage: str, **context: object) -> None:
        """Emit an event for a stage whose artifact already exists."""

        self._emit("INFO", "skipped", stage, **context)

    def log_stage_failure(self, stage: str, error_type: str, **context: object) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type, **context)

    def log_segment_progress(self, index: int, total: int, **context: object) -> None:
        self._emit("INFO", "progress", "synthesize", index=index, total=total, **context)

    def log_segment_failure(
        self,
        index: int,
        total: int,
        segment_type: str,
        error_type: str,
        **context: object,
    ) -> None:
        """Emit one synthesis failure for a segment that is excluded from the track."""

        self._emit(
            "ERROR",
            "segment_failure",
            "synthesize",
            index=index,
            total=total,
            segment_type=segment_type,
            error_type=error_type,
            **context,
        )

    def log_truncated(self, index: int, kept_chars: int, dropped_chars: int) -> None:
        """Emit a warning when segment text is hard-cut before synthesis."""

        self._emit(
            "WARNING",
            "truncated",
            "synthesize",
            index=index,
            kept_chars=kept_chars,
            dropped_chars=dropped_chars,
        )

    def log_degraded(self, succeeded: int, failed: int) -> None:
        """Emit a warning when the final track will be missing some segments."""

        self._emit("WARNING", "degraded", "synthesize", succeeded=succeeded, failed=failed)
