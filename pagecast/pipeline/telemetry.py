"""Stage telemetry helper methods for the Pagecast pipeline.

Responsibilities:
- Report 1-based stage positions to an optional progress callback.
- Emit stage start/complete/skipped/failure events.
- Wrap stage actions with consistent telemetry hooks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ..telemetry.logger import RunLogger
from .stages import WORK_STAGES, Stage, StageOutcome

_StageValue = TypeVar("_StageValue")


class PipelineTelemetryMixin:
    """Provide stage-telemetry helper methods."""

    _run_logger: RunLogger | None
    _stage_progress_callback: Callable[[str, int, int], None] | None

    def _on_stage_start(self, stage: Stage, entry_id: str) -> None:
        position = stage.number
        if position is not None and self._stage_progress_callback is not None:
            self._stage_progress_callback(stage.value, position, len(WORK_STAGES))
        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage.value, entry=entry_id[:12])

    def _on_stage_finish(self, stage: Stage, entry_id: str, skipped: bool) -> None:
        if self._run_logger is None:
            return
        if skipped:
            self._run_logger.log_stage_skipped(stage.value, entry=entry_id[:12])
        else:
            self._run_logger.log_stage_complete(stage.value, entry=entry_id[:12])

    def _on_stage_failure(self, stage: Stage, entry_id: str, exc: Exception) -> None:
        """Emit a stage-failure event with the exception type only."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure(stage.value, type(exc).__name__, entry=entry_id[:12])

    def _run_stage(
        self,
        stage: Stage,
        entry_id: str,
        action: Callable[[], StageOutcome[_StageValue]],
    ) -> StageOutcome[_StageValue]:
        """Run one work stage and emit start/finish/failure telemetry events."""

        self._on_stage_start(stage, entry_id)
        try:
            outcome = action()
        except Exception as exc:
            self._on_stage_failure(stage, entry_id, exc)
            raise
        self._on_stage_finish(stage, entry_id, outcome.skipped)
        return outcome
