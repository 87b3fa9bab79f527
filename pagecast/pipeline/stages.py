"""Stage machine definitions for one entry run.

Responsibilities:
- Name the five work stages plus the `DONE` and `FAILED` terminal states.
- Map each work stage to the artifact whose presence marks it complete.
- Provide the pure success transition used by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from ..io.storage import ArtifactKind

_Value = TypeVar("_Value")

DISPOSITION_PROCESSED = "processed"
DISPOSITION_SKIPPED = "skipped"


class Stage(str, Enum):
    """Entry run states, valued by their log/stage name."""

    INFO = "info"
    FETCH = "fetch"
    EXTRACT = "extract"
    CHUNK = "chunk"
    SYNTHESIZE = "synthesize"
    DONE = "done"
    FAILED = "failed"

    @property
    def number(self) -> int | None:
        """Return the 1-based step number for work stages, `None` for terminal states."""

        try:
            return WORK_STAGES.index(self) + 1
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.DONE, Stage.FAILED)


WORK_STAGES: tuple[Stage, ...] = (
    Stage.INFO,
    Stage.FETCH,
    Stage.EXTRACT,
    Stage.CHUNK,
    Stage.SYNTHESIZE,
)

STAGE_ARTIFACTS: dict[Stage, ArtifactKind] = {
    Stage.INFO: ArtifactKind.INFO,
    Stage.FETCH: ArtifactKind.RAW_MARKUP,
    Stage.EXTRACT: ArtifactKind.ARTICLE,
    Stage.CHUNK: ArtifactKind.SEGMENTS,
    Stage.SYNTHESIZE: ArtifactKind.FINAL_AUDIO,
}


def next_stage(stage: Stage) -> Stage:
    """Return the state that follows `stage` after it succeeds."""

    if stage.is_terminal:
        raise ValueError(f"Terminal state `{stage.value}` has no successor.")
    position = WORK_STAGES.index(stage)
    if position + 1 < len(WORK_STAGES):
        return WORK_STAGES[position + 1]
    return Stage.DONE


@dataclass(frozen=True, slots=True)
class StageOutcome(Generic[_Value]):
    """Value produced by a work stage and whether it was computed or loaded."""

    value: _Value
    disposition: str = DISPOSITION_PROCESSED

    @property
    def skipped(self) -> bool:
        return self.disposition == DISPOSITION_SKIPPED


@dataclass(frozen=True, slots=True)
class StageFailure:
    """Terminal failure record carrying the failing stage and its reason."""

    stage: Stage
    reason: str

    @property
    def stage_number(self) -> int:
        return self.stage.number or 0

    @property
    def message(self) -> str:
        return f"Failed at step {self.stage_number}: {self.reason}"
