"""Unit tests for the stage machine and artifact-derived entry status."""

from __future__ import annotations

from pathlib import Path

import pytest

from pagecast.io.storage import ArtifactKind, ArtifactStore
from pagecast.models.datatypes import ProgressSnapshot
from pagecast.pipeline.stages import (
    STAGE_ARTIFACTS,
    WORK_STAGES,
    Stage,
    StageFailure,
    StageOutcome,
    next_stage,
)
from pagecast.pipeline.status import derive_status

_ENTRY_ID = "c" * 64


def test_next_stage_walks_work_stages_then_done() -> None:
    """Successful stages should advance in fixed order and end in `DONE`."""

    walked = [Stage.INFO]
    while not walked[-1].is_terminal:
        walked.append(next_stage(walked[-1]))

    assert walked == [
        Stage.INFO,
        Stage.FETCH,
        Stage.EXTRACT,
        Stage.CHUNK,
        Stage.SYNTHESIZE,
        Stage.DONE,
    ]
    assert [stage.number for stage in WORK_STAGES] == [1, 2, 3, 4, 5]
    assert Stage.DONE.number is None


def test_terminal_states_have_no_successor() -> None:
    """`DONE` and `FAILED` should be absorbing."""

    with pytest.raises(ValueError):
        next_stage(Stage.DONE)
    with pytest.raises(ValueError):
        next_stage(Stage.FAILED)


def test_failure_message_names_step_number() -> None:
    """Failure messages should use the `Failed at step N` form."""

    failure = StageFailure(stage=Stage.EXTRACT, reason="no article")

    assert failure.stage_number == 3
    assert failure.message == "Failed at step 3: no article"


def test_every_work_stage_has_an_artifact() -> None:
    """Each work stage should map to exactly one completion artifact."""

    assert set(STAGE_ARTIFACTS) == set(WORK_STAGES)
    assert STAGE_ARTIFACTS[Stage.SYNTHESIZE] is ArtifactKind.FINAL_AUDIO
    assert StageOutcome("x", "skipped").skipped
    assert not StageOutcome("x").skipped


def _write(store: ArtifactStore, *kinds: ArtifactKind) -> None:
    for kind in kinds:
        path = store.path(_ENTRY_ID, kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{}", encoding="utf-8")


def _snapshot(state: str) -> ProgressSnapshot:
    return ProgressSnapshot(
        entry_id=_ENTRY_ID,
        state=state,
        current_index=3,
        total=8,
        successful=2,
        failed=0,
        started_at=0.0,
        elapsed_seconds=6.0,
        average_seconds_per_segment=2.0,
        estimated_remaining_seconds=10.0,
    )


@pytest.mark.parametrize(
    ("kinds", "expected"),
    [
        ((), ("not_started", 0, "Not started")),
        ((ArtifactKind.INFO,), ("processing", 1, "URL info stored")),
        ((ArtifactKind.INFO, ArtifactKind.RAW_MARKUP), ("processing", 2, "HTML fetched")),
        (
            (ArtifactKind.INFO, ArtifactKind.RAW_MARKUP, ArtifactKind.ARTICLE),
            ("processing", 3, "Content processed"),
        ),
        (
            (
                ArtifactKind.INFO,
                ArtifactKind.RAW_MARKUP,
                ArtifactKind.ARTICLE,
                ArtifactKind.SEGMENTS,
            ),
            ("processing", 4, "Text extracted"),
        ),
        (
            (
                ArtifactKind.INFO,
                ArtifactKind.RAW_MARKUP,
                ArtifactKind.ARTICLE,
                ArtifactKind.SEGMENTS,
                ArtifactKind.FINAL_AUDIO,
            ),
            ("completed", 5, "Audio generated"),
        ),
    ],
)
def test_status_follows_artifact_presence(
    tmp_path: Path,
    kinds: tuple[ArtifactKind, ...],
    expected: tuple[str, int, str],
) -> None:
    """Each present artifact should advance the derived step."""

    store = ArtifactStore(tmp_path)
    _write(store, *kinds)

    status = derive_status(store, _ENTRY_ID)

    assert (status.status, status.step, status.step_name) == expected
    assert status.progress_percent == round(expected[1] / 5 * 100)


def test_live_progress_reports_generation_step(tmp_path: Path) -> None:
    """A live record with segments stored should report step 5 with counts."""

    store = ArtifactStore(tmp_path)
    _write(
        store,
        ArtifactKind.INFO,
        ArtifactKind.RAW_MARKUP,
        ArtifactKind.ARTICLE,
        ArtifactKind.SEGMENTS,
    )

    generating = derive_status(store, _ENTRY_ID, _snapshot("generating"))
    concatenating = derive_status(store, _ENTRY_ID, _snapshot("concatenating"))

    assert (generating.status, generating.step) == ("processing", 5)
    assert generating.step_name == "Generating audio (3/8)"
    assert generating.progress is not None
    assert concatenating.step_name == "Concatenating audio files"
