"""Entry status derivation from artifact presence and live progress."""

from __future__ import annotations

from ..io.storage import ArtifactKind, ArtifactStore
from ..models.datatypes import EntryStatus, ProgressSnapshot
from ..telemetry.progress import STATE_CONCATENATING

STATUS_NOT_STARTED = "not_started"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"

_STEP_NAMES = (
    (ArtifactKind.INFO, "URL info stored"),
    (ArtifactKind.RAW_MARKUP, "HTML fetched"),
    (ArtifactKind.ARTICLE, "Content processed"),
    (ArtifactKind.SEGMENTS, "Text extracted"),
)


def derive_status(
    store: ArtifactStore,
    entry_id: str,
    progress: ProgressSnapshot | None = None,
) -> EntryStatus:
    """Derive the status of one entry.

    Each artifact present advances the step; a live progress record while the
    segment sequence exists means step 5 is running; the final track means the
    entry is completed.
    """

    status = STATUS_NOT_STARTED
    step = 0
    step_name = "Not started"

    for position, (kind, name) in enumerate(_STEP_NAMES, start=1):
        if store.exists(entry_id, kind):
            status = STATUS_PROCESSING
            step = position
            step_name = name

    live_progress = None
    if step == 4 and progress is not None:
        step = 5
        live_progress = progress
        if progress.state == STATE_CONCATENATING:
            step_name = "Concatenating audio files"
        else:
            step_name = f"Generating audio ({progress.current_index}/{progress.total})"

    if store.exists(entry_id, ArtifactKind.FINAL_AUDIO):
        return EntryStatus(status=STATUS_COMPLETED, step=5, step_name="Audio generated")

    return EntryStatus(status=status, step=step, step_name=step_name, progress=live_progress)
