"""Per-segment audio synthesis and final track assembly.

Responsibilities:
- Synthesize segments strictly in order, reusing cached per-segment audio.
- Tolerate individual segment failures and build the track from survivors.
- Keep the live progress record current and remove it when the run ends.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import AssemblyError, SpeechSynthesisError
from ..io.storage import ArtifactKind, ArtifactStore
from ..models.datatypes import AssemblyResult, Segment
from ..telemetry.logger import RunLogger
from ..telemetry.progress import ProgressTracker
from ..tts.client import SpeechSynthesizer
from .concat import FfmpegConcatenator
from .silence import SilencePolicy

_PREVIEW_CHARS = 50


class AudioAssembler:
    """Turn an ordered segment sequence into one narrated track."""

    def __init__(
        self,
        *,
        store: ArtifactStore,
        speech_client: SpeechSynthesizer,
        concatenator: FfmpegConcatenator,
        progress: ProgressTracker,
        run_logger: RunLogger,
        silence_policy: SilencePolicy | None = None,
        max_input_chars: int = 4000,
    ) -> None:
        self.store = store
        self.speech_client = speech_client
        self.concatenator = concatenator
        self.progress = progress
        self.run_logger = run_logger
        self.silence_policy = silence_policy or SilencePolicy()
        self.max_input_chars = max_input_chars

    def assemble(self, entry_id: str, segments: list[Segment]) -> AssemblyResult:
        """Synthesize all segments and write the final track for `entry_id`.

        Raises:
            ToolingError: ffmpeg is unavailable; raised before any synthesis.
            AssemblyError: no segment produced usable audio.
        """

        self.concatenator.probe()

        total = len(segments)
        survivors: list[tuple[Segment, Path]] = []
        failed_indices: list[int] = []
        self.progress.start(entry_id, total)
        try:
            for index, segment in enumerate(segments):
                self.progress.update(
                    entry_id,
                    current_index=index + 1,
                    successful=len(survivors),
                    failed=len(failed_indices),
                )
                self.run_logger.log_segment_progress(index + 1, total, entry=entry_id[:12])

                path = self._segment_audio(entry_id, index, total, segment)
                if path is None:
                    failed_indices.append(index)
                else:
                    survivors.append((segment, path))

            self.progress.update(
                entry_id,
                current_index=total,
                successful=len(survivors),
                failed=len(failed_indices),
            )
            if not survivors:
                raise AssemblyError(
                    f"All {total} segments failed to synthesize; no audio was produced.",
                    hint="Run `pagecast health` to check the speech engine, then process again.",
                )
            if failed_indices:
                self.run_logger.log_degraded(len(survivors), len(failed_indices))

            self.progress.mark_concatenating(entry_id)
            surviving_segments = [segment for segment, _ in survivors]
            output_path = self.concatenator.concatenate(
                [path for _, path in survivors],
                self.silence_policy.gaps_for(surviving_segments),
                self.store.path(entry_id, ArtifactKind.FINAL_AUDIO),
            )
        finally:
            self.progress.finish(entry_id)

        return AssemblyResult(
            output_path=output_path,
            total=total,
            succeeded=len(survivors),
            failed=len(failed_indices),
            failed_indices=tuple(failed_indices),
        )

    def _segment_audio(self, entry_id: str, index: int, total: int, segment: Segment) -> Path | None:
        """Return cached or freshly synthesized audio, or `None` on engine failure."""

        fingerprint = segment.fingerprint
        if self.store.segment_audio_exists(entry_id, fingerprint):
            return self.store.segment_audio_path(entry_id, fingerprint)

        text = segment.text
        if len(text) > self.max_input_chars:
            self.run_logger.log_truncated(
                index + 1,
                kept_chars=self.max_input_chars,
                dropped_chars=len(text) - self.max_input_chars,
            )
            text = text[: self.max_input_chars]

        try:
            audio = self.speech_client.synthesize(text)
        except SpeechSynthesisError as exc:
            self.run_logger.log_segment_failure(
                index + 1,
                total,
                segment.type.value,
                type(exc).__name__,
                heading_level=segment.level if segment.level is not None else "none",
                failure_kind=exc.failure_kind,
                attempts=exc.attempts,
                length=len(segment.text),
                preview=segment.text[:_PREVIEW_CHARS],
            )
            return None
        return self.store.save_segment_audio(entry_id, fingerprint, audio)
