"""Pipeline orchestration for Pagecast.

Responsibilities:
- Drive one entry through the five idempotent stages, resuming at the first
  stage whose artifact is missing.
- Convert any stage exception into a structured `RunResult` failure.
- Serialize runs of the same entry and expose ledger, status, and progress
  operations to the CLI.

Key types:
- `PagecastPipeline`: orchestration facade.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from ..audio.assembler import AudioAssembler
from ..audio.concat import FfmpegConcatenator
from ..audio.silence import SilencePolicy
from ..config import PagecastConfig
from ..errors import ArtifactError, FetchError, PagecastError, PipelineStageError
from ..io.extractor import ArticleExtractor, TrafilaturaExtractor
from ..io.fetcher import DocumentFetcher, HttpFetcher
from ..io.ledger import LEDGER_FILENAME, EntryLedger
from ..io.storage import ArtifactKind, ArtifactStore
from ..models.datatypes import (
    Entry,
    EntryStatus,
    ExtractedArticle,
    ProgressSnapshot,
    RunResult,
    Segment,
    heading,
    inline_origin,
)
from ..telemetry.logger import RunLogger
from ..telemetry.progress import ProgressTracker
from ..text.chunker import SemanticChunker, collapse_whitespace
from ..tts.client import SpeechClient
from .locks import EntryLockRegistry
from .stages import (
    DISPOSITION_SKIPPED,
    Stage,
    StageFailure,
    StageOutcome,
    next_stage,
)
from .status import derive_status
from .telemetry import PipelineTelemetryMixin

_STAGE_ERRORS = (PagecastError, PipelineStageError, OSError, ValueError)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PagecastPipeline(PipelineTelemetryMixin):
    """Coordinate stage execution and bookkeeping for tracked entries."""

    def __init__(
        self,
        *,
        store: ArtifactStore,
        ledger: EntryLedger,
        fetcher: DocumentFetcher,
        extractor: ArticleExtractor,
        chunker: SemanticChunker,
        assembler: AudioAssembler,
        progress: ProgressTracker,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        clock: Callable[[], str] = _utc_now,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.fetcher = fetcher
        self.extractor = extractor
        self.chunker = chunker
        self.assembler = assembler
        self._progress = progress
        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._clock = clock
        self._locks = EntryLockRegistry()

    @classmethod
    def from_config(
        cls,
        config: PagecastConfig,
        *,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        segment_progress_callback: Callable[[ProgressSnapshot], None] | None = None,
    ) -> PagecastPipeline:
        """Build a pipeline wired with the default HTTP, extraction, and ffmpeg collaborators.

        `segment_progress_callback` receives a progress snapshot after every
        segment and when concatenation starts.
        """

        config.validate()
        logger = run_logger or RunLogger()
        store = ArtifactStore(config.data_dir)
        progress = ProgressTracker(listener=segment_progress_callback)
        speech_client = SpeechClient(
            base_url=config.tts_base_url,
            api_key=config.tts_api_key,
            model=config.tts_model,
            voice=config.tts_voice,
            timeout_seconds=config.tts_timeout_seconds,
            max_attempts=config.tts_max_attempts,
            retry_backoff_base_seconds=config.tts_retry_backoff_seconds,
        )
        assembler = AudioAssembler(
            store=store,
            speech_client=speech_client,
            concatenator=FfmpegConcatenator(
                config.ffmpeg_path,
                sample_rate=config.audio_sample_rate,
                channels=config.audio_channels,
            ),
            progress=progress,
            run_logger=logger,
            silence_policy=SilencePolicy(
                paragraph_seconds=config.paragraph_silence_seconds,
                before_heading_seconds=config.heading_silence_before_seconds,
                after_heading_seconds=config.heading_silence_after_seconds,
            ),
            max_input_chars=config.tts_max_input_chars,
        )
        return cls(
            store=store,
            ledger=EntryLedger(Path(config.data_dir) / LEDGER_FILENAME),
            fetcher=HttpFetcher(timeout_seconds=config.fetch_timeout_seconds),
            extractor=TrafilaturaExtractor(),
            chunker=SemanticChunker(),
            assembler=assembler,
            progress=progress,
            run_logger=logger,
            stage_progress_callback=stage_progress_callback,
        )

    def list_entries(self) -> list[Entry]:
        return self.ledger.entries()

    def submit_url(
        self,
        url: str,
        comment: str | None = None,
        process: bool = True,
    ) -> tuple[Entry, RunResult | None]:
        """Track a remote page and optionally process it right away."""

        normalized = url.strip()
        if not normalized.startswith(("http://", "https://")):
            raise PipelineStageError(
                stage="submit",
                detail=f"Invalid URL `{url}`.",
                hint="Provide an absolute `http://` or `https://` URL.",
            )
        entry = Entry(origin=normalized, added_at=self._clock(), comment=comment or None)
        self.ledger.append(entry)
        if not process:
            return entry, None
        return entry, self.process_entry(entry)

    def submit_markup(
        self,
        markup: str,
        comment: str | None = None,
        process: bool = True,
    ) -> tuple[Entry, RunResult | None]:
        """Track directly supplied markup under its `html://` pseudo-origin."""

        if not markup or not markup.strip():
            raise PipelineStageError(
                stage="submit",
                detail="HTML content is empty.",
                hint="Provide a non-empty HTML document.",
            )
        entry = Entry(
            origin=inline_origin(markup),
            added_at=self._clock(),
            is_inline=True,
            comment=comment or None,
        )
        self.ledger.append(entry)
        if not process:
            return entry, None
        return entry, self.process_entry(entry, markup=markup)

    def process_entry(self, entry: Entry, markup: str | None = None) -> RunResult:
        """Run the stage machine for one entry, resuming from existing artifacts.

        Runs of the same entry are serialized; a second caller waits and then
        finds every completed stage skipped.
        """

        with self._locks.hold(entry.entry_id):
            return self._drive(entry, markup)

    def process_all(self) -> list[RunResult]:
        """Process every tracked entry sequentially in ledger order."""

        return [self.process_entry(entry) for entry in self.ledger.entries()]

    def remove_entry(self, index: int) -> Entry:
        """Stop tracking an entry and delete its whole artifact container."""

        entry = self.ledger.get(index)
        with self._locks.hold(entry.entry_id):
            removed = self.ledger.remove(index)
            self.store.delete_entry(removed.entry_id)
            self._progress.finish(removed.entry_id)
        return removed

    def delete_audio(self, index: int) -> Entry:
        """Delete only the final track so the next run regenerates it from cached segments."""

        entry = self.ledger.get(index)
        with self._locks.hold(entry.entry_id):
            if not self.store.delete(entry.entry_id, ArtifactKind.FINAL_AUDIO):
                raise PipelineStageError(
                    stage="delete-audio",
                    detail=f"No audio file exists for `{entry.origin}`.",
                    hint="Run `pagecast status` to see which entries have audio.",
                )
            self._progress.finish(entry.entry_id)
        return entry

    def status(self, entry_id: str) -> EntryStatus:
        return derive_status(self.store, entry_id, self._progress.snapshot(entry_id))

    def status_all(self) -> dict[str, EntryStatus]:
        return {entry.origin: self.status(entry.entry_id) for entry in self.ledger.entries()}

    def progress(self, entry_id: str) -> ProgressSnapshot | None:
        return self._progress.snapshot(entry_id)

    def check_audio_tool(self) -> str:
        """Return the ffmpeg version line or raise `ToolingError`."""

        return self.assembler.concatenator.probe()

    def check_speech_engine(self) -> bool:
        """Issue one short synthesis request or raise `SpeechSynthesisError`."""

        return self.assembler.speech_client.check_connection()

    def _drive(self, entry: Entry, markup: str | None) -> RunResult:
        entry_id = entry.entry_id
        steps: dict[str, str] = {}
        failed_segments = 0
        stage = Stage.INFO
        value: object = None

        while not stage.is_terminal:
            try:
                outcome = self._run_stage(stage, entry_id, self._stage_action(stage, entry, markup, value))
            except _STAGE_ERRORS as exc:
                return self._failure_result(entry, stage, str(exc), steps)
            except Exception as exc:
                return self._failure_result(entry, stage, f"{type(exc).__name__}: {exc}", steps)
            steps[stage.value] = outcome.disposition
            if stage is Stage.SYNTHESIZE and isinstance(outcome.value, int):
                failed_segments = outcome.value
            value = outcome.value
            stage = next_stage(stage)

        message = "Entry processed successfully"
        if failed_segments:
            message = f"Entry processed with {failed_segments} failed segment(s)"
        return RunResult(
            entry_id=entry_id,
            origin=entry.origin,
            success=True,
            message=message,
            steps=steps,
            failed_segments=failed_segments,
        )

    def _failure_result(
        self,
        entry: Entry,
        stage: Stage,
        reason: str,
        steps: dict[str, str],
    ) -> RunResult:
        failure = StageFailure(stage=stage, reason=reason)
        return RunResult(
            entry_id=entry.entry_id,
            origin=entry.origin,
            success=False,
            message=failure.message,
            failed_stage=failure.stage_number,
            failed_stage_name=stage.value,
            steps=steps,
        )

    def _stage_action(
        self,
        stage: Stage,
        entry: Entry,
        markup: str | None,
        previous: object,
    ) -> Callable[[], StageOutcome[object]]:
        """Bind the handler for `stage` to the value produced by the stage before it."""

        if stage is Stage.INFO:
            return lambda: self._store_info(entry)
        if stage is Stage.FETCH:
            return lambda: self._fetch_markup(entry, markup)
        if stage is Stage.EXTRACT:
            return lambda: self._extract_article(entry, str(previous))
        if stage is Stage.CHUNK:
            if not isinstance(previous, ExtractedArticle):
                raise ValueError("Chunking requires an extracted article.")
            return lambda: self._chunk_article(entry, previous)
        if stage is Stage.SYNTHESIZE:
            if not isinstance(previous, list):
                raise ValueError("Synthesis requires a segment list.")
            return lambda: self._synthesize(entry, previous)
        raise ValueError(f"Stage `{stage.value}` has no handler.")

    def _store_info(self, entry: Entry) -> StageOutcome[object]:
        if self.store.exists(entry.entry_id, ArtifactKind.INFO):
            return StageOutcome(None, DISPOSITION_SKIPPED)
        self.store.save_json(
            entry.entry_id,
            ArtifactKind.INFO,
            {"url": entry.origin, "processedAt": self._clock()},
        )
        return StageOutcome(None)

    def _fetch_markup(self, entry: Entry, markup: str | None) -> StageOutcome[object]:
        entry_id = entry.entry_id
        if self.store.exists(entry_id, ArtifactKind.RAW_MARKUP):
            content = self.store.load_json(entry_id, ArtifactKind.RAW_MARKUP).get("content")
            if not isinstance(content, str):
                raise ArtifactError("Stored markup artifact is missing string `content`.")
            return StageOutcome(content, DISPOSITION_SKIPPED)

        if entry.is_inline:
            if markup is None:
                raise FetchError(
                    f"No stored markup for inline entry `{entry.origin}`.",
                    failure_kind="missing_markup",
                    hint="Remove the entry and submit the HTML again.",
                )
            payload = {"content": markup, "headers": {}, "status": 200}
        else:
            document = self.fetcher.fetch(entry.origin)
            payload = {
                "content": document.content,
                "headers": dict(document.headers),
                "status": document.status_code,
            }
        self.store.save_json(entry_id, ArtifactKind.RAW_MARKUP, payload)
        return StageOutcome(payload["content"])

    def _extract_article(self, entry: Entry, markup: str) -> StageOutcome[object]:
        entry_id = entry.entry_id
        if self.store.exists(entry_id, ArtifactKind.ARTICLE):
            payload = self.store.load_json(entry_id, ArtifactKind.ARTICLE)
            return StageOutcome(ExtractedArticle.from_payload(payload), DISPOSITION_SKIPPED)

        article = self.extractor.extract(markup, entry.origin)
        self.store.save_json(entry_id, ArtifactKind.ARTICLE, article.to_payload())
        return StageOutcome(article)

    def _chunk_article(self, entry: Entry, article: ExtractedArticle) -> StageOutcome[object]:
        entry_id = entry.entry_id
        if self.store.exists(entry_id, ArtifactKind.SEGMENTS):
            records = self.store.load_json(entry_id, ArtifactKind.SEGMENTS).get("chunks")
            if not isinstance(records, list):
                raise ArtifactError("Segment artifact is missing the `chunks` list.")
            return StageOutcome(
                [Segment.from_payload(record) for record in records],
                DISPOSITION_SKIPPED,
            )

        segments = self.chunker.chunk(article.content)
        title = collapse_whitespace(article.title or "")
        if title:
            segments.insert(0, heading(title, 1))
        self.store.save_json(
            entry_id,
            ArtifactKind.SEGMENTS,
            {"chunks": [segment.to_payload() for segment in segments]},
        )
        return StageOutcome(segments)

    def _synthesize(self, entry: Entry, segments: list[Segment]) -> StageOutcome[object]:
        """Return the number of failed segments as the stage value."""

        entry_id = entry.entry_id
        if self.store.exists(entry_id, ArtifactKind.FINAL_AUDIO) or not segments:
            return StageOutcome(0, DISPOSITION_SKIPPED)
        result = self.assembler.assemble(entry_id, segments)
        return StageOutcome(result.failed)
