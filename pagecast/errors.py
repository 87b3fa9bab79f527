"""Domain exceptions for pipeline and CLI diagnostics.

Failures fall into five kinds: transport (fetch/speech network), extraction
(no usable article), engine (synthesis failed after retries), tooling (ffmpeg
missing or failing), and storage (artifact read/write). Each kind has one
exception type so stage handlers can map them to user-facing messages.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline or CLI stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class PagecastError(RuntimeError):
    """Base class for collaborator failures raised inside pipeline stages."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class FetchError(PagecastError):
    """Raised when the remote page cannot be fetched."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "transport",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.failure_kind = failure_kind


class ExtractionError(PagecastError):
    """Raised when no usable article can be extracted from markup."""


class SpeechSynthesisError(PagecastError):
    """Raised when the speech engine fails for one text unit after all retries."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        attempts: int = 1,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.attempts = attempts


class ToolingError(PagecastError):
    """Raised when the external audio encoding utility is missing or fails."""


class AssemblyError(PagecastError):
    """Raised when no segment audio is available to build a final track."""


class ArtifactError(PagecastError):
    """Raised when a persisted stage artifact has an unusable payload."""
