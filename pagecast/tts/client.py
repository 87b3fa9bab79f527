"""Speech engine HTTP client for per-segment synthesis.

Responsibilities:
- Send speech requests to an OpenAI-compatible `/audio/speech` endpoint.
- Retry failed attempts with exponential backoff under a per-attempt timeout.
- Raise typed `SpeechSynthesisError` failures for the caller to dispose of.
"""

from __future__ import annotations

import json
import re
import socket
import time
from typing import Any, Protocol

import requests

from ..errors import SpeechSynthesisError


class SpeechSynthesizer(Protocol):
    """Protocol for components that turn one text unit into audio bytes."""

    def synthesize(self, text: str) -> bytes:
        """Return encoded audio bytes for `text` or raise `SpeechSynthesisError`."""

    def check_connection(self, timeout_seconds: float = 10.0) -> bool:
        """Return `True` when the engine answers one short request."""


class SpeechClient:
    """Minimal requests-based speech client with bounded retry."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180
    _CONNECTION_TEST_TEXT = "Connection test"

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:5173/api/v1",
        api_key: str | None = "no-key",
        model: str = "model_q8f16",
        voice: str = "af_heart",
        response_format: str = "mp3",
        timeout_seconds: float = 900.0,
        max_attempts: int = 3,
        retry_backoff_base_seconds: float = 2.0,
    ) -> None:
        """Initialize speech endpoint, voice, and retry settings."""

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.model = model
        self.voice = voice
        self.response_format = response_format
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff_base_seconds = max(0.0, float(retry_backoff_base_seconds))
        self.retry_attempt_count = 0

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/audio/speech"

    def synthesize(self, text: str) -> bytes:
        """Return synthesized audio bytes, retrying failed attempts with backoff."""

        for attempt in range(1, self.max_attempts):
            try:
                return self._request_speech(text, timeout_seconds=self.timeout_seconds)
            except SpeechSynthesisError:
                self.retry_attempt_count += 1
                time.sleep(self.backoff_seconds(attempt))

        try:
            return self._request_speech(text, timeout_seconds=self.timeout_seconds)
        except SpeechSynthesisError as exc:
            raise SpeechSynthesisError(
                f"Speech synthesis failed after {self.max_attempts} attempt(s): {exc}",
                failure_kind=exc.failure_kind,
                status_code=exc.status_code,
                attempts=self.max_attempts,
                hint="Verify the speech engine is running and reachable at the configured URL.",
            ) from exc

    def backoff_seconds(self, attempt: int) -> float:
        """Return the wait before the attempt following `attempt` (1-based)."""

        return self.retry_backoff_base_seconds * (2 ** (attempt - 1))

    def check_connection(self, timeout_seconds: float = 10.0) -> bool:
        """Issue one short synthesis request without retries."""

        self._request_speech(self._CONNECTION_TEST_TEXT, timeout_seconds=timeout_seconds)
        return True

    def _request_speech(self, text: str, *, timeout_seconds: float) -> bytes:
        """Execute one speech request and map failures to typed errors."""

        payload: dict[str, Any] = {
            "model": self.model,
            "voice": self.voice,
            "input": text,
            "response_format": self.response_format,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(
                self.endpoint,
                headers=headers,
                json=payload,
                timeout=timeout_seconds,
            )
            response.raise_for_status()
            audio_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_synthesis_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = f"Speech request timed out after {timeout_seconds:g} seconds."
            else:
                detail = f"Speech request transport error: {self._short_message(str(exc))}"
            raise SpeechSynthesisError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise SpeechSynthesisError(
                f"Speech request timed out after {timeout_seconds:g} seconds.",
                failure_kind="timeout",
            ) from exc

        if not audio_bytes:
            raise SpeechSynthesisError(
                "Speech engine returned an empty audio payload.",
                failure_kind="empty_response",
            )
        return audio_bytes

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from engine error content."""

        redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_engine_message(cls, exc: requests.HTTPError) -> str:
        """Extract a concise message from an engine error body."""

        response = exc.response
        if response is None:
            return ""
        try:
            body = bytes(response.content).decode("utf-8", errors="replace").strip()
        except (TypeError, ValueError):
            return ""
        if not body:
            return ""

        message = body
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            error_payload = payload.get("error", payload.get("detail"))
            if isinstance(error_payload, dict):
                candidate = error_payload.get("message")
                if isinstance(candidate, str) and candidate.strip():
                    message = candidate
            elif isinstance(error_payload, str) and error_payload.strip():
                message = error_payload
        return cls._short_message(cls._redact_sensitive_tokens(message))

    @classmethod
    def _http_error_to_synthesis_error(cls, exc: requests.HTTPError) -> SpeechSynthesisError:
        status_code = exc.response.status_code if exc.response is not None else 0
        engine_message = cls._extract_engine_message(exc)
        failure_kind = "timeout" if status_code in {408, 504} else "http_error"
        if engine_message:
            detail = f"Speech engine request failed (HTTP {status_code}): {engine_message}"
        else:
            detail = f"Speech engine request failed (HTTP {status_code})."
        return SpeechSynthesisError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
        )
