"""Shared pytest fixtures for the Pagecast test suite."""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO
from pathlib import Path

import pytest

from pagecast.telemetry.logger import RunLogger
from tests.fakes import PipelineHarness, RecordingConcatenator, ScriptedSpeechClient


@pytest.fixture
def scripted_speech_client() -> ScriptedSpeechClient:
    return ScriptedSpeechClient()


@pytest.fixture
def recording_concatenator() -> RecordingConcatenator:
    return RecordingConcatenator()


@pytest.fixture
def log_sink() -> StringIO:
    return StringIO()


@pytest.fixture
def run_logger(log_sink: StringIO) -> RunLogger:
    """Provide a run logger writing into an in-memory sink."""

    return RunLogger(sink=log_sink)


@pytest.fixture
def harness_factory(tmp_path: Path) -> Callable[[], PipelineHarness]:
    """Build pipeline harnesses sharing one data directory, as separate process runs would."""

    data_dir = tmp_path / "data"

    def _build() -> PipelineHarness:
        return PipelineHarness(data_dir)

    return _build


@pytest.fixture
def harness(harness_factory: Callable[[], PipelineHarness]) -> PipelineHarness:
    return harness_factory()
