"""Unit tests for ffmpeg concatenation with silence insertion."""

from __future__ import annotations

from pathlib import Path
import subprocess

import pytest

from pagecast.audio import concat as concat_module
from pagecast.audio.concat import FfmpegConcatenator, resolve_ffmpeg
from pagecast.errors import ToolingError

_FFMPEG = "/opt/tools/ffmpeg"


class _FakeFfmpeg:
    """Record ffmpeg invocations and emulate their file outputs."""

    def __init__(self, fail_on_concat: bool = False) -> None:
        self.commands: list[list[str]] = []
        self.manifests: list[str] = []
        self.fail_on_concat = fail_on_concat

    def __call__(self, command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        assert kwargs["check"] is True
        self.commands.append(list(command))
        if "-version" in command:
            return subprocess.CompletedProcess(command, 0, stdout="ffmpeg version 6.1\nbuilt", stderr="")
        output = Path(command[-1])
        if "concat" in command:
            manifest = Path(command[command.index("-i") + 1])
            self.manifests.append(manifest.read_text(encoding="utf-8"))
            if self.fail_on_concat:
                raise subprocess.CalledProcessError(1, command, stderr="Invalid data found")
            output.write_bytes(b"joined")
        else:
            output.write_bytes(b"silence")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    def silence_commands(self) -> list[list[str]]:
        return [command for command in self.commands if "lavfi" in command]


def _parts(root: Path, count: int) -> list[Path]:
    paths = []
    for index in range(count):
        path = root / "chunks" / f"part{index}.mp3"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"part{index}".encode("utf-8"))
        paths.append(path)
    return paths


def test_probe_returns_version_line(monkeypatch: pytest.MonkeyPatch) -> None:
    """Probe should run `-version` and return the first output line."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)

    assert FfmpegConcatenator(_FFMPEG).probe() == "ffmpeg version 6.1"
    assert fake.commands[0][0] == _FFMPEG


def test_probe_maps_missing_binary_to_tooling_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing executable should raise an actionable tooling error."""

    def _missing(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(concat_module.subprocess, "run", _missing)

    with pytest.raises(ToolingError, match="not available") as exc_info:
        FfmpegConcatenator(_FFMPEG).probe()
    assert exc_info.value.hint is not None
    assert "PAGECAST_FFMPEG" in exc_info.value.hint


def test_single_part_is_copied_without_subprocess(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """One surviving part should become the final track by plain copy."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    [part] = _parts(tmp_path, 1)
    output = tmp_path / "text.mp3"

    FfmpegConcatenator(_FFMPEG).concatenate([part], [], output)

    assert output.read_bytes() == b"part0"
    assert fake.commands == []


def test_manifest_interleaves_parts_and_cached_silence(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Equal gaps should reuse one silence clip and keep part order in the manifest."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    parts = _parts(tmp_path, 3)
    output = tmp_path / "text.mp3"

    FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.5, 0.5], output)

    assert output.read_bytes() == b"joined"
    assert len(fake.silence_commands()) == 1
    silence_command = fake.silence_commands()[0]
    assert "anullsrc=channel_layout=mono:sample_rate=22050" in silence_command
    assert silence_command[silence_command.index("-t") + 1] == "0.500"

    lines = fake.manifests[0].strip().splitlines()
    assert len(lines) == 5
    assert lines[0] == f"file '{parts[0].resolve()}'"
    assert lines[2] == f"file '{parts[1].resolve()}'"
    assert lines[4] == f"file '{parts[2].resolve()}'"
    assert lines[1] == lines[3]
    assert "silence_500ms.mp3" in lines[1]


def test_distinct_gaps_generate_one_clip_per_duration(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Different durations should each be generated once."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    parts = _parts(tmp_path, 4)

    FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.5, 0.2, 0.5], tmp_path / "text.mp3")

    durations = [command[command.index("-t") + 1] for command in fake.silence_commands()]
    assert durations == ["0.500", "0.200"]


def test_zero_gap_inserts_no_silence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """A zero-length pause should join parts back to back."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    parts = _parts(tmp_path, 2)

    FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.0], tmp_path / "text.mp3")

    assert fake.silence_commands() == []
    assert len(fake.manifests[0].strip().splitlines()) == 2


def test_reencode_uses_configured_rate_and_channels(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Concat command should re-encode with libmp3lame at the configured format."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    parts = _parts(tmp_path, 2)

    FfmpegConcatenator(_FFMPEG, sample_rate=44100, channels=2).concatenate(
        parts, [0.2], tmp_path / "text.mp3"
    )

    concat_command = next(command for command in fake.commands if "concat" in command)
    assert concat_command[concat_command.index("-c:a") + 1] == "libmp3lame"
    assert concat_command[concat_command.index("-ar") + 1] == "44100"
    assert concat_command[concat_command.index("-ac") + 1] == "2"
    assert "anullsrc=channel_layout=stereo:sample_rate=44100" in fake.silence_commands()[0]


def test_failure_reports_stderr_and_cleans_temporary_files(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """A failing encode should raise with stderr and leave no temp files behind."""

    fake = _FakeFfmpeg(fail_on_concat=True)
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    parts = _parts(tmp_path, 2)
    output = tmp_path / "text.mp3"

    with pytest.raises(ToolingError, match="Invalid data found"):
        FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.2], output)

    assert not output.exists()
    assert not list(tmp_path.glob("pagecast-concat-*"))
    assert not list(tmp_path.glob("*.partial"))


def test_quotes_in_part_paths_are_escaped(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Single quotes should be escaped for the concat demuxer."""

    fake = _FakeFfmpeg()
    monkeypatch.setattr(concat_module.subprocess, "run", fake)
    quoted_root = tmp_path / "it's here"
    parts = _parts(quoted_root, 2)

    FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.0], tmp_path / "text.mp3")

    assert "it'\\''s here" in fake.manifests[0]


def test_gap_count_must_match_part_pairs(tmp_path: Path) -> None:
    """Mismatched gap lists should be rejected before any work."""

    parts = _parts(tmp_path, 3)

    with pytest.raises(ValueError):
        FfmpegConcatenator(_FFMPEG).concatenate(parts, [0.2], tmp_path / "text.mp3")


def test_resolve_ffmpeg_keeps_explicit_paths_and_falls_back_to_name(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Explicit paths are kept; unknown bare names fall through unchanged."""

    monkeypatch.setattr(concat_module.shutil, "which", lambda name: None)

    assert resolve_ffmpeg(_FFMPEG) == _FFMPEG
    assert resolve_ffmpeg("ffmpeg-missing-xyz") == "ffmpeg-missing-xyz"
