"""ffmpeg-backed concatenation of segment audio with inserted silence.

Responsibilities:
- Probe the encoding utility so its absence fails fast with an actionable hint.
- Generate silence clips once per duration for a single concatenation run.
- Join parts through the concat demuxer and re-encode to one MP3 track.
- Remove manifest and silence files whatever the outcome.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import subprocess
import sys
import tempfile

from ..errors import ToolingError
from ..parsing import normalize_optional_string

_INSTALL_HINT = "Install ffmpeg or set `PAGECAST_FFMPEG` to its path, then process the entry again."


def resolve_ffmpeg(command_name: str = "ffmpeg") -> str:
    """Resolve the ffmpeg executable.

    An explicit path is used as given. A bare name is looked up in the bundled
    `bin/` directory next to the app first, then on `PATH`; when nothing is
    found the bare name is returned so subprocess raises its own missing-binary
    error.
    """

    name = command_name.strip() or "ffmpeg"
    if os.sep in name or (os.altsep and os.altsep in name):
        return name

    if getattr(sys, "frozen", False):
        app_root = Path(sys.executable).resolve().parent
    else:
        app_root = Path(__file__).resolve().parents[2]
    for candidate_name in (name, f"{name}.exe"):
        bundled = app_root / "bin" / candidate_name
        if bundled.is_file():
            return str(bundled)

    return shutil.which(name) or name


class FfmpegConcatenator:
    """Concatenate MP3 parts with silence gaps using ffmpeg."""

    def __init__(
        self,
        executable: str = "ffmpeg",
        *,
        sample_rate: int = 22050,
        channels: int = 1,
    ) -> None:
        self.executable = resolve_ffmpeg(executable)
        self.sample_rate = sample_rate
        self.channels = channels

    @property
    def channel_layout(self) -> str:
        return "mono" if self.channels == 1 else "stereo"

    def probe(self) -> str:
        """Return the ffmpeg version line, raising `ToolingError` when unusable."""

        result = self._run([self.executable, "-hide_banner", "-version"], action="version probe")
        first_line = (result.stdout or "").strip().splitlines()
        return first_line[0] if first_line else "ffmpeg"

    def concatenate(self, parts: list[Path], gaps: list[float], output_path: Path) -> Path:
        """Join `parts` in order, inserting `gaps[i]` seconds after `parts[i]`.

        `gaps` holds one duration per adjacent pair. The result is written to a
        temporary sibling and renamed to `output_path`.
        """

        if not parts:
            raise ToolingError("No audio parts were provided for concatenation.")
        if len(gaps) != len(parts) - 1:
            raise ValueError("Expected exactly one gap between each pair of parts.")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        temporary_output = output_path.with_name(output_path.name + ".partial")

        if len(parts) == 1:
            shutil.copyfile(parts[0], temporary_output)
            os.replace(temporary_output, output_path)
            return output_path

        work_dir = Path(tempfile.mkdtemp(prefix="pagecast-concat-", dir=output_path.parent))
        try:
            silence_cache: dict[int, Path] = {}
            lines: list[str] = []
            for index, part in enumerate(parts):
                lines.append(f"file '{self._escape_concat_path(part.resolve())}'")
                if index < len(gaps) and gaps[index] > 0:
                    silence = self._silence_clip(gaps[index], work_dir, silence_cache)
                    lines.append(f"file '{self._escape_concat_path(silence.resolve())}'")

            manifest_path = work_dir / "concat.txt"
            manifest_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

            command = [
                self.executable,
                "-y",
                "-hide_banner",
                "-loglevel",
                "error",
                "-f",
                "concat",
                "-safe",
                "0",
                "-i",
                str(manifest_path),
                "-vn",
                "-c:a",
                "libmp3lame",
                "-ar",
                str(self.sample_rate),
                "-ac",
                str(self.channels),
                "-f",
                "mp3",
                str(temporary_output),
            ]
            self._run(command, action=f"concatenation of `{output_path.name}`")
            os.replace(temporary_output, output_path)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
            if temporary_output.exists():
                temporary_output.unlink()
        return output_path

    def _silence_clip(self, seconds: float, work_dir: Path, cache: dict[int, Path]) -> Path:
        """Return a silence clip for `seconds`, generating it once per duration."""

        milliseconds = round(seconds * 1000)
        cached = cache.get(milliseconds)
        if cached is not None:
            return cached

        path = work_dir / f"silence_{milliseconds}ms.mp3"
        command = [
            self.executable,
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "lavfi",
            "-i",
            f"anullsrc=channel_layout={self.channel_layout}:sample_rate={self.sample_rate}",
            "-t",
            f"{milliseconds / 1000:.3f}",
            "-c:a",
            "libmp3lame",
            str(path),
        ]
        self._run(command, action=f"silence generation ({milliseconds} ms)")
        cache[milliseconds] = path
        return path

    def _run(self, command: list[str], *, action: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                command,
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise ToolingError(
                f"Audio tool `{self.executable}` is not available.",
                hint=_INSTALL_HINT,
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(exc.stderr) or "no stderr output"
            raise ToolingError(
                f"ffmpeg {action} failed: {stderr[:500]}",
                hint="Verify that the local ffmpeg build supports `libmp3lame` and `lavfi`.",
            ) from exc

    def _escape_concat_path(self, path: Path) -> str:
        return str(path).replace("'", "'\\''")
