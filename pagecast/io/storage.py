"""Stage-artifact storage.

Responsibilities:
- Provide deterministic per-entry filesystem storage for JSON and audio artifacts.
- Make artifact presence a cheap existence check used as the idempotence marker.
- Write artifacts atomically so an existing file is always a complete one.
"""

from __future__ import annotations

from enum import Enum
import json
import os
from pathlib import Path
import shutil
from typing import Any

from ..errors import ArtifactError


class ArtifactKind(str, Enum):
    """Stage artifacts stored in one entry container, valued by filename."""

    INFO = "info.json"
    RAW_MARKUP = "html.json"
    ARTICLE = "content.json"
    SEGMENTS = "text.json"
    FINAL_AUDIO = "text.mp3"


SEGMENT_AUDIO_DIRNAME = "chunks"
SEGMENT_AUDIO_SUFFIX = ".mp3"
_PARTIAL_SUFFIX = ".partial"


class ArtifactStore:
    """Filesystem-backed artifact store keyed by entry id."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root data directory."""

        self.root = root

    def entry_dir(self, entry_id: str) -> Path:
        return self.root / entry_id

    def path(self, entry_id: str, kind: ArtifactKind) -> Path:
        return self.entry_dir(entry_id) / kind.value

    def segment_audio_path(self, entry_id: str, fingerprint: str) -> Path:
        return self.entry_dir(entry_id) / SEGMENT_AUDIO_DIRNAME / f"{fingerprint}{SEGMENT_AUDIO_SUFFIX}"

    def exists(self, entry_id: str, kind: ArtifactKind) -> bool:
        """Return whether the given stage artifact exists."""

        return self.path(entry_id, kind).exists()

    def segment_audio_exists(self, entry_id: str, fingerprint: str) -> bool:
        return self.segment_audio_path(entry_id, fingerprint).exists()

    def save_json(self, entry_id: str, kind: ArtifactKind, payload: dict[str, Any]) -> Path:
        """Save a JSON-serializable payload and return its final path."""

        path = self.path(entry_id, kind)
        content = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
        self._write_atomic(path, content.encode("utf-8"))
        return path

    def load_json(self, entry_id: str, kind: ArtifactKind) -> dict[str, Any]:
        """Load a JSON object artifact, raising `ArtifactError` on unusable payloads."""

        path = self.path(entry_id, kind)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ArtifactError(
                f"Artifact `{path}` is not valid JSON.",
                hint="Delete the artifact file to let the stage run again.",
            ) from exc
        if not isinstance(payload, dict):
            raise ArtifactError(
                f"Artifact `{path}` must contain a JSON object.",
                hint="Delete the artifact file to let the stage run again.",
            )
        return payload

    def save_segment_audio(self, entry_id: str, fingerprint: str, data: bytes) -> Path:
        path = self.segment_audio_path(entry_id, fingerprint)
        self._write_atomic(path, data)
        return path

    def partial_path(self, final_path: Path) -> Path:
        """Return the temporary sibling used while a file is being produced."""

        return final_path.with_name(final_path.name + _PARTIAL_SUFFIX)

    def delete(self, entry_id: str, kind: ArtifactKind) -> bool:
        """Remove one artifact and return whether it existed."""

        path = self.path(entry_id, kind)
        if not path.exists():
            return False
        path.unlink()
        return True

    def delete_entry(self, entry_id: str) -> bool:
        """Remove the entry container and every derived artifact."""

        directory = self.entry_dir(entry_id)
        if not directory.exists():
            return False
        shutil.rmtree(directory)
        return True

    def _write_atomic(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.partial_path(path)
        temporary.write_bytes(data)
        os.replace(temporary, path)
