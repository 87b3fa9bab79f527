"""Tracked-entry ledger.

Responsibilities:
- Persist the ordered list of submitted entries as one flat JSON file.
- Support append, indexed removal, and duplicate detection by origin.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from threading import Lock

from ..errors import ArtifactError, PipelineStageError
from ..models.datatypes import Entry

LEDGER_FILENAME = "urls.json"


class EntryLedger:
    """Flat append/remove list of tracked entries stored as JSON."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()

    def entries(self) -> list[Entry]:
        with self._lock:
            return self._load()

    def get(self, index: int) -> Entry:
        """Return the entry at a 0-based ledger index."""

        entries = self.entries()
        self._check_index(index, len(entries))
        return entries[index]

    def find(self, origin: str) -> Entry | None:
        for entry in self.entries():
            if entry.origin == origin:
                return entry
        return None

    def append(self, entry: Entry) -> None:
        """Append an entry, rejecting an origin that is already tracked."""

        with self._lock:
            entries = self._load()
            if any(existing.origin == entry.origin for existing in entries):
                raise PipelineStageError(
                    stage="ledger",
                    detail=f"Entry already exists: `{entry.origin}`.",
                    hint="Use `pagecast process <index>` to re-run an existing entry.",
                )
            entries.append(entry)
            self._save(entries)

    def remove(self, index: int) -> Entry:
        """Remove and return the entry at a 0-based ledger index."""

        with self._lock:
            entries = self._load()
            self._check_index(index, len(entries))
            removed = entries.pop(index)
            self._save(entries)
            return removed

    @staticmethod
    def _check_index(index: int, size: int) -> None:
        if index < 0 or index >= size:
            raise PipelineStageError(
                stage="ledger",
                detail=f"No entry at position {index + 1} (ledger has {size} entries).",
                hint="Run `pagecast list` to see valid indices.",
            )

    def _load(self) -> list[Entry]:
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ArtifactError(
                f"Ledger `{self.path}` is not valid JSON.",
                hint="Fix or remove the ledger file.",
            ) from exc
        if not isinstance(payload, list):
            raise ArtifactError(f"Ledger `{self.path}` must contain a JSON list.")
        entries: list[Entry] = []
        for item in payload:
            if isinstance(item, str):
                entries.append(Entry.from_payload({"url": item}))
            elif isinstance(item, dict):
                entries.append(Entry.from_payload(item))
            else:
                raise ArtifactError(f"Ledger `{self.path}` contains an unsupported record.")
        return entries

    def _save(self, entries: list[Entry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.path.with_name(self.path.name + ".partial")
        temporary.write_text(
            json.dumps([entry.to_payload() for entry in entries], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        os.replace(temporary, self.path)
