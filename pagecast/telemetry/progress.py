"""Process-local progress tracking for audio generation.

Responsibilities:
- Hold one mutable progress record per entry while audio is being generated.
- Expose only immutable snapshots with elapsed/remaining estimates.
- Stay thread-safe so status queries can run alongside pipeline work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from time import time
from typing import Callable

from ..models.datatypes import ProgressSnapshot

STATE_GENERATING = "generating"
STATE_CONCATENATING = "concatenating"


@dataclass(slots=True)
class _ProgressRecord:
    current_index: int
    total: int
    successful: int
    failed: int
    state: str
    started_at: float


@dataclass(slots=True)
class ProgressTracker:
    """Thread-safe map from entry id to in-flight generation progress."""

    clock: Callable[[], float] = time
    listener: Callable[[ProgressSnapshot], None] | None = None
    _records: dict[str, _ProgressRecord] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    def start(self, entry_id: str, total: int) -> None:
        with self._lock:
            self._records[entry_id] = _ProgressRecord(
                current_index=0,
                total=total,
                successful=0,
                failed=0,
                state=STATE_GENERATING,
                started_at=self.clock(),
            )

    def update(
        self,
        entry_id: str,
        *,
        current_index: int,
        successful: int,
        failed: int,
    ) -> None:
        """Record the segment now being processed and running counters."""

        with self._lock:
            record = self._records.get(entry_id)
            if record is None:
                return
            record.current_index = current_index
            record.successful = successful
            record.failed = failed
        self._notify(entry_id)

    def mark_concatenating(self, entry_id: str) -> None:
        with self._lock:
            record = self._records.get(entry_id)
            if record is not None:
                record.state = STATE_CONCATENATING
        self._notify(entry_id)

    def finish(self, entry_id: str) -> None:
        """Drop the record on completion or failure."""

        with self._lock:
            self._records.pop(entry_id, None)

    def snapshot(self, entry_id: str) -> ProgressSnapshot | None:
        with self._lock:
            record = self._records.get(entry_id)
            if record is None:
                return None
            return self._to_snapshot(entry_id, record)

    def snapshots(self) -> dict[str, ProgressSnapshot]:
        with self._lock:
            return {
                entry_id: self._to_snapshot(entry_id, record)
                for entry_id, record in self._records.items()
            }

    def _notify(self, entry_id: str) -> None:
        """Hand the latest snapshot to the listener, outside the lock."""

        if self.listener is None:
            return
        snapshot = self.snapshot(entry_id)
        if snapshot is not None:
            self.listener(snapshot)

    def _to_snapshot(self, entry_id: str, record: _ProgressRecord) -> ProgressSnapshot:
        elapsed = max(0.0, self.clock() - record.started_at)
        average = elapsed / record.current_index if record.current_index > 0 else 0.0
        estimated_total = average * record.total
        return ProgressSnapshot(
            entry_id=entry_id,
            state=record.state,
            current_index=record.current_index,
            total=record.total,
            successful=record.successful,
            failed=record.failed,
            started_at=record.started_at,
            elapsed_seconds=elapsed,
            average_seconds_per_segment=average,
            estimated_remaining_seconds=max(0.0, estimated_total - elapsed),
        )
