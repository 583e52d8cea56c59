"""Stage tracking for in-flight pipelines."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

ANALYSIS_STAGES = (
    "Fetching repository",
    "Analyzing commits",
    "Analyzing contributors",
    "Analyzing languages & files",
    "Computing metrics",
)


def comparison_stages(left: str, right: str) -> tuple[str, ...]:
    return (f"Fetching {left}", f"Fetching {right}", "Computing metrics")


@dataclass(frozen=True)
class Stage:
    name: str
    is_active: bool
    is_complete: bool


class ProgressTracker:
    """Ordered, named stages with a single forward-only cursor.

    The cursor starts on the first stage and may advance one position past
    the last one, at which point every stage reports complete and none is
    active. The pipeline thread advances it while the event loop reads it,
    so the cursor is guarded by a lock.
    """

    def __init__(self, stage_names):
        self._names = tuple(stage_names)
        self._cursor = 0
        self._lock = threading.Lock()
        self._started = time.monotonic()

    def next_stage(self) -> None:
        with self._lock:
            if self._cursor < len(self._names):
                self._cursor += 1

    @property
    def current(self) -> int:
        with self._lock:
            return self._cursor

    @property
    def done(self) -> bool:
        return self.current >= len(self._names)

    def get_all_stages(self) -> list[Stage]:
        cursor = self.current
        return [
            Stage(name=name, is_active=i == cursor, is_complete=i < cursor)
            for i, name in enumerate(self._names)
        ]

    def get_elapsed_time(self) -> float:
        """Seconds since the tracker was created."""
        return time.monotonic() - self._started
