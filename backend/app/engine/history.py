"""Bounded, most-recent-first log of workflow run summaries."""
from collections import deque
from dataclasses import dataclass
from typing import Callable

DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class RunRecord:
    id: str
    workflow_id: str | None
    workflow_name: str
    started_at: int  # epoch ms
    finished_at: int
    duration_ms: int
    success: bool
    node_count: int
    completed_count: int
    output_count: int
    error: str | None
    trigger: str
    scope: tuple[str, ...] | str  # target ids, or "full"


class RunHistoryLog:
    """Append-only run history, capped at ``limit`` entries.

    ``sink`` is called with every appended record so callers can persist it.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT, sink: Callable[[RunRecord], None] | None = None):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: deque[RunRecord] = deque(maxlen=limit)
        self._sink = sink

    def append(self, record: RunRecord) -> None:
        self._entries.appendleft(record)
        if self._sink is not None:
            self._sink(record)

    def entries(self) -> list[RunRecord]:
        return list(self._entries)

    def latest(self) -> RunRecord | None:
        return self._entries[0] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
