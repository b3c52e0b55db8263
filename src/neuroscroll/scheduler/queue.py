# neuroscroll/scheduler/queue.py
"""Priority-ordered analysis queue keyed by session id."""

from __future__ import annotations

from collections.abc import Iterator

from neuroscroll.scheduler.models import AnalysisPriority, ScheduledAnalysis


def sort_key(entry: ScheduledAnalysis) -> tuple[int, float]:
    return entry.priority.rank, entry.timestamp


class AnalysisQueue:
    """Entries ordered by (priority rank, timestamp); one entry per session."""

    def __init__(self) -> None:
        self._entries: list[ScheduledAnalysis] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ScheduledAnalysis]:
        return iter(list(self._entries))

    def __contains__(self, session_id: object) -> bool:
        return any(e.session_id == session_id for e in self._entries)

    def push(self, entry: ScheduledAnalysis) -> ScheduledAnalysis | None:
        """Insert ``entry``, replacing any entry for the same session.

        Returns the replaced entry, if any.
        """
        replaced = self.remove(entry.session_id)
        self._entries.append(entry)
        self._entries.sort(key=sort_key)
        return replaced

    def remove(self, session_id: str) -> ScheduledAnalysis | None:
        for index, entry in enumerate(self._entries):
            if entry.session_id == session_id:
                return self._entries.pop(index)
        return None

    def pop_batch(self, size: int, now: float | None = None) -> list[ScheduledAnalysis]:
        """Remove and return up to ``size`` entries in queue order.

        With ``now`` given, entries whose timestamp lies in the future (retry
        backoff) stay queued.
        """
        batch: list[ScheduledAnalysis] = []
        remaining: list[ScheduledAnalysis] = []
        for entry in self._entries:
            if len(batch) < size and (now is None or entry.timestamp <= now):
                batch.append(entry)
            else:
                remaining.append(entry)
        self._entries = remaining
        return batch

    def clear(self) -> None:
        self._entries.clear()

    def counts(self) -> dict[AnalysisPriority, int]:
        counts = dict.fromkeys(AnalysisPriority, 0)
        for entry in self._entries:
            counts[entry.priority] += 1
        return counts
