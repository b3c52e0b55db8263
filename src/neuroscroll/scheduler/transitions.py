# neuroscroll/scheduler/transitions.py
"""
Pure state transitions for queue entries.

These functions never touch the queue; the scheduler decides what to do with
the returned entry (requeue, deliver, discard).
"""

from __future__ import annotations

from pydantic import BaseModel

from neuroscroll.scheduler.models import AnalysisPriority, AnalysisState, ScheduledAnalysis

MAX_RETRIES_MESSAGE = "Max retries exceeded"


class FailureTransition(BaseModel):
    """Where a failed entry goes next."""

    state: AnalysisState
    entry: ScheduledAnalysis
    error: str

    @property
    def should_retry(self) -> bool:
        return self.state == AnalysisState.RETRYING


def begin_batch(entry: ScheduledAnalysis) -> ScheduledAnalysis:
    return entry.model_copy(update={"state": AnalysisState.IN_BATCH})


def transition_on_failure(
    entry: ScheduledAnalysis,
    error: str | None,
    now: float,
    max_retries: int,
    retry_delay_ms: float,
) -> FailureTransition:
    """Retry with low priority and linear backoff, or give up.

    The n-th retry is delayed by ``n * retry_delay_ms``; once ``retry_count``
    would exceed ``max_retries`` the entry is exhausted.
    """
    retry_count = entry.retry_count + 1

    if retry_count <= max_retries:
        retried = entry.model_copy(
            update={
                "retry_count": retry_count,
                "priority": AnalysisPriority.LOW,
                "timestamp": now + retry_count * retry_delay_ms,
                "state": AnalysisState.RETRYING,
            }
        )
        return FailureTransition(state=AnalysisState.RETRYING, entry=retried, error=error or "")

    exhausted = entry.model_copy(update={"retry_count": retry_count, "state": AnalysisState.EXHAUSTED})
    return FailureTransition(
        state=AnalysisState.EXHAUSTED,
        entry=exhausted,
        error=error or MAX_RETRIES_MESSAGE,
    )
