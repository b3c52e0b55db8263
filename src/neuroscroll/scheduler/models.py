# neuroscroll/scheduler/models.py
"""Queue entries, results and configuration for the analysis scheduler."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from neuroscroll.classifier.classifier import AIClassificationResult
from neuroscroll.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TICK_INTERVAL,
)
from neuroscroll.models.metrics import ComputedMetrics
from neuroscroll.models.session import ViewingSession


class AnalysisPriority(str, Enum):
    """Queue priority; lower rank is dequeued first."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    AnalysisPriority.HIGH: 0,
    AnalysisPriority.NORMAL: 1,
    AnalysisPriority.LOW: 2,
}


class AnalysisState(str, Enum):
    """Lifecycle of a queue entry.

    pending -> in_batch -> succeeded
                        -> retrying -> in_batch ...
                        -> exhausted
    """

    PENDING = "pending"
    IN_BATCH = "in_batch"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class ScheduledAnalysis(BaseModel):
    """One queued classification request. At most one per session id."""

    session_id: str
    session: ViewingSession
    metrics: ComputedMetrics
    priority: AnalysisPriority = AnalysisPriority.NORMAL
    timestamp: float  # ms; also the earliest time the entry may run
    retry_count: int = 0
    state: AnalysisState = AnalysisState.PENDING


class AnalysisResult(BaseModel):
    """Delivered to callbacks and futures once an entry finishes."""

    session_id: str
    result: AIClassificationResult
    processing_time: float = 0.0  # ms
    success: bool
    error: str | None = None


class QueueStatus(BaseModel):
    queue_length: int = 0
    is_processing: bool = False
    high_priority_count: int = 0
    normal_priority_count: int = 0
    low_priority_count: int = 0


class SchedulerConfig(BaseModel):
    """Batching and retry tunables."""

    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    tick_interval: float = Field(default=DEFAULT_TICK_INTERVAL, gt=0)  # seconds
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_delay_ms: float = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)
