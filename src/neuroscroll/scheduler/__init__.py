# neuroscroll/scheduler/__init__.py
"""
Asynchronous classification scheduling.

- AnalysisQueue: (priority, timestamp) ordered, one entry per session
- transition_on_failure: pure retry/backoff state transition
- AnalysisScheduler: periodic batch runner with callbacks and futures
"""

from neuroscroll.scheduler.models import (
    AnalysisPriority,
    AnalysisResult,
    AnalysisState,
    QueueStatus,
    ScheduledAnalysis,
    SchedulerConfig,
)
from neuroscroll.scheduler.queue import AnalysisQueue
from neuroscroll.scheduler.scheduler import AnalysisCallback, AnalysisScheduler, BatchClassifier
from neuroscroll.scheduler.transitions import (
    FailureTransition,
    begin_batch,
    transition_on_failure,
)

__all__ = [
    "AnalysisCallback",
    "AnalysisPriority",
    "AnalysisQueue",
    "AnalysisResult",
    "AnalysisScheduler",
    "AnalysisState",
    "BatchClassifier",
    "FailureTransition",
    "QueueStatus",
    "ScheduledAnalysis",
    "SchedulerConfig",
    "begin_batch",
    "transition_on_failure",
]
