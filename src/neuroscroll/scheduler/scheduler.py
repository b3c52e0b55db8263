# neuroscroll/scheduler/scheduler.py
"""
AnalysisScheduler - batched, prioritized, retrying classification.

One periodic tick pops up to ``batch_size`` due entries and hands them to the
classifier in a single call. Results reach callers through the callback
registered for the session and through the future returned by
``schedule_analysis``. Failures are retried with lower priority and growing
delay; after ``max_retries`` the caller gets a terminal "unknown" result.

Usage::

    async with AnalysisScheduler(SessionClassifier()) as scheduler:
        future = scheduler.schedule_analysis(session, metrics, "normal")
        result = await future
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, NamedTuple, Protocol

from neuroscroll.classifier.classifier import (
    FAILED_MODEL_VERSION,
    AIClassificationResult,
    SessionPair,
)
from neuroscroll.classifier.features import extract_features
from neuroscroll.exceptions import ClassificationError
from neuroscroll.models.enums import HealthClassification
from neuroscroll.models.metrics import ComputedMetrics
from neuroscroll.models.session import ViewingSession
from neuroscroll.scheduler.models import (
    AnalysisPriority,
    AnalysisResult,
    QueueStatus,
    ScheduledAnalysis,
    SchedulerConfig,
)
from neuroscroll.scheduler.queue import AnalysisQueue
from neuroscroll.scheduler.transitions import begin_batch, transition_on_failure
from neuroscroll.timeutil import Clock, now_ms

logger = logging.getLogger(__name__)

AnalysisCallback = Callable[[AnalysisResult], Any]


class BatchClassifier(Protocol):
    """What the scheduler needs from a classifier."""

    async def classify_sessions(self, pairs: Sequence[SessionPair]) -> list[AIClassificationResult]: ...

    async def classify_session(self, session: ViewingSession, metrics: ComputedMetrics) -> AIClassificationResult: ...


class _Outcome(NamedTuple):
    success: bool
    result: AIClassificationResult | None
    processing_time: float
    error: str | None = None


class AnalysisScheduler:
    """Explicit service object with an ``init()`` / ``dispose()`` lifecycle."""

    def __init__(
        self,
        classifier: BatchClassifier,
        config: SchedulerConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.classifier = classifier
        self.config = config or SchedulerConfig()
        self._clock = clock
        self._queue = AnalysisQueue()
        self._callbacks: dict[str, AnalysisCallback] = {}
        self._futures: dict[str, asyncio.Future[AnalysisResult]] = {}
        self._is_processing = False
        self._task: asyncio.Task[None] | None = None

    # --- Lifecycle ---

    async def init(self) -> None:
        """Initialize the classifier and start the background tick."""
        if self._task is not None:
            return
        initialize = getattr(self.classifier, "initialize", None)
        if callable(initialize):
            await initialize()
        self._task = asyncio.create_task(self._run(), name="neuroscroll-analysis-tick")
        logger.info(f"Analysis scheduler started (tick every {self.config.tick_interval}s)")

    async def stop_processing(self) -> None:
        """Stop the background tick; queued entries are kept."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def dispose(self) -> None:
        """Stop the tick and drop all queued work, callbacks and futures."""
        await self.stop_processing()
        self.clear_queue()

    async def __aenter__(self) -> AnalysisScheduler:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.dispose()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_interval)
            try:
                await self.process_queue()
            except Exception:
                logger.exception("Error processing analysis queue")

    # --- Scheduling ---

    def schedule_analysis(
        self,
        session: ViewingSession,
        metrics: ComputedMetrics,
        priority: AnalysisPriority | str = AnalysisPriority.NORMAL,
        callback: AnalysisCallback | None = None,
    ) -> asyncio.Future[AnalysisResult]:
        """Queue a session for classification.

        Replaces any queued entry for the same session and overwrites its
        callback. While a result for the session is still outstanding the
        same future is returned, so earlier awaiters see the newer result.
        Must be called from within the running event loop.
        """
        loop = asyncio.get_running_loop()
        priority = AnalysisPriority(priority)
        entry = ScheduledAnalysis(
            session_id=session.id,
            session=session,
            metrics=metrics,
            priority=priority,
            timestamp=self._clock(),
        )
        self._queue.push(entry)

        if callback is not None:
            self._callbacks[session.id] = callback

        future = self._futures.get(session.id)
        if future is None or future.done():
            future = loop.create_future()
            self._futures[session.id] = future

        logger.debug(f"Scheduled AI analysis for session {session.id} with priority {priority.value}")
        return future

    def schedule_real_time_analysis(
        self,
        session: ViewingSession,
        metrics: ComputedMetrics,
        callback: AnalysisCallback | None = None,
    ) -> asyncio.Future[AnalysisResult]:
        """Schedule an active session; always high priority."""
        return self.schedule_analysis(session, metrics, AnalysisPriority.HIGH, callback)

    # --- Processing ---

    async def process_queue(self) -> int:
        """Run one tick. Returns the number of entries taken from the queue."""
        if self._is_processing or len(self._queue) == 0:
            return 0

        self._is_processing = True
        try:
            batch = [begin_batch(e) for e in self._queue.pop_batch(self.config.batch_size, now=self._clock())]
            if not batch:
                return 0

            logger.debug(f"Processing AI analysis batch of {len(batch)} sessions")
            started = time.perf_counter()
            outcomes = await self._process_batch(batch)

            for entry, outcome in zip(batch, outcomes):
                if outcome.success and outcome.result is not None:
                    await self._deliver(
                        AnalysisResult(
                            session_id=entry.session_id,
                            result=outcome.result,
                            processing_time=outcome.processing_time,
                            success=True,
                        )
                    )
                else:
                    await self._handle_failure(entry, outcome.error)

            logger.debug(f"Batch processing completed in {(time.perf_counter() - started) * 1000:.2f}ms")
            return len(batch)
        finally:
            self._is_processing = False

    async def _process_batch(self, batch: list[ScheduledAnalysis]) -> list[_Outcome]:
        pairs = [(entry.session, entry.metrics) for entry in batch]

        try:
            started = time.perf_counter()
            results = await self.classifier.classify_sessions(pairs)
            if len(results) != len(batch):
                raise ClassificationError(f"Classifier returned {len(results)} results for {len(batch)} sessions")
            average = (time.perf_counter() - started) * 1000 / len(batch)
            return [_Outcome(True, result, average) for result in results]
        except Exception as e:
            logger.warning(f"Batch AI classification failed, classifying individually: {e}")

        outcomes: list[_Outcome] = []
        for entry in batch:
            started = time.perf_counter()
            try:
                result = await self.classifier.classify_session(entry.session, entry.metrics)
                outcomes.append(_Outcome(True, result, (time.perf_counter() - started) * 1000))
            except Exception as e:
                outcomes.append(_Outcome(False, None, 0.0, str(e) or type(e).__name__))
        return outcomes

    async def _deliver(self, result: AnalysisResult) -> None:
        callback = self._callbacks.pop(result.session_id, None)
        future = self._futures.pop(result.session_id, None)

        if future is not None and not future.done():
            future.set_result(result)

        if callback is None:
            return
        try:
            outcome = callback(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(f"Analysis callback for session {result.session_id} raised")

    async def _handle_failure(self, entry: ScheduledAnalysis, error: str | None) -> None:
        session_id = entry.session_id
        transition = transition_on_failure(
            entry,
            error,
            now=self._clock(),
            max_retries=self.config.max_retries,
            retry_delay_ms=self.config.retry_delay_ms,
        )

        if transition.should_retry:
            if session_id not in self._futures:
                logger.debug(f"Analysis for session {session_id} was cleared, not retrying")
                return
            if session_id in self._queue:
                logger.debug(f"Newer analysis for session {session_id} already queued, dropping retry")
                return
            self._queue.push(transition.entry)
            logger.info(
                f"Retrying AI analysis for session {session_id} "
                f"(attempt {transition.entry.retry_count}/{self.config.max_retries})"
            )
            return

        logger.error(
            f"AI analysis failed for session {session_id} after {self.config.max_retries} retries: {transition.error}"
        )
        await self._deliver(
            AnalysisResult(
                session_id=session_id,
                result=AIClassificationResult(
                    classification=HealthClassification.UNKNOWN,
                    confidence=0.0,
                    features=extract_features(entry.session, entry.metrics),
                    model_version=FAILED_MODEL_VERSION,
                ),
                processing_time=0.0,
                success=False,
                error=transition.error,
            )
        )

    # --- Introspection and cancellation ---

    def get_queue_status(self) -> QueueStatus:
        counts = self._queue.counts()
        return QueueStatus(
            queue_length=len(self._queue),
            is_processing=self._is_processing,
            high_priority_count=counts[AnalysisPriority.HIGH],
            normal_priority_count=counts[AnalysisPriority.NORMAL],
            low_priority_count=counts[AnalysisPriority.LOW],
        )

    def pending_entries(self) -> list[ScheduledAnalysis]:
        """Snapshot of queued entries in dequeue order."""
        return list(self._queue)

    def clear_queue(self) -> None:
        """Drop every queued entry, callback and outstanding future."""
        self._queue.clear()
        self._callbacks.clear()
        futures, self._futures = self._futures, {}
        for future in futures.values():
            future.cancel()
        logger.info("AI analysis queue cleared")

    def clear_session_analysis(self, session_id: str) -> None:
        """Cancel pending work for one session.

        A batch already handed to the classifier still runs; its result is
        simply not delivered.
        """
        self._queue.remove(session_id)
        self._callbacks.pop(session_id, None)
        future = self._futures.pop(session_id, None)
        if future is not None:
            future.cancel()
