# neuroscroll/tracker.py
"""
SessionTracker - ingestion of interaction events into viewing sessions.

This module ties the pieces together:
- Session lifecycle (start, record interactions, end)
- Real-time metrics while a session runs
- Scheduling classification (high priority while active, normal at the end)
- Merging classification results back into metrics and persisting them
- Recovering recently active sessions after a restart
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from functools import partial
from typing import Any

from pydantic import BaseModel, ValidationError

from neuroscroll.classifier.classifier import AIClassificationResult, SessionClassifier
from neuroscroll.exceptions import InvalidInteractionError, SessionNotFoundError
from neuroscroll.metrics.engine import MetricsEngine
from neuroscroll.models.enums import InteractionAction
from neuroscroll.models.interaction import Interaction
from neuroscroll.models.metrics import ComputedMetrics
from neuroscroll.models.session import ViewingSession
from neuroscroll.scheduler.models import AnalysisPriority, AnalysisResult
from neuroscroll.scheduler.scheduler import AnalysisScheduler, BatchClassifier
from neuroscroll.storage import StorageManager
from neuroscroll.timeutil import Clock, now_ms

logger = logging.getLogger(__name__)


def parse_interaction(data: Interaction | Mapping[str, Any]) -> Interaction:
    """Validate a raw interaction record (camelCase or snake_case keys)."""
    if isinstance(data, Interaction):
        return data
    try:
        return Interaction.model_validate(data)
    except ValidationError as e:
        raise InvalidInteractionError(f"{e.error_count()} validation errors") from e


class TrackerConfig(BaseModel):
    """Ingestion cadence."""

    auto_save_interval_ms: float = 10_000
    realtime_analysis_min_interactions: int = 5
    realtime_analysis_every: int = 10
    recovery_window_ms: float = 5 * 60 * 1000
    auto_create_offset_ms: float = 1000  # auto-created sessions start this long before the first event


class SessionTracker:
    """
    Owns the active sessions and feeds them through metrics and analysis.

    Examples:
        ```python
        tracker = SessionTracker(engine, scheduler=scheduler, storage=storage)
        session = await tracker.start_session()
        await tracker.record_interaction(interaction)
        metrics = await tracker.end_session(session.id)
        ```
    """

    def __init__(
        self,
        engine: MetricsEngine | None = None,
        scheduler: AnalysisScheduler | None = None,
        storage: StorageManager | None = None,
        config: TrackerConfig | None = None,
        clock: Clock = now_ms,
        classifier: BatchClassifier | None = None,
    ) -> None:
        self.engine = engine or MetricsEngine(clock=clock)
        self.scheduler = scheduler
        if classifier is None:
            classifier = scheduler.classifier if scheduler is not None else SessionClassifier()
        self.classifier = classifier
        self.storage = storage
        self.config = config or TrackerConfig()
        self._clock = clock
        self._active: dict[str, ViewingSession] = {}
        self._last_save: dict[str, float] = {}
        self._lock = asyncio.Lock()

    @property
    def active_sessions(self) -> dict[str, ViewingSession]:
        return dict(self._active)

    def get_active_session(self, session_id: str) -> ViewingSession | None:
        return self._active.get(session_id)

    # --- Lifecycle ---

    async def start_session(self, session_id: str | None = None, timestamp: float | None = None) -> ViewingSession:
        """Open a new active session."""
        now = self._clock()
        if session_id is None:
            session_id = f"session_{int(now)}_{uuid.uuid4().hex[:9]}"
        session = ViewingSession(id=session_id, start_time=timestamp if timestamp is not None else now)

        async with self._lock:
            self._active[session_id] = session
        logger.info(f"Session started: {session_id}")
        return session

    async def record_interaction(self, interaction: Interaction | Mapping[str, Any]) -> ComputedMetrics | None:
        """Append an interaction to its session.

        Malformed records are logged and ignored (returns None). Unknown
        session ids get a session created on the fly.
        """
        try:
            interaction = parse_interaction(interaction)
        except InvalidInteractionError as e:
            logger.warning(f"Ignoring invalid interaction: {e}")
            return None

        async with self._lock:
            session = self._active.get(interaction.session_id)
            if session is None:
                logger.warning(f"Session not found, creating new session: {interaction.session_id}")
                session = ViewingSession(
                    id=interaction.session_id,
                    start_time=interaction.timestamp - self.config.auto_create_offset_ms,
                )
                self._active[session.id] = session

            session.add_interaction(interaction)

            if interaction.action in (InteractionAction.LEAVE, InteractionAction.REPLAY):
                session.computed_metrics = self.engine.update_real_time_metrics(session)

                count = len(session.interactions)
                if (
                    count >= self.config.realtime_analysis_min_interactions
                    and count % self.config.realtime_analysis_every == 0
                ):
                    self._schedule(session, AnalysisPriority.HIGH)

        await self._auto_save(session)
        logger.debug(f"Interaction recorded: {interaction.action.value} {interaction.video_id} in {session.id}")
        return session.computed_metrics

    async def end_session(self, session_id: str, timestamp: float | None = None) -> ComputedMetrics:
        """Finalize a session, compute final metrics, schedule analysis and save."""
        async with self._lock:
            session = self._active.pop(session_id, None)
            self._last_save.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)

        session.finalize(timestamp if timestamp is not None else self._clock())
        session.computed_metrics = self.engine.compute_metrics(session)
        self._schedule(session, AnalysisPriority.NORMAL)

        if self.storage is not None and not await self.storage.save_session(session):
            logger.error(f"Failed to save ended session {session_id}")

        logger.info(
            f"Session ended: {session_id} "
            f"({session.computed_metrics.health_classification.value}, {session.computed_metrics.session_archetype.value})"
        )
        return session.computed_metrics

    def get_current_metrics(self, session_id: str) -> ComputedMetrics | None:
        """Live metrics for an active session, or None."""
        session = self._active.get(session_id)
        if session is None:
            return None
        session.computed_metrics = self.engine.update_real_time_metrics(session)
        return session.computed_metrics

    # --- Persistence ---

    async def _auto_save(self, session: ViewingSession, force: bool = False) -> bool:
        if self.storage is None:
            return False

        now = self._clock()
        last = self._last_save.get(session.id)
        if not force and last is not None and now - last <= self.config.auto_save_interval_ms:
            return False

        snapshot = session.model_copy(deep=True)
        if snapshot.interactions:
            snapshot.computed_metrics = self.engine.update_real_time_metrics(snapshot)

        saved = await self.storage.save_session(snapshot)
        if saved:
            self._last_save[session.id] = now
            logger.debug(f"Auto-saved session {session.id} ({len(session.interactions)} interactions)")
        return saved

    async def save_active_sessions(self) -> int:
        """Force-save every active session. Returns how many were saved."""
        saved = 0
        for session in list(self._active.values()):
            if await self._auto_save(session, force=True):
                saved += 1
        return saved

    async def finalize_all(self, timestamp: float | None = None) -> dict[str, ComputedMetrics]:
        """End every active session with final metrics and save it (shutdown).

        No analysis is scheduled for these sessions.
        """
        end_time = timestamp if timestamp is not None else self._clock()
        async with self._lock:
            sessions = list(self._active.values())
            self._active.clear()
            self._last_save.clear()

        finalized: dict[str, ComputedMetrics] = {}
        for session in sessions:
            session.finalize(end_time)
            session.computed_metrics = self.engine.compute_metrics(session)
            finalized[session.id] = session.computed_metrics
            if self.storage is not None and not await self.storage.save_session(session):
                logger.error(f"Failed to save session {session.id} on shutdown")
                continue
            logger.info(f"Finalized session on shutdown: {session.id}")
        return finalized

    async def recover_active_sessions(self) -> int:
        """Reload active sessions started within the recovery window."""
        if self.storage is None:
            return 0

        cutoff = self._clock() - self.config.recovery_window_ms
        recovered = 0
        for session in await self.storage.get_sessions():
            if not session.is_active or session.start_time <= cutoff:
                continue
            async with self._lock:
                self._active.setdefault(session.id, session)
            recovered += 1
            logger.info(f"Recovered active session {session.id} ({len(session.interactions)} interactions)")

        if recovered == 0:
            logger.info("No active sessions to recover")
        return recovered

    # --- Classification ---

    def _schedule(self, session: ViewingSession, priority: AnalysisPriority) -> asyncio.Future[AnalysisResult] | None:
        if self.scheduler is None:
            return None

        snapshot = session.model_copy(deep=True)
        metrics = snapshot.computed_metrics or self.engine.compute_metrics(snapshot)
        return self.scheduler.schedule_analysis(
            snapshot,
            metrics,
            priority,
            callback=partial(self.apply_classification, snapshot, metrics),
        )

    async def apply_classification(
        self,
        session: ViewingSession,
        metrics: ComputedMetrics,
        result: AnalysisResult,
    ) -> ComputedMetrics | None:
        """Merge a scheduled classification into the session's metrics and persist it."""
        if not result.success:
            logger.error(f"AI analysis failed for session {session.id}: {result.error}")
            return None

        updated = await self._merge_classification(session, metrics, result.result)
        logger.info(
            f"AI analysis completed for session {session.id}: "
            f"{result.result.classification.value} ({result.result.confidence * 100:.1f}%)"
        )
        return updated

    async def classify_now(self, session_id: str) -> tuple[AIClassificationResult, ComputedMetrics]:
        """Classify an active or stored session immediately, bypassing the queue."""
        session = self._active.get(session_id)
        if session is not None:
            metrics = self.engine.update_real_time_metrics(session)
        else:
            session = await self.storage.get_session(session_id) if self.storage is not None else None
            if session is None:
                raise SessionNotFoundError(session_id)
            metrics = session.computed_metrics or self.engine.compute_metrics(session)

        result = await self.classifier.classify_session(session, metrics)
        updated = await self._merge_classification(session, metrics, result)
        logger.info(f"Classified session {session_id} on demand: {result.classification.value}")
        return result, updated

    async def _merge_classification(
        self,
        session: ViewingSession,
        metrics: ComputedMetrics,
        result: AIClassificationResult,
    ) -> ComputedMetrics:
        updated = metrics.model_copy(
            update={
                "health_classification": result.classification,
                "confidence": result.confidence,
            }
        )

        # The live session may hold interactions newer than the scheduled snapshot
        active = self._active.get(session.id)
        if active is not None:
            active.computed_metrics = updated
            record = active.model_copy(deep=True)
        else:
            record = session.model_copy(update={"computed_metrics": updated})

        if self.storage is not None and not await self.storage.save_session(record):
            logger.error(f"Failed to save classified session {session.id}")
        return updated
