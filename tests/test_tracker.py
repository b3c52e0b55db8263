# tests/test_tracker.py
"""
Tests for SessionTracker.

Covers:
- Session lifecycle and interaction ingestion
- Real-time and end-of-session analysis scheduling
- Classification results merged back into stored metrics
- Auto-save throttling and recovery of active sessions
"""

from unittest.mock import MagicMock

import pytest

from neuroscroll.classifier import AIClassificationResult, SessionClassifier, SessionFeatures
from neuroscroll.exceptions import InvalidInteractionError, SessionNotFoundError
from neuroscroll.metrics import MetricsEngine
from neuroscroll.models import ComputedMetrics, HealthClassification, InteractionAction
from neuroscroll.scheduler import AnalysisPriority, AnalysisResult, AnalysisScheduler
from neuroscroll.storage import StorageManager
from neuroscroll.tracker import SessionTracker, TrackerConfig, parse_interaction


class StubClassifier:
    async def classify_sessions(self, pairs):
        return [self._result() for _ in pairs]

    async def classify_session(self, session, metrics):
        return self._result()

    def _result(self):
        return AIClassificationResult(
            classification=HealthClassification.DOOMSCROLL,
            confidence=0.92,
            features=SessionFeatures(),
            model_version="stub",
        )


@pytest.fixture
def storage(clock):
    return StorageManager(clock=clock)


@pytest.fixture
def scheduler(clock):
    return AnalysisScheduler(StubClassifier(), clock=clock)


@pytest.fixture
def tracker(clock, storage, scheduler):
    return SessionTracker(MetricsEngine(clock=clock), scheduler=scheduler, storage=storage, clock=clock)


def _raw(i, action, video_id="video-0", session_id="session-1", timestamp=None, **metadata):
    return {
        "id": f"i{i}",
        "videoId": video_id,
        "sessionId": session_id,
        "timestamp": timestamp,
        "action": action,
        "metadata": metadata,
    }


async def _watch(tracker, clock, videos, dwell_ms=8000, session_id="session-1", start=0):
    """Record enter/leave pairs for ``videos`` videos."""
    for n in range(start, start + videos):
        await tracker.record_interaction(_raw(2 * n, "enter", f"video-{n}", session_id, clock.now))
        clock.advance(dwell_ms)
        await tracker.record_interaction(
            _raw(2 * n + 1, "leave", f"video-{n}", session_id, clock.now, dwellTime=dwell_ms)
        )


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_session_generates_id(self, tracker, clock):
        session = await tracker.start_session()
        assert session.id.startswith("session_")
        assert session.is_active
        assert session.start_time == clock.now
        assert tracker.get_active_session(session.id) is session

    @pytest.mark.asyncio
    async def test_start_session_with_explicit_id(self, tracker):
        session = await tracker.start_session("abc", timestamp=1234.0)
        assert session.id == "abc"
        assert session.start_time == 1234.0

    @pytest.mark.asyncio
    async def test_end_session(self, tracker, storage, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=3)

        metrics = await tracker.end_session("session-1")

        assert metrics.attention_span == pytest.approx(8.0)
        assert tracker.get_active_session("session-1") is None
        stored = await storage.get_session("session-1")
        assert stored.is_active is False
        assert stored.end_time == clock.now
        assert stored.computed_metrics.attention_span == pytest.approx(8.0)

    @pytest.mark.asyncio
    async def test_end_unknown_session(self, tracker):
        with pytest.raises(SessionNotFoundError) as exc_info:
            await tracker.end_session("ghost")
        assert exc_info.value.session_id == "ghost"


class TestRecordInteraction:
    @pytest.mark.asyncio
    async def test_appends_and_tracks_totals(self, tracker, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=2)

        session = tracker.get_active_session("session-1")
        assert len(session.interactions) == 4
        assert session.video_count == 2
        assert session.total_dwell_time == 16_000

    @pytest.mark.asyncio
    async def test_leave_updates_real_time_metrics(self, tracker, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        metrics = await tracker.record_interaction(_raw(0, "enter", timestamp=clock.now))
        assert metrics is None

        clock.advance(6000)
        metrics = await tracker.record_interaction(_raw(1, "leave", timestamp=clock.now, dwellTime=6000))
        assert metrics.attention_span == pytest.approx(6.0)
        assert metrics.confidence == pytest.approx(0.6)
        assert metrics.session_length == pytest.approx(0.1)

    @pytest.mark.asyncio
    async def test_invalid_records_are_ignored(self, tracker, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        assert await tracker.record_interaction({"id": "broken"}) is None
        assert await tracker.record_interaction(_raw(0, "teleport", timestamp=clock.now)) is None
        assert await tracker.record_interaction("not a record") is None
        assert tracker.get_active_session("session-1").interactions == []

    @pytest.mark.asyncio
    async def test_unknown_session_is_created(self, tracker, clock):
        await tracker.record_interaction(_raw(0, "enter", session_id="fresh", timestamp=clock.now))
        session = tracker.get_active_session("fresh")
        assert session is not None
        assert session.start_time == clock.now - 1000
        assert session.interactions[0].action == InteractionAction.ENTER

    @pytest.mark.asyncio
    async def test_accepts_model_instances(self, tracker, make_interaction, clock):
        await tracker.record_interaction(make_interaction("enter", timestamp=clock.now))
        assert len(tracker.get_active_session("session-1").interactions) == 1


class TestAnalysisScheduling:
    @pytest.mark.asyncio
    async def test_every_tenth_interaction_schedules_high_priority(self, tracker, scheduler, clock):
        await tracker.start_session("session-1", timestamp=clock.now)

        await _watch(tracker, clock, videos=4)
        assert scheduler.get_queue_status().queue_length == 0

        await _watch(tracker, clock, videos=1, start=4)
        status = scheduler.get_queue_status()
        assert status.queue_length == 1
        assert status.high_priority_count == 1

    @pytest.mark.asyncio
    async def test_end_session_schedules_normal_priority(self, tracker, scheduler, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=2)

        await tracker.end_session("session-1")

        status = scheduler.get_queue_status()
        assert status.queue_length == 1
        assert status.normal_priority_count == 1

    @pytest.mark.asyncio
    async def test_end_session_hands_final_snapshot_to_scheduler(self, clock, storage):
        scheduler = MagicMock()
        tracker = SessionTracker(scheduler=scheduler, storage=storage, clock=clock)
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=2)

        await tracker.end_session("session-1")

        scheduler.schedule_analysis.assert_called_once()
        session, metrics, priority = scheduler.schedule_analysis.call_args.args
        assert priority == AnalysisPriority.NORMAL
        assert session.is_active is False
        assert session.end_time == clock.now
        assert metrics.attention_span == pytest.approx(8.0)
        assert callable(scheduler.schedule_analysis.call_args.kwargs["callback"])

    @pytest.mark.asyncio
    async def test_classification_is_merged_and_persisted(self, tracker, scheduler, storage, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=3)
        await tracker.end_session("session-1")

        await scheduler.process_queue()

        stored = await storage.get_session("session-1")
        assert stored.computed_metrics.health_classification == HealthClassification.DOOMSCROLL
        assert stored.computed_metrics.confidence == pytest.approx(0.92)
        assert stored.computed_metrics.attention_span == pytest.approx(8.0)

    @pytest.mark.asyncio
    async def test_active_session_receives_classification(self, tracker, scheduler, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=5)

        await scheduler.process_queue()

        metrics = tracker.get_active_session("session-1").computed_metrics
        assert metrics.health_classification == HealthClassification.DOOMSCROLL

    @pytest.mark.asyncio
    async def test_late_result_keeps_newer_interactions(self, tracker, scheduler, storage, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=5)
        assert scheduler.get_queue_status().high_priority_count == 1

        await tracker.record_interaction(_raw(10, "enter", "video-5", timestamp=clock.now))
        clock.advance(5000)
        await tracker.record_interaction(_raw(11, "leave", "video-5", timestamp=clock.now, dwellTime=5000))
        clock.advance(10_001)
        await tracker.record_interaction(_raw(12, "enter", "video-6", timestamp=clock.now))
        assert len((await storage.get_session("session-1")).interactions) == 13

        assert await scheduler.process_queue() == 1

        stored = await storage.get_session("session-1")
        assert len(stored.interactions) == 13
        assert stored.computed_metrics.health_classification == HealthClassification.DOOMSCROLL
        assert len(tracker.get_active_session("session-1").interactions) == 13

    @pytest.mark.asyncio
    async def test_failed_result_is_not_applied(self, tracker, make_session, storage):
        session = make_session([10])
        result = AnalysisResult(
            session_id=session.id,
            result=StubClassifier()._result(),
            success=False,
            error="Max retries exceeded",
        )
        assert await tracker.apply_classification(session, ComputedMetrics(), result) is None
        assert await storage.get_session(session.id) is None

    @pytest.mark.asyncio
    async def test_works_without_scheduler(self, clock, storage):
        tracker = SessionTracker(storage=storage, clock=clock)
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=5)
        metrics = await tracker.end_session("session-1")
        assert metrics.attention_span == pytest.approx(8.0)


class TestPersistence:
    @pytest.mark.asyncio
    async def test_auto_save_is_throttled(self, tracker, storage, clock):
        await tracker.start_session("session-1", timestamp=clock.now)

        await tracker.record_interaction(_raw(0, "enter", "video-0", timestamp=clock.now))
        await tracker.record_interaction(_raw(1, "enter", "video-1", timestamp=clock.now))
        assert len((await storage.get_session("session-1")).interactions) == 1

        clock.advance(10_001)
        await tracker.record_interaction(_raw(2, "enter", "video-2", timestamp=clock.now))
        stored = await storage.get_session("session-1")
        assert len(stored.interactions) == 3
        assert stored.is_active

    @pytest.mark.asyncio
    async def test_save_active_sessions(self, tracker, storage, clock):
        await tracker.start_session("a", timestamp=clock.now)
        await tracker.start_session("b", timestamp=clock.now)
        assert await tracker.save_active_sessions() == 2
        assert {s.id for s in await storage.get_sessions()} == {"a", "b"}

    @pytest.mark.asyncio
    async def test_recover_active_sessions(self, storage, clock, make_session):
        await storage.save_session(make_session([10], session_id="recent", start_time=clock.now - 60_000, ended=False))
        await storage.save_session(make_session([10], session_id="stale", start_time=clock.now - 600_000, ended=False))
        await storage.save_session(make_session([10], session_id="ended", start_time=clock.now - 60_000))

        tracker = SessionTracker(storage=storage, clock=clock)

        assert await tracker.recover_active_sessions() == 1
        assert set(tracker.active_sessions) == {"recent"}

    @pytest.mark.asyncio
    async def test_recover_without_storage(self, clock):
        assert await SessionTracker(clock=clock).recover_active_sessions() == 0

    @pytest.mark.asyncio
    async def test_custom_cadence(self, clock, storage):
        config = TrackerConfig(auto_save_interval_ms=0)
        tracker = SessionTracker(storage=storage, config=config, clock=clock)
        await tracker.start_session("session-1", timestamp=clock.now)
        await tracker.record_interaction(_raw(0, "enter", "video-0", timestamp=clock.now))
        clock.advance(1)
        await tracker.record_interaction(_raw(1, "enter", "video-1", timestamp=clock.now))
        assert len((await storage.get_session("session-1")).interactions) == 2


    @pytest.mark.asyncio
    async def test_finalize_all(self, tracker, scheduler, storage, clock):
        await tracker.start_session("a", timestamp=clock.now)
        await tracker.start_session("b", timestamp=clock.now)
        await _watch(tracker, clock, videos=2, session_id="a")
        await _watch(tracker, clock, videos=1, session_id="b", start=2)
        clock.advance(1000)

        finalized = await tracker.finalize_all()

        assert set(finalized) == {"a", "b"}
        assert finalized["a"].attention_span == pytest.approx(8.0)
        assert tracker.active_sessions == {}
        for session_id in ("a", "b"):
            stored = await storage.get_session(session_id)
            assert stored.is_active is False
            assert stored.end_time == clock.now
            assert stored.computed_metrics.attention_span == pytest.approx(8.0)
        assert scheduler.get_queue_status().queue_length == 0

    @pytest.mark.asyncio
    async def test_finalize_all_with_explicit_timestamp(self, clock):
        tracker = SessionTracker(clock=clock)
        await tracker.start_session("a", timestamp=clock.now)
        await tracker.finalize_all(timestamp=clock.now + 42)
        assert tracker.active_sessions == {}


class TestClassifyNow:
    @pytest.mark.asyncio
    async def test_active_session(self, tracker, storage, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=3)

        result, metrics = await tracker.classify_now("session-1")

        assert result.model_version == "stub"
        assert metrics.health_classification == HealthClassification.DOOMSCROLL
        assert metrics.confidence == pytest.approx(0.92)
        assert metrics.attention_span == pytest.approx(8.0)
        assert tracker.get_active_session("session-1").computed_metrics == metrics
        stored = await storage.get_session("session-1")
        assert len(stored.interactions) == 6
        assert stored.computed_metrics.confidence == pytest.approx(0.92)

    @pytest.mark.asyncio
    async def test_stored_session(self, storage, clock, make_session):
        await storage.save_session(make_session([20, 15, 10, 8, 5]))
        tracker = SessionTracker(storage=storage, clock=clock, classifier=StubClassifier())

        _, metrics = await tracker.classify_now("session-1")

        assert metrics.health_classification == HealthClassification.DOOMSCROLL
        stored = await storage.get_session("session-1")
        assert stored.is_active is False
        assert stored.computed_metrics.health_classification == HealthClassification.DOOMSCROLL
        assert stored.computed_metrics.attention_span == pytest.approx(metrics.attention_span)

    @pytest.mark.asyncio
    async def test_unknown_session(self, tracker):
        with pytest.raises(SessionNotFoundError):
            await tracker.classify_now("ghost")

    def test_classifier_defaults(self, clock, scheduler):
        assert SessionTracker(scheduler=scheduler, clock=clock).classifier is scheduler.classifier
        assert isinstance(SessionTracker(clock=clock).classifier, SessionClassifier)


class TestCurrentMetrics:
    @pytest.mark.asyncio
    async def test_unknown_session(self, tracker):
        assert tracker.get_current_metrics("ghost") is None

    @pytest.mark.asyncio
    async def test_live_length(self, tracker, clock):
        await tracker.start_session("session-1", timestamp=clock.now)
        await _watch(tracker, clock, videos=1)
        clock.advance(52_000)
        metrics = tracker.get_current_metrics("session-1")
        assert metrics.session_length == pytest.approx(1.0)


class TestParseInteraction:
    def test_accepts_camel_case_record(self):
        interaction = parse_interaction(
            {
                "id": "i-1",
                "videoId": "v1",
                "sessionId": "s1",
                "timestamp": 1_700_000_000_000,
                "action": "leave",
                "metadata": {"dwellTime": 4200, "videoOrder": 3},
            }
        )
        assert interaction.action == InteractionAction.LEAVE
        assert interaction.dwell_time_ms == 4200
        assert interaction.metadata.video_order == 3

    def test_passes_models_through(self, make_interaction):
        interaction = make_interaction()
        assert parse_interaction(interaction) is interaction

    def test_unknown_action_raises(self):
        with pytest.raises(InvalidInteractionError):
            parse_interaction(
                {"id": "i-1", "videoId": "v1", "sessionId": "s1", "timestamp": 1, "action": "swipe"}
            )

    def test_non_positive_timestamp_raises(self):
        with pytest.raises(InvalidInteractionError):
            parse_interaction({"id": "i-1", "videoId": "v1", "sessionId": "s1", "timestamp": 0, "action": "enter"})
