# neuroscroll/metrics/engine.py
"""
Metrics engine: session -> ComputedMetrics.

Every public calculation is total. Malformed sessions and degenerate
arithmetic resolve to zero/default values; nothing is raised to the caller.

Usage::

    engine = MetricsEngine()
    metrics = engine.compute_metrics(session)

    # While the session is still running
    live = engine.update_real_time_metrics(session)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

from pydantic import BaseModel, Field

from neuroscroll.config import DEFAULT_EWMA_ALPHA
from neuroscroll.metrics.numeric import (
    clamp,
    ewma,
    finite_or_zero,
    is_finite_number,
    linear_regression_slope,
    mean,
    pstdev,
    safe_div,
)
from neuroscroll.metrics.rules import (
    ArchetypeThresholds,
    HealthThresholds,
    analyze_session_health,
    classify_session_archetype,
)
from neuroscroll.models.enums import InteractionAction
from neuroscroll.models.interaction import Interaction
from neuroscroll.models.metrics import BingeBurst, ComputedMetrics, FatiguePoint
from neuroscroll.models.session import ViewingSession
from neuroscroll.timeutil import Clock, now_ms, to_local_datetime

logger = logging.getLogger(__name__)


class MetricsConfig(BaseModel):
    """Tunable constants of the metric formulas."""

    ewma_alpha: float = Field(default=DEFAULT_EWMA_ALPHA, gt=0, le=1)
    quick_skip_seconds: float = 3.0
    binge_dwell_seconds: float = 5.0
    min_binge_length: int = Field(default=5, ge=1)
    rapid_transition_ms: float = 2000.0
    half_life_window: int = Field(default=3, ge=1)
    min_habit_samples: int = 3

    # Late-night window [start, end), local hours
    circadian_start_hour: int = Field(default=23, ge=0, le=23)
    circadian_end_hour: int = Field(default=6, ge=0, le=23)

    default_confidence: float = 0.8
    realtime_confidence_penalty: float = 0.2
    realtime_confidence_floor: float = 0.3

    health: HealthThresholds = Field(default_factory=HealthThresholds)
    archetype: ArchetypeThresholds = Field(default_factory=ArchetypeThresholds)


class DwellSample(NamedTuple):
    seconds: float
    timestamp: float


def _is_leave_with_dwell(interaction: Interaction) -> bool:
    dwell = interaction.metadata.dwell_time
    return interaction.action == InteractionAction.LEAVE and is_finite_number(dwell) and dwell > 0


def extract_dwell_samples(interactions: Sequence[Interaction]) -> list[DwellSample]:
    """Dwell times (seconds) of leave events that recorded a usable value."""
    return [
        DwellSample(seconds=i.metadata.dwell_time / 1000.0, timestamp=i.timestamp)
        for i in interactions
        if _is_leave_with_dwell(i)
    ]


def calculate_fatigue_slope(fatigue_points: Sequence[FatiguePoint]) -> float:
    """Slope of dwell time over video order; negative means attention decays."""
    if len(fatigue_points) < 2:
        return 0.0
    return linear_regression_slope(
        [float(p.video_order) for p in fatigue_points],
        [p.dwell_time for p in fatigue_points],
    )


class MetricsEngine:
    """Computes behavioural metrics for viewing sessions."""

    def __init__(self, config: MetricsConfig | None = None, clock: Clock = now_ms) -> None:
        self.config = config or MetricsConfig()
        self._clock = clock

    def _now(self) -> float:
        now = self._clock()
        return float(now) if is_finite_number(now) and now >= 0 else 0.0

    # --- Entry points ---

    def compute_metrics(self, session: Any) -> ComputedMetrics:
        """Compute all metrics for a session. Never raises."""
        now = self._now()
        coerced = ViewingSession.coerce(session)
        if coerced is None:
            logger.warning("Invalid session data, returning default metrics")
            return ComputedMetrics.default(timestamp=now)
        if not coerced.interactions:
            return ComputedMetrics.default(timestamp=now)

        try:
            return self._compute(coerced, now)
        except Exception:
            logger.exception(f"Error computing metrics for session {coerced.id}")
            return ComputedMetrics.default(timestamp=now)

    def update_real_time_metrics(self, session: Any) -> ComputedMetrics:
        """Recompute for a possibly still-running session.

        Active sessions are measured up to now and carry reduced confidence.
        """
        cfg = self.config
        now = self._now()
        metrics = self.compute_metrics(session)
        coerced = ViewingSession.coerce(session)

        if coerced is None or not coerced.interactions:
            return metrics
        if coerced.is_active:
            metrics = metrics.model_copy(
                update={
                    "session_length": max(0.0, finite_or_zero((now - coerced.start_time) / 60000.0)),
                    "confidence": max(
                        cfg.realtime_confidence_floor,
                        metrics.confidence - cfg.realtime_confidence_penalty,
                    ),
                }
            )

        return self._with_labels(metrics)

    def _compute(self, session: ViewingSession, now: float) -> ComputedMetrics:
        interactions = session.interactions
        samples = extract_dwell_samples(interactions)
        dwell_times = [s.seconds for s in samples]

        session_length = max(0.0, finite_or_zero(session.duration_minutes(now)))
        fatigue_points = self.generate_fatigue_points(interactions)

        metrics = ComputedMetrics(
            dopamine_spike_index=self.dopamine_spike_index(interactions, dwell_times),
            attention_span=self.attention_span(dwell_times),
            replay_sensitivity=self.replay_sensitivity(interactions),
            session_length=session_length,
            fatigue_points=fatigue_points,
            circadian_drift=self.detect_circadian_drift(session.start_time, session_length),
            confidence=self.config.default_confidence,
            timestamp=now,
            scroll_momentum=self.scroll_momentum(dwell_times),
            reward_variability=self.reward_variability(dwell_times),
            binge_bursts=self.detect_binge_bursts(samples),
            engagement_half_life=self.engagement_half_life(fatigue_points),
            cognitive_load=self.cognitive_load(interactions),
            habit_strength=self.habit_strength(dwell_times),
            novelty_bias=self.novelty_bias(interactions),
        )
        return self._with_labels(metrics)

    def _with_labels(self, metrics: ComputedMetrics) -> ComputedMetrics:
        return metrics.model_copy(
            update={
                "health_classification": analyze_session_health(metrics, self.config.health),
                "session_archetype": classify_session_archetype(metrics, self.config.archetype),
            }
        )

    # --- Individual metrics ---

    def dopamine_spike_index(self, interactions: Sequence[Interaction], dwell_times: Sequence[float]) -> float:
        """Videos entered per second of average dwell."""
        enters = sum(1 for i in interactions if i.action == InteractionAction.ENTER)
        if enters == 0 or not dwell_times:
            return 0.0
        return max(0.0, safe_div(enters, mean(dwell_times)))

    def attention_span(self, dwell_times: Sequence[float]) -> float:
        """EWMA of dwell times in seconds."""
        return max(0.0, ewma(dwell_times, self.config.ewma_alpha))

    def replay_sensitivity(self, interactions: Sequence[Interaction]) -> int:
        return sum(1 for i in interactions if i.action == InteractionAction.REPLAY)

    def generate_fatigue_points(self, interactions: Sequence[Interaction]) -> list[FatiguePoint]:
        """One point per completed video, ordered by first-enter order."""
        order: dict[str, int] = {}
        for interaction in interactions:
            if interaction.action == InteractionAction.ENTER and interaction.video_id not in order:
                order[interaction.video_id] = len(order)

        points = [
            FatiguePoint(
                video_order=order[i.video_id],
                dwell_time=i.metadata.dwell_time / 1000.0,
                timestamp=i.timestamp,
            )
            for i in interactions
            if _is_leave_with_dwell(i) and i.video_id in order
        ]
        points.sort(key=lambda p: p.video_order)
        return points

    def _in_circadian_window(self, hour: int) -> bool:
        start, end = self.config.circadian_start_hour, self.config.circadian_end_hour
        if start > end:
            return hour >= start or hour < end
        return start <= hour < end

    def detect_circadian_drift(self, start_time: float, session_length_minutes: float) -> bool:
        """True if any part of the session falls in the late-night window."""
        start = to_local_datetime(start_time)
        if start is None:
            return False
        if self._in_circadian_window(start.hour):
            return True

        length_ms = max(0.0, finite_or_zero(session_length_minutes)) * 60000.0
        end = to_local_datetime(start_time + length_ms)
        if end is None:
            return False
        if self._in_circadian_window(end.hour):
            return True

        # Start is outside the window, so reaching tonight's window start means
        # the session covered it (possibly entirely).
        window_start = start.replace(
            hour=self.config.circadian_start_hour, minute=0, second=0, microsecond=0
        )
        return start < window_start <= end

    def scroll_momentum(self, dwell_times: Sequence[float]) -> float:
        """Share of videos skipped faster than the quick-skip threshold."""
        if not dwell_times:
            return 0.0
        quick = sum(1 for t in dwell_times if t < self.config.quick_skip_seconds)
        return clamp(safe_div(quick, len(dwell_times)))

    def reward_variability(self, dwell_times: Sequence[float]) -> float:
        return pstdev(dwell_times)

    def detect_binge_bursts(self, samples: Sequence[DwellSample]) -> list[BingeBurst]:
        """Maximal runs of consecutive short dwell times."""
        cfg = self.config
        bursts: list[BingeBurst] = []
        run: list[DwellSample] = []
        run_start = 0

        def close_run() -> None:
            if len(run) >= cfg.min_binge_length:
                bursts.append(
                    BingeBurst(
                        start_index=run_start,
                        end_index=run_start + len(run) - 1,
                        length=len(run),
                        average_dwell_time=mean([s.seconds for s in run]),
                        timestamp=run[0].timestamp,
                    )
                )

        for index, sample in enumerate(samples):
            if sample.seconds < cfg.binge_dwell_seconds:
                if not run:
                    run_start = index
                run.append(sample)
            else:
                close_run()
                run = []

        close_run()
        return bursts

    def engagement_half_life(self, fatigue_points: Sequence[FatiguePoint]) -> float:
        """Video order at which smoothed dwell falls to half the opening level."""
        window = self.config.half_life_window
        if len(fatigue_points) < window:
            return 0.0

        points = sorted(fatigue_points, key=lambda p: p.video_order)
        initial = mean([p.dwell_time for p in points[:window]])
        half = initial / 2

        for i in range(window, len(points)):
            current = mean([p.dwell_time for p in points[i - window + 1 : i + 1]])
            if current <= half:
                return float(points[i].video_order)

        return float(points[-1].video_order)

    def cognitive_load(self, interactions: Sequence[Interaction]) -> float:
        """(scrolls + rapid transitions) / all interactions."""
        if not interactions:
            return 0.0
        scrolls = sum(1 for i in interactions if i.action == InteractionAction.SCROLL)
        rapid = sum(
            1
            for i in interactions
            if _is_leave_with_dwell(i) and i.metadata.dwell_time < self.config.rapid_transition_ms
        )
        return clamp(safe_div(scrolls + rapid, len(interactions)))

    def habit_strength(self, dwell_times: Sequence[float]) -> float:
        """1 - coefficient of variation, floored at 0."""
        if len(dwell_times) < self.config.min_habit_samples:
            return 0.0
        mu = mean(dwell_times)
        if mu == 0:
            return 0.0
        return clamp(1 - safe_div(pstdev(dwell_times), mu))

    def novelty_bias(self, interactions: Sequence[Interaction]) -> float:
        """Distinct videos entered / enter events."""
        entered = [i.video_id for i in interactions if i.action == InteractionAction.ENTER]
        if not entered:
            return 0.0
        return clamp(safe_div(len(set(entered)), len(entered)))


_default_engine = MetricsEngine()


def compute_metrics(session: Any) -> ComputedMetrics:
    """Compute metrics with the default configuration."""
    return _default_engine.compute_metrics(session)


def update_real_time_metrics(session: Any) -> ComputedMetrics:
    return _default_engine.update_real_time_metrics(session)
