# neuroscroll/models/metrics.py
"""Derived metric snapshots."""

from __future__ import annotations

from pydantic import Field

from neuroscroll.base_models import CamelModel
from neuroscroll.models.enums import HealthClassification, SessionArchetype


class FatiguePoint(CamelModel):
    """Dwell time (seconds) of one completed video, by first-enter order."""

    video_order: int
    dwell_time: float
    timestamp: float


class BingeBurst(CamelModel):
    """A maximal run of consecutive very short dwell times."""

    start_index: int
    end_index: int
    length: int = Field(ge=1)
    average_dwell_time: float
    timestamp: float


class ComputedMetrics(CamelModel):
    """Immutable snapshot of everything derived from a session.

    Lengths are minutes, spans and dwell times seconds. Recompute rather than
    mutate: use ``model_copy(update=...)`` to derive an adjusted snapshot.
    """

    dopamine_spike_index: float = 0.0
    attention_span: float = 0.0
    replay_sensitivity: int = 0
    session_length: float = 0.0
    fatigue_points: list[FatiguePoint] = Field(default_factory=list)
    circadian_drift: bool = False
    health_classification: HealthClassification = HealthClassification.UNKNOWN
    confidence: float = 0.0
    timestamp: float = 0.0

    # Advanced behavioural metrics
    scroll_momentum: float = 0.0
    reward_variability: float = 0.0
    binge_bursts: list[BingeBurst] = Field(default_factory=list)
    engagement_half_life: float = 0.0
    cognitive_load: float = 0.0
    habit_strength: float = 0.0
    novelty_bias: float = 0.0
    session_archetype: SessionArchetype = SessionArchetype.UNKNOWN

    @classmethod
    def default(cls, timestamp: float = 0.0) -> ComputedMetrics:
        """All-zero metrics with an unknown classification."""
        return cls(timestamp=timestamp)
