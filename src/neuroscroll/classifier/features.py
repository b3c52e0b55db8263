# neuroscroll/classifier/features.py
"""Feature extraction and normalization for session classification."""

from __future__ import annotations

from pydantic import BaseModel

from neuroscroll.metrics.engine import calculate_fatigue_slope
from neuroscroll.metrics.numeric import clamp, finite_or_zero, safe_div
from neuroscroll.models.metrics import ComputedMetrics
from neuroscroll.models.session import ViewingSession
from neuroscroll.timeutil import local_hour

# Order of the normalized vector handed to the prediction model
FEATURE_NAMES: tuple[str, ...] = (
    "session_length",
    "attention_span",
    "dopamine_spike_index",
    "replay_sensitivity",
    "fatigue_slope",
    "circadian_drift",
    "video_count",
    "time_of_day",
    "scroll_momentum",
    "reward_variability",
    "binge_bursts",
    "engagement_half_life",
)


class SessionFeatures(BaseModel):
    """Raw (unscaled) model inputs derived from a session and its metrics."""

    session_length: float = 0.0  # minutes
    attention_span: float = 0.0  # seconds
    dopamine_spike_index: float = 0.0
    replay_sensitivity: float = 0.0
    fatigue_slope: float = 0.0
    circadian_drift: float = 0.0  # 0 or 1
    video_count: float = 0.0
    time_of_day: float = 0.0  # local start hour, 0-23
    scroll_momentum: float = 0.0
    reward_variability: float = 0.0  # seconds
    binge_bursts: float = 0.0  # count
    engagement_half_life: float = 0.0  # videos


class FeatureScaling(BaseModel):
    """Caps used to scale each feature into [0, 1]."""

    session_length_cap: float = 200.0
    attention_span_cap: float = 100.0
    dopamine_spike_cap: float = 10.0
    replay_cap: float = 20.0
    fatigue_slope_min: float = -2.0
    fatigue_slope_max: float = 2.0
    video_count_cap: float = 400.0
    hours_per_day: float = 24.0
    reward_variability_cap: float = 40.0
    binge_bursts_cap: float = 10.0
    half_life_cap: float = 50.0


def extract_features(session: ViewingSession, metrics: ComputedMetrics) -> SessionFeatures:
    """Build the feature record. Total: unusable inputs become 0."""
    hour = local_hour(session.start_time)

    return SessionFeatures(
        session_length=finite_or_zero(metrics.session_length),
        attention_span=finite_or_zero(metrics.attention_span),
        dopamine_spike_index=finite_or_zero(metrics.dopamine_spike_index),
        replay_sensitivity=finite_or_zero(metrics.replay_sensitivity),
        fatigue_slope=finite_or_zero(calculate_fatigue_slope(metrics.fatigue_points)),
        circadian_drift=1.0 if metrics.circadian_drift else 0.0,
        video_count=finite_or_zero(session.video_count),
        time_of_day=float(hour) if hour is not None else 0.0,
        scroll_momentum=finite_or_zero(metrics.scroll_momentum),
        reward_variability=finite_or_zero(metrics.reward_variability),
        binge_bursts=float(len(metrics.binge_bursts)),
        engagement_half_life=finite_or_zero(metrics.engagement_half_life),
    )


def normalize_features(features: SessionFeatures, scaling: FeatureScaling | None = None) -> list[float]:
    """Scale features into [0, 1], in ``FEATURE_NAMES`` order.

    Values beyond a cap are clamped, not rejected.
    """
    s = scaling or FeatureScaling()
    slope_span = s.fatigue_slope_max - s.fatigue_slope_min

    return [
        clamp(safe_div(features.session_length, s.session_length_cap)),
        clamp(safe_div(features.attention_span, s.attention_span_cap)),
        clamp(safe_div(features.dopamine_spike_index, s.dopamine_spike_cap)),
        clamp(safe_div(features.replay_sensitivity, s.replay_cap)),
        clamp(safe_div(features.fatigue_slope - s.fatigue_slope_min, slope_span)),
        clamp(features.circadian_drift),
        clamp(safe_div(features.video_count, s.video_count_cap)),
        clamp(safe_div(features.time_of_day, s.hours_per_day)),
        clamp(features.scroll_momentum),
        clamp(safe_div(features.reward_variability, s.reward_variability_cap)),
        clamp(safe_div(features.binge_bursts, s.binge_bursts_cap)),
        clamp(safe_div(features.engagement_half_life, s.half_life_cap)),
    ]
