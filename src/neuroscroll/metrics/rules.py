# neuroscroll/metrics/rules.py
"""
Rule tables evaluated over a finished metrics snapshot.

- analyze_session_health: preliminary healthy/doomscroll vote, used until (or
  instead of) a model classification.
- classify_session_archetype: explorer / sampler / doomscroller.
"""

from __future__ import annotations

from pydantic import BaseModel

from neuroscroll.models.enums import HealthClassification, SessionArchetype
from neuroscroll.models.metrics import ComputedMetrics


class HealthThresholds(BaseModel):
    """Indicator thresholds for the preliminary health vote."""

    # Healthy indicators
    moderate_attention_min: float = 10.0  # seconds
    moderate_attention_max: float = 120.0
    low_spike_max: float = 2.0
    low_replay_max: int = 5
    reasonable_length_max: float = 60.0  # minutes

    # Doomscroll indicators
    short_attention_max: float = 5.0
    high_spike_min: float = 5.0
    high_replay_min: int = 10
    long_session_min: float = 120.0

    votes_required: int = 3


class ArchetypeThresholds(BaseModel):
    """Boundaries of the archetype rule table."""

    min_session_minutes: float = 0.5
    high_attention_min: float = 15.0  # attention > this is high
    low_attention_max: float = 8.0  # attention <= this is low
    low_momentum_max: float = 0.3
    high_momentum_min: float = 0.6
    many_bursts_min: int = 2


def analyze_session_health(
    metrics: ComputedMetrics,
    thresholds: HealthThresholds | None = None,
) -> HealthClassification:
    """Count healthy vs doomscroll indicators; three of a kind decides."""
    t = thresholds or HealthThresholds()

    healthy = sum(
        [
            t.moderate_attention_min < metrics.attention_span < t.moderate_attention_max,
            metrics.dopamine_spike_index < t.low_spike_max,
            metrics.replay_sensitivity < t.low_replay_max,
            metrics.session_length < t.reasonable_length_max,
            not metrics.circadian_drift,
        ]
    )
    doomscroll = sum(
        [
            metrics.attention_span < t.short_attention_max,
            metrics.dopamine_spike_index > t.high_spike_min,
            metrics.replay_sensitivity > t.high_replay_min,
            metrics.session_length > t.long_session_min,
            metrics.circadian_drift,
        ]
    )

    if healthy >= t.votes_required:
        return HealthClassification.HEALTHY
    if doomscroll >= t.votes_required:
        return HealthClassification.DOOMSCROLL
    return HealthClassification.UNKNOWN


def classify_session_archetype(
    metrics: ComputedMetrics,
    thresholds: ArchetypeThresholds | None = None,
) -> SessionArchetype:
    """Map attention, momentum and bursts onto an archetype."""
    t = thresholds or ArchetypeThresholds()
    attention = metrics.attention_span
    momentum = metrics.scroll_momentum

    if metrics.session_length < t.min_session_minutes or attention == 0:
        return SessionArchetype.UNKNOWN

    high_attention = attention > t.high_attention_min
    moderate_attention = t.low_attention_max < attention <= t.high_attention_min
    low_attention = attention <= t.low_attention_max

    low_momentum = momentum < t.low_momentum_max
    moderate_momentum = t.low_momentum_max <= momentum < t.high_momentum_min
    high_momentum = momentum >= t.high_momentum_min

    many_bursts = len(metrics.binge_bursts) >= t.many_bursts_min

    if high_attention and low_momentum:
        return SessionArchetype.EXPLORER
    if low_attention and (high_momentum or many_bursts):
        return SessionArchetype.DOOMSCROLLER
    if moderate_attention and moderate_momentum:
        return SessionArchetype.SAMPLER

    # Mixed signals: the dominant characteristic wins
    if high_momentum or many_bursts:
        return SessionArchetype.DOOMSCROLLER
    if high_attention:
        return SessionArchetype.EXPLORER
    return SessionArchetype.SAMPLER
