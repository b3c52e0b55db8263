# neuroscroll/metrics/__init__.py
"""
Behavioural metrics for viewing sessions.

- MetricsEngine: session -> ComputedMetrics (pure and total)
- Rule tables: preliminary health vote and session archetype
- Guarded numeric helpers
"""

from neuroscroll.metrics.engine import (
    DwellSample,
    MetricsConfig,
    MetricsEngine,
    calculate_fatigue_slope,
    compute_metrics,
    extract_dwell_samples,
    update_real_time_metrics,
)
from neuroscroll.metrics.rules import (
    ArchetypeThresholds,
    HealthThresholds,
    analyze_session_health,
    classify_session_archetype,
)

__all__ = [
    "ArchetypeThresholds",
    "DwellSample",
    "HealthThresholds",
    "MetricsConfig",
    "MetricsEngine",
    "analyze_session_health",
    "calculate_fatigue_slope",
    "classify_session_archetype",
    "compute_metrics",
    "extract_dwell_samples",
    "update_real_time_metrics",
]
