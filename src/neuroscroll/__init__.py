# neuroscroll/__init__.py
"""
NeuroScroll - behavioural analytics for short-form video feeds.

Quick start:
    from neuroscroll import AnalysisScheduler, SessionClassifier, SessionTracker

    async with AnalysisScheduler(SessionClassifier()) as scheduler:
        tracker = SessionTracker(scheduler=scheduler)
        session = await tracker.start_session()
        ...
        metrics = await tracker.end_session(session.id)
"""

import logging

from neuroscroll.classifier import (
    AIClassificationResult,
    SessionClassifier,
    SessionFeatures,
    extract_features,
)
from neuroscroll.exceptions import (
    ClassificationError,
    InvalidInteractionError,
    ModelUnavailableError,
    NeuroScrollError,
    SessionNotFoundError,
    StorageError,
)
from neuroscroll.export import (
    export_all_data,
    export_fatigue_curves_csv,
    export_interactions_csv,
    export_sessions_csv,
    export_sessions_json,
)
from neuroscroll.metrics import MetricsConfig, MetricsEngine, compute_metrics, update_real_time_metrics
from neuroscroll.models import (
    BingeBurst,
    ComputedMetrics,
    FatiguePoint,
    HealthClassification,
    Interaction,
    InteractionAction,
    InteractionMetadata,
    SessionArchetype,
    UserSettings,
    ViewingSession,
)
from neuroscroll.scheduler import AnalysisPriority, AnalysisResult, AnalysisScheduler, SchedulerConfig
from neuroscroll.storage import InMemoryBackend, JsonFileBackend, StorageManager
from neuroscroll.tracker import SessionTracker, TrackerConfig

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Models
    "BingeBurst",
    "ComputedMetrics",
    "FatiguePoint",
    "HealthClassification",
    "Interaction",
    "InteractionAction",
    "InteractionMetadata",
    "SessionArchetype",
    "UserSettings",
    "ViewingSession",
    # Metrics
    "MetricsConfig",
    "MetricsEngine",
    "compute_metrics",
    "update_real_time_metrics",
    # Classification
    "AIClassificationResult",
    "SessionClassifier",
    "SessionFeatures",
    "extract_features",
    # Scheduling
    "AnalysisPriority",
    "AnalysisResult",
    "AnalysisScheduler",
    "SchedulerConfig",
    # Ingestion and persistence
    "InMemoryBackend",
    "JsonFileBackend",
    "SessionTracker",
    "StorageManager",
    "TrackerConfig",
    # Export
    "export_all_data",
    "export_fatigue_curves_csv",
    "export_interactions_csv",
    "export_sessions_csv",
    "export_sessions_json",
    # Errors
    "ClassificationError",
    "InvalidInteractionError",
    "ModelUnavailableError",
    "NeuroScrollError",
    "SessionNotFoundError",
    "StorageError",
]
