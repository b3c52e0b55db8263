# neuroscroll/models/__init__.py
"""
Core data models: interactions, sessions, metric snapshots and settings.
"""

from neuroscroll.models.enums import (
    ExportFormat,
    HealthClassification,
    InteractionAction,
    ScrollDirection,
    SessionArchetype,
)
from neuroscroll.models.interaction import Interaction, InteractionMetadata
from neuroscroll.models.metrics import BingeBurst, ComputedMetrics, FatiguePoint
from neuroscroll.models.session import ViewingSession
from neuroscroll.models.settings import UserSettings

__all__ = [
    # Enums
    "ExportFormat",
    "HealthClassification",
    "InteractionAction",
    "ScrollDirection",
    "SessionArchetype",
    # Models
    "BingeBurst",
    "ComputedMetrics",
    "FatiguePoint",
    "Interaction",
    "InteractionMetadata",
    "UserSettings",
    "ViewingSession",
]
