# neuroscroll/models/enums.py
"""Enums shared across the data model."""

from enum import Enum


class InteractionAction(str, Enum):
    """What the viewer did."""

    ENTER = "enter"
    LEAVE = "leave"
    REPLAY = "replay"
    SCROLL = "scroll"


class ScrollDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class HealthClassification(str, Enum):
    """Session health label (rule-based or model-based)."""

    HEALTHY = "healthy"
    DOOMSCROLL = "doomscroll"
    UNKNOWN = "unknown"


class SessionArchetype(str, Enum):
    """Coarse consumption style of a session.

    - explorer: high dwell, low skip momentum
    - sampler: moderate dwell, moderate skips
    - doomscroller: low dwell, high skips, many bursts
    """

    EXPLORER = "explorer"
    SAMPLER = "sampler"
    DOOMSCROLLER = "doomscroller"
    UNKNOWN = "unknown"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
