# neuroscroll/models/interaction.py
"""Interaction events emitted by the feed tracker."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from neuroscroll.base_models import CamelModel
from neuroscroll.models.enums import InteractionAction, ScrollDirection


class InteractionMetadata(CamelModel):
    """Optional measurements attached to an interaction.

    ``dwell_time`` is in milliseconds and is only meaningful on ``leave``.
    """

    model_config = ConfigDict(frozen=True)

    dwell_time: float | None = None
    scroll_speed: float | None = None
    video_order: int | None = None
    scroll_direction: ScrollDirection | None = None
    scroll_distance: float | None = None


class Interaction(CamelModel):
    """A single recorded interaction. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    video_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    timestamp: float = Field(gt=0)
    action: InteractionAction
    metadata: InteractionMetadata = Field(default_factory=InteractionMetadata)

    @property
    def dwell_time_ms(self) -> float | None:
        return self.metadata.dwell_time
