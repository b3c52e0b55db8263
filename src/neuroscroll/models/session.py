# neuroscroll/models/session.py
"""Viewing session: the unit that metrics and classification operate on."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import Field, ValidationError

from neuroscroll.base_models import CamelModel
from neuroscroll.models.enums import InteractionAction
from neuroscroll.models.interaction import Interaction
from neuroscroll.models.metrics import ComputedMetrics

logger = logging.getLogger(__name__)


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


class ViewingSession(CamelModel):
    """A run of interactions on the feed.

    Owned by the ingesting context: ``add_interaction`` appends and keeps
    ``video_count`` / ``total_dwell_time`` current, ``finalize`` closes the
    session. ``computed_metrics`` is derived and replaced wholesale.
    """

    id: str
    start_time: float
    end_time: float | None = None
    is_active: bool = True
    video_count: int = 0
    total_dwell_time: float = 0.0  # ms
    interactions: list[Interaction] = Field(default_factory=list)
    computed_metrics: ComputedMetrics | None = None

    def add_interaction(self, interaction: Interaction) -> None:
        """Append an interaction and update running totals."""
        self.interactions.append(interaction)

        if interaction.action == InteractionAction.ENTER:
            self.video_count = len(
                {i.video_id for i in self.interactions if i.action == InteractionAction.ENTER}
            )
        elif interaction.action == InteractionAction.LEAVE:
            dwell = _finite(interaction.metadata.dwell_time)
            if dwell is not None and dwell > 0:
                self.total_dwell_time += dwell

    def finalize(self, end_time: float) -> None:
        """Mark the session as ended."""
        self.end_time = end_time
        self.is_active = False

    def duration_minutes(self, now: float) -> float:
        """Session length in minutes; open sessions are measured against ``now``."""
        end = self.end_time if self.end_time is not None else now
        return (end - self.start_time) / 60000.0

    @classmethod
    def coerce(cls, data: Any) -> ViewingSession | None:
        """Best-effort conversion of loosely shaped input into a session.

        Malformed interactions are dropped individually. Returns None when
        there is no usable id, start time or interaction list.
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            return None

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Session failed strict validation, salvaging: {e.error_count()} errors")

        session_id = data.get("id")
        start_time = _finite(data.get("startTime", data.get("start_time")))
        raw_interactions = data.get("interactions")
        if not isinstance(session_id, str) or not session_id:
            return None
        if start_time is None or not isinstance(raw_interactions, list):
            return None

        end_time = _finite(data.get("endTime", data.get("end_time")))
        is_active = data.get("isActive", data.get("is_active"))
        session = cls(
            id=session_id,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active if isinstance(is_active, bool) else end_time is None,
        )

        dropped = 0
        for item in raw_interactions:
            try:
                interaction = Interaction.model_validate(item)
            except ValidationError:
                dropped += 1
                continue
            session.add_interaction(interaction)

        if dropped:
            logger.warning(f"Dropped {dropped} malformed interactions from session {session_id}")
        return session
