# tests/conftest.py
"""
Shared pytest fixtures and configuration for neuroscroll tests.

Sessions are built at a fixed local time (14:00) so time-of-day dependent
metrics are deterministic regardless of when the suite runs.
"""

import itertools
import logging
from datetime import datetime

import pytest

from neuroscroll.models import (
    Interaction,
    InteractionAction,
    InteractionMetadata,
    ScrollDirection,
    ViewingSession,
)

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logging.getLogger("neuroscroll").setLevel(logging.DEBUG)

# 2024-06-12 14:00 local time, in epoch ms
BASE_TIME = datetime(2024, 6, 12, 14, 0).timestamp() * 1000


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, start: float = BASE_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def build_session(
    dwell_seconds,
    session_id="session-1",
    start_time=BASE_TIME,
    replays=(),
    scrolls=0,
    ended=True,
):
    """Session where each video is entered, watched for its dwell time, then left.

    ``replays`` holds video orders that get one replay event each.
    """
    session = ViewingSession(id=session_id, start_time=start_time)
    counter = itertools.count()
    t = start_time

    def add(video_id, action, **metadata):
        session.add_interaction(
            Interaction(
                id=f"{session_id}-i{next(counter)}",
                video_id=video_id,
                session_id=session_id,
                timestamp=t,
                action=action,
                metadata=InteractionMetadata(**metadata),
            )
        )

    for order, dwell in enumerate(dwell_seconds):
        video_id = f"video-{order}"
        add(video_id, InteractionAction.ENTER, video_order=order)
        if order in replays:
            add(video_id, InteractionAction.REPLAY, video_order=order)
        t += dwell * 1000
        add(video_id, InteractionAction.LEAVE, dwell_time=dwell * 1000, video_order=order)

    for _ in range(scrolls):
        add("video-0", InteractionAction.SCROLL, scroll_direction=ScrollDirection.DOWN, scroll_speed=1.5)

    if ended:
        session.finalize(t + 1000)
    return session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_session():
    """Factory fixture for synthetic sessions."""
    return build_session


@pytest.fixture
def make_interaction():
    """Factory for single interactions with sensible defaults."""
    counter = itertools.count()

    def _make(action="enter", video_id="video-0", session_id="session-1", timestamp=BASE_TIME, **metadata):
        return Interaction(
            id=f"interaction-{next(counter)}",
            video_id=video_id,
            session_id=session_id,
            timestamp=timestamp,
            action=InteractionAction(action),
            metadata=InteractionMetadata(**metadata),
        )

    return _make
