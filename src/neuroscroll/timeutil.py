# neuroscroll/timeutil.py
"""Epoch-millisecond clock helpers."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo

Clock = Callable[[], float]


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0


def _from_epoch_ms(timestamp_ms: float, tz: tzinfo | None = None) -> datetime | None:
    if not isinstance(timestamp_ms, (int, float)) or isinstance(timestamp_ms, bool):
        return None
    if not math.isfinite(timestamp_ms):
        return None
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=tz)
    except (OverflowError, OSError, ValueError):
        return None


def to_local_datetime(timestamp_ms: float) -> datetime | None:
    """Convert epoch ms to a naive local datetime, or None if out of range."""
    return _from_epoch_ms(timestamp_ms)


def to_utc_datetime(timestamp_ms: float) -> datetime | None:
    """Convert epoch ms to an aware UTC datetime, or None if out of range."""
    return _from_epoch_ms(timestamp_ms, UTC)


def local_hour(timestamp_ms: float) -> int | None:
    """Local hour (0-23) of an epoch-ms timestamp."""
    dt = to_local_datetime(timestamp_ms)
    return dt.hour if dt is not None else None
