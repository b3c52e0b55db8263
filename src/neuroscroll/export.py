# neuroscroll/export.py
"""CSV and JSON export of stored sessions."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable, Sequence

from neuroscroll.models.session import ViewingSession
from neuroscroll.timeutil import now_ms, to_utc_datetime

NOT_AVAILABLE = "N/A"

SESSION_HEADERS = [
    "Session ID",
    "Start Time",
    "End Time",
    "Duration (min)",
    "Video Count",
    "Total Dwell Time (s)",
    "Dopamine Spike Index",
    "Attention Span (s)",
    "Replay Sensitivity",
    "Circadian Drift",
    "Health Classification",
    "Confidence",
]

INTERACTION_HEADERS = [
    "Session ID",
    "Interaction ID",
    "Video ID",
    "Timestamp",
    "Action",
    "Dwell Time (s)",
    "Scroll Speed",
    "Video Order",
]

FATIGUE_HEADERS = ["Session ID", "Video Order", "Dwell Time (s)", "Timestamp"]


def _iso(timestamp_ms: float) -> str:
    dt = to_utc_datetime(timestamp_ms)
    if dt is None:
        return NOT_AVAILABLE
    return dt.isoformat().replace("+00:00", "Z")


def _fixed(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else NOT_AVAILABLE


def _to_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def export_sessions_csv(sessions: Sequence[ViewingSession], now: float | None = None) -> str:
    """One row per session with its headline metrics."""
    now = now_ms() if now is None else now
    rows = []
    for session in sessions:
        metrics = session.computed_metrics
        rows.append(
            [
                session.id,
                _iso(session.start_time),
                _iso(session.end_time) if session.end_time is not None else "Active",
                f"{session.duration_minutes(now):.2f}",
                str(session.video_count),
                f"{session.total_dwell_time / 1000:.2f}",
                _fixed(metrics.dopamine_spike_index if metrics else None),
                _fixed(metrics.attention_span if metrics else None),
                str(metrics.replay_sensitivity) if metrics else NOT_AVAILABLE,
                "Yes" if metrics and metrics.circadian_drift else "No",
                metrics.health_classification.value if metrics else "Unknown",
                _fixed(metrics.confidence if metrics else None),
            ]
        )
    return _to_csv(SESSION_HEADERS, rows)


def export_interactions_csv(sessions: Sequence[ViewingSession]) -> str:
    """One row per recorded interaction."""
    rows = []
    for session in sessions:
        for interaction in session.interactions:
            meta = interaction.metadata
            rows.append(
                [
                    session.id,
                    interaction.id,
                    interaction.video_id,
                    _iso(interaction.timestamp),
                    interaction.action.value,
                    _fixed(meta.dwell_time / 1000) if meta.dwell_time else NOT_AVAILABLE,
                    _fixed(meta.scroll_speed),
                    str(meta.video_order) if meta.video_order is not None else NOT_AVAILABLE,
                ]
            )
    return _to_csv(INTERACTION_HEADERS, rows)


def export_fatigue_curves_csv(sessions: Sequence[ViewingSession]) -> str:
    """One row per fatigue point of sessions that have metrics."""
    rows = []
    for session in sessions:
        if session.computed_metrics is None:
            continue
        for point in session.computed_metrics.fatigue_points:
            rows.append([session.id, str(point.video_order), f"{point.dwell_time:.2f}", _iso(point.timestamp)])
    return _to_csv(FATIGUE_HEADERS, rows)


def export_all_data(sessions: Sequence[ViewingSession], now: float | None = None) -> dict[str, str]:
    return {
        "sessions": export_sessions_csv(sessions, now=now),
        "interactions": export_interactions_csv(sessions),
        "fatigue_curves": export_fatigue_curves_csv(sessions),
    }


def export_sessions_json(sessions: Sequence[ViewingSession], indent: int | None = 2) -> str:
    """Sessions in their stored camelCase shape."""
    return json.dumps([s.to_storage() for s in sessions], indent=indent)
