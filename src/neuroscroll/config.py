# neuroscroll/config.py
"""Central configuration: defaults can be overridden by environment variables."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Metrics
DEFAULT_EWMA_ALPHA = _env_float("NEUROSCROLL_EWMA_ALPHA", 0.3)

# Scheduler
DEFAULT_BATCH_SIZE = _env_int("NEUROSCROLL_BATCH_SIZE", 5)
DEFAULT_TICK_INTERVAL = _env_float("NEUROSCROLL_TICK_INTERVAL", 1.0)  # seconds
DEFAULT_MAX_RETRIES = _env_int("NEUROSCROLL_MAX_RETRIES", 3)
DEFAULT_RETRY_DELAY_MS = _env_float("NEUROSCROLL_RETRY_DELAY_MS", 2000.0)

# Storage
DEFAULT_RETENTION_DAYS = _env_int("NEUROSCROLL_RETENTION_DAYS", 30)
DEFAULT_MAX_SESSIONS = _env_int("NEUROSCROLL_MAX_SESSIONS", 1000)

# Classifier
DEFAULT_MODEL_VERSION = os.getenv("NEUROSCROLL_MODEL_VERSION", "1.0.0")
