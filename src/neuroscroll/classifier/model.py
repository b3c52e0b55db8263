# neuroscroll/classifier/model.py
"""
Prediction models.

The classifier treats its model as an opaque probability function: one
normalized feature row in, one doomscroll probability in [0, 1] out. Any
object with a matching ``predict`` can be swapped in.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field, model_validator

from neuroscroll.classifier.features import FEATURE_NAMES


@runtime_checkable
class PredictionModel(Protocol):
    """Protocol for swappable probability models."""

    def predict(self, rows: Sequence[Sequence[float]]) -> Sequence[float]: ...


def _sigmoid(z: float) -> float:
    # Split on sign so exp() never overflows
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


# Positive weights push towards doomscroll, negative towards healthy.
DEFAULT_WEIGHTS: dict[str, float] = {
    "session_length": 2.0,
    "attention_span": -4.0,
    "dopamine_spike_index": 3.0,
    "replay_sensitivity": 2.0,
    "fatigue_slope": -1.5,
    "circadian_drift": 1.5,
    "video_count": 1.0,
    "time_of_day": 0.0,
    "scroll_momentum": 3.0,
    "reward_variability": 0.5,
    "binge_bursts": 2.5,
    "engagement_half_life": -2.0,
}
DEFAULT_BIAS = -1.0


class LogisticModel(BaseModel):
    """Fixed-weight logistic model over the normalized feature vector."""

    weights: list[float] = Field(default_factory=lambda: [DEFAULT_WEIGHTS[n] for n in FEATURE_NAMES])
    bias: float = DEFAULT_BIAS

    @model_validator(mode="after")
    def _check_shape(self) -> LogisticModel:
        if len(self.weights) != len(FEATURE_NAMES):
            raise ValueError(f"expected {len(FEATURE_NAMES)} weights, got {len(self.weights)}")
        return self

    def predict_one(self, row: Sequence[float]) -> float:
        if len(row) != len(self.weights):
            raise ValueError(f"expected {len(self.weights)} features, got {len(row)}")
        z = self.bias + math.fsum(w * x for w, x in zip(self.weights, row))
        return _sigmoid(z)

    def predict(self, rows: Sequence[Sequence[float]]) -> list[float]:
        return [self.predict_one(row) for row in rows]
