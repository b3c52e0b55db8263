# neuroscroll/metrics/numeric.py
"""Guarded arithmetic.

Every helper returns a finite value (or a caller-supplied default) instead of
raising or leaking NaN/Infinity into metric snapshots.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any


def is_finite_number(value: Any) -> bool:
    """True for real, finite ints/floats (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def finite_or_zero(value: Any) -> float:
    return float(value) if is_finite_number(value) else 0.0


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """numerator / denominator, or ``default`` when degenerate."""
    if not is_finite_number(numerator) or not is_finite_number(denominator) or denominator == 0:
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if not is_finite_number(value):
        return low
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return safe_div(math.fsum(values), len(values))


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two samples."""
    if len(values) < 2:
        return 0.0
    mu = mean(values)
    variance = math.fsum((v - mu) ** 2 for v in values) / len(values)
    if not math.isfinite(variance) or variance < 0:
        return 0.0
    return math.sqrt(variance)


def linear_regression_slope(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Least-squares slope of y on x; 0 when undefined."""
    n = min(len(xs), len(ys))
    if n < 2:
        return 0.0
    sum_x = math.fsum(xs[:n])
    sum_y = math.fsum(ys[:n])
    sum_xy = math.fsum(x * y for x, y in zip(xs[:n], ys[:n]))
    sum_xx = math.fsum(x * x for x in xs[:n])
    return safe_div(n * sum_xy - sum_x * sum_y, n * sum_xx - sum_x * sum_x)


def ewma(values: Sequence[float], alpha: float) -> float:
    """Exponentially weighted moving average seeded with the first value.

    Aborts to 0 if an intermediate value stops being finite.
    """
    if not values:
        return 0.0
    average = values[0]
    for value in values[1:]:
        average = alpha * value + (1 - alpha) * average
        if not math.isfinite(average):
            return 0.0
    return average if math.isfinite(average) else 0.0
