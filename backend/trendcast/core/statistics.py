"""Statistics shared by every model: moments, correlation, error metrics,
trend classification and autocorrelation-based seasonality detection."""
from typing import Sequence

import numpy as np


def _as_array(values) -> np.ndarray:
    return np.asarray(values, dtype=float)


def mean(values: Sequence[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def variance(values: Sequence[float]) -> float:
    """Population variance (divides by N)."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.mean((arr - arr.mean()) ** 2))


def stddev(values: Sequence[float]) -> float:
    return float(np.sqrt(variance(values)))


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 when either side has no variance."""
    xa = _as_array(x)
    ya = _as_array(y)
    n = min(xa.size, ya.size)
    if n < 2:
        return 0.0
    xa = xa[:n]
    ya = ya[:n]
    dx = xa - xa.mean()
    dy = ya - ya.mean()
    denom = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denom == 0 or not np.isfinite(denom):
        return 0.0
    return float(np.sum(dx * dy) / denom)


def autocorrelation(values: Sequence[float], lag: int) -> float:
    arr = _as_array(values)
    n = arr.size
    if lag < 0 or lag >= n:
        return 0.0
    return pearson_correlation(arr[:n - lag], arr[lag:])


def mse(actual: Sequence[float], predicted: Sequence[float]) -> float:
    a = _as_array(actual)
    p = _as_array(predicted)
    if a.size != p.size:
        raise ValueError(f'length mismatch: {a.size} actual vs {p.size} predicted')
    if a.size == 0:
        return 0.0
    return float(np.mean((a - p) ** 2))


def mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    a = _as_array(actual)
    p = _as_array(predicted)
    if a.size != p.size:
        raise ValueError(f'length mismatch: {a.size} actual vs {p.size} predicted')
    if a.size == 0:
        return 0.0
    return float(np.mean(np.abs(a - p)))


def classify_trend(values: Sequence[float], tolerance: float = 0.05) -> str:
    """Compare the mean of the first half against the second half.

    Returns 'up' when the relative change exceeds +tolerance, 'down' below
    -tolerance and 'stable' otherwise.
    """
    arr = _as_array(values)
    if arr.size < 2:
        return 'stable'
    half = arr.size // 2
    first = float(arr[:half].mean())
    second = float(arr[half:].mean())
    diff = second - first
    if first == 0:
        if diff > 0:
            return 'up'
        if diff < 0:
            return 'down'
        return 'stable'
    change = diff / abs(first)
    if change > tolerance:
        return 'up'
    if change < -tolerance:
        return 'down'
    return 'stable'


def detect_seasonality(values: Sequence[float], period: int = 7, min_correlation: float = 0.3) -> bool:
    arr = _as_array(values)
    if period < 1 or arr.size < period * 2:
        return False
    return any(abs(autocorrelation(arr, lag)) > min_correlation for lag in range(1, period + 1))


def confidence_curve(horizon: int, start: float, step: float, floor: float) -> list:
    """Linear confidence decay `max(floor, start - step*i)` for i in 0..horizon-1."""
    return [float(max(floor, start - step * i)) for i in range(horizon)]
