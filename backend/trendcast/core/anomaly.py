"""Z-score and IQR outlier detection over a dated series."""
import math
from typing import List, Sequence

import numpy as np

ZSCORE_THRESHOLD = 2.5
IQR_MULTIPLIER = 1.5


def _record(date, value, severity, reason, score) -> dict:
    return {
        'date': date,
        'value': float(value),
        'severity': severity,
        'reason': reason,
        'score': float(score),
    }


def zscore_anomalies(dates: Sequence[str], values: Sequence[float], threshold: float = ZSCORE_THRESHOLD) -> List[dict]:
    """Flag points whose population z-score exceeds ``threshold``.

    Severity is 'high' above 2x the threshold, 'medium' above 1.5x and 'low'
    otherwise. A series with zero spread has no anomalies.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return []
    mu = arr.mean()
    sigma = float(np.sqrt(np.mean((arr - mu) ** 2)))
    if sigma == 0 or not math.isfinite(sigma):
        return []

    out = []
    for date, value in zip(dates, arr):
        z = abs(value - mu) / sigma
        if not z > threshold:
            continue
        if z > threshold * 2:
            severity = 'high'
        elif z > threshold * 1.5:
            severity = 'medium'
        else:
            severity = 'low'
        out.append(_record(date, value, severity, f'Z-score anomaly (z={z:.2f})', z))
    return out


def quartiles(values: Sequence[float]):
    """Q1/Q3 by index truncation on the sorted copy (no interpolation)."""
    ordered = np.sort(np.asarray(values, dtype=float))
    n = ordered.size
    return float(ordered[int(n * 0.25)]), float(ordered[int(n * 0.75)])


def iqr_anomalies(dates: Sequence[str], values: Sequence[float], multiplier: float = IQR_MULTIPLIER) -> List[dict]:
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return []
    q1, q3 = quartiles(arr)
    iqr = q3 - q1
    if iqr == 0 or not math.isfinite(iqr):
        return []
    lower = q1 - multiplier * iqr
    upper = q3 + multiplier * iqr

    out = []
    for date, value in zip(dates, arr):
        if lower <= value <= upper or math.isnan(value):
            continue
        score = min(abs(value - lower), abs(value - upper)) / iqr
        if score > 1:
            severity = 'high'
        elif score > 0.5:
            severity = 'medium'
        else:
            severity = 'low'
        reason = 'below IQR lower bound' if value < lower else 'above IQR upper bound'
        out.append(_record(date, value, severity, reason, score))
    return out
