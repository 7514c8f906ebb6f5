"""
Simplified ARIMA(p, d, 0): differencing plus a coarse autoregressive step.

The default coefficient estimator scales lag correlations by a fixed damping
factor instead of solving for maximum-likelihood coefficients; values are a
rough placeholder rather than a statistically rigorous fit. Estimators are
plain callables ``(differenced, p) -> coefficients`` so a stricter one can
be swapped in without touching callers.
"""
import logging
from typing import Callable, Dict, Optional

import numpy as np

from trendcast.core.base import Forecaster
from trendcast.core.statistics import detect_seasonality, pearson_correlation

logger = logging.getLogger(__name__)

CoefficientEstimator = Callable[[np.ndarray, int], np.ndarray]

DAMPING = 0.5
NOISE_FRACTION = 0.05  # full width, i.e. +/-2.5% of the raw prediction


def difference(values, order: int = 1) -> np.ndarray:
    out = np.asarray(values, dtype=float)
    for _ in range(max(0, order)):
        out = np.diff(out)
    return out


def _lag_matrix(series: np.ndarray, p: int):
    # column k holds the value k+1 steps before the target
    X = np.column_stack([series[p - 1 - k:series.size - 1 - k] for k in range(p)])
    y = series[p:]
    return X, y


def correlation_coefficients(series: np.ndarray, p: int) -> np.ndarray:
    """Damped correlation between each lag column and the target column."""
    if p <= 0 or series.size <= p:
        return np.zeros(max(0, p))
    X, y = _lag_matrix(series, p)
    return np.array([pearson_correlation(X[:, k], y) * DAMPING for k in range(p)])


def least_squares_coefficients(series: np.ndarray, p: int) -> np.ndarray:
    """Ordinary least squares AR(p) fit on the differenced series."""
    if p <= 0 or series.size <= p:
        return np.zeros(max(0, p))
    X, y = _lag_matrix(series, p)
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        return np.zeros(p)
    coefs, *_ = np.linalg.lstsq(X, y, rcond=None)
    return coefs


ESTIMATORS: Dict[str, CoefficientEstimator] = {
    'correlation': correlation_coefficients,
    'least_squares': least_squares_coefficients,
}


class SimpleARIMA(Forecaster):
    key = 'arima'
    name = 'ARIMA'
    description = 'Autoregressive model on differenced data, for near-stationary series.'
    accuracy = 85.0
    holdout = 5
    confidence = (90.0, 1.5, 70.0)

    def __init__(
        self,
        p: int = 2,
        d: int = 1,
        estimator: CoefficientEstimator = correlation_coefficients,
        rng: Optional[np.random.Generator] = None,
        noise: bool = True,
        seasonal_period: int = 7,
    ):
        super().__init__()
        self.p = max(0, int(p))
        self.d = max(0, int(d))
        self.estimator = estimator
        self.rng = rng if rng is not None else np.random.default_rng()
        self.noise = noise
        self.seasonal_period = seasonal_period
        self.coefficients = np.zeros(self.p)

    def fit(self, values):
        self._values = np.asarray(values, dtype=float)
        diffed = difference(self._values, self.d)
        self.coefficients = np.asarray(self.estimator(diffed, self.p), dtype=float)
        logger.debug('AR(%d) d=%d coefficients=%s', self.p, self.d, self.coefficients)
        return self

    def _step(self, history) -> float:
        prediction = 0.0
        for k in range(min(self.coefficients.size, len(history))):
            prediction += self.coefficients[k] * history[-1 - k]
        if len(history) > 1:
            prediction += (history[-1] - history[-2]) * 0.5
        return prediction

    def predict(self, horizon):
        history = list(self._values)
        out = np.empty(horizon)
        for step in range(horizon):
            prediction = self._step(history)
            if self.noise:
                prediction += self.rng.uniform(-0.5, 0.5) * abs(prediction) * NOISE_FRACTION
            out[step] = max(0.0, prediction)
            history.append(prediction)
        return out

    def fitted_values(self):
        data = self._values
        fitted = np.empty(data.size)
        for t in range(data.size):
            # nothing precedes the first observation; it fits itself
            fitted[t] = data[0] if t == 0 else max(0.0, self._step(data[:t]))
        return fitted

    def seasonality(self):
        return {
            'detected': detect_seasonality(self._values, self.seasonal_period),
            'period': self.seasonal_period,
        }
