"""
Holt-Winters triple exponential smoothing (additive level, trend and season).

Series shorter than two full seasons fall back to simple exponential
smoothing, which yields a flat forecast at the final level.
"""
import logging

import numpy as np

from trendcast.core.base import Forecaster

logger = logging.getLogger(__name__)


def _initial_trend(data: np.ndarray, season_length: int) -> float:
    deltas = (data[season_length:2 * season_length] - data[:season_length]) / season_length
    return float(deltas.sum() / season_length)


def _initial_seasonal(data: np.ndarray, season_length: int) -> np.ndarray:
    n_seasons = data.size // season_length
    seasons = data[:n_seasons * season_length].reshape(n_seasons, season_length)
    averages = seasons.mean(axis=1)
    # mean deviation of each slot from its own season's average
    return (seasons - averages[:, None]).mean(axis=0)


class HoltWintersForecaster(Forecaster):
    key = 'exponential'
    name = 'Exponential smoothing'
    description = 'Holt-Winters smoothing for data with trend and seasonality.'
    accuracy = 82.0
    holdout = 7
    confidence = (88.0, 1.2, 65.0)

    def __init__(self, alpha: float = 0.3, beta: float = 0.1, gamma: float = 0.1, season_length: int = 7):
        super().__init__()
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.gamma = float(gamma)
        self.season_length = max(1, int(season_length))
        self.level = 0.0
        self.trend_ = 0.0
        self.seasonal = np.zeros(self.season_length)
        self.simple = True
        self._fitted = np.array([], dtype=float)

    def fit(self, values):
        data = np.asarray(values, dtype=float)
        self._values = data
        L = self.season_length
        if data.size < 2 * L:
            logger.debug('%d points < two seasons of %d, using simple smoothing', data.size, L)
            self._fit_simple(data)
            return self

        self.simple = False
        level = float(data[:L].mean())
        trend = _initial_trend(data, L)
        seasonal = _initial_seasonal(data, L)

        fitted = np.empty(data.size)
        fitted[:L] = level + seasonal
        a, b, g = self.alpha, self.beta, self.gamma
        for i in range(L, data.size):
            idx = i % L
            fitted[i] = level + trend + seasonal[idx]
            new_level = a * (data[i] - seasonal[idx]) + (1 - a) * (level + trend)
            trend = b * (new_level - level) + (1 - b) * trend
            seasonal[idx] = g * (data[i] - new_level) + (1 - g) * seasonal[idx]
            level = new_level

        self.level, self.trend_, self.seasonal = level, trend, seasonal
        self._fitted = fitted
        return self

    def _fit_simple(self, data: np.ndarray):
        self.simple = True
        self.trend_ = 0.0
        self.seasonal = np.zeros(self.season_length)
        if data.size == 0:
            self.level = 0.0
            self._fitted = np.array([], dtype=float)
            return
        level = float(data[0])
        fitted = np.empty(data.size)
        fitted[0] = level
        for i in range(1, data.size):
            fitted[i] = level
            level = self.alpha * data[i] + (1 - self.alpha) * level
        self.level = level
        self._fitted = fitted

    def predict(self, horizon):
        if self.simple:
            return np.full(horizon, self.level, dtype=float)
        n = self._values.size
        steps = np.arange(1, horizon + 1)
        slots = (n + steps - 1) % self.season_length
        return np.maximum(0.0, self.level + steps * self.trend_ + self.seasonal[slots])

    def fitted_values(self):
        return self._fitted

    def seasonality(self):
        return {'detected': True, 'period': self.season_length}
