from typing import Sequence

import numpy as np

from trendcast.core.base import Forecaster


class LinearRegression:
    """Closed-form ordinary least squares line ``y = slope * x + intercept``."""

    def __init__(self):
        self.slope = 0.0
        self.intercept = 0.0

    def fit(self, x: Sequence[float], y: Sequence[float]) -> 'LinearRegression':
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        n = x.size
        if n == 0:
            self.slope, self.intercept = 0.0, 0.0
            return self
        sum_x = x.sum()
        sum_y = y.sum()
        sum_xy = float(np.dot(x, y))
        sum_xx = float(np.dot(x, x))
        denom = n * sum_xx - sum_x * sum_x
        # identical x values (or a single point): no slope to estimate
        if denom == 0 or not np.isfinite(denom):
            self.slope = 0.0
        else:
            self.slope = float((n * sum_xy - sum_x * sum_y) / denom)
        self.intercept = float((sum_y - self.slope * sum_x) / n)
        return self

    def predict(self, x: Sequence[float]) -> np.ndarray:
        return self.slope * np.asarray(x, dtype=float) + self.intercept

    def coefficients(self) -> dict:
        return {'slope': self.slope, 'intercept': self.intercept}


class LinearTrendForecaster(Forecaster):
    key = 'linear'
    name = 'Linear regression'
    description = 'Least-squares linear trend; simple and fast.'
    accuracy = 78.0
    holdout = 10
    confidence = (95.0, 2.0, 60.0)

    slope_threshold = 0.1

    def __init__(self):
        super().__init__()
        self.model = LinearRegression()

    def fit(self, values):
        self._values = np.asarray(values, dtype=float)
        self.model.fit(np.arange(self._values.size), self._values)
        return self

    def predict(self, horizon):
        n = self._values.size
        future = np.arange(n, n + horizon)
        return np.maximum(0.0, self.model.predict(future))

    def fitted_values(self):
        return self.model.predict(np.arange(self._values.size))

    def trend(self, forecast):
        slope = self.model.slope
        if slope > self.slope_threshold:
            return 'up'
        if slope < -self.slope_threshold:
            return 'down'
        return 'stable'
