"""
Forecaster interface shared by every model the orchestrator can dispatch to.
"""
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

from trendcast.core.statistics import classify_trend, confidence_curve


class Forecaster(ABC):
    """
    Capability interface: ``fit(values)`` then ``predict(horizon)``.

    Class attributes describe how the orchestrator reports a model:
    the calibrated accuracy label, the confidence decay curve and how many
    recent observations the in-sample error metrics cover.
    """

    key: str = ''
    name: str = ''
    description: str = ''
    accuracy: float = 0.0
    holdout: int = 7
    # (start, step, floor) for max(floor, start - step * i)
    confidence: Tuple[float, float, float] = (90.0, 1.0, 60.0)

    def __init__(self):
        self._values = np.array([], dtype=float)

    @abstractmethod
    def fit(self, values: Sequence[float]) -> 'Forecaster':
        ...

    @abstractmethod
    def predict(self, horizon: int) -> np.ndarray:
        """Return ``horizon`` forecast values following the fitted series."""
        ...

    @abstractmethod
    def fitted_values(self) -> np.ndarray:
        """One-step in-sample fit aligned with the fitted series."""
        ...

    def confidences(self, horizon: int) -> list:
        start, step, floor = self.confidence
        return confidence_curve(horizon, start, step, floor)

    def trend(self, forecast: Sequence[float]) -> str:
        return classify_trend(forecast)

    def seasonality(self) -> Optional[dict]:
        return None
