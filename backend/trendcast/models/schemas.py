from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional

Trend = Literal['up', 'down', 'stable']
Severity = Literal['low', 'medium', 'high']
Estimator = Literal['correlation', 'least_squares']


class DataPoint(BaseModel):
    date: str
    value: float


class ForecastParams(BaseModel):
    """Optional per-model parameters; unused ones are ignored by each model."""
    model_config = ConfigDict(populate_by_name=True)

    season_length: int = Field(7, alias='seasonLength', ge=1)
    alpha: float = Field(0.3, ge=0, le=1)
    beta: float = Field(0.1, ge=0, le=1)
    gamma: float = Field(0.1, ge=0, le=1)
    p: int = Field(2, ge=0)
    d: int = Field(1, ge=0)
    estimator: Estimator = 'correlation'
    noise: bool = True
    seed: Optional[int] = None


class PredictionPoint(BaseModel):
    date: str
    value: float
    confidence: float


class Seasonality(BaseModel):
    detected: bool
    period: Optional[int] = None


class PredictionResult(BaseModel):
    algorithm: str
    predictions: List[PredictionPoint]
    accuracy: float
    mse: float
    mae: float
    trend: Trend
    seasonality: Optional[Seasonality] = None


class AnomalyRecord(BaseModel):
    date: str
    value: float
    severity: Severity
    reason: str
    score: float


class AnomalyResult(BaseModel):
    method: str
    anomalies: List[AnomalyRecord]
    threshold: float


class AlgorithmInfo(BaseModel):
    key: str
    name: str
    description: str
    accuracy: float


class ComparisonResult(BaseModel):
    results: Dict[str, PredictionResult]
    best_algorithm: str


class AlertRule(BaseModel):
    name: str
    condition: Literal['value_above', 'value_below', 'growth_above']
    threshold: float
    enabled: bool = True


class AlertEvent(BaseModel):
    rule: str
    date: str
    value: float


# --- API request bodies ---

class ForecastRequest(ForecastParams):
    data: List[DataPoint]
    algorithm: str = 'arima'
    horizon: int = 30


class CompareRequest(ForecastParams):
    data: List[DataPoint]
    horizon: int = 30


class AnomalyRequest(BaseModel):
    data: List[DataPoint]
    method: str = 'zscore'
    threshold: Optional[float] = None


class AlertRequest(BaseModel):
    result: PredictionResult
    rules: List[AlertRule]
