import logging
from typing import Any, Dict

from trendcast.core.forecasting import detect_anomalies, forecast
from trendcast.models.schemas import AnomalyRequest, ForecastRequest

logger = logging.getLogger(__name__)


def forecast_job(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Job function executed by the RQ worker (or called directly).

    Stateless and idempotent: the payload is a ForecastRequest body and the
    JSON-ready PredictionResult is returned for RQ to store.
    """
    req = ForecastRequest.model_validate(payload)
    logger.info("forecast_job: algorithm=%s horizon=%s", req.algorithm, req.horizon)
    result = forecast(req.data, req.horizon, req.algorithm, req)
    return result.model_dump()


def anomaly_job(payload: Dict[str, Any]) -> Dict[str, Any]:
    req = AnomalyRequest.model_validate(payload)
    logger.info("anomaly_job: method=%s points=%d", req.method, len(req.data))
    return detect_anomalies(req.data, req.method, req.threshold).model_dump()
