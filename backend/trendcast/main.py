from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
import pandas as pd
from io import BytesIO
from typing import Any, Dict, List

try:
    # optional: background queue when redis/rq are installed and configured
    from redis import Redis as _RedisClient
    from rq import Queue as _RQQueue
    from rq.exceptions import NoSuchJobError as _NoSuchJobError
    from rq.job import Job as _RQJob
    _RQ_AVAILABLE = True
except ImportError:
    _RQ_AVAILABLE = False

import logging

from trendcast import config
from trendcast.core.forecasting import (
    compare_algorithms,
    detect_anomalies,
    evaluate_alert_rules,
    forecast,
    list_algorithms,
    series_from_frame,
)
from trendcast.errors import TrendCastError
from trendcast.models.schemas import (
    AlertEvent,
    AlertRequest,
    AlgorithmInfo,
    AnomalyRequest,
    AnomalyResult,
    CompareRequest,
    ComparisonResult,
    ForecastRequest,
    PredictionResult,
)

# basic logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TrendCast API",
    description="Time series forecasting and anomaly detection",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _run(fn, *args, **kwargs):
    """Call into the engine, mapping caller errors to 400 and the rest to 500."""
    try:
        return fn(*args, **kwargs)
    except TrendCastError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("%s failed", fn.__name__)
        raise HTTPException(status_code=500, detail=f"{fn.__name__} error: {exc}")


@app.get("/")
def root():
    return {"message": "Welcome to TrendCast API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/algorithms", response_model=List[AlgorithmInfo])
def api_list_algorithms():
    return list_algorithms()


@app.post("/forecast", response_model=PredictionResult)
def api_forecast(req: ForecastRequest):
    logger.info("Forecast request: algorithm=%s horizon=%s points=%d", req.algorithm, req.horizon, len(req.data))
    return _run(forecast, req.data, req.horizon, req.algorithm, req)


@app.post("/forecast/upload", response_model=PredictionResult)
async def api_forecast_upload(file: UploadFile = File(...), algorithm: str = "arima", horizon: int = 30):
    """Forecast from an uploaded CSV with a date-like and a numeric column."""
    try:
        contents = await file.read()
        df = pd.read_csv(BytesIO(contents))
    except Exception as exc:
        logger.exception("Failed to read uploaded CSV")
        raise HTTPException(status_code=400, detail=f"Invalid CSV upload: {exc}")

    series = await run_in_threadpool(_run, series_from_frame, df)
    return await run_in_threadpool(_run, forecast, series, horizon, algorithm)


@app.post("/forecast/compare", response_model=ComparisonResult)
def api_compare(req: CompareRequest):
    return _run(compare_algorithms, req.data, req.horizon, req)


@app.post("/anomalies", response_model=AnomalyResult)
def api_anomalies(req: AnomalyRequest):
    return _run(detect_anomalies, req.data, req.method, req.threshold)


@app.post("/alerts", response_model=List[AlertEvent])
def api_alerts(req: AlertRequest):
    return _run(evaluate_alert_rules, req.result, req.rules)


@app.post("/forecast-async")
def api_forecast_async(req: ForecastRequest) -> Dict[str, Any]:
    """Queue a forecast on RQ; poll /jobs/{job_id} for the result."""
    if not (_RQ_AVAILABLE and config.REDIS_URL):
        raise HTTPException(status_code=503, detail="job queue is not configured")
    redis_conn = _RedisClient.from_url(config.REDIS_URL)
    q = _RQQueue(config.QUEUE_NAME, connection=redis_conn)
    job = q.enqueue('trendcast.tasks.forecast_job', req.model_dump(by_alias=True))
    return {"job_id": job.id, "queued": True}


@app.get("/jobs/{job_id}")
def api_get_job(job_id: str):
    if not (_RQ_AVAILABLE and config.REDIS_URL):
        raise HTTPException(status_code=503, detail="job queue is not configured")
    redis_conn = _RedisClient.from_url(config.REDIS_URL)
    try:
        job = _RQJob.fetch(job_id, connection=redis_conn)
    except _NoSuchJobError:
        raise HTTPException(status_code=404, detail="job not found")
    except Exception as exc:
        logger.exception("Failed to fetch job %s", job_id)
        raise HTTPException(status_code=500, detail=f"job lookup failed: {exc}")
    status = job.get_status()
    return {
        "id": job.id,
        "status": str(getattr(status, "value", status)),
        "result": job.return_value() if hasattr(job, "return_value") else job.result,
        "error": job.exc_info,
    }
