import logging
import warnings
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import ValidationError

from trendcast.config import get_max_horizon
from trendcast.core import anomaly as detectors
from trendcast.core.arima import ESTIMATORS, SimpleARIMA
from trendcast.core.base import Forecaster
from trendcast.core.nonlinear import NonlinearForecaster
from trendcast.core.regression import LinearTrendForecaster
from trendcast.core.smoothing import HoltWintersForecaster
from trendcast.core.statistics import mae, mse
from trendcast.errors import InvalidInput, UnknownAlgorithm, UnknownMethod
from trendcast.models.schemas import (
    AlertEvent,
    AlertRule,
    AlgorithmInfo,
    AnomalyResult,
    ComparisonResult,
    DataPoint,
    ForecastParams,
    PredictionPoint,
    PredictionResult,
    Seasonality,
)

logger = logging.getLogger(__name__)

# Dispatch table in the order the dashboard lists the options.
ALGORITHMS: Dict[str, type] = {
    'linear': LinearTrendForecaster,
    'arima': SimpleARIMA,
    'exponential': HoltWintersForecaster,
    'nonlinear': NonlinearForecaster,
}
ALIASES = {'lstm': 'nonlinear'}

# Upper bounds on caller-supplied model orders and season lengths.
MAX_SEASON_LENGTH = 365
MAX_AR_ORDER = 30
MAX_DIFFERENCE_ORDER = 5

ANOMALY_METHODS = ('zscore', 'iqr')

SeriesLike = Iterable[Union[DataPoint, dict]]


def _coerce_series(series: Optional[SeriesLike]) -> List[DataPoint]:
    if series is None:
        raise InvalidInput('series must not be empty')
    points = []
    for i, item in enumerate(series):
        if isinstance(item, DataPoint):
            points.append(item)
            continue
        try:
            points.append(DataPoint.model_validate(item))
        except ValidationError as exc:
            raise InvalidInput(f'malformed data point at index {i}: {exc.errors()[0]["msg"]}') from exc
    if not points:
        raise InvalidInput('series must not be empty')
    return points


def _validate_horizon(horizon) -> int:
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)):
        raise InvalidInput(f'horizon must be an integer, got {horizon!r}')
    limit = get_max_horizon()
    if horizon <= 0 or horizon > limit:
        raise InvalidInput(f'horizon must be between 1 and {limit}, got {horizon}')
    return int(horizon)


def _resolve_algorithm(algorithm: str) -> str:
    key = ALIASES.get(str(algorithm).lower(), str(algorithm).lower())
    if key not in ALGORITHMS:
        raise UnknownAlgorithm(algorithm, list(ALGORITHMS) + list(ALIASES))
    return key


def _coerce_params(params) -> ForecastParams:
    if params is None:
        return ForecastParams()
    if not isinstance(params, ForecastParams):
        try:
            params = ForecastParams.model_validate(params)
        except ValidationError as exc:
            raise InvalidInput(f'invalid forecast parameters: {exc.errors()[0]["msg"]}') from exc
    _check_model_bounds(params)
    return params


def _check_model_bounds(params: ForecastParams) -> None:
    limits = (
        ('seasonLength', params.season_length, MAX_SEASON_LENGTH),
        ('p', params.p, MAX_AR_ORDER),
        ('d', params.d, MAX_DIFFERENCE_ORDER),
    )
    for name, value, limit in limits:
        if value > limit:
            raise InvalidInput(f'{name} must be at most {limit}, got {value}')


def _future_dates(last_date: str, horizon: int) -> List[str]:
    try:
        last = pd.Timestamp(last_date).normalize()
    except (ValueError, TypeError) as exc:
        raise InvalidInput(f'unparsable date {last_date!r}') from exc
    if pd.isna(last):
        raise InvalidInput(f'unparsable date {last_date!r}')
    try:
        index = pd.date_range(start=last + pd.Timedelta(days=1), periods=horizon, freq='D')
    except (ValueError, OverflowError) as exc:
        # OutOfBoundsDatetime is a ValueError
        raise InvalidInput(f'cannot forecast {horizon} days past {last_date!r}: {exc}') from exc
    return [d.strftime('%Y-%m-%d') for d in index]


def build_model(key: str, params: ForecastParams, rng: Optional[np.random.Generator] = None) -> Forecaster:
    """Construct a fresh model instance for one request."""
    _check_model_bounds(params)
    if rng is None:
        rng = np.random.default_rng(params.seed)
    if key == 'linear':
        return LinearTrendForecaster()
    if key == 'arima':
        return SimpleARIMA(
            p=params.p,
            d=params.d,
            estimator=ESTIMATORS[params.estimator],
            rng=rng,
            noise=params.noise,
            seasonal_period=params.season_length,
        )
    if key == 'exponential':
        return HoltWintersForecaster(params.alpha, params.beta, params.gamma, params.season_length)
    if key == 'nonlinear':
        return NonlinearForecaster(rng=rng, noise=params.noise, period=params.season_length)
    raise UnknownAlgorithm(key, list(ALGORITHMS))


def eval_metrics(actual: Sequence[float], fitted: Sequence[float], window: int) -> Tuple[float, float]:
    """MSE/MAE of the in-sample fit over the most recent ``window`` observations."""
    actual = np.asarray(actual, dtype=float)
    fitted = np.asarray(fitted, dtype=float)
    window = min(window, actual.size, fitted.size)
    if window <= 0:
        return 0.0, 0.0
    return mse(actual[-window:], fitted[-window:]), mae(actual[-window:], fitted[-window:])


def forecast(
    series: SeriesLike,
    horizon: int,
    algorithm: str,
    params: Union[ForecastParams, dict, None] = None,
    rng: Optional[np.random.Generator] = None,
) -> PredictionResult:
    """Forecast ``horizon`` days past the last point of ``series``.

    Inputs are validated before any model runs; an empty series, a bad data
    point or a horizon outside 1..max raises InvalidInput and an unsupported
    algorithm raises UnknownAlgorithm. Numerically degenerate series never
    raise: each model falls back to a flat or zero-slope fit.
    """
    points = _coerce_series(series)
    horizon = _validate_horizon(horizon)
    key = _resolve_algorithm(algorithm)
    params = _coerce_params(params)
    dates = _future_dates(points[-1].date, horizon)

    values = np.array([p.value for p in points], dtype=float)
    model = build_model(key, params, rng=rng)
    logger.debug('Fitting %s on %d points, horizon=%d', key, values.size, horizon)
    model.fit(values)
    predicted = model.predict(horizon)
    confidences = model.confidences(horizon)

    err_mse, err_mae = eval_metrics(values, model.fitted_values(), model.holdout)
    seasonality = model.seasonality()

    result = PredictionResult(
        algorithm=key,
        predictions=[
            PredictionPoint(date=d, value=float(v), confidence=c)
            for d, v, c in zip(dates, predicted, confidences)
        ],
        accuracy=model.accuracy,
        mse=err_mse,
        mae=err_mae,
        trend=model.trend(predicted),
        seasonality=Seasonality(**seasonality) if seasonality is not None else None,
    )
    logger.info('Forecast %s: %d points, trend=%s, mse=%.4f', key, horizon, result.trend, err_mse)
    return result


def detect_anomalies(series: SeriesLike, method: str = 'zscore', threshold: Optional[float] = None) -> AnomalyResult:
    """Flag outliers with the Z-score or IQR method.

    For 'iqr' the threshold is the fence multiplier (default 1.5). Anomaly
    records carry the date of the input point they were found at.
    """
    method_key = str(method).lower()
    if method_key not in ANOMALY_METHODS:
        raise UnknownMethod(method, ANOMALY_METHODS)
    points = _coerce_series(series)
    dates = [p.date for p in points]
    values = [p.value for p in points]

    if method_key == 'iqr':
        limit = detectors.IQR_MULTIPLIER if threshold is None else float(threshold)
        found = detectors.iqr_anomalies(dates, values, multiplier=limit)
    else:
        limit = detectors.ZSCORE_THRESHOLD if threshold is None else float(threshold)
        found = detectors.zscore_anomalies(dates, values, threshold=limit)
    logger.info('Anomaly detection (%s): %d of %d points flagged', method_key, len(found), len(values))
    return AnomalyResult(method=method_key, anomalies=found, threshold=limit)


def list_algorithms() -> List[AlgorithmInfo]:
    return [
        AlgorithmInfo(key=key, name=cls.name, description=cls.description, accuracy=cls.accuracy)
        for key, cls in ALGORITHMS.items()
    ]


def select_best_model(candidates: Dict[str, PredictionResult]) -> str:
    """Pick the candidate with the lowest in-sample MSE; ties keep insertion order."""
    best = None
    for name, result in candidates.items():
        if best is None or result.mse < candidates[best].mse:
            best = name
    return best


def compare_algorithms(
    series: SeriesLike,
    horizon: int,
    params: Union[ForecastParams, dict, None] = None,
) -> ComparisonResult:
    points = _coerce_series(series)
    params = _coerce_params(params)
    results = {key: forecast(points, horizon, key, params) for key in ALGORITHMS}
    return ComparisonResult(results=results, best_algorithm=select_best_model(results))


def evaluate_alert_rules(result: Union[PredictionResult, dict], rules: Iterable[Union[AlertRule, dict]]) -> List[AlertEvent]:
    """Return one event per (enabled rule, forecast point) pair that fires.

    ``growth_above`` compares the percentage change from the previous
    forecast point against the threshold; it never fires on the first point
    or after a zero value.
    """
    if not isinstance(result, PredictionResult):
        result = PredictionResult.model_validate(result)
    rules = [r if isinstance(r, AlertRule) else AlertRule.model_validate(r) for r in rules]

    events = []
    for rule in rules:
        if not rule.enabled:
            continue
        previous = None
        for point in result.predictions:
            if rule.condition == 'value_above':
                fired = point.value > rule.threshold
            elif rule.condition == 'value_below':
                fired = point.value < rule.threshold
            else:
                fired = (
                    previous is not None
                    and previous != 0
                    and (point.value - previous) / abs(previous) * 100 > rule.threshold
                )
            if fired:
                events.append(AlertEvent(rule=rule.name, date=point.date, value=point.value))
            previous = point.value
    return events


# --- DataFrame / CSV ingestion ---

DATE_KEYWORDS = ('date', 'ds', 'time', 'day', 'timestamp', 'period')
VALUE_KEYWORDS = ('value', 'y', 'amount', 'sales', 'revenue', 'count', 'total', 'price', 'qty')


def _looks_like_id(name: str) -> bool:
    lowered = name.lower()
    return lowered in ('id', 'index') or lowered.endswith('_id')


def _parse_numeric_series(series: pd.Series) -> pd.Series:
    """Coerce strings like '1,234.50', '1.234,50' or '$99' to floats (NaN on failure)."""
    if pd.api.types.is_numeric_dtype(series):
        return pd.to_numeric(series, errors='coerce')
    s = series.astype(str).str.strip().str.replace(r'[^0-9,.\-]', '', regex=True)

    def normalise(v: str) -> str:
        if ',' in v and '.' in v:
            # whichever separator comes last is the decimal point
            if v.rfind(',') > v.rfind('.'):
                return v.replace('.', '').replace(',', '.')
            return v.replace(',', '')
        if v.count('.') > 1:
            # '1.234.567': dots as thousands separators
            return v.replace('.', '')
        if v.count(',') == 1:
            return v.replace(',', '.')
        return v.replace(',', '')

    return pd.to_numeric(s.map(normalise), errors='coerce')


def _plausible_date_count(series: pd.Series) -> int:
    """Number of entries that parse as dates with a year in 1900..2100."""
    if pd.api.types.is_datetime64_any_dtype(series):
        parsed = series
    elif pd.api.types.is_numeric_dtype(series):
        return 0
    else:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                parsed = pd.to_datetime(series, errors='coerce')
        except (ValueError, TypeError):
            return 0
    if not pd.api.types.is_datetime64_any_dtype(parsed):
        # mixed UTC offsets come back as an object column
        return 0
    years = parsed.dt.year
    return int(((years >= 1900) & (years <= 2100)).sum())


def _detect_date_column(df: pd.DataFrame) -> Optional[str]:
    """Exact keyword names first, then names containing a keyword token.

    A candidate only wins when at least half of its rows parse as dates, so
    'day_of_week' does not shadow a real 'date' column.
    """
    names = {c: str(c).lower() for c in df.columns}
    exact = [c for c in df.columns if names[c] in DATE_KEYWORDS]
    partial = [
        c for c in df.columns
        if c not in exact and any(k in names[c].split('_') for k in DATE_KEYWORDS)
    ]
    needed = max(1, len(df) // 2)
    for c in exact + partial:
        if _plausible_date_count(df[c]) >= needed:
            return c
    for c in df.columns:
        if pd.api.types.is_datetime64_any_dtype(df[c]):
            return c
    return None


def _detect_value_column(df: pd.DataFrame, exclude: Optional[str] = None) -> Optional[str]:
    """Prefer value-like column names, then the first non-ID numeric column."""
    candidates = [c for c in df.columns if c != exclude]
    for c in candidates:
        lowered = str(c).lower()
        if lowered in VALUE_KEYWORDS or any(k in lowered.split('_') for k in VALUE_KEYWORDS):
            return c
    for c in candidates:
        if pd.api.types.is_numeric_dtype(df[c]) and not _looks_like_id(str(c)):
            return c
    best, best_count = None, 0
    for c in candidates:
        if _looks_like_id(str(c)):
            continue
        count = int(_parse_numeric_series(df[c]).notna().sum())
        if count > best_count:
            best, best_count = c, count
    return best


def series_from_frame(df_or_path: Union[pd.DataFrame, str]) -> List[DataPoint]:
    """Turn a DataFrame (or CSV path) into a date-sorted list of DataPoints.

    Rows whose value or date cannot be parsed are dropped. Without a date
    column the rows are dated on consecutive days ending today.
    """
    if isinstance(df_or_path, str):
        df = pd.read_csv(df_or_path)
    else:
        df = df_or_path.copy()
    if df.empty or len(df.columns) == 0:
        raise InvalidInput('input table is empty')

    date_col = _detect_date_column(df)
    value_col = _detect_value_column(df, exclude=date_col)
    if value_col is None:
        raise InvalidInput(f'could not detect a numeric value column among {list(df.columns)}')

    values = _parse_numeric_series(df[value_col])
    if date_col is None:
        dates = pd.Series(pd.date_range(end=pd.Timestamp.today().normalize(), periods=len(df), freq='D'))
    else:
        dates = pd.to_datetime(df[date_col], errors='coerce')

    std = pd.DataFrame({'date': dates.values, 'value': values.values}).dropna()
    std = std.sort_values('date').drop_duplicates(subset='date', keep='last')
    if std.empty:
        raise InvalidInput(f'no parsable rows (date column={date_col}, value column={value_col})')
    logger.debug('Loaded %d rows using date=%s value=%s', len(std), date_col, value_col)
    return [
        DataPoint(date=pd.Timestamp(d).strftime('%Y-%m-%d'), value=float(v))
        for d, v in zip(std['date'], std['value'])
    ]
