import sys
import pathlib
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[3]
sys.path.insert(0, str(ROOT / 'backend'))

pd = pytest.importorskip('pandas')

from trendcast.core.forecasting import detect_anomalies
from trendcast.errors import InvalidInput, UnknownMethod


def make_series(values, start='2024-03-01'):
    dates = pd.date_range(start=start, periods=len(values), freq='D')
    return [{'date': d.strftime('%Y-%m-%d'), 'value': v} for d, v in zip(dates, values)]


def test_zscore_flags_large_outlier_as_high():
    # one outlier among n points has z = sqrt(n - 1); sqrt(30) > 2 * 2.5
    series = make_series([10] * 30 + [100])
    result = detect_anomalies(series, 'zscore')
    assert result.threshold == 2.5
    assert len(result.anomalies) == 1
    found = result.anomalies[0]
    assert found.value == 100
    assert found.severity == 'high'
    assert found.score == pytest.approx(30 ** 0.5)
    assert found.date == series[-1]['date']


def test_zscore_short_series_score_is_bounded():
    # z of the outlier in [10, 10, 10, 10, 100] is exactly 2.0
    series = make_series([10, 10, 10, 10, 100])
    assert detect_anomalies(series, 'zscore').anomalies == []
    lowered = detect_anomalies(series, 'zscore', threshold=1.5)
    assert len(lowered.anomalies) == 1
    assert lowered.anomalies[0].score == pytest.approx(2.0)
    assert lowered.anomalies[0].severity == 'low'


def test_zscore_zero_variance_has_no_anomalies():
    result = detect_anomalies(make_series([10, 10, 10, 10, 10]), 'zscore')
    assert result.anomalies == []


def test_iqr_flags_upper_outlier():
    series = make_series([1, 2, 3, 4, 5, 6, 7, 8, 9, 1000])
    result = detect_anomalies(series, 'iqr')
    assert result.threshold == 1.5
    assert [a.value for a in result.anomalies] == [1000]
    found = result.anomalies[0]
    assert found.reason == 'above IQR upper bound'
    assert found.severity == 'high'
    # Q1 = 3, Q3 = 8 by index truncation, upper fence 15.5
    assert found.score == pytest.approx((1000 - 15.5) / 5)


def test_iqr_flags_lower_outlier():
    series = make_series([-1000, 1, 2, 3, 4, 5, 6, 7, 8, 9])
    result = detect_anomalies(series, 'iqr')
    assert [a.value for a in result.anomalies] == [-1000]
    assert result.anomalies[0].reason == 'below IQR lower bound'


def test_iqr_severity_tiers():
    base = [1, 2, 3, 4, 5, 6, 7, 8, 9]
    # Q1 = 3, Q3 = 8, upper fence 15.5 for these ten points
    low = detect_anomalies(make_series(base + [17]), 'iqr').anomalies
    assert [a.severity for a in low] == ['low']
    medium = detect_anomalies(make_series(base + [20]), 'iqr').anomalies
    assert [a.severity for a in medium] == ['medium']
    high = detect_anomalies(make_series(base + [30]), 'iqr').anomalies
    assert [a.severity for a in high] == ['high']


def test_iqr_flat_series_has_no_anomalies():
    assert detect_anomalies(make_series([5] * 8), 'iqr').anomalies == []


def test_iqr_custom_multiplier_is_reported():
    result = detect_anomalies(make_series([1, 2, 3, 4, 5, 6, 7, 8, 9, 20]), 'iqr', threshold=3.0)
    assert result.threshold == 3.0
    assert result.anomalies == []


def test_anomaly_dates_come_from_input_points():
    series = [
        {'date': '2023-01-05', 'value': 10},
        {'date': '2023-02-17', 'value': 11},
        {'date': '2023-06-30', 'value': 12},
        {'date': '2023-07-01', 'value': 13},
        {'date': '2023-09-09', 'value': 500},
    ]
    result = detect_anomalies(series, 'iqr')
    assert [a.date for a in result.anomalies] == ['2023-09-09']


def test_unknown_method_and_empty_series():
    with pytest.raises(UnknownMethod) as excinfo:
        detect_anomalies(make_series([1, 2, 3]), 'isolation_forest')
    assert 'zscore' in str(excinfo.value)
    with pytest.raises(InvalidInput):
        detect_anomalies([], 'zscore')
