import sys
import pathlib
import pytest

# Ensure backend package is importable (add backend/ to sys.path)
ROOT = pathlib.Path(__file__).resolve().parents[3]
sys.path.insert(0, str(ROOT / 'backend'))

pd = pytest.importorskip('pandas')
pytest.importorskip('fastapi')
from fastapi.testclient import TestClient

from trendcast import main as api
from trendcast.main import app


client = TestClient(app)


def make_payload(n=30, **extra):
    dates = pd.date_range(start='2024-01-01', periods=n, freq='D')
    data = [{'date': d.strftime('%Y-%m-%d'), 'value': 50 + i} for i, d in enumerate(dates)]
    return {'data': data, **extra}


def test_health():
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'healthy'}


def test_algorithms_catalog():
    r = client.get('/algorithms')
    assert r.status_code == 200
    assert [a['key'] for a in r.json()] == ['linear', 'arima', 'exponential', 'nonlinear']


def test_forecast_endpoint_happy_path():
    r = client.post('/forecast', json=make_payload(algorithm='exponential', horizon=14, seasonLength=7))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body['algorithm'] == 'exponential'
    assert len(body['predictions']) == 14
    assert body['predictions'][0]['date'] == '2024-01-31'
    assert body['seasonality'] == {'detected': True, 'period': 7}
    assert body['trend'] in ('up', 'down', 'stable')


def test_forecast_endpoint_rejects_bad_horizon():
    r = client.post('/forecast', json=make_payload(algorithm='linear', horizon=0))
    assert r.status_code == 400
    assert 'horizon' in r.json()['detail']


def test_forecast_endpoint_lists_valid_algorithms():
    r = client.post('/forecast', json=make_payload(algorithm='prophet', horizon=7))
    assert r.status_code == 400
    assert 'linear' in r.json()['detail']


def test_forecast_endpoint_rejects_empty_series():
    r = client.post('/forecast', json={'data': [], 'algorithm': 'arima', 'horizon': 7})
    assert r.status_code == 400


def test_compare_endpoint():
    r = client.post('/forecast/compare', json=make_payload(horizon=7, noise=False))
    assert r.status_code == 200, r.text
    body = r.json()
    assert set(body['results']) == {'linear', 'arima', 'exponential', 'nonlinear'}
    assert body['best_algorithm'] in body['results']


def test_upload_endpoint_with_sample_csv():
    sample_path = ROOT / 'data' / 'sample_sales.csv'
    assert sample_path.exists(), f"Sample CSV not found at {sample_path}"
    with open(sample_path, 'rb') as f:
        files = {'file': ('sample_sales.csv', f, 'text/csv')}
        r = client.post('/forecast/upload?algorithm=linear&horizon=10', files=files)
    assert r.status_code == 200, r.text
    body = r.json()
    assert len(body['predictions']) == 10
    assert body['predictions'][0]['date'] == '2024-03-01'
    assert body['trend'] == 'up'


def test_anomaly_endpoint():
    payload = make_payload(n=10)
    payload['data'][-1]['value'] = 5000
    payload['method'] = 'iqr'
    r = client.post('/anomalies', json=payload)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body['threshold'] == 1.5
    assert [a['date'] for a in body['anomalies']] == ['2024-01-10']


def test_anomaly_endpoint_unknown_method():
    r = client.post('/anomalies', json=make_payload(method='dbscan'))
    assert r.status_code == 400
    assert 'zscore' in r.json()['detail']


def test_alerts_endpoint():
    forecast_body = client.post('/forecast', json=make_payload(algorithm='linear', horizon=5)).json()
    rules = [{'name': 'over-80.5', 'condition': 'value_above', 'threshold': 80.5}]
    r = client.post('/alerts', json={'result': forecast_body, 'rules': rules})
    assert r.status_code == 200, r.text
    assert [e['date'] for e in r.json()] == ['2024-02-01', '2024-02-02', '2024-02-03', '2024-02-04']


def test_async_forecast_requires_queue(monkeypatch):
    monkeypatch.setattr(api.config, 'REDIS_URL', None)
    r = client.post('/forecast-async', json=make_payload(algorithm='linear', horizon=5))
    assert r.status_code == 503


def test_forecast_endpoint_rejects_oversized_season():
    r = client.post('/forecast', json=make_payload(algorithm='exponential', horizon=5, seasonLength=10 ** 12))
    assert r.status_code == 400
    assert 'seasonLength' in r.json()['detail']


def test_forecast_endpoint_rejects_oversized_ar_order():
    r = client.post('/forecast', json=make_payload(algorithm='arima', horizon=5, p=10 ** 12))
    assert r.status_code == 400


@pytest.fixture
def fake_queue(monkeypatch):
    """Swap redis/rq for in-memory stand-ins; yields the job table."""
    rq_exceptions = pytest.importorskip('rq.exceptions')
    from rq.job import JobStatus

    jobs = {}

    class FakeRedis:
        @classmethod
        def from_url(cls, url):
            conn = cls()
            conn.url = url
            return conn

    class FakeJob:
        def __init__(self, job_id, func, payload):
            self.id = job_id
            self.func = func
            self.payload = payload
            self.status = JobStatus.QUEUED
            self.result = None
            self.exc_info = None

        def get_status(self):
            return self.status

        def return_value(self):
            return self.result

        @classmethod
        def fetch(cls, job_id, connection=None):
            if job_id == 'redis-down':
                raise ConnectionError('connection refused')
            if job_id not in jobs:
                raise rq_exceptions.NoSuchJobError(f'No such job: {job_id}')
            return jobs[job_id]

    class FakeQueue:
        def __init__(self, name, connection=None):
            self.name = name
            self.connection = connection

        def enqueue(self, func, payload):
            job = FakeJob(f'job-{len(jobs) + 1}', func, payload)
            job.queue_name = self.name
            jobs[job.id] = job
            return job

    monkeypatch.setattr(api, '_RQ_AVAILABLE', True)
    monkeypatch.setattr(api.config, 'REDIS_URL', 'redis://queue:6379/0')
    monkeypatch.setattr(api, '_RedisClient', FakeRedis)
    monkeypatch.setattr(api, '_RQQueue', FakeQueue)
    monkeypatch.setattr(api, '_RQJob', FakeJob)
    return jobs


def test_async_forecast_enqueues_job(fake_queue):
    r = client.post('/forecast-async', json=make_payload(algorithm='linear', horizon=5, seasonLength=4))
    assert r.status_code == 200, r.text
    assert r.json() == {'job_id': 'job-1', 'queued': True}

    job = fake_queue['job-1']
    assert job.func == 'trendcast.tasks.forecast_job'
    assert job.queue_name == api.config.QUEUE_NAME
    assert job.payload['algorithm'] == 'linear'
    assert job.payload['seasonLength'] == 4
    assert len(job.payload['data']) == 30


def test_job_status_and_result(fake_queue):
    from rq.job import JobStatus
    from trendcast.tasks import forecast_job

    job_id = client.post('/forecast-async', json=make_payload(algorithm='linear', horizon=3)).json()['job_id']
    pending = client.get(f'/jobs/{job_id}').json()
    assert pending['status'] == 'queued'
    assert pending['result'] is None

    job = fake_queue[job_id]
    job.result = forecast_job(job.payload)
    job.status = JobStatus.FINISHED
    r = client.get(f'/jobs/{job_id}')
    assert r.status_code == 200
    body = r.json()
    assert body['id'] == job_id
    assert body['status'] == 'finished'
    assert [p['date'] for p in body['result']['predictions']] == ['2024-01-31', '2024-02-01', '2024-02-02']
    assert body['error'] is None


def test_unknown_job_is_404(fake_queue):
    r = client.get('/jobs/does-not-exist')
    assert r.status_code == 404


def test_job_lookup_failure_is_500(fake_queue):
    r = client.get('/jobs/redis-down')
    assert r.status_code == 500
    assert 'connection refused' in r.json()['detail']
