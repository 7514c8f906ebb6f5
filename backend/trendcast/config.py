import os

# Runtime settings come from the environment so containers can override them.
MAX_HORIZON = int(os.environ.get('TRENDCAST_MAX_HORIZON', '90'))
LOG_LEVEL = os.environ.get('TRENDCAST_LOG_LEVEL', 'INFO').upper()
REDIS_URL = os.environ.get('REDIS_URL')
QUEUE_NAME = os.environ.get('TRENDCAST_QUEUE', 'default')


def get_max_horizon() -> int:
    """Largest accepted forecast horizon; re-read so tests can monkeypatch the env."""
    raw = os.environ.get('TRENDCAST_MAX_HORIZON')
    if raw is None:
        return MAX_HORIZON
    try:
        value = int(raw)
    except ValueError:
        return MAX_HORIZON
    return value if value > 0 else MAX_HORIZON
