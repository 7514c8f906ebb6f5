import logging

from redis import Redis
from rq import Queue, Worker

from trendcast import config

redis_url = config.REDIS_URL or 'redis://redis:6379/0'

if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL)
    redis_conn = Redis.from_url(redis_url)
    worker = Worker([Queue(config.QUEUE_NAME, connection=redis_conn)], connection=redis_conn)
    worker.work()
