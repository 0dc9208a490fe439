"""
RQ worker entry point — processes uploads when PROCESS_MODE=queue.

Usage:
    python worker.py
"""
from rq import Queue, Worker

from campaign_metrics.config import RQ_QUEUE_NAME
from campaign_metrics.database import import_models
from campaign_metrics.extensions import redis_client
from campaign_metrics.logging_config import configure_logging


def main():
    configure_logging()
    import_models()
    worker = Worker([Queue(RQ_QUEUE_NAME, connection=redis_client)], connection=redis_client)
    worker.work()


if __name__ == '__main__':
    main()
