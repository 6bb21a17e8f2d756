"""
Worker entry point — scheduler thread + RQ worker pool.

Usage:
    python worker.py                  # scheduler + 5 workers (WORKER_CONCURRENCY)
    python worker.py --workers 2      # smaller pool
    python worker.py --no-scheduler   # workers only (run the scheduler elsewhere)
    python worker.py --burst          # drain the queue once and exit
"""
import argparse
import logging

from rq import Queue, Worker
from rq.worker_pool import WorkerPool

from adstats.config import QUEUE_NAME, WORKER_CONCURRENCY, SCHEDULER_INTERVAL_MINUTES, LOG_LEVEL
from adstats.extensions import queue_redis
from adstats.logging_config import configure_logging
from adstats.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger('stats.worker')


def main():
    parser = argparse.ArgumentParser(description='Stats sync worker')
    parser.add_argument('--workers', type=int, default=WORKER_CONCURRENCY,
                        help='Number of worker processes')
    parser.add_argument('--no-scheduler', action='store_true',
                        help='Do not run the periodic sync scheduler in this process')
    parser.add_argument('--interval', type=int, default=SCHEDULER_INTERVAL_MINUTES,
                        help='Scheduler interval in minutes')
    parser.add_argument('--burst', action='store_true',
                        help='Exit once the queue is empty')
    args = parser.parse_args()

    configure_logging()

    if not args.no_scheduler and not args.burst:
        start_scheduler(interval_minutes=args.interval)

    queue = Queue(QUEUE_NAME, connection=queue_redis)
    logger.info("Starting %d worker(s) on queue '%s'", args.workers, QUEUE_NAME)
    try:
        if args.workers <= 1:
            # Retry intervals need the RQ scheduler
            Worker([queue], connection=queue_redis).work(burst=args.burst, with_scheduler=True)
        else:
            pool = WorkerPool([queue], connection=queue_redis, num_workers=args.workers)
            pool.start(burst=args.burst, logging_level=LOG_LEVEL.upper())
    finally:
        stop_scheduler()


if __name__ == '__main__':
    main()
