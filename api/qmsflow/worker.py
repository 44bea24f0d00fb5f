"""RQ worker entrypoint for automation jobs such as the overdue CAPA sweep."""

from __future__ import annotations

import logging

from redis import Redis
from rq import Queue, Worker

from qmsflow.core.config import settings
from qmsflow.jobs.schedule_registry import ensure_schedules, scheduled_jobs

WORKER_LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"

logger = logging.getLogger("qmsflow.worker")


def served_queue_names() -> list[str]:
    """Configured queues plus any queue a scheduled job is routed to."""
    names = list(settings.worker_queue_names)
    for job in scheduled_jobs():
        if job.queue_name not in names:
            logger.warning("Queue %s for %s is not configured; serving it anyway", job.queue_name, job.id)
            names.append(job.queue_name)
    return names


def main() -> None:
    logging.basicConfig(level=settings.log_level, format=WORKER_LOG_FORMAT, force=True)
    connection = Redis.from_url(settings.redis_url)
    names = served_queue_names()
    if not names:
        logger.error("No worker queues configured; set WORKER_QUEUE_NAMES or rely on the default.")
        return
    ensure_schedules()
    for job in scheduled_jobs():
        logger.info("Periodic job %s runs every %ss on %s", job.id, job.interval_seconds, job.queue_name)
    logger.info("Starting qmsflow worker for queues: %s", ", ".join(names))
    worker = Worker([Queue(name, connection=connection) for name in names], connection=connection, name="qmsflow-worker")
    try:
        worker.work(with_scheduler=True)
    except KeyboardInterrupt:
        logger.info("Worker shutdown requested")


if __name__ == "__main__":
    main()
