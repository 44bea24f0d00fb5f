"""Periodic automation jobs registered with rq-scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable

from rq_scheduler import Scheduler

from qmsflow.core.config import settings
from qmsflow.jobs.capa_sweep import sweep_overdue_capas_job
from qmsflow.services.task_queue import AUTOMATIONS_QUEUE, task_queue
from qmsflow.utils.datetime import utcnow

logger = logging.getLogger("qmsflow.jobs.schedule_registry")

RESULT_TTL = timedelta(hours=1)


@dataclass(slots=True, frozen=True)
class ScheduledJob:
    id: str
    func: Callable[..., Any]
    interval_seconds: int
    queue_name: str


def scheduled_jobs() -> list[ScheduledJob]:
    """Jobs that should be running; a non-positive interval disables the sweep."""
    if settings.capa_sweep_interval_seconds <= 0:
        return []
    queue_name = AUTOMATIONS_QUEUE if AUTOMATIONS_QUEUE in task_queue.queue_names else task_queue.queue_names[0]
    return [
        ScheduledJob(
            id="automations:sweep_overdue_capas",
            func=sweep_overdue_capas_job,
            interval_seconds=max(60, settings.capa_sweep_interval_seconds),
            queue_name=queue_name,
        )
    ]


def ensure_schedules() -> None:
    """Idempotently register periodic jobs with rq-scheduler."""
    if settings.environment.lower() == "test":
        return
    if task_queue.connection is None:
        logger.info("Skipping scheduler bootstrap; queue connection is unavailable")
        return
    scheduler = Scheduler(connection=task_queue.connection, queue_name=task_queue.queue_names[0])
    for job in scheduled_jobs():
        if scheduler.get_job(job.id):
            continue
        scheduler.schedule(
            scheduled_time=utcnow(),
            func=job.func,
            interval=job.interval_seconds,
            repeat=None,
            id=job.id,
            queue_name=job.queue_name,
            result_ttl=int(RESULT_TTL.total_seconds()),
        )
        logger.info("Scheduled %s every %ss on queue %s", job.id, job.interval_seconds, job.queue_name)
