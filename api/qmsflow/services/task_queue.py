"""RQ-backed job dispatch for automation sweeps, running inline when Redis is absent."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from redis import Redis
from rq import Queue

from qmsflow.core.config import settings

logger = logging.getLogger("qmsflow.services.task_queue")

AUTOMATIONS_QUEUE = "automations"


async def _await_inline(target: Callable[[], Any]) -> Any:
    result = target()
    if asyncio.iscoroutine(result):
        return await result
    return result


class TaskQueue:
    """Sends jobs to an RQ worker and blocks for the result.

    Jobs carry no retry profile; a job that fails on the worker is rerun
    inline once through the caller's fallback.
    """

    def __init__(self) -> None:
        self.queue_names: list[str] = settings.worker_queue_names or ["default"]
        self._connection: Redis | None = None
        self._connect()

    @property
    def enabled(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> Redis | None:
        return self._connection

    def _connect(self) -> None:
        if settings.environment.lower() == "test":
            logger.info("Task queue disabled in test environment")
            return
        try:
            connection = Redis.from_url(settings.redis_url)
            connection.ping()
        except Exception as exc:  # pragma: no cover - network/redis specific
            logger.warning("Redis unavailable at %s; automation jobs run inline: %s", settings.redis_url, exc)
            return
        self._connection = connection
        logger.info("Task queue ready (queues: %s)", ", ".join(self.queue_names))

    def queue_for(self, queue_name: str | None = None) -> Queue:
        if self._connection is None:
            raise RuntimeError("Queue connection not initialized")
        name = queue_name if queue_name in self.queue_names else self.queue_names[0]
        return Queue(name, connection=self._connection)

    async def enqueue_capa_sweep(self, *, fallback: Callable[[], Awaitable[dict[str, int]]]) -> dict[str, int]:
        """Run the overdue CAPA sweep on the automations queue."""
        from qmsflow.jobs.capa_sweep import sweep_overdue_capas_job

        return await self.enqueue_or_run(
            sweep_overdue_capas_job,
            fallback=fallback,
            queue_name=AUTOMATIONS_QUEUE,
            timeout_seconds=120,
            description="automations:sweep_overdue_capas",
        )

    async def enqueue_or_run(
        self,
        func: Callable[..., Any],
        *,
        fallback: Callable[[], Any] | None = None,
        queue_name: str | None = None,
        timeout_seconds: int = 60,
        description: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Enqueue ``func`` and wait for its return value, or run ``fallback`` in-process."""
        inline = fallback or (lambda: func(**kwargs))
        if self._connection is None:
            return await _await_inline(inline)

        def _dispatch() -> Any:
            job = self.queue_for(queue_name).enqueue(
                func, kwargs=kwargs, job_timeout=timeout_seconds, description=description
            )
            result = job.latest_result(timeout=timeout_seconds)
            if result is None or result.type != result.Type.SUCCESSFUL:
                raise RuntimeError(f"Job {job.id} did not finish successfully")
            return result.return_value

        try:
            return await asyncio.to_thread(_dispatch)
        except Exception as exc:  # pragma: no cover - network/redis specific
            logger.warning("Queued %s failed; running inline: %s", description or func.__name__, exc)
            return await _await_inline(inline)


task_queue = TaskQueue()
