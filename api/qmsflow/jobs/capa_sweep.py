"""Scheduled job for escalating overdue CAPAs."""

from __future__ import annotations

import asyncio
import logging

from qmsflow.db.session import async_session
from qmsflow.services.capa_escalation_service import sweep_overdue_capas
from qmsflow.services.service_factory import build_session_services

logger = logging.getLogger("qmsflow.jobs.capa_sweep")


def sweep_overdue_capas_job() -> dict[str, int]:
    """Run the overdue CAPA sweep within a worker context."""

    async def _run() -> dict[str, int]:
        async with async_session() as session:
            services = build_session_services(session)
            return await sweep_overdue_capas(services.records, services.engine)

    result = asyncio.run(_run())
    logger.info("CAPA sweep complete (%s escalated)", result["escalated"])
    return result
