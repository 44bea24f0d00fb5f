"""FastAPI application entrypoint and health reporting."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qmsflow.api.router import api_router
from qmsflow.core.config import settings
from qmsflow.jobs.schedule_registry import ensure_schedules
from qmsflow.services.task_queue import task_queue

LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def _startup() -> None:
    """Configure logging and register scheduled jobs."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    ensure_schedules()


@app.get("/health", tags=["internal"])
@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health() -> dict[str, Any]:
    """Return service status and whether background jobs run on a queue or inline."""
    return {"status": "ok", "task_queue": "queued" if task_queue.enabled else "inline"}
