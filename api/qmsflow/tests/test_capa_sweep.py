from __future__ import annotations

from datetime import timedelta

import pytest

from qmsflow.services.capa_escalation_service import sweep_overdue_capas
from qmsflow.services.record_store import RecordStoreError
from qmsflow.services.service_factory import build_services
from qmsflow.utils.datetime import utcnow


@pytest.mark.asyncio
async def test_sweep_escalates_only_overdue_open_capas(services, records):
    overdue = await records.insert(
        "capa_actions", {"title": "Overdue", "status": "In Progress", "due_date": utcnow() - timedelta(days=1)}
    )
    upcoming = await records.insert(
        "capa_actions", {"title": "Upcoming", "status": "Open", "due_date": utcnow() + timedelta(days=10)}
    )
    await records.insert(
        "capa_actions", {"title": "Closed", "status": "Closed", "due_date": utcnow() - timedelta(days=30)}
    )

    result = await sweep_overdue_capas(records, services.engine)

    assert result == {"checked": 2, "escalated": 1}
    [escalated] = await records.select("capa_actions", {"id": overdue["id"]})
    assert (escalated["status"], escalated["priority"]) == ("Overdue", "Critical")
    [untouched] = await records.select("capa_actions", {"id": upcoming["id"]})
    assert untouched["status"] == "Open"


@pytest.mark.asyncio
async def test_escalated_capas_are_not_swept_twice(services, records, notifier):
    await records.insert("capa_actions", {"title": "Late", "status": "Open", "due_date": utcnow() - timedelta(days=3)})

    first = await sweep_overdue_capas(records, services.engine)
    notifier.drain()
    second = await sweep_overdue_capas(records, services.engine)

    assert first["escalated"] == 1
    assert second == {"checked": 0, "escalated": 0}
    assert notifier.snapshot() == []


def test_sweep_schedule_follows_settings(monkeypatch):
    from qmsflow.core.config import settings
    from qmsflow.jobs.capa_sweep import sweep_overdue_capas_job
    from qmsflow.jobs.schedule_registry import scheduled_jobs

    monkeypatch.setattr(settings, "capa_sweep_interval_seconds", 5)
    [job] = scheduled_jobs()
    assert job.func is sweep_overdue_capas_job
    assert job.interval_seconds == 60
    assert job.queue_name == "automations"

    monkeypatch.setattr(settings, "capa_sweep_interval_seconds", 0)
    assert scheduled_jobs() == []


class _UpdateFailingStore:
    """Delegates reads and inserts but rejects every update."""

    def __init__(self, records) -> None:
        self.records = records

    async def select(self, table, filters=None):
        return await self.records.select(table, filters)

    async def insert(self, table, row):
        return await self.records.insert(table, row)

    async def update(self, table, patch, filters):
        raise RecordStoreError(f"update_failed:{table}")


@pytest.mark.asyncio
async def test_failed_updates_are_not_counted_as_escalations(records, rule_store, workflow_store, notifier):
    await records.insert("capa_actions", {"title": "Late", "status": "Open", "due_date": utcnow() - timedelta(days=3)})
    store = _UpdateFailingStore(records)
    services = build_services(store, rules=rule_store, templates=workflow_store, notifier=notifier)

    result = await sweep_overdue_capas(store, services.engine)

    assert result == {"checked": 1, "escalated": 0}
    [capa] = await records.select("capa_actions")
    assert capa["status"] == "Open"


def test_worker_serves_the_sweep_queue_even_when_unconfigured(monkeypatch):
    from qmsflow.core.config import settings
    from qmsflow.worker import served_queue_names

    monkeypatch.setattr(settings, "capa_sweep_interval_seconds", 3600)
    monkeypatch.setattr(settings, "worker_queue_names", ["default"])
    assert served_queue_names() == ["default", "automations"]

    monkeypatch.setattr(settings, "worker_queue_names", ["automations", "default"])
    assert served_queue_names() == ["automations", "default"]
