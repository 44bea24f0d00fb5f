"""Periodic status checks that feed open CAPAs through the rules engine."""

from __future__ import annotations

import logging

from qmsflow.services.automation_rules_engine import AutomationRulesEngine
from qmsflow.services.record_store import RecordStore

logger = logging.getLogger("qmsflow.services.capa_escalation")

SKIPPED_STATUSES = {"Closed", "Overdue"}


def _was_escalated(summaries: list[dict]) -> bool:
    # A matching rule only counts once its record update went through.
    return any(
        action["type"] == "update_record" and action["status"] == "updated"
        for summary in summaries
        if summary["status"] == "completed"
        for action in summary["actions"]
    )


async def sweep_overdue_capas(records: RecordStore, engine: AutomationRulesEngine) -> dict[str, int]:
    """Emit a ``capa.status_check`` event for every CAPA still open.

    Already-escalated CAPAs are skipped so the escalation notice fires once.
    """
    rows = await records.select("capa_actions")
    checked = 0
    escalated = 0
    for row in rows:
        if row.get("status") in SKIPPED_STATUSES:
            continue
        checked += 1
        summaries = await engine.process_event("capa", "status_check", row)
        if _was_escalated(summaries):
            escalated += 1
    logger.info("CAPA sweep checked %d records, escalated %d", checked, escalated)
    return {"checked": checked, "escalated": escalated}
