"""Multi-step workflow execution and trigger discovery.

Invariants:
- Steps run in declaration order; auto steps merge their output into the
  data handed to later steps.
- Manual steps become pending tasks and never block the steps after them.
- Any exception from a step aborts the run and reports failure; steps that
  already completed keep their side effects.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from qmsflow.core.config import settings
from qmsflow.schema.workflow import WorkflowStep, WorkflowTaskRead, WorkflowTemplate
from qmsflow.services.automation_conditions import strict_equals
from qmsflow.services.notification_service import Notifier, notify_quietly
from qmsflow.services.record_store import RecordStore, RecordStoreError
from qmsflow.services.relationship_store import RelationshipStore
from qmsflow.services.workflow_steps import StepContext, get_step_executor
from qmsflow.services.workflow_store import WorkflowTemplateStore

logger = logging.getLogger("qmsflow.services.workflow_orchestration")

TASKS_TABLE = "workflow_tasks"


def _conditions_met(expected: dict[str, Any], data: dict[str, Any]) -> bool:
    for key, expected_value in expected.items():
        actual = data.get(key)
        if isinstance(expected_value, list):
            if not any(strict_equals(actual, item) for item in expected_value):
                return False
        elif not strict_equals(actual, expected_value):
            return False
    return True


class WorkflowOrchestrationService:
    """Runs workflow templates against the record store."""

    def __init__(
        self,
        *,
        templates: WorkflowTemplateStore,
        records: RecordStore,
        relationships: RelationshipStore,
        notifier: Notifier,
        capa_due_days: int | None = None,
    ) -> None:
        self.templates = templates
        self.records = records
        self.relationships = relationships
        self.notifier = notifier
        self.capa_due_days = capa_due_days if capa_due_days is not None else settings.capa_due_days

    async def execute_workflow(
        self,
        workflow_id: str,
        source_id: str | None,
        initial_data: dict[str, Any] | None = None,
        *,
        source_type: str | None = None,
    ) -> bool:
        """Run every step of ``workflow_id``; True when all steps were run or deferred."""
        workflow = self.templates.get(workflow_id)
        if workflow is None:
            logger.warning("Workflow template %s not found", workflow_id)
            notify_quietly(self.notifier, "error", "Workflow template not found")
            return False

        ctx = StepContext(
            records=self.records,
            relationships=self.relationships,
            workflow=workflow,
            source_id=source_id,
            source_type=source_type or workflow.source_type or "unknown",
            capa_due_days=self.capa_due_days,
        )
        current_data: dict[str, Any] = dict(initial_data or {})
        try:
            logger.info("Executing workflow %s for %s", workflow.name, source_id)
            for step in workflow.steps:
                logger.info("Executing step %s (%s)", step.name, "auto" if step.auto_execute else "manual")
                if step.auto_execute:
                    result = await self._execute_step(ctx, step, current_data)
                    if result:
                        current_data = {**current_data, **result}
                else:
                    await self._create_pending_task(ctx, step, current_data)
        except Exception:
            logger.exception("Workflow %s failed for %s", workflow.id, source_id)
            notify_quietly(self.notifier, "error", "Failed to execute workflow")
            return False

        notify_quietly(self.notifier, "success", f"Workflow {workflow.name} initiated successfully")
        return True

    async def _execute_step(
        self, ctx: StepContext, step: WorkflowStep, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        executor = get_step_executor(step.module_type, step.action_type)
        if executor is None:
            logger.warning("Unknown step executor %s/%s; skipping %s", step.module_type, step.action_type, step.id)
            return None
        return await executor(ctx, step, data)

    async def _create_pending_task(self, ctx: StepContext, step: WorkflowStep, data: dict[str, Any]) -> None:
        await self.records.insert(
            TASKS_TABLE,
            {
                "workflow_id": ctx.workflow.id,
                "step_id": step.id,
                "step_name": step.name,
                "module_type": step.module_type,
                "source_id": ctx.source_id,
                "assigned_role": step.assigned_role,
                "approval_required": step.approval_required,
                "status": "Pending",
                "payload": to_jsonable_python(data),
            },
        )
        logger.info("Created pending task %s for %s", step.name, ctx.source_id)
        notify_quietly(self.notifier, "info", f"Task created: {step.name}")

    async def get_pending_tasks(
        self, *, source_id: str | None = None, workflow_id: str | None = None
    ) -> list[WorkflowTaskRead]:
        """List pending manual steps; storage failures yield an empty list."""
        filters: dict[str, Any] = {"status": "Pending"}
        if source_id:
            filters["source_id"] = source_id
        if workflow_id:
            filters["workflow_id"] = workflow_id
        try:
            rows = await self.records.select(TASKS_TABLE, filters)
        except RecordStoreError:
            logger.exception("Failed to load pending workflow tasks")
            return []
        tasks: list[WorkflowTaskRead] = []
        for row in rows:
            try:
                tasks.append(WorkflowTaskRead.model_validate(row))
            except ValidationError:
                logger.warning("Skipping malformed workflow task %s", row.get("id"))
        return tasks

    def get_available_workflows(self) -> list[WorkflowTemplate]:
        return self.templates.list_templates(category="orchestrated")

    def check_trigger_conditions(
        self, module_type: str, event: str, data: dict[str, Any] | None = None
    ) -> list[str]:
        """Return ids of every workflow whose trigger conditions match the event."""
        payload = data or {}
        triggered: list[str] = []
        for workflow in self.templates.list_templates():
            for condition in workflow.trigger_conditions:
                if condition.module_type != module_type or condition.event != event:
                    continue
                if _conditions_met(condition.conditions, payload):
                    triggered.append(workflow.id)
        return triggered
