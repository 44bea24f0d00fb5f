"""Automation rules engine for domain events.

Invariants:
- Only enabled rules whose trigger module and event match are considered,
  each at most once per event.
- Conditions are ANDed and short-circuit; a rule with a failing condition
  runs none of its actions.
- Actions run in order and are isolated: one failing action never stops the
  next action or the next rule. process_event never raises.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from qmsflow.core.config import settings
from qmsflow.schema.automation import (
    AssignUserAction,
    AutomationAction,
    AutomationRule,
    AutomationRuleCreate,
    AutomationRuleUpdate,
    CreateRecordAction,
    SendNotificationAction,
    TriggerWorkflowAction,
    UpdateRecordAction,
)
from qmsflow.services.automation_conditions import evaluate_conditions
from qmsflow.services.notification_service import Notifier, notify_quietly
from qmsflow.services.record_store import RecordStore
from qmsflow.services.rule_store import RuleStore
from qmsflow.services.workflow_orchestration_service import WorkflowOrchestrationService
from qmsflow.utils.datetime import utcnow

logger = logging.getLogger("qmsflow.services.automation_rules_engine")

ActionHandler = Callable[[Any, dict[str, Any]], Awaitable[dict[str, Any]]]

MODULE_TABLES: dict[str, str] = {
    "capa": "capa_actions",
    "non-conformance": "non_conformances",
    "audit": "audits",
    "complaint": "complaints",
}

IMMUTABLE_RULE_FIELDS = {"id", "created_at"}


class AutomationRuleError(ValueError):
    """Raised when a rule definition cannot be added or merged."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def table_for_module(module: str) -> str | None:
    return MODULE_TABLES.get(module)


class AutomationRulesEngine:
    """Matches domain events against rules and executes their actions."""

    def __init__(
        self,
        *,
        rules: RuleStore,
        records: RecordStore,
        orchestrator: WorkflowOrchestrationService,
        notifier: Notifier,
        order_by_priority: bool | None = None,
    ) -> None:
        self.rules = rules
        self.records = records
        self.orchestrator = orchestrator
        self.notifier = notifier
        self.order_by_priority = (
            settings.rules_order_by_priority if order_by_priority is None else order_by_priority
        )
        self._handlers: dict[str, ActionHandler] = {
            "trigger_workflow": self._trigger_workflow,
            "create_record": self._create_record,
            "update_record": self._update_record,
            "send_notification": self._send_notification,
            "assign_user": self._assign_user,
        }

    async def process_event(
        self, module: str, event: str, data: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Evaluate every applicable rule for the event and return per-rule summaries."""
        payload = data if isinstance(data, dict) else {}
        logger.info("Processing automation event %s.%s", module, event)
        try:
            applicable = [
                rule
                for rule in self.rules.list_rules()
                if rule.enabled and rule.trigger_module == module and rule.trigger_event == event
            ]
        except Exception:
            logger.exception("Unable to load automation rules for %s.%s", module, event)
            return []
        if self.order_by_priority:
            applicable.sort(key=lambda rule: rule.priority)

        summaries: list[dict[str, Any]] = []
        for rule in applicable:
            try:
                matched = evaluate_conditions(rule.conditions, payload)
            except Exception:
                logger.exception("Condition evaluation failed for rule %s", rule.id)
                matched = False
            if not matched:
                summaries.append({"rule_id": rule.id, "rule_name": rule.name, "status": "skipped", "actions": []})
                continue
            logger.info("Executing rule %s", rule.name)
            outcomes = await self._execute_actions(rule, payload)
            summaries.append(
                {"rule_id": rule.id, "rule_name": rule.name, "status": "completed", "actions": outcomes}
            )
        return summaries

    async def _execute_actions(self, rule: AutomationRule, data: dict[str, Any]) -> list[dict[str, Any]]:
        outcomes: list[dict[str, Any]] = []
        for action in rule.actions:
            handler = self._handlers[action.type]
            try:
                detail = await handler(action, data)
            except Exception as exc:
                logger.exception("Failed to execute action %s for rule %s", action.type, rule.id)
                outcomes.append({"type": action.type, "status": "failed", "error": str(exc)})
                continue
            outcomes.append({"type": action.type, "status": detail.get("status", "completed"), "detail": detail})
        return outcomes

    def _resolve_table(self, action: AutomationAction) -> str | None:
        table = table_for_module(action.target_module)
        if table is None:
            logger.warning("No table mapped for module %s (%s)", action.target_module, action.type)
            notify_quietly(self.notifier, "error", f"No table mapped for module {action.target_module}")
        return table

    async def _trigger_workflow(self, action: TriggerWorkflowAction, data: dict[str, Any]) -> dict[str, Any]:
        workflow_id = action.parameters.workflow_id
        source_id = data.get("id")
        succeeded = await self.orchestrator.execute_workflow(
            workflow_id, str(source_id) if source_id is not None else None, data
        )
        return {"status": "completed" if succeeded else "failed", "workflow_id": workflow_id}

    async def _create_record(self, action: CreateRecordAction, data: dict[str, Any]) -> dict[str, Any]:
        logger.info("Record creation for %s is not automated; parameters=%s", action.target_module, action.parameters)
        return {"status": "skipped", "reason": "create_record_not_automated"}

    async def _update_record(self, action: UpdateRecordAction, data: dict[str, Any]) -> dict[str, Any]:
        table = self._resolve_table(action)
        if table is None:
            return {"status": "skipped", "reason": "unknown_module"}
        rows = await self.records.update(table, dict(action.parameters), {"id": data.get("id")})
        return {"status": "updated", "table": table, "updated": len(rows)}

    async def _send_notification(self, action: SendNotificationAction, data: dict[str, Any]) -> dict[str, Any]:
        params = action.parameters
        # Recipients naming a payload field (e.g. "assigned_to") resolve to that field's value.
        recipients = [str(data[name]) if data.get(name) else name for name in params.recipients]
        delivered = notify_quietly(self.notifier, "info", params.message)
        logger.info("Notification (%s) to %s: %s", params.type, ", ".join(recipients), params.message)
        return {"status": "notified" if delivered else "not_delivered", "recipients": recipients}

    async def _assign_user(self, action: AssignUserAction, data: dict[str, Any]) -> dict[str, Any]:
        table = self._resolve_table(action)
        if table is None:
            return {"status": "skipped", "reason": "unknown_module"}
        rows = await self.records.update(table, {"assigned_to": action.parameters.user_id}, {"id": data.get("id")})
        return {"status": "assigned", "table": table, "updated": len(rows)}

    def get_rules(self) -> list[AutomationRule]:
        return self.rules.list_rules()

    def _new_rule_id(self) -> str:
        existing = {rule.id for rule in self.rules.list_rules()}
        while True:
            candidate = f"rule-{uuid.uuid4().hex[:12]}"
            if candidate not in existing:
                return candidate

    def add_rule(self, rule: AutomationRuleCreate | dict[str, Any]) -> str:
        """Store a new rule under a fresh id and return that id."""
        try:
            payload = AutomationRuleCreate.model_validate(rule)
            new_rule = AutomationRule.model_validate(
                {**payload.model_dump(), "id": self._new_rule_id(), "created_at": utcnow()}
            )
        except ValidationError as exc:
            raise AutomationRuleError(str(exc)) from exc
        self.rules.add(new_rule)
        logger.info("Added automation rule %s (%s)", new_rule.id, new_rule.name)
        return new_rule.id

    def update_rule(self, rule_id: str, updates: AutomationRuleUpdate | dict[str, Any]) -> bool:
        """Merge ``updates`` into an existing rule; False when the rule is unknown."""
        current = self.rules.get(rule_id)
        if current is None:
            return False
        if isinstance(updates, AutomationRuleUpdate):
            changes = updates.model_dump(exclude_unset=True)
        else:
            changes = {key: value for key, value in updates.items() if key not in IMMUTABLE_RULE_FIELDS}
        changes = {key: value for key, value in changes.items() if value is not None}
        try:
            merged = AutomationRule.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise AutomationRuleError(str(exc)) from exc
        return self.rules.replace(merged)

    def delete_rule(self, rule_id: str) -> bool:
        removed = self.rules.remove(rule_id)
        if removed:
            logger.info("Deleted automation rule %s", rule_id)
        return removed
