"""Rule storage for the automation engine, seeded with the built-in rules."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from qmsflow.schema.automation import AutomationRule
from qmsflow.utils.datetime import utcnow

BUILTIN_RULE_DEFINITIONS: list[dict[str, Any]] = [
    {
        "id": "auto-nc-from-critical-audit",
        "name": "Auto-create NC from Critical Audit Findings",
        "description": "Automatically create non-conformance when critical audit findings are identified",
        "enabled": True,
        "trigger_module": "audit",
        "trigger_event": "finding_created",
        "conditions": [
            {"field": "severity", "operator": "in_array", "value": ["critical", "major"]},
        ],
        "actions": [
            {
                "type": "trigger_workflow",
                "target_module": "workflow",
                "parameters": {"workflow_id": "audit-finding-resolution"},
            },
            {
                "type": "send_notification",
                "target_module": "notification",
                "parameters": {
                    "type": "urgent",
                    "message": "Critical audit finding requires immediate attention",
                    "recipients": ["Quality Manager", "Department Head"],
                },
            },
        ],
        "priority": 1,
        "created_by": "system",
    },
    {
        "id": "auto-escalate-overdue-capa",
        "name": "Auto-escalate Overdue CAPAs",
        "description": "Automatically escalate CAPAs that are past due date",
        "enabled": True,
        "trigger_module": "capa",
        "trigger_event": "status_check",
        "conditions": [
            {"field": "status", "operator": "not_equals", "value": "Closed"},
            {"field": "due_date", "operator": "less_than", "value": "current_date"},
        ],
        "actions": [
            {
                "type": "update_record",
                "target_module": "capa",
                "parameters": {"status": "Overdue", "priority": "Critical"},
            },
            {
                "type": "send_notification",
                "target_module": "notification",
                "parameters": {
                    "type": "escalation",
                    "message": "CAPA is overdue and requires immediate attention",
                    "recipients": ["assigned_to", "Quality Director"],
                },
            },
        ],
        "priority": 2,
        "created_by": "system",
    },
]


def builtin_rules() -> list[AutomationRule]:
    """Validate the built-in definitions into fresh rule objects."""
    created_at = utcnow()
    return [
        AutomationRule.model_validate({**definition, "created_at": created_at})
        for definition in BUILTIN_RULE_DEFINITIONS
    ]


class RuleStore(Protocol):
    def list_rules(self) -> list[AutomationRule]:
        ...

    def get(self, rule_id: str) -> AutomationRule | None:
        ...

    def add(self, rule: AutomationRule) -> None:
        ...

    def replace(self, rule: AutomationRule) -> bool:
        ...

    def remove(self, rule_id: str) -> bool:
        ...


class InMemoryRuleStore:
    """Ordered, process-local rule list. Declaration order is execution order."""

    def __init__(self, rules: Iterable[AutomationRule] | None = None) -> None:
        source = builtin_rules() if rules is None else rules
        self._rules: list[AutomationRule] = [rule.model_copy(deep=True) for rule in source]

    def list_rules(self) -> list[AutomationRule]:
        return [rule.model_copy(deep=True) for rule in self._rules]

    def get(self, rule_id: str) -> AutomationRule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule.model_copy(deep=True)
        return None

    def add(self, rule: AutomationRule) -> None:
        self._rules.append(rule.model_copy(deep=True))

    def replace(self, rule: AutomationRule) -> bool:
        for index, existing in enumerate(self._rules):
            if existing.id == rule.id:
                self._rules[index] = rule.model_copy(deep=True)
                return True
        return False

    def remove(self, rule_id: str) -> bool:
        for index, existing in enumerate(self._rules):
            if existing.id == rule_id:
                del self._rules[index]
                return True
        return False


default_rule_store = InMemoryRuleStore()
