"""Workflow template storage, seeded with the built-in templates.

``audit-finding-resolution`` is the multi-step orchestrated workflow. The
``integration`` templates are the single-shot named workflows behind the
relationship viewer's suggested actions.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from qmsflow.schema.workflow import WorkflowCategory, WorkflowTemplate

BUILTIN_WORKFLOW_DEFINITIONS: list[dict[str, Any]] = [
    {
        "id": "audit-finding-resolution",
        "name": "Audit Finding Resolution",
        "description": "Complete workflow from audit finding to resolution",
        "source_type": "audit-finding",
        "steps": [
            {
                "id": "create-nc",
                "name": "Create Non-Conformance",
                "module_type": "non-conformance",
                "action_type": "create",
                "required_data": ["item_name", "description", "severity"],
                "auto_execute": True,
                "approval_required": False,
            },
            {
                "id": "generate-capa",
                "name": "Generate CAPA",
                "module_type": "capa",
                "action_type": "create",
                "required_data": ["root_cause", "corrective_action"],
                "auto_execute": False,
                "approval_required": True,
                "assigned_role": "Quality Manager",
            },
            {
                "id": "assign-training",
                "name": "Assign Training",
                "module_type": "training",
                "action_type": "create",
                "required_data": ["training_type", "assigned_users"],
                "auto_execute": False,
                "approval_required": False,
            },
        ],
        "trigger_conditions": [
            {
                "module_type": "audit-finding",
                "event": "severity_updated",
                "conditions": {"severity": ["major", "critical"]},
            },
        ],
    },
    {
        "id": "audit-finding-to-nc",
        "name": "Create Non-Conformance",
        "description": "Raise a non-conformance from an audit finding",
        "source_type": "audit-finding",
        "category": "integration",
        "steps": [
            {
                "id": "create-nc",
                "name": "Create Non-Conformance",
                "module_type": "non-conformance",
                "action_type": "create",
                "auto_execute": True,
            },
        ],
    },
    {
        "id": "nc-to-capa",
        "name": "Generate CAPA",
        "description": "Open a CAPA for a non-conformance and link it back",
        "source_type": "non-conformance",
        "category": "integration",
        "steps": [
            {
                "id": "create-capa",
                "name": "Generate CAPA",
                "module_type": "capa",
                "action_type": "create-from-nc",
                "auto_execute": True,
            },
        ],
    },
    {
        "id": "capa-to-training",
        "name": "Assign Training",
        "description": "Schedule corrective training required by a CAPA",
        "source_type": "capa",
        "category": "integration",
        "steps": [
            {
                "id": "assign-training",
                "name": "Assign Training",
                "module_type": "training",
                "action_type": "assign-from-capa",
                "auto_execute": True,
            },
        ],
    },
]


def builtin_workflows() -> list[WorkflowTemplate]:
    return [WorkflowTemplate.model_validate(definition) for definition in BUILTIN_WORKFLOW_DEFINITIONS]


class WorkflowTemplateStore(Protocol):
    def list_templates(self, category: WorkflowCategory | None = None) -> list[WorkflowTemplate]:
        ...

    def get(self, workflow_id: str) -> WorkflowTemplate | None:
        ...


class InMemoryWorkflowStore:
    """Process-local template list in declaration order."""

    def __init__(self, templates: Iterable[WorkflowTemplate] | None = None) -> None:
        source = builtin_workflows() if templates is None else templates
        self._templates: list[WorkflowTemplate] = [template.model_copy(deep=True) for template in source]

    def list_templates(self, category: WorkflowCategory | None = None) -> list[WorkflowTemplate]:
        return [
            template.model_copy(deep=True)
            for template in self._templates
            if category is None or template.category == category
        ]

    def get(self, workflow_id: str) -> WorkflowTemplate | None:
        for template in self._templates:
            if template.id == workflow_id:
                return template.model_copy(deep=True)
        return None

    def add(self, template: WorkflowTemplate) -> None:
        self._templates.append(template.model_copy(deep=True))


default_workflow_store = InMemoryWorkflowStore()
