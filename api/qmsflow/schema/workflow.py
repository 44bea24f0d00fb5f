"""Workflow template and task schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from qmsflow.schema.base import Created

WorkflowCategory = Literal["orchestrated", "integration"]


class TriggerCondition(BaseModel):
    """Event that should start a workflow; list values match by membership."""
    module_type: str
    event: str
    conditions: dict[str, Any] = Field(default_factory=dict)


class WorkflowStep(BaseModel):
    """Single step; ``(module_type, action_type)`` selects the executor."""
    id: str
    name: str
    module_type: str
    action_type: str = "create"
    required_data: list[str] = Field(default_factory=list)
    auto_execute: bool = False
    approval_required: bool = False
    assigned_role: str | None = None


class WorkflowTemplate(BaseModel):
    """Named sequence of steps run in declaration order."""
    id: str
    name: str
    description: str = ""
    steps: list[WorkflowStep]
    trigger_conditions: list[TriggerCondition] = Field(default_factory=list)
    source_type: str | None = None
    category: WorkflowCategory = "orchestrated"


class WorkflowExecuteRequest(BaseModel):
    source_id: str | None = None
    source_type: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class WorkflowExecuteResponse(BaseModel):
    workflow_id: str
    success: bool


class TriggerCheckRequest(BaseModel):
    module_type: str
    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class TriggerCheckResponse(BaseModel):
    workflow_ids: list[str]


class WorkflowTaskRead(Created):
    """Pending task representation."""
    workflow_id: str
    step_id: str
    step_name: str
    module_type: str
    source_id: str | None = None
    assigned_role: str | None = None
    approval_required: bool = False
    status: str
    payload: dict[str, Any] | None = None
