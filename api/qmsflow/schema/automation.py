"""Automation rule schemas.

Actions are a discriminated union on ``type`` so a malformed rule definition
fails validation when it is loaded or added, not when it fires.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

ConditionOperator = Literal["equals", "not_equals", "contains", "greater_than", "less_than", "in_array"]
ActionType = Literal["create_record", "update_record", "send_notification", "trigger_workflow", "assign_user"]


class AutomationCondition(BaseModel):
    """Predicate over a dot-path field of the event payload."""
    field: str
    operator: ConditionOperator
    value: Any = None


class TriggerWorkflowParameters(BaseModel):
    workflow_id: str


class SendNotificationParameters(BaseModel):
    type: str = "info"
    message: str
    recipients: list[str] = Field(default_factory=list)


class AssignUserParameters(BaseModel):
    user_id: str


class TriggerWorkflowAction(BaseModel):
    """Run a workflow template with the event payload as initial data."""
    type: Literal["trigger_workflow"] = "trigger_workflow"
    target_module: str = "workflow"
    parameters: TriggerWorkflowParameters


class CreateRecordAction(BaseModel):
    """Insert a record in the target module (not automated yet)."""
    type: Literal["create_record"] = "create_record"
    target_module: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class UpdateRecordAction(BaseModel):
    """Apply ``parameters`` as a partial update to the event's record."""
    type: Literal["update_record"] = "update_record"
    target_module: str
    parameters: dict[str, Any]

    @field_validator("parameters")
    @classmethod
    def _require_patch(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("update_record requires at least one field to update")
        return value


class SendNotificationAction(BaseModel):
    """Fire a user-facing notice."""
    type: Literal["send_notification"] = "send_notification"
    target_module: str = "notification"
    parameters: SendNotificationParameters


class AssignUserAction(BaseModel):
    """Set ``assigned_to`` on the event's record."""
    type: Literal["assign_user"] = "assign_user"
    target_module: str
    parameters: AssignUserParameters


AutomationAction = Annotated[
    Union[
        TriggerWorkflowAction,
        CreateRecordAction,
        UpdateRecordAction,
        SendNotificationAction,
        AssignUserAction,
    ],
    Field(discriminator="type"),
]


class AutomationRuleCreate(BaseModel):
    """Payload for creating an automation rule."""
    name: str
    description: str = ""
    enabled: bool = True
    trigger_module: str
    trigger_event: str
    conditions: list[AutomationCondition] = Field(default_factory=list)
    actions: list[AutomationAction] = Field(default_factory=list)
    priority: int = 0
    created_by: str = "system"


class AutomationRule(AutomationRuleCreate):
    """Automation rule held by a rule store."""
    id: str
    created_at: datetime


class AutomationRuleUpdate(BaseModel):
    """Payload for updating an automation rule."""
    name: str | None = None
    description: str | None = None
    enabled: bool | None = None
    trigger_module: str | None = None
    trigger_event: str | None = None
    conditions: list[AutomationCondition] | None = None
    actions: list[AutomationAction] | None = None
    priority: int | None = None


class AutomationEventRequest(BaseModel):
    """Domain event submitted for rule evaluation."""
    module: str
    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class ActionOutcome(BaseModel):
    type: ActionType
    status: str
    detail: dict[str, Any] | None = None
    error: str | None = None


class RuleExecutionSummary(BaseModel):
    """Outcome of one matching rule for one event."""
    rule_id: str
    rule_name: str
    status: Literal["completed", "skipped"]
    actions: list[ActionOutcome] = Field(default_factory=list)


class AutomationEventResponse(BaseModel):
    module: str
    event: str
    rules: list[RuleExecutionSummary]


class CapaSweepResponse(BaseModel):
    """Overdue CAPA sweep counts."""
    checked: int
    escalated: int
