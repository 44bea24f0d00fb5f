"""Workflow template endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from qmsflow.api.deps import get_services
from qmsflow.schema.workflow import (
    TriggerCheckRequest,
    TriggerCheckResponse,
    WorkflowExecuteRequest,
    WorkflowExecuteResponse,
    WorkflowTaskRead,
    WorkflowTemplate,
)
from qmsflow.services.service_factory import AutomationServices

router = APIRouter()


@router.get("", response_model=list[WorkflowTemplate])
async def list_workflows(services: AutomationServices = Depends(get_services)) -> list[WorkflowTemplate]:
    return services.orchestrator.get_available_workflows()


@router.get("/tasks", response_model=list[WorkflowTaskRead])
async def list_pending_tasks(
    source_id: str | None = Query(default=None),
    workflow_id: str | None = Query(default=None),
    services: AutomationServices = Depends(get_services),
) -> list[WorkflowTaskRead]:
    """List manual workflow steps still waiting to be picked up."""
    return await services.orchestrator.get_pending_tasks(source_id=source_id, workflow_id=workflow_id)


@router.post("/triggers", response_model=TriggerCheckResponse)
async def check_workflow_triggers(
    payload: TriggerCheckRequest,
    services: AutomationServices = Depends(get_services),
) -> TriggerCheckResponse:
    """Report which workflows an event would start, without starting them."""
    workflow_ids = services.orchestrator.check_trigger_conditions(payload.module_type, payload.event, payload.data)
    return TriggerCheckResponse(workflow_ids=workflow_ids)


@router.post("/{workflow_id}/execute", response_model=WorkflowExecuteResponse)
async def execute_workflow(
    workflow_id: str,
    payload: WorkflowExecuteRequest,
    services: AutomationServices = Depends(get_services),
) -> WorkflowExecuteResponse:
    success = await services.orchestrator.execute_workflow(
        workflow_id, payload.source_id, payload.data, source_type=payload.source_type
    )
    return WorkflowExecuteResponse(workflow_id=workflow_id, success=success)
