"""Module relationship endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from qmsflow.api.deps import get_services
from qmsflow.schema.relationship import (
    IntegrationWorkflowRequest,
    IntegrationWorkflowResponse,
    ModuleRelationship,
    ModuleRelationshipCreate,
    RelationshipCreateResponse,
    SuggestionRequest,
    SuggestionResponse,
)
from qmsflow.services.module_integration_service import WORKFLOW_FOR_SUGGESTION
from qmsflow.services.service_factory import AutomationServices

router = APIRouter()


@router.post("", response_model=RelationshipCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_relationship(
    payload: ModuleRelationshipCreate,
    services: AutomationServices = Depends(get_services),
) -> RelationshipCreateResponse:
    relationship_id = await services.integration.create_relationship(payload)
    if relationship_id is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Relationship not recorded")
    return RelationshipCreateResponse(id=relationship_id)


@router.get("", response_model=list[ModuleRelationship])
async def list_related_items(
    source_id: str = Query(...),
    source_type: str = Query(...),
    target_type: str | None = Query(default=None),
    services: AutomationServices = Depends(get_services),
) -> list[ModuleRelationship]:
    """List edges leaving a record, optionally narrowed to one target module."""
    return await services.integration.get_related_items(source_id, source_type, target_type)


@router.get("/incoming", response_model=list[ModuleRelationship])
async def list_source_items(
    target_id: str = Query(...),
    target_type: str = Query(...),
    source_type: str | None = Query(default=None),
    services: AutomationServices = Depends(get_services),
) -> list[ModuleRelationship]:
    """List edges arriving at a record, such as the finding that generated an NC."""
    return await services.integration.get_source_items(target_id, target_type, source_type)


@router.post("/workflows/{workflow_type}", response_model=IntegrationWorkflowResponse)
async def trigger_integration_workflow(
    workflow_type: str,
    payload: IntegrationWorkflowRequest,
    services: AutomationServices = Depends(get_services),
) -> IntegrationWorkflowResponse:
    success = await services.integration.trigger_workflow(
        payload.source_module, payload.source_id, workflow_type, payload.data
    )
    return IntegrationWorkflowResponse(workflow_type=workflow_type, success=success)


@router.post("/suggestions", response_model=SuggestionResponse)
async def suggest_next_actions(
    payload: SuggestionRequest,
    services: AutomationServices = Depends(get_services),
) -> SuggestionResponse:
    suggestions = services.integration.get_workflow_suggestions(payload.module_type, payload.status, payload.data)
    return SuggestionResponse(
        suggestions=suggestions,
        workflows={label: WORKFLOW_FOR_SUGGESTION[label] for label in suggestions},
    )
