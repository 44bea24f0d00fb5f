"""Module relationship schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from qmsflow.schema.base import Created


class ModuleRelationshipCreate(BaseModel):
    """Payload for recording a directed edge between two records."""
    source_type: str
    source_id: str
    target_type: str
    target_id: str
    relationship_type: str
    metadata: dict[str, Any] | None = None
    created_by: str | None = None


class ModuleRelationship(Created, ModuleRelationshipCreate):
    """Stored relationship."""


class RelationshipCreateResponse(BaseModel):
    id: str


class IntegrationWorkflowRequest(BaseModel):
    source_module: str
    source_id: str
    data: dict[str, Any] = Field(default_factory=dict)


class IntegrationWorkflowResponse(BaseModel):
    workflow_type: str
    success: bool


class SuggestionRequest(BaseModel):
    module_type: str
    status: str | None = None
    data: dict[str, Any] | None = None


class SuggestionResponse(BaseModel):
    """Suggested next actions and the named workflow behind each one."""
    suggestions: list[str]
    workflows: dict[str, str]
