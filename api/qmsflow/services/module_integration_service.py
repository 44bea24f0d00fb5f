"""Cross-module links and the single-shot workflows behind suggested actions."""

from __future__ import annotations

import logging
from typing import Any

from qmsflow.schema.relationship import ModuleRelationship, ModuleRelationshipCreate
from qmsflow.services.relationship_store import RelationshipStore
from qmsflow.services.workflow_orchestration_service import WorkflowOrchestrationService

logger = logging.getLogger("qmsflow.services.module_integration")

INTEGRATION_WORKFLOWS = ("audit-finding-to-nc", "nc-to-capa", "capa-to-training")

WORKFLOW_FOR_SUGGESTION: dict[str, str] = {
    "Create Non-Conformance": "audit-finding-to-nc",
    "Generate CAPA": "nc-to-capa",
    "Assign Training": "capa-to-training",
}


def get_workflow_suggestions(module_type: str, status: str | None, data: dict[str, Any] | None = None) -> list[str]:
    """Suggest next actions for a record based on its module, status, and fields."""
    fields = data or {}
    suggestions: list[str] = []
    if (
        module_type == "audit-finding"
        and fields.get("severity") in {"major", "critical"}
        and not fields.get("non_conformance_id")
    ):
        suggestions.append("Create Non-Conformance")
    if module_type == "non-conformance" and status == "Under Review" and not fields.get("capa_id"):
        suggestions.append("Generate CAPA")
    if module_type == "capa" and status in {"Open", "In Progress"} and not fields.get("training_id"):
        suggestions.append("Assign Training")
    return suggestions


class ModuleIntegrationService:
    """Facade over the relationship store and the named integration workflows."""

    def __init__(self, *, relationships: RelationshipStore, orchestrator: WorkflowOrchestrationService) -> None:
        self.relationships = relationships
        self.orchestrator = orchestrator

    async def create_relationship(self, relationship: ModuleRelationshipCreate | dict[str, Any]) -> str | None:
        return await self.relationships.create(relationship)

    async def get_related_items(
        self, source_id: str, source_type: str, target_type: str | None = None
    ) -> list[ModuleRelationship]:
        return await self.relationships.list_for_source(source_id, source_type, target_type)

    async def get_source_items(
        self, target_id: str, target_type: str, source_type: str | None = None
    ) -> list[ModuleRelationship]:
        return await self.relationships.list_for_target(target_id, target_type, source_type)

    async def trigger_workflow(
        self,
        source_module: str,
        source_id: str,
        workflow_type: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Run one named integration workflow; unknown names return False quietly."""
        if workflow_type not in INTEGRATION_WORKFLOWS:
            logger.info("Ignoring unknown integration workflow %s for %s:%s", workflow_type, source_module, source_id)
            return False
        logger.info("Triggering %s for %s:%s", workflow_type, source_module, source_id)
        return await self.orchestrator.execute_workflow(
            workflow_type, source_id, data or {}, source_type=source_module
        )

    @staticmethod
    def get_workflow_suggestions(
        module_type: str, status: str | None, data: dict[str, Any] | None = None
    ) -> list[str]:
        return get_workflow_suggestions(module_type, status, data)
