"""Wire the automation services around one record store."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from qmsflow.services.automation_rules_engine import AutomationRulesEngine
from qmsflow.services.module_integration_service import ModuleIntegrationService
from qmsflow.services.notification_service import Notifier, notification_center
from qmsflow.services.record_store import RecordStore, SqlRecordStore
from qmsflow.services.relationship_store import RelationshipStore
from qmsflow.services.rule_store import RuleStore, default_rule_store
from qmsflow.services.workflow_orchestration_service import WorkflowOrchestrationService
from qmsflow.services.workflow_store import WorkflowTemplateStore, default_workflow_store


@dataclass(slots=True)
class AutomationServices:
    engine: AutomationRulesEngine
    orchestrator: WorkflowOrchestrationService
    integration: ModuleIntegrationService
    records: RecordStore


def build_services(
    records: RecordStore,
    *,
    rules: RuleStore | None = None,
    templates: WorkflowTemplateStore | None = None,
    notifier: Notifier | None = None,
) -> AutomationServices:
    """Build the engine, orchestrator, and integration facade sharing one store."""
    notifier = notifier or notification_center
    relationships = RelationshipStore(records, notifier)
    orchestrator = WorkflowOrchestrationService(
        templates=templates or default_workflow_store,
        records=records,
        relationships=relationships,
        notifier=notifier,
    )
    engine = AutomationRulesEngine(
        rules=rules or default_rule_store,
        records=records,
        orchestrator=orchestrator,
        notifier=notifier,
    )
    integration = ModuleIntegrationService(relationships=relationships, orchestrator=orchestrator)
    return AutomationServices(engine=engine, orchestrator=orchestrator, integration=integration, records=records)


def build_session_services(session: AsyncSession, **kwargs) -> AutomationServices:
    return build_services(SqlRecordStore(session), **kwargs)
