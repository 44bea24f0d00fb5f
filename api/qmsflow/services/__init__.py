from . import (
    automation_conditions,
    automation_rules_engine,
    capa_escalation_service,
    module_integration_service,
    notification_service,
    record_store,
    relationship_store,
    rule_store,
    service_factory,
    workflow_orchestration_service,
    workflow_steps,
    workflow_store,
)

__all__ = [
    "automation_conditions",
    "automation_rules_engine",
    "capa_escalation_service",
    "module_integration_service",
    "notification_service",
    "record_store",
    "relationship_store",
    "rule_store",
    "service_factory",
    "workflow_orchestration_service",
    "workflow_steps",
    "workflow_store",
]
"""Rules engine, workflow orchestration, and module integration services."""
