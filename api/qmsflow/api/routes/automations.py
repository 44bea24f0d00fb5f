"""Automation rule and event endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from qmsflow.api.deps import get_services
from qmsflow.schema.automation import (
    AutomationEventRequest,
    AutomationEventResponse,
    AutomationRule,
    AutomationRuleCreate,
    AutomationRuleUpdate,
    CapaSweepResponse,
)
from qmsflow.services.automation_rules_engine import AutomationRuleError
from qmsflow.services.capa_escalation_service import sweep_overdue_capas
from qmsflow.services.service_factory import AutomationServices
from qmsflow.services.task_queue import task_queue

router = APIRouter()


def _get_rule_or_404(services: AutomationServices, rule_id: str) -> AutomationRule:
    for rule in services.engine.get_rules():
        if rule.id == rule_id:
            return rule
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")


@router.get("/rules", response_model=list[AutomationRule])
async def list_automation_rules(services: AutomationServices = Depends(get_services)) -> list[AutomationRule]:
    """List automation rules in execution order."""
    return services.engine.get_rules()


@router.post("/rules", response_model=AutomationRule, status_code=status.HTTP_201_CREATED)
async def create_automation_rule(
    payload: AutomationRuleCreate,
    services: AutomationServices = Depends(get_services),
) -> AutomationRule:
    """Create a new automation rule."""
    try:
        rule_id = services.engine.add_rule(payload)
    except AutomationRuleError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message) from exc
    return _get_rule_or_404(services, rule_id)


@router.patch("/rules/{rule_id}", response_model=AutomationRule)
async def update_automation_rule(
    rule_id: str,
    payload: AutomationRuleUpdate,
    services: AutomationServices = Depends(get_services),
) -> AutomationRule:
    """Update an automation rule."""
    try:
        found = services.engine.update_rule(rule_id, payload)
    except AutomationRuleError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message) from exc
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")
    return _get_rule_or_404(services, rule_id)


@router.delete(
    "/rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
)
async def delete_automation_rule(rule_id: str, services: AutomationServices = Depends(get_services)) -> None:
    """Delete an automation rule."""
    if not services.engine.delete_rule(rule_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")


@router.post("/events", response_model=AutomationEventResponse)
async def process_automation_event(
    payload: AutomationEventRequest,
    services: AutomationServices = Depends(get_services),
) -> AutomationEventResponse:
    """Run a domain event through the rules engine."""
    summaries = await services.engine.process_event(payload.module, payload.event, payload.data)
    return AutomationEventResponse.model_validate(
        {"module": payload.module, "event": payload.event, "rules": summaries}
    )


@router.post("/capa-sweep", response_model=CapaSweepResponse)
async def run_capa_sweep(services: AutomationServices = Depends(get_services)) -> CapaSweepResponse:
    """Escalate overdue CAPAs now instead of waiting for the scheduler."""

    async def _fallback() -> dict[str, int]:
        return await sweep_overdue_capas(services.records, services.engine)

    result = await task_queue.enqueue_capa_sweep(fallback=_fallback)
    return CapaSweepResponse(**result)
