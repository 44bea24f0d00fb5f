"""Record-creating step executors keyed by ``(module_type, action_type)``.

Executors receive the accumulated workflow data and return a dict merged back
into it, so later steps can reference ids produced by earlier ones. Storage
errors are not caught here: they abort the workflow run that called them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable

from qmsflow.schema.workflow import WorkflowStep, WorkflowTemplate
from qmsflow.services.record_store import RecordStore
from qmsflow.services.relationship_store import RelationshipStore
from qmsflow.utils.datetime import utcnow

logger = logging.getLogger("qmsflow.services.workflow_steps")


@dataclass(slots=True)
class StepContext:
    """Per-run collaborators and provenance shared by every step."""

    records: RecordStore
    relationships: RelationshipStore
    workflow: WorkflowTemplate
    source_id: str | None
    source_type: str
    capa_due_days: int = 30


StepExecutor = Callable[[StepContext, WorkflowStep, dict[str, Any]], Awaitable[dict[str, Any] | None]]

STEP_EXECUTORS: dict[tuple[str, str], StepExecutor] = {}


def register_step_executor(module_type: str, action_type: str) -> Callable[[StepExecutor], StepExecutor]:
    def _register(func: StepExecutor) -> StepExecutor:
        STEP_EXECUTORS[(module_type, action_type)] = func
        return func

    return _register


def get_step_executor(module_type: str, action_type: str) -> StepExecutor | None:
    return STEP_EXECUTORS.get((module_type, action_type))


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among snake_case and camelCase payload keys."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _user(data: dict[str, Any]) -> str | None:
    value = _pick(data, "user_id", "userId")
    return str(value) if value is not None else None


async def _insert_capa(ctx: StepContext, data: dict[str, Any], *, title: str, source: str) -> str:
    created = await ctx.records.insert(
        "capa_actions",
        {
            "title": _pick(data, "capa_title", "capaTitle", default=title),
            "description": _pick(data, "description", "findingDescription", "finding_description"),
            "source": _pick(data, "source", default=source),
            "source_id": ctx.source_id,
            "priority": _pick(data, "priority", default="Medium"),
            "assigned_to": _pick(data, "assigned_to", "assignedTo", default="Quality Manager"),
            "created_by": _user(data),
            "due_date": utcnow() + timedelta(days=ctx.capa_due_days),
        },
    )
    return str(created["id"])


@register_step_executor("non-conformance", "create")
async def create_non_conformance(ctx: StepContext, step: WorkflowStep, data: dict[str, Any]) -> dict[str, Any]:
    """Insert an NC for the finding and link it back with a generated-from edge."""
    created = await ctx.records.insert(
        "non_conformances",
        {
            "item_name": _pick(
                data, "finding_title", "findingTitle", "title", default="NC from Audit Finding"
            ),
            "description": _pick(data, "finding_description", "findingDescription", "description"),
            "item_category": "Other",
            "reason_category": "Quality Issue",
            "status": "On Hold",
            "priority": "High" if data.get("severity") == "critical" else "Medium",
            "source_id": ctx.source_id,
            "created_by": _user(data),
        },
    )
    nc_id = str(created["id"])
    if ctx.source_id:
        await ctx.relationships.create(
            {
                "source_type": ctx.source_type,
                "source_id": ctx.source_id,
                "target_type": "non-conformance",
                "target_id": nc_id,
                "relationship_type": "generated-from",
                "created_by": _user(data),
            }
        )
    else:
        logger.warning("Workflow %s has no source id; skipping provenance link", ctx.workflow.id)
    return {"non_conformance_id": nc_id}


@register_step_executor("capa", "create")
async def create_capa(ctx: StepContext, step: WorkflowStep, data: dict[str, Any]) -> dict[str, Any]:
    capa_id = await _insert_capa(ctx, data, title="CAPA from Workflow", source="Workflow")
    return {"capa_id": capa_id}


@register_step_executor("capa", "create-from-nc")
async def create_capa_from_non_conformance(
    ctx: StepContext, step: WorkflowStep, data: dict[str, Any]
) -> dict[str, Any]:
    """Open a CAPA for the source NC, link it, and store the CAPA id on the NC."""
    capa_id = await _insert_capa(ctx, data, title="CAPA from Non-Conformance", source="Non-Conformance")
    await ctx.relationships.create(
        {
            "source_type": ctx.source_type,
            "source_id": ctx.source_id,
            "target_type": "capa",
            "target_id": capa_id,
            "relationship_type": "generated-from",
            "created_by": _user(data),
        }
    )
    await ctx.records.update("non_conformances", {"capa_id": capa_id}, {"id": ctx.source_id})
    return {"capa_id": capa_id}


@register_step_executor("training", "create")
async def create_training_placeholder(
    ctx: StepContext, step: WorkflowStep, data: dict[str, Any]
) -> dict[str, Any]:
    # TODO: create training_sessions rows once assignment data is captured by the audit step.
    return {"training_id": "placeholder"}


@register_step_executor("training", "assign-from-capa")
async def assign_training_from_capa(
    ctx: StepContext, step: WorkflowStep, data: dict[str, Any]
) -> dict[str, Any]:
    """Schedule a training session the CAPA requires."""
    assignees = _pick(data, "assigned_users", "assignedUsers", "assigned_to", "assignedTo", default=[])
    if isinstance(assignees, str):
        assignees = [assignees]
    created = await ctx.records.insert(
        "training_sessions",
        {
            "title": _pick(data, "training_title", "trainingTitle", default="Training for CAPA"),
            "description": _pick(data, "description"),
            "training_type": _pick(data, "training_type", "trainingType", default="Corrective Action"),
            "assigned_to": list(assignees),
            "status": "Scheduled",
            "due_date": utcnow() + timedelta(days=ctx.capa_due_days),
            "source_id": ctx.source_id,
            "created_by": _user(data),
        },
    )
    training_id = str(created["id"])
    await ctx.relationships.create(
        {
            "source_type": ctx.source_type,
            "source_id": ctx.source_id,
            "target_type": "training",
            "target_id": training_id,
            "relationship_type": "requires",
            "created_by": _user(data),
        }
    )
    return {"training_id": training_id}
