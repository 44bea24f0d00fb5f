"""HTTP surface over the rules engine, orchestrator, and relationship store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from qmsflow.utils.datetime import utcnow


@pytest.mark.asyncio
async def test_automation_rule_lifecycle(client):
    list_res = await client.get("/api/automations/rules")
    assert list_res.status_code == 200
    assert [rule["id"] for rule in list_res.json()] == ["auto-nc-from-critical-audit", "auto-escalate-overdue-capa"]

    create_res = await client.post(
        "/api/automations/rules",
        json={
            "name": "Assign complaints",
            "trigger_module": "complaint",
            "trigger_event": "created",
            "conditions": [{"field": "category", "operator": "equals", "value": "Allergen"}],
            "actions": [
                {"type": "assign_user", "target_module": "complaint", "parameters": {"user_id": "allergen-lead"}}
            ],
            "priority": 3,
        },
    )
    assert create_res.status_code == 201
    rule = create_res.json()
    assert rule["id"].startswith("rule-")
    assert rule["created_by"] == "system"

    update_res = await client.patch(f"/api/automations/rules/{rule['id']}", json={"enabled": False})
    assert update_res.status_code == 200
    assert update_res.json()["enabled"] is False
    assert update_res.json()["name"] == "Assign complaints"

    delete_res = await client.delete(f"/api/automations/rules/{rule['id']}")
    assert delete_res.status_code == 204
    assert (await client.delete(f"/api/automations/rules/{rule['id']}")).status_code == 404
    assert (await client.patch(f"/api/automations/rules/{rule['id']}", json={"enabled": True})).status_code == 404


@pytest.mark.asyncio
async def test_rule_payloads_are_validated(client):
    bad_action = await client.post(
        "/api/automations/rules",
        json={
            "name": "Broken",
            "trigger_module": "capa",
            "trigger_event": "created",
            "actions": [{"type": "update_record", "target_module": "capa", "parameters": {}}],
        },
    )
    assert bad_action.status_code == 422

    bad_operator = await client.patch(
        "/api/automations/rules/auto-escalate-overdue-capa",
        json={"conditions": [{"field": "status", "operator": "matches", "value": "Open"}]},
    )
    assert bad_operator.status_code == 422


@pytest.mark.asyncio
async def test_event_endpoint_reports_rule_outcomes(client):
    response = await client.post(
        "/api/automations/events",
        json={
            "module": "audit",
            "event": "finding_created",
            "data": {"id": "finding-11", "severity": "major", "findingTitle": "Cold chain gap"},
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["module"] == "audit"
    [summary] = payload["rules"]
    assert summary["rule_id"] == "auto-nc-from-critical-audit"
    assert summary["status"] == "completed"
    assert [action["type"] for action in summary["actions"]] == ["trigger_workflow", "send_notification"]

    related = await client.get("/api/relationships", params={"source_id": "finding-11", "source_type": "audit-finding"})
    assert related.status_code == 200
    assert related.json()[0]["target_type"] == "non-conformance"

    tasks = await client.get("/api/workflows/tasks", params={"source_id": "finding-11"})
    assert [task["step_id"] for task in tasks.json()] == ["generate-capa", "assign-training"]


@pytest.mark.asyncio
async def test_events_without_matching_rules_return_empty(client):
    response = await client.post("/api/automations/events", json={"module": "supplier", "event": "rated"})
    assert response.status_code == 200
    assert response.json()["rules"] == []


@pytest.mark.asyncio
async def test_workflow_endpoints(client):
    listing = await client.get("/api/workflows")
    assert [template["id"] for template in listing.json()] == ["audit-finding-resolution"]

    triggers = await client.post(
        "/api/workflows/triggers",
        json={"module_type": "audit-finding", "event": "severity_updated", "data": {"severity": "critical"}},
    )
    assert triggers.json() == {"workflow_ids": ["audit-finding-resolution"]}

    executed = await client.post(
        "/api/workflows/audit-finding-resolution/execute",
        json={"source_id": "finding-20", "data": {"severity": "critical"}},
    )
    assert executed.json() == {"workflow_id": "audit-finding-resolution", "success": True}

    missing = await client.post("/api/workflows/nonexistent/execute", json={"source_id": "id1"})
    assert missing.status_code == 200
    assert missing.json()["success"] is False


@pytest.mark.asyncio
async def test_relationship_endpoints(client):
    created = await client.post(
        "/api/relationships",
        json={
            "source_type": "non-conformance",
            "source_id": "nc-1",
            "target_type": "complaint",
            "target_id": "cmp-1",
            "relationship_type": "references",
        },
    )
    assert created.status_code == 201
    relationship_id = created.json()["id"]

    listed = await client.get(
        "/api/relationships",
        params={"source_id": "nc-1", "source_type": "non-conformance", "target_type": "complaint"},
    )
    assert [item["id"] for item in listed.json()] == [relationship_id]

    incoming = await client.get(
        "/api/relationships/incoming",
        params={"target_id": "cmp-1", "target_type": "complaint", "source_type": "non-conformance"},
    )
    assert incoming.status_code == 200
    assert [item["source_id"] for item in incoming.json()] == ["nc-1"]
    missing = await client.get("/api/relationships/incoming", params={"target_id": "cmp-1", "target_type": "capa"})
    assert missing.json() == []

    invalid = await client.post("/api/relationships", json={"source_type": "capa"})
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_integration_workflows_and_suggestions(client):
    suggestions = await client.post(
        "/api/relationships/suggestions",
        json={"module_type": "non-conformance", "status": "Under Review", "data": {}},
    )
    assert suggestions.json() == {"suggestions": ["Generate CAPA"], "workflows": {"Generate CAPA": "nc-to-capa"}}

    triggered = await client.post(
        "/api/relationships/workflows/capa-to-training",
        json={"source_module": "capa", "source_id": "capa-9", "data": {"assigned_to": "line-lead"}},
    )
    assert triggered.json() == {"workflow_type": "capa-to-training", "success": True}

    unknown = await client.post(
        "/api/relationships/workflows/teleport",
        json={"source_module": "capa", "source_id": "capa-9"},
    )
    assert unknown.json()["success"] is False


@pytest.mark.asyncio
async def test_notifications_are_drained(client):
    await client.post("/api/workflows/nonexistent/execute", json={"source_id": "id1"})

    first = await client.get("/api/notifications")
    assert [(item["level"], item["message"]) for item in first.json()] == [("error", "Workflow template not found")]
    second = await client.get("/api/notifications")
    assert second.json() == []


@pytest.mark.asyncio
async def test_capa_sweep_runs_inline(client, records):
    await records.insert("capa_actions", {"title": "Late", "status": "Open", "due_date": utcnow() - timedelta(days=2)})

    response = await client.post("/api/automations/capa-sweep")

    assert response.status_code == 200
    assert response.json() == {"checked": 1, "escalated": 1}
