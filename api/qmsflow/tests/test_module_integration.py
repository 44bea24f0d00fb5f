from __future__ import annotations

import pytest

from qmsflow.services.module_integration_service import get_workflow_suggestions
from qmsflow.services.notification_service import NotificationCenter
from qmsflow.services.record_store import RecordStoreError
from qmsflow.services.relationship_store import RelationshipStore


class OfflineStore:
    async def select(self, table, filters=None):
        raise RecordStoreError(f"select_failed:{table}")

    async def insert(self, table, row):
        raise RecordStoreError(f"insert_failed:{table}")

    async def update(self, table, patch, filters):
        raise RecordStoreError(f"update_failed:{table}")


def _edge(target_type: str, target_id: str, relationship_type: str) -> dict:
    return {
        "source_type": "audit-finding",
        "source_id": "A",
        "target_type": target_type,
        "target_id": target_id,
        "relationship_type": relationship_type,
    }


@pytest.mark.asyncio
async def test_related_items_can_be_narrowed_by_target_type(services):
    integration = services.integration
    first = await integration.create_relationship(_edge("non-conformance", "B", "generated-from"))
    second = await integration.create_relationship(_edge("capa", "C", "requires"))

    assert first and second and first != second
    everything = await integration.get_related_items("A", "audit-finding")
    assert {item.target_id for item in everything} == {"B", "C"}

    [only_capa] = await integration.get_related_items("A", "audit-finding", "capa")
    assert only_capa.id == second
    assert only_capa.target_id == "C"
    assert only_capa.relationship_type == "requires"
    assert await integration.get_related_items("A", "capa") == []


@pytest.mark.asyncio
async def test_relationship_metadata_is_stored(services):
    relationship_id = await services.integration.create_relationship(
        {**_edge("capa", "C", "references"), "metadata": {"note": "linked from viewer"}, "created_by": "u1"}
    )

    [stored] = await services.integration.get_related_items("A", "audit-finding")
    assert stored.id == relationship_id
    assert stored.metadata == {"note": "linked from viewer"}
    assert stored.created_by == "u1"


@pytest.mark.asyncio
async def test_create_relationship_failure_returns_none_and_notifies():
    notifier = NotificationCenter()
    store = RelationshipStore(OfflineStore(), notifier)

    assert await store.create(_edge("capa", "C", "requires")) is None
    assert [(item.level, item.message) for item in notifier.snapshot()] == [
        ("error", "Failed to create relationship")
    ]


@pytest.mark.asyncio
async def test_invalid_relationship_returns_none():
    notifier = NotificationCenter()
    store = RelationshipStore(OfflineStore(), notifier)

    assert await store.create({"source_type": "capa"}) is None
    assert notifier.snapshot()[0].level == "error"


@pytest.mark.asyncio
async def test_related_items_failure_returns_empty_list():
    notifier = NotificationCenter()
    store = RelationshipStore(OfflineStore(), notifier)

    assert await store.list_for_source("A", "audit-finding") == []
    assert notifier.snapshot() == []


@pytest.mark.asyncio
async def test_incoming_edges_can_be_narrowed_by_source_type(services):
    integration = services.integration
    await integration.create_relationship(_edge("capa", "C", "generated-from"))
    from_nc = await integration.create_relationship(
        {
            "source_type": "non-conformance",
            "source_id": "N",
            "target_type": "capa",
            "target_id": "C",
            "relationship_type": "generated-from",
        }
    )
    await integration.create_relationship(_edge("training", "C", "requires"))

    incoming = await integration.get_source_items("C", "capa")
    assert {(item.source_type, item.source_id) for item in incoming} == {
        ("audit-finding", "A"),
        ("non-conformance", "N"),
    }

    [only_nc] = await integration.get_source_items("C", "capa", "non-conformance")
    assert only_nc.id == from_nc
    assert await integration.get_source_items("C", "complaint") == []


@pytest.mark.asyncio
async def test_incoming_edges_failure_returns_empty_list():
    notifier = NotificationCenter()
    store = RelationshipStore(OfflineStore(), notifier)

    assert await store.list_for_target("C", "capa", "non-conformance") == []
    assert notifier.snapshot() == []


@pytest.mark.asyncio
async def test_audit_finding_to_nc(services, records):
    ok = await services.integration.trigger_workflow(
        "audit-finding", "finding-7", "audit-finding-to-nc", {"title": "Allergen label missing"}
    )

    assert ok is True
    [nc] = await records.select("non_conformances")
    assert nc["item_name"] == "Allergen label missing"
    [link] = await services.integration.get_related_items("finding-7", "audit-finding")
    assert link.target_id == nc["id"]


@pytest.mark.asyncio
async def test_nc_to_capa_links_capa_back_to_the_nc(services, records):
    nc = await records.insert("non_conformances", {"item_name": "Foreign body", "status": "Under Review"})

    ok = await services.integration.trigger_workflow(
        "non-conformance", nc["id"], "nc-to-capa", {"description": "Metal fragment in batch 12"}
    )

    assert ok is True
    [capa] = await records.select("capa_actions")
    assert capa["source"] == "Non-Conformance"
    assert capa["source_id"] == nc["id"]
    assert capa["description"] == "Metal fragment in batch 12"
    [updated_nc] = await records.select("non_conformances", {"id": nc["id"]})
    assert updated_nc["capa_id"] == capa["id"]
    [link] = await services.integration.get_related_items(nc["id"], "non-conformance", "capa")
    assert link.target_id == capa["id"]
    assert link.relationship_type == "generated-from"


@pytest.mark.asyncio
async def test_capa_to_training(services, records):
    ok = await services.integration.trigger_workflow(
        "capa", "capa-1", "capa-to-training", {"assigned_users": ["ana", "ben"], "training_title": "GMP refresher"}
    )

    assert ok is True
    [training] = await records.select("training_sessions")
    assert training["title"] == "GMP refresher"
    assert training["assigned_to"] == ["ana", "ben"]
    assert training["status"] == "Scheduled"
    [link] = await services.integration.get_related_items("capa-1", "capa", "training")
    assert link.relationship_type == "requires"


@pytest.mark.asyncio
async def test_unknown_integration_workflow_returns_false(services, records, notifier):
    assert await services.integration.trigger_workflow("capa", "capa-1", "capa-to-audit") is False
    assert await services.integration.trigger_workflow("audit-finding", "f1", "audit-finding-resolution") is False
    assert notifier.snapshot() == []
    assert await records.select("non_conformances") == []


@pytest.mark.parametrize(
    ("module_type", "status", "data", "expected"),
    [
        ("audit-finding", None, {"severity": "critical"}, ["Create Non-Conformance"]),
        ("audit-finding", None, {"severity": "critical", "non_conformance_id": "nc-1"}, []),
        ("audit-finding", None, {"severity": "minor"}, []),
        ("non-conformance", "Under Review", {}, ["Generate CAPA"]),
        ("non-conformance", "Under Review", {"capa_id": "capa-1"}, []),
        ("non-conformance", "On Hold", {}, []),
        ("capa", "In Progress", None, ["Assign Training"]),
        ("capa", "Closed", None, []),
        ("supplier", "Open", {}, []),
    ],
)
def test_workflow_suggestions(module_type, status, data, expected):
    assert get_workflow_suggestions(module_type, status, data) == expected


def test_suggestions_are_exposed_on_the_service(services):
    assert services.integration.get_workflow_suggestions("non-conformance", "Under Review", {}) == ["Generate CAPA"]
