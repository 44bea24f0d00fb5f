from __future__ import annotations

import pytest

from qmsflow.services.record_store import RecordStoreError


@pytest.mark.asyncio
async def test_insert_fills_defaults_and_select_filters(records):
    first = await records.insert("complaints", {"title": "Off taste", "status": "Open"})
    await records.insert("complaints", {"title": "Damaged pallet", "status": "Closed"})

    assert first["id"]
    assert first["priority"] == "Medium"
    assert first["created_at"] is not None
    open_rows = await records.select("complaints", {"status": "Open"})
    assert [row["title"] for row in open_rows] == ["Off taste"]
    assert len(await records.select("complaints")) == 2


@pytest.mark.asyncio
async def test_update_patches_matching_rows_only(records):
    target = await records.insert("audits", {"title": "Supplier audit"})
    other = await records.insert("audits", {"title": "Internal audit"})

    updated = await records.update("audits", {"status": "Completed"}, {"id": target["id"]})

    assert [row["status"] for row in updated] == ["Completed"]
    [untouched] = await records.select("audits", {"id": other["id"]})
    assert untouched["status"] == "Scheduled"
    assert await records.update("audits", {"status": "Completed"}, {"id": "missing"}) == []


@pytest.mark.asyncio
async def test_relationship_metadata_column_round_trips(records):
    row = await records.insert(
        "module_relationships",
        {
            "source_type": "capa",
            "source_id": "c1",
            "target_type": "training",
            "target_id": "t1",
            "relationship_type": "requires",
            "metadata": {"weight": 2},
        },
    )

    assert row["metadata"] == {"weight": 2}
    [stored] = await records.select("module_relationships", {"source_id": "c1"})
    assert stored["metadata"] == {"weight": 2}


@pytest.mark.asyncio
async def test_unknown_tables_and_columns_raise(records):
    with pytest.raises(RecordStoreError) as excinfo:
        await records.select("suppliers")
    assert excinfo.value.message == "unknown_table:suppliers"

    with pytest.raises(RecordStoreError) as excinfo:
        await records.insert("capa_actions", {"title": "x", "colour": "red"})
    assert excinfo.value.message == "unknown_columns:capa_actions:colour"

    with pytest.raises(RecordStoreError):
        await records.update("capa_actions", {"status": "Closed"}, {"colour": "red"})


@pytest.mark.asyncio
async def test_constraint_violations_surface_as_record_store_errors(records):
    with pytest.raises(RecordStoreError) as excinfo:
        await records.insert("capa_actions", {"description": "missing title"})
    assert excinfo.value.message == "insert_failed:capa_actions"

    # The session is usable again after the rollback.
    row = await records.insert("capa_actions", {"title": "Recovered"})
    assert row["title"] == "Recovered"
