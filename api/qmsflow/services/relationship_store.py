"""Accessor for module relationships persisted through the record store."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from qmsflow.schema.relationship import ModuleRelationship, ModuleRelationshipCreate
from qmsflow.services.notification_service import Notifier, notify_quietly
from qmsflow.services.record_store import RecordStore, RecordStoreError
from qmsflow.utils.datetime import utcnow

logger = logging.getLogger("qmsflow.services.relationship_store")

RELATIONSHIPS_TABLE = "module_relationships"


class RelationshipStore:
    """Create and read edges; failures become sentinels, never exceptions."""

    def __init__(self, records: RecordStore, notifier: Notifier) -> None:
        self.records = records
        self.notifier = notifier

    async def create(self, relationship: ModuleRelationshipCreate | dict[str, Any]) -> str | None:
        """Persist one edge and return its id, or None after notifying the failure."""
        try:
            payload = ModuleRelationshipCreate.model_validate(relationship)
            row = payload.model_dump()
            row["metadata"] = to_jsonable_python(payload.metadata) if payload.metadata else None
            row["created_at"] = utcnow()
            created = await self.records.insert(RELATIONSHIPS_TABLE, row)
        except (RecordStoreError, ValidationError):
            logger.exception("Failed to create relationship")
            notify_quietly(self.notifier, "error", "Failed to create relationship")
            return None
        logger.info(
            "Linked %s:%s -> %s:%s (%s)",
            payload.source_type,
            payload.source_id,
            payload.target_type,
            payload.target_id,
            payload.relationship_type,
        )
        return str(created["id"])

    async def list_for_source(
        self, source_id: str, source_type: str, target_type: str | None = None
    ) -> list[ModuleRelationship]:
        """Return edges leaving ``(source_type, source_id)``, optionally narrowed by target type."""
        filters: dict[str, Any] = {"source_id": source_id, "source_type": source_type}
        if target_type:
            filters["target_type"] = target_type
        try:
            rows = await self.records.select(RELATIONSHIPS_TABLE, filters)
        except RecordStoreError:
            logger.exception("Failed to load relationships for %s:%s", source_type, source_id)
            return []
        return [ModuleRelationship.model_validate(row) for row in rows]

    async def list_for_target(
        self, target_id: str, target_type: str, source_type: str | None = None
    ) -> list[ModuleRelationship]:
        """Return edges arriving at ``(target_type, target_id)``, e.g. the finding an NC came from."""
        filters: dict[str, Any] = {"target_id": target_id, "target_type": target_type}
        if source_type:
            filters["source_type"] = source_type
        try:
            rows = await self.records.select(RELATIONSHIPS_TABLE, filters)
        except RecordStoreError:
            logger.exception("Failed to load incoming relationships for %s:%s", target_type, target_id)
            return []
        return [ModuleRelationship.model_validate(row) for row in rows]
