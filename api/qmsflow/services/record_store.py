"""Table-oriented record store over the async SQLAlchemy session.

Invariants:
- Callers address tables by name and receive plain dicts keyed by column name.
- Every storage failure surfaces as RecordStoreError; the session is rolled back first.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qmsflow.db.base_class import Base
from qmsflow.models import (
    Audit,
    CapaAction,
    Complaint,
    ModuleRelationship,
    NonConformance,
    TrainingSession,
    WorkflowTask,
)

logger = logging.getLogger("qmsflow.services.record_store")

TABLE_MODELS: dict[str, type[Base]] = {
    "audits": Audit,
    "capa_actions": CapaAction,
    "complaints": Complaint,
    "module_relationships": ModuleRelationship,
    "non_conformances": NonConformance,
    "training_sessions": TrainingSession,
    "workflow_tasks": WorkflowTask,
}


class RecordStoreError(RuntimeError):
    """Raised when a record store operation cannot be completed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RecordStore(Protocol):
    async def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        ...

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update(
        self, table: str, patch: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        ...


def _columns(model: type[Base]) -> dict[str, str]:
    """Map column names to mapped attribute keys."""
    return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}


def _to_dict(instance: Base) -> dict[str, Any]:
    return {column: getattr(instance, key) for column, key in _columns(type(instance)).items()}


class SqlRecordStore:
    """Record store backed by the ORM models registered in TABLE_MODELS."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _model(self, table: str) -> type[Base]:
        model = TABLE_MODELS.get(table)
        if model is None:
            raise RecordStoreError(f"unknown_table:{table}")
        return model

    def _attributes(self, model: type[Base], values: dict[str, Any]) -> dict[str, Any]:
        columns = _columns(model)
        unknown = sorted(set(values) - set(columns))
        if unknown:
            raise RecordStoreError(f"unknown_columns:{model.__tablename__}:{','.join(unknown)}")
        return {columns[name]: value for name, value in values.items()}

    def _statement(self, model: type[Base], filters: dict[str, Any] | None):
        stmt = select(model)
        for key, value in self._attributes(model, filters or {}).items():
            stmt = stmt.where(getattr(model, key) == value)
        if hasattr(model, "created_at"):
            stmt = stmt.order_by(model.created_at)
        return stmt

    async def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return every row in ``table`` whose columns equal ``filters``."""
        model = self._model(table)
        stmt = self._statement(model, filters)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise RecordStoreError(f"select_failed:{table}") from exc
        return [_to_dict(row) for row in result.scalars().all()]

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it with generated defaults."""
        model = self._model(table)
        instance = model(**self._attributes(model, row))
        self.session.add(instance)
        try:
            await self.session.commit()
            await self.session.refresh(instance)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise RecordStoreError(f"insert_failed:{table}") from exc
        logger.debug("Inserted %s row %s", table, instance.id)
        return _to_dict(instance)

    async def update(
        self, table: str, patch: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Apply ``patch`` to every matching row and return the updated rows."""
        model = self._model(table)
        changes = self._attributes(model, patch)
        stmt = self._statement(model, filters)
        try:
            result = await self.session.execute(stmt)
            rows = result.scalars().all()
            for instance in rows:
                for key, value in changes.items():
                    setattr(instance, key, value)
            await self.session.commit()
            for instance in rows:
                await self.session.refresh(instance)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise RecordStoreError(f"update_failed:{table}") from exc
        logger.debug("Updated %d %s rows", len(rows), table)
        return [_to_dict(instance) for instance in rows]
