"""Typed directed edges between records of different modules."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from qmsflow.db.base_class import JSON_COMPATIBLE, Base, new_record_id, utcnow


class ModuleRelationship(Base):
    """Immutable edge such as audit-finding -> non-conformance (generated-from).

    No uniqueness constraint: the same edge may be recorded more than once.
    """

    __tablename__ = "module_relationships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    source_type: Mapped[str] = mapped_column(String(64), nullable=False)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    target_type: Mapped[str] = mapped_column(String(64), nullable=False)
    target_id: Mapped[str] = mapped_column(String(255), nullable=False)
    relationship_type: Mapped[str] = mapped_column(String(64), nullable=False)
    # "metadata" is reserved on declarative classes; the column keeps the public name.
    relationship_metadata: Mapped[dict | None] = mapped_column("metadata", JSON_COMPATIBLE)
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
