"""Quality-management records touched by automation: audits, NCs, CAPAs, complaints, training."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qmsflow.db.base_class import JSON_COMPATIBLE, Base, new_record_id, utcnow


class Audit(Base):
    """Scheduled or completed audit."""

    __tablename__ = "audits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    audit_type: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(50), default="Scheduled", nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class NonConformance(Base):
    """Non-conformance raised manually or from an audit finding."""

    __tablename__ = "non_conformances"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    item_category: Mapped[str] = mapped_column(String(100), default="Other", nullable=False)
    reason_category: Mapped[str] = mapped_column(String(100), default="Other", nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="On Hold", nullable=False)
    priority: Mapped[str] = mapped_column(String(50), default="Medium", nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    source_id: Mapped[str | None] = mapped_column(String(255), index=True)
    capa_id: Mapped[str | None] = mapped_column(String(36))
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class CapaAction(Base):
    """Corrective and preventive action."""

    __tablename__ = "capa_actions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(100), default="Internal", nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(255), index=True)
    status: Mapped[str] = mapped_column(String(50), default="Open", nullable=False)
    priority: Mapped[str] = mapped_column(String(50), default="Medium", nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Complaint(Base):
    """Customer complaint."""

    __tablename__ = "complaints"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(50), default="New", nullable=False)
    priority: Mapped[str] = mapped_column(String(50), default="Medium", nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class TrainingSession(Base):
    """Training session assigned as a follow-up to a CAPA."""

    __tablename__ = "training_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    training_type: Mapped[str] = mapped_column(String(100), default="Corrective Action", nullable=False)
    assigned_to: Mapped[list | None] = mapped_column(JSON_COMPATIBLE)
    status: Mapped[str] = mapped_column(String(50), default="Scheduled", nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    source_id: Mapped[str | None] = mapped_column(String(255), index=True)
    created_by: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
