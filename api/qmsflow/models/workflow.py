"""Pending tasks created by manual workflow steps."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from qmsflow.db.base_class import JSON_COMPATIBLE, Base, new_record_id, utcnow


class WorkflowTask(Base):
    """Manual step awaiting someone in ``assigned_role``."""

    __tablename__ = "workflow_tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    workflow_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    step_id: Mapped[str] = mapped_column(String(100), nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    module_type: Mapped[str] = mapped_column(String(64), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(255), index=True)
    assigned_role: Mapped[str | None] = mapped_column(String(100))
    approval_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="Pending", nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON_COMPATIBLE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
