"""Notification schemas."""

from __future__ import annotations

from datetime import datetime

from qmsflow.schema.base import ORMModel


class NotificationRead(ORMModel):
    level: str
    message: str
    created_at: datetime
