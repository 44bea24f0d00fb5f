"""Notification feed for UI toasts."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from qmsflow.api.deps import get_notification_center
from qmsflow.schema.notification import NotificationRead
from qmsflow.services.notification_service import NotificationCenter

router = APIRouter()


@router.get("", response_model=list[NotificationRead])
async def drain_notifications(
    center: NotificationCenter = Depends(get_notification_center),
) -> list[NotificationRead]:
    """Return pending notifications and clear them."""
    return [NotificationRead.model_validate(item) for item in center.drain()]
