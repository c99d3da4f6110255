"""The caller's in-app notifications."""
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from ehs.db.models import Notification
from ehs.dependencies import TenantContext, get_tenant_context
from ehs.exceptions import NotFoundError
from ehs.services.notifications import list_user_notifications, mark_notification_read

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    message: str
    link: Optional[str]
    read: bool
    created_at: datetime


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    unread_only: Annotated[bool, Query()] = False,
) -> list[Notification]:
    return list_user_notifications(ctx.db, ctx.tenant_id, ctx.user.id, unread_only=unread_only)


@router.post("/{notification_id}/read")
def read_notification(
    notification_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict[str, bool]:
    """Mark a notification as read. Other users' notifications look missing."""
    if not mark_notification_read(ctx.db, ctx.tenant_id, ctx.user.id, notification_id):
        raise NotFoundError("Notification", str(notification_id))
    return {"read": True}
