"""In-app notifications, always scoped to a tenant."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ehs.auth.roles import Role
from ehs.db.models import Notification, UserTenant
from ehs.services.tenant_scope import TenantScopedRepository

logger = logging.getLogger(__name__)


def notify_users_by_role(
    session: Session,
    tenant_id: UUID,
    role: Role,
    title: str,
    message: str,
    link: Optional[str] = None,
    notification_type: str = "INFO",
    exclude_user_id: Optional[UUID] = None,
) -> list[Notification]:
    """Create a notification for every member of a tenant holding ``role``."""
    user_ids = session.scalars(
        select(UserTenant.user_id).where(
            UserTenant.tenant_id == tenant_id,
            UserTenant.role == role,
        )
    ).all()

    repo = TenantScopedRepository(session, Notification, tenant_id)
    created = [
        repo.create(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            link=link,
        )
        for user_id in user_ids
        if user_id != exclude_user_id
    ]

    logger.info(
        f"Notified {len(created)} {role.value} user(s)",
        extra={"tenant_id": str(tenant_id), "notification_type": notification_type},
    )
    return created


def list_user_notifications(
    session: Session,
    tenant_id: UUID,
    user_id: UUID,
    unread_only: bool = False,
) -> list[Notification]:
    repo = TenantScopedRepository(session, Notification, tenant_id)
    if unread_only:
        return repo.list(user_id=user_id, read=False)
    return repo.list(user_id=user_id)


def mark_notification_read(
    session: Session,
    tenant_id: UUID,
    user_id: UUID,
    notification_id: UUID,
) -> bool:
    """Mark one of the user's notifications as read; False if not theirs."""
    repo = TenantScopedRepository(session, Notification, tenant_id)
    return repo.update_many({"id": notification_id, "user_id": user_id}, {"read": True}) > 0
