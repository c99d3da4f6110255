"""Persistent audit trail of mutating actions."""
import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ehs.db.models import AuditLog
from ehs.services.tenant_scope import TenantScopedRepository

logger = logging.getLogger(__name__)


def record_audit_event(
    session: Session,
    tenant_id: UUID,
    user_id: Optional[UUID],
    action: str,
    resource: str,
    metadata: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """Write an audit log row within the caller's transaction.

    Args:
        session: Active database session.
        tenant_id: Tenant the action happened in.
        user_id: Acting user (None for system actions).
        action: Event name, e.g. "CHEMICAL_CREATED".
        resource: Resource reference, e.g. "Chemical:<id>".
        metadata: JSON-serializable context.
    """
    entry = TenantScopedRepository(session, AuditLog, tenant_id).create(
        user_id=user_id,
        action=action,
        resource=resource,
        details=metadata or {},
    )
    logger.info(
        f"AUDIT {action} {resource}",
        extra={"tenant_id": str(tenant_id), "user_id": str(user_id) if user_id else None},
    )
    return entry


def resource_ref(kind: str, record_id: UUID) -> str:
    return f"{kind}:{record_id}"
