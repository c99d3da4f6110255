"""Audit logging for ability checks."""
import logging
from datetime import datetime, timezone
from typing import Optional

from .models import SessionUser

logger = logging.getLogger(__name__)


def log_permission_denial(
    user: SessionUser,
    action: str,
    subject: str,
    endpoint: Optional[str] = None,
    reason: Optional[str] = None,
) -> None:
    """Log an ability denial for audit purposes.

    Args:
        user: Session user attempting access.
        action: Action that was checked.
        subject: Subject the action was checked against.
        endpoint: Endpoint path that was accessed.
        reason: Additional reason for denial.
    """
    audit_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "user_id": str(user.id),
        "tenant_id": str(user.tenant_id) if user.tenant_id else None,
        "role": user.role.value if user.role else None,
        "is_superadmin": user.is_superadmin,
        "is_support": user.is_support,
        "action": action,
        "subject": subject,
        "endpoint": endpoint,
        "reason": reason,
    }

    logger.warning(
        f"ABILITY_DENIED: "
        f"user_id={audit_data['user_id']}, "
        f"tenant_id={audit_data['tenant_id']}, "
        f"role={audit_data['role']}, "
        f"action={action}, "
        f"subject={subject}, "
        f"endpoint={endpoint}",
        extra={"audit": audit_data},
    )


def log_permission_granted(
    user: SessionUser,
    action: str,
    subject: str,
    endpoint: Optional[str] = None,
) -> None:
    """Log a successful ability check (DEBUG level to avoid log spam)."""
    logger.debug(
        f"ABILITY_GRANTED: "
        f"user_id={user.id}, "
        f"tenant_id={user.tenant_id}, "
        f"action={action}, "
        f"subject={subject}, "
        f"endpoint={endpoint}"
    )
