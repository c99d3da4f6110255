"""Credential login, lockout and tenant selection."""
import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ehs.auth.models import SessionUser, TenantMembership
from ehs.auth.passwords import verify_password
from ehs.config import Settings
from ehs.db.models import (
    Invoice,
    InvoiceStatus,
    Tenant,
    TenantStatus,
    User,
    UserTenant,
)
from ehs.exceptions import (
    AccountLockedError,
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    TenantSuspendedError,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
SELECTABLE_STATUSES = (TenantStatus.ACTIVE, TenantStatus.TRIAL)
INVOICE_WARNING_DAYS = 3


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _memberships(session: Session, user_id: UUID) -> list[UserTenant]:
    stmt = (
        select(UserTenant)
        .where(UserTenant.user_id == user_id)
        .order_by(UserTenant.created_at)
    )
    return list(session.scalars(stmt))


def authenticate(
    session: Session,
    email: str,
    password: str,
    settings: Settings,
    now: Optional[datetime] = None,
) -> User:
    """Verify credentials with account lockout.

    Raises:
        AuthenticationError: Unknown user or wrong password.
        AccountLockedError: Too many failed attempts.
        TenantSuspendedError: The user's tenant is suspended.
    """
    now = now or datetime.utcnow()
    normalized = normalize_email(email)

    user = session.scalars(select(User).where(User.email == normalized)).first()
    if user is None or not user.password_hash:
        logger.info("Login failed: unknown user or no password set")
        raise AuthenticationError(INVALID_CREDENTIALS)

    if user.locked_until and user.locked_until > now:
        remaining = int((user.locked_until - now).total_seconds())
        logger.warning(f"Login attempt on locked account: user_id={user.id}")
        raise AccountLockedError(retry_after=max(remaining, 1))

    if not verify_password(password, user.password_hash):
        _register_failed_attempt(session, user, settings, now)

    user.failed_login_attempts = 0
    user.locked_until = None
    session.flush()

    if not user.is_superadmin and not user.is_support:
        _check_tenant_access(session, user, now)

    logger.info(f"Login succeeded: user_id={user.id}")
    return user


def _register_failed_attempt(session: Session, user: User, settings: Settings, now: datetime) -> None:
    attempts = (user.failed_login_attempts or 0) + 1

    if attempts >= settings.max_login_attempts:
        user.failed_login_attempts = 0
        user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
        # Persist the lockout before the request transaction rolls back.
        session.commit()
        logger.warning(
            f"Account locked after {attempts} failed attempts: user_id={user.id}",
            extra={"user_id": str(user.id), "lockout_minutes": settings.lockout_minutes},
        )
        raise AccountLockedError(retry_after=settings.lockout_minutes * 60)

    user.failed_login_attempts = attempts
    session.commit()
    attempts_left = settings.max_login_attempts - attempts
    raise AuthenticationError(f"{INVALID_CREDENTIALS}. {attempts_left} attempt(s) left before lockout")


def _check_tenant_access(session: Session, user: User, now: datetime) -> None:
    """Reject logins into a suspended tenant and warn about invoices due soon."""
    memberships = _memberships(session, user.id)
    if not memberships:
        return

    selected = _select_membership(user, memberships) or memberships[0]
    tenant = selected.tenant
    if tenant.status == TenantStatus.SUSPENDED:
        overdue = session.scalars(
            select(Invoice).where(
                Invoice.tenant_id == tenant.id,
                Invoice.status == InvoiceStatus.OVERDUE,
            )
        ).first()
        if overdue is not None:
            raise TenantSuspendedError(
                "The organization account is suspended due to unpaid invoices. "
                "Contact support to reactivate"
            )
        raise TenantSuspendedError("The organization account is suspended. Contact support")

    due_soon = session.scalars(
        select(Invoice).where(
            Invoice.tenant_id == tenant.id,
            Invoice.status == InvoiceStatus.PENDING,
            Invoice.due_date <= now + timedelta(days=INVOICE_WARNING_DAYS),
        )
    ).all()
    if due_soon:
        logger.warning(
            f"Tenant has {len(due_soon)} pending invoice(s) due within {INVOICE_WARNING_DAYS} days",
            extra={"tenant_id": str(tenant.id)},
        )


def list_memberships(session: Session, user_id: UUID) -> list[TenantMembership]:
    """Tenants the user belongs to, oldest membership first."""
    return [
        TenantMembership(
            tenant_id=m.tenant.id,
            tenant_name=m.tenant.name,
            tenant_slug=m.tenant.slug,
            status=m.tenant.status.value,
            role=m.role,
            department=m.department,
        )
        for m in _memberships(session, user_id)
    ]


def _select_membership(user: User, memberships: list[UserTenant]) -> Optional[UserTenant]:
    """Pick the active tenant for a fresh session.

    The last used tenant wins if it is still selectable; a single membership
    is selected automatically; several memberships require explicit choice.
    """
    if user.last_tenant_id:
        for membership in memberships:
            if (
                membership.tenant_id == user.last_tenant_id
                and membership.tenant.status in SELECTABLE_STATUSES
            ):
                return membership

    if len(memberships) == 1:
        return memberships[0]

    return None


def _to_session_user(user: User, membership: Optional[UserTenant], membership_count: int) -> SessionUser:
    return SessionUser(
        id=user.id,
        email=user.email,
        name=user.name,
        tenant_id=membership.tenant_id if membership else None,
        tenant_name=membership.tenant.name if membership else None,
        role=membership.role if membership else None,
        department=membership.department if membership else None,
        is_superadmin=bool(user.is_superadmin),
        is_support=bool(user.is_support),
        has_multiple_tenants=membership_count > 1,
    )


def build_session_user(session: Session, user: User) -> SessionUser:
    """Derive the session claims for a freshly authenticated user."""
    memberships = _memberships(session, user.id)
    selected = _select_membership(user, memberships)
    return _to_session_user(user, selected, len(memberships))


def switch_tenant(session: Session, user_id: UUID, tenant_id: UUID) -> SessionUser:
    """Select a tenant for the session and remember it for the next login.

    Raises:
        NotFoundError: Unknown user.
        PermissionDeniedError: The user is not a member of the tenant.
        TenantSuspendedError: The tenant is suspended (operators excepted).
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))

    memberships = _memberships(session, user.id)
    membership = next((m for m in memberships if m.tenant_id == tenant_id), None)
    if membership is None:
        logger.warning(
            f"Tenant switch denied: user_id={user_id} is not a member of tenant_id={tenant_id}"
        )
        raise PermissionDeniedError("You do not have access to this organization")

    if membership.tenant.status == TenantStatus.SUSPENDED and not (user.is_superadmin or user.is_support):
        raise TenantSuspendedError()

    user.last_tenant_id = tenant_id
    session.flush()

    logger.info(f"Tenant switched: user_id={user_id}, tenant_id={tenant_id}")
    return _to_session_user(user, membership, len(memberships))


def get_tenant(session: Session, tenant_id: UUID) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant", str(tenant_id))
    return tenant
