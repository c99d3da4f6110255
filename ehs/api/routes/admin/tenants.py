"""Admin endpoints for tenant provisioning."""
import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ehs.auth.ability import Action, Subject, define_abilities
from ehs.auth.audit import log_permission_denial
from ehs.auth.models import SessionUser
from ehs.auth.roles import Role
from ehs.db.models import Tenant, TenantStatus, User, UserTenant
from ehs.dependencies import get_db, require_operator
from ehs.exceptions import ConflictError, PermissionDeniedError
from ehs.services.auth_service import get_tenant, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/tenants", tags=["admin", "tenants"])


class TenantCreate(BaseModel):
    """Request model for creating a tenant."""

    name: str = Field(..., min_length=2, max_length=100)
    slug: str = Field(
        ...,
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$",
        max_length=50,
        description="URL-safe slug (lowercase alphanumeric with hyphens)",
    )
    org_number: Optional[str] = Field(None, max_length=32)
    admin_email: EmailStr
    admin_name: Optional[str] = Field(None, max_length=255)
    status: TenantStatus = TenantStatus.TRIAL


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class TenantResponse(BaseModel):
    """Response model for tenant endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    org_number: Optional[str]
    status: TenantStatus
    created_at: datetime
    updated_at: datetime


@router.get("", response_model=list[TenantResponse])
def list_tenants(
    db: Annotated[Session, Depends(get_db)],
    operator: Annotated[SessionUser, Depends(require_operator)],
) -> list[Tenant]:
    return list(db.scalars(select(Tenant).order_by(Tenant.name)).all())


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant_details(
    tenant_id: UUID,
    db: Annotated[Session, Depends(get_db)],
    operator: Annotated[SessionUser, Depends(require_operator)],
) -> Tenant:
    return get_tenant(db, tenant_id)


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
    tenant_data: TenantCreate,
    db: Annotated[Session, Depends(get_db)],
    operator: Annotated[SessionUser, Depends(require_operator)],
) -> Tenant:
    """
    Provision a new tenant with its first admin.

    Steps:
    1. Validate slug uniqueness
    2. Create tenant row
    3. Find or create the admin user (no password until they set one)
    4. Link admin to tenant with the ADMIN role

    Raises:
        ConflictError: The slug is already taken.
    """
    existing = db.scalar(select(Tenant).where(Tenant.slug == tenant_data.slug))
    if existing is not None:
        raise ConflictError(f"Tenant slug '{tenant_data.slug}' is already in use")

    tenant = Tenant(
        name=tenant_data.name,
        slug=tenant_data.slug,
        org_number=tenant_data.org_number,
        status=tenant_data.status,
    )
    db.add(tenant)
    db.flush()

    email = normalize_email(tenant_data.admin_email)
    admin = db.scalar(select(User).where(User.email == email))
    if admin is None:
        admin = User(email=email, name=tenant_data.admin_name)
        db.add(admin)
        db.flush()

    db.add(UserTenant(user_id=admin.id, tenant_id=tenant.id, role=Role.ADMIN))
    db.flush()

    logger.info(
        f"Tenant provisioned: tenant_id={tenant.id}, slug={tenant.slug}",
        extra={"operator_id": str(operator.id), "admin_user_id": str(admin.id)},
    )
    return tenant


@router.patch("/{tenant_id}", response_model=TenantResponse)
def update_tenant_status(
    tenant_id: UUID,
    body: TenantStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    operator: Annotated[SessionUser, Depends(require_operator)],
) -> Tenant:
    """Activate, suspend or cancel a tenant."""
    tenant = get_tenant(db, tenant_id)
    previous = tenant.status
    tenant.status = body.status
    db.flush()

    logger.info(
        f"Tenant status changed: tenant_id={tenant_id}, {previous.value} -> {body.status.value}",
        extra={"operator_id": str(operator.id)},
    )
    return tenant


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tenant(
    tenant_id: UUID,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    operator: Annotated[SessionUser, Depends(require_operator)],
) -> Response:
    """Delete a tenant and everything it owns. Superadmin only."""
    if not define_abilities(operator).can(Action.MANAGE, Subject.ALL):
        log_permission_denial(
            user=operator,
            action=Action.MANAGE.value,
            subject=Subject.ALL.value,
            endpoint=str(request.url.path),
            reason="Tenant deletion requires superadmin",
        )
        raise PermissionDeniedError("Only superadmins can delete tenants")

    tenant = get_tenant(db, tenant_id)
    db.delete(tenant)
    db.flush()

    logger.warning(
        f"Tenant deleted: tenant_id={tenant_id}, slug={tenant.slug}",
        extra={"operator_id": str(operator.id)},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
