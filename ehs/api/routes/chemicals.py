"""Chemical register endpoints."""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ehs.auth.ability import Action, Subject
from ehs.db.models import Chemical, ChemicalStatus
from ehs.dependencies import TenantContext, get_tenant_context, require_ability
from ehs.exceptions import NotFoundError
from ehs.services.audit_log import record_audit_event, resource_ref
from ehs.services.tenant_scope import sds_storage_key

router = APIRouter(prefix="/api/chemicals", tags=["chemicals"])

REVIEW_INTERVAL = timedelta(days=365)


class ChemicalCreate(BaseModel):
    """Request model for registering a chemical product."""

    product_name: str = Field(..., min_length=1, max_length=255)
    supplier: Optional[str] = Field(None, max_length=255)
    cas_number: Optional[str] = Field(None, max_length=64)
    hazard_class: Optional[str] = Field(None, max_length=255)
    h_statements: Optional[str] = None
    p_statements: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    quantity: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=32)
    sds_version: Optional[str] = Field(None, max_length=64)
    sds_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    status: ChemicalStatus = ChemicalStatus.ACTIVE


class ChemicalUpdate(BaseModel):
    product_name: Optional[str] = Field(None, min_length=1, max_length=255)
    supplier: Optional[str] = Field(None, max_length=255)
    cas_number: Optional[str] = Field(None, max_length=64)
    hazard_class: Optional[str] = Field(None, max_length=255)
    h_statements: Optional[str] = None
    p_statements: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    quantity: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=32)
    sds_version: Optional[str] = Field(None, max_length=64)
    sds_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    status: Optional[ChemicalStatus] = None

    @field_validator("product_name", "status", mode="before")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ChemicalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    product_name: str
    supplier: Optional[str]
    cas_number: Optional[str]
    hazard_class: Optional[str]
    h_statements: Optional[str]
    p_statements: Optional[str]
    location: Optional[str]
    quantity: Optional[Decimal]
    unit: Optional[str]
    sds_key: Optional[str]
    sds_version: Optional[str]
    sds_date: Optional[datetime]
    next_review_date: Optional[datetime]
    status: ChemicalStatus
    created_at: datetime
    updated_at: datetime


class SdsUploadTarget(BaseModel):
    key: str


@router.get(
    "",
    response_model=list[ChemicalResponse],
    dependencies=[Depends(require_ability(Action.READ, Subject.CHEMICAL))],
)
def list_chemicals(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    status_filter: Annotated[Optional[ChemicalStatus], Query(alias="status")] = None,
) -> list[Chemical]:
    repo = ctx.repo(Chemical)
    if status_filter is not None:
        return repo.list(order_by=Chemical.product_name, status=status_filter)
    return repo.list(order_by=Chemical.product_name)


@router.get(
    "/{chemical_id}",
    response_model=ChemicalResponse,
    dependencies=[Depends(require_ability(Action.READ, Subject.CHEMICAL))],
)
def get_chemical(
    chemical_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Chemical:
    return ctx.repo(Chemical).get_or_404(chemical_id)


@router.post(
    "",
    response_model=ChemicalResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ability(Action.CREATE, Subject.CHEMICAL))],
)
def create_chemical(
    body: ChemicalCreate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Chemical:
    """Register a chemical; the first review is due a year from now by default."""
    values = body.model_dump()
    if values["next_review_date"] is None:
        values["next_review_date"] = datetime.utcnow() + REVIEW_INTERVAL

    chemical = ctx.repo(Chemical).create(
        **values,
        created_by=ctx.user.id,
        updated_by=ctx.user.id,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "CHEMICAL_CREATED",
        resource_ref("Chemical", chemical.id),
        {"product_name": chemical.product_name, "supplier": chemical.supplier},
    )
    return chemical


@router.patch(
    "/{chemical_id}",
    response_model=ChemicalResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.CHEMICAL))],
)
def update_chemical(
    chemical_id: UUID,
    body: ChemicalUpdate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Chemical:
    changes = body.model_dump(exclude_unset=True)
    chemical = ctx.repo(Chemical).update(chemical_id, **changes, updated_by=ctx.user.id)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "CHEMICAL_UPDATED",
        resource_ref("Chemical", chemical.id),
        {"fields": sorted(changes)},
    )
    return chemical


@router.post(
    "/{chemical_id}/sds",
    response_model=SdsUploadTarget,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.CHEMICAL))],
)
def assign_sds_key(
    chemical_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> SdsUploadTarget:
    """Allocate the tenant-prefixed storage key for a new safety data sheet."""
    repo = ctx.repo(Chemical)
    repo.get_or_404(chemical_id)
    key = sds_storage_key(ctx.tenant_id, chemical_id, int(datetime.utcnow().timestamp() * 1000))
    repo.update(chemical_id, sds_key=key, updated_by=ctx.user.id)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "CHEMICAL_SDS_ASSIGNED",
        resource_ref("Chemical", chemical_id),
        {"key": key},
    )
    return SdsUploadTarget(key=key)


@router.delete(
    "/{chemical_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(Action.DELETE, Subject.CHEMICAL))],
)
def delete_chemical(
    chemical_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Response:
    if not ctx.repo(Chemical).delete(chemical_id):
        raise NotFoundError("Chemical", str(chemical_id))
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "CHEMICAL_DELETED",
        resource_ref("Chemical", chemical_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
