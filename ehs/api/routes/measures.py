"""Corrective and preventive measures."""
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ehs.auth.ability import Action, Subject
from ehs.db.models import Incident, Measure, MeasureStatus, Risk
from ehs.dependencies import TenantContext, get_tenant_context, require_ability
from ehs.exceptions import NotFoundError
from ehs.services.audit_log import record_audit_event, resource_ref

router = APIRouter(prefix="/api/measures", tags=["measures"])


class MeasureCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    incident_id: Optional[UUID] = None
    risk_id: Optional[UUID] = None
    responsible_id: Optional[UUID] = None
    due_at: Optional[datetime] = None


class MeasureUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    status: Optional[MeasureStatus] = None
    responsible_id: Optional[UUID] = None
    due_at: Optional[datetime] = None

    @field_validator("title", "status", mode="before")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class MeasureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    incident_id: Optional[UUID]
    risk_id: Optional[UUID]
    title: str
    description: Optional[str]
    status: MeasureStatus
    responsible_id: Optional[UUID]
    due_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime


@router.get(
    "",
    response_model=list[MeasureResponse],
    dependencies=[Depends(require_ability(Action.READ, Subject.MEASURE))],
)
def list_measures(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    incident_id: Annotated[Optional[UUID], Query()] = None,
) -> list[Measure]:
    repo = ctx.repo(Measure)
    if incident_id is not None:
        return repo.list(incident_id=incident_id)
    return repo.list()


@router.post(
    "",
    response_model=MeasureResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ability(Action.CREATE, Subject.MEASURE))],
)
def create_measure(
    body: MeasureCreate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Measure:
    # Linked records must belong to the same tenant.
    if body.incident_id is not None:
        ctx.repo(Incident).get_or_404(body.incident_id)
    if body.risk_id is not None:
        ctx.repo(Risk).get_or_404(body.risk_id)

    measure = ctx.repo(Measure).create(**body.model_dump(), status=MeasureStatus.PENDING)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "MEASURE_CREATED",
        resource_ref("Measure", measure.id),
        {"title": measure.title},
    )
    return measure


@router.patch(
    "/{measure_id}",
    response_model=MeasureResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.MEASURE))],
)
def update_measure(
    measure_id: UUID,
    body: MeasureUpdate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Measure:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") == MeasureStatus.DONE:
        changes["completed_at"] = datetime.utcnow()
    elif "status" in changes:
        changes["completed_at"] = None

    measure = ctx.repo(Measure).update(measure_id, **changes)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "MEASURE_UPDATED",
        resource_ref("Measure", measure.id),
        {"fields": sorted(changes)},
    )
    return measure


@router.delete(
    "/{measure_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(Action.DELETE, Subject.MEASURE))],
)
def delete_measure(
    measure_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Response:
    if not ctx.repo(Measure).delete(measure_id):
        raise NotFoundError("Measure", str(measure_id))
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "MEASURE_DELETED",
        resource_ref("Measure", measure_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
