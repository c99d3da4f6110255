"""Incident reporting, investigation and closure."""
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ehs.auth.ability import Action, Subject
from ehs.auth.roles import Role
from ehs.db.models import Incident, IncidentStatus, IncidentType, Measure, MeasureStatus
from ehs.dependencies import TenantContext, get_tenant_context, require_ability
from ehs.exceptions import ConflictError, NotFoundError
from ehs.services.audit_log import record_audit_event, resource_ref
from ehs.services.notifications import notify_users_by_role

router = APIRouter(prefix="/api/incidents", tags=["incidents"])


class IncidentCreate(BaseModel):
    """Request model for reporting an incident."""

    type: IncidentType
    title: str = Field(..., min_length=5, max_length=255)
    description: str = Field(..., min_length=20)
    severity: int = Field(..., ge=1, le=5)
    occurred_at: datetime
    location: Optional[str] = Field(None, max_length=255)
    immediate_action: Optional[str] = None


class IncidentUpdate(BaseModel):
    type: Optional[IncidentType] = None
    title: Optional[str] = Field(None, min_length=5, max_length=255)
    description: Optional[str] = Field(None, min_length=20)
    severity: Optional[int] = Field(None, ge=1, le=5)
    occurred_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    immediate_action: Optional[str] = None

    @field_validator("type", "title", "description", "severity", "occurred_at", mode="before")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class InvestigateRequest(BaseModel):
    root_cause: str = Field(..., min_length=20)
    contributing_factors: Optional[str] = None


class CloseRequest(BaseModel):
    effectiveness_review: str = Field(..., min_length=20)
    lessons_learned: Optional[str] = None


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    type: IncidentType
    status: IncidentStatus
    title: str
    description: str
    severity: int
    severity_label: str
    occurred_at: datetime
    location: Optional[str]
    immediate_action: Optional[str]
    reported_by: Optional[UUID]
    root_cause: Optional[str]
    contributing_factors: Optional[str]
    investigated_by: Optional[UUID]
    investigated_at: Optional[datetime]
    effectiveness_review: Optional[str]
    lessons_learned: Optional[str]
    closed_by: Optional[UUID]
    closed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


def severity_label(severity: int) -> str:
    if severity >= 5:
        return "Critical"
    if severity >= 4:
        return "Serious"
    if severity >= 3:
        return "Moderate"
    if severity >= 2:
        return "Minor"
    return "Negligible"


def _to_response(incident: Incident) -> IncidentResponse:
    return IncidentResponse.model_validate(
        {
            **{c.name: getattr(incident, c.name) for c in Incident.__table__.columns},
            "severity_label": severity_label(incident.severity),
        }
    )


def _incident_link(incident_id: UUID) -> str:
    return f"/dashboard/incidents/{incident_id}"


@router.get(
    "",
    response_model=list[IncidentResponse],
    dependencies=[Depends(require_ability(Action.READ, Subject.INCIDENT))],
)
def list_incidents(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    status_filter: Annotated[Optional[IncidentStatus], Query(alias="status")] = None,
) -> list[IncidentResponse]:
    repo = ctx.repo(Incident)
    incidents = repo.list(status=status_filter) if status_filter else repo.list()
    return [_to_response(incident) for incident in incidents]


@router.get(
    "/{incident_id}",
    response_model=IncidentResponse,
    dependencies=[Depends(require_ability(Action.READ, Subject.INCIDENT))],
)
def get_incident(
    incident_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> IncidentResponse:
    return _to_response(ctx.repo(Incident).get_or_404(incident_id))


@router.post(
    "",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ability(Action.CREATE, Subject.INCIDENT))],
)
def report_incident(
    body: IncidentCreate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> IncidentResponse:
    """Report an incident; H&S managers of the tenant are notified."""
    incident = ctx.repo(Incident).create(
        **body.model_dump(),
        status=IncidentStatus.OPEN,
        reported_by=ctx.user.id,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "INCIDENT_CREATED",
        resource_ref("Incident", incident.id),
        {"title": incident.title, "type": incident.type.value, "severity": incident.severity},
    )
    notify_users_by_role(
        ctx.db,
        ctx.tenant_id,
        Role.HMS,
        title="New incident reported",
        message=f"{incident.title} ({severity_label(incident.severity)})",
        link=_incident_link(incident.id),
        notification_type="INCIDENT_REPORTED",
        exclude_user_id=ctx.user.id,
    )
    return _to_response(incident)


@router.patch(
    "/{incident_id}",
    response_model=IncidentResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.INCIDENT))],
)
def update_incident(
    incident_id: UUID,
    body: IncidentUpdate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> IncidentResponse:
    repo = ctx.repo(Incident)
    if repo.get_or_404(incident_id).status == IncidentStatus.CLOSED:
        raise ConflictError("Closed incidents cannot be edited")

    changes = body.model_dump(exclude_unset=True)
    incident = repo.update(incident_id, **changes)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "INCIDENT_UPDATED",
        resource_ref("Incident", incident.id),
        {"fields": sorted(changes)},
    )
    return _to_response(incident)


@router.post(
    "/{incident_id}/investigate",
    response_model=IncidentResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.INCIDENT))],
)
def investigate_incident(
    incident_id: UUID,
    body: InvestigateRequest,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> IncidentResponse:
    """Record the root cause analysis."""
    repo = ctx.repo(Incident)
    if repo.get_or_404(incident_id).status == IncidentStatus.CLOSED:
        raise ConflictError("Incident is already closed")

    incident = repo.update(
        incident_id,
        root_cause=body.root_cause,
        contributing_factors=body.contributing_factors,
        investigated_by=ctx.user.id,
        investigated_at=datetime.utcnow(),
        status=IncidentStatus.INVESTIGATING,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "INCIDENT_INVESTIGATED",
        resource_ref("Incident", incident.id),
    )
    return _to_response(incident)


@router.post(
    "/{incident_id}/close",
    response_model=IncidentResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.INCIDENT))],
)
def close_incident(
    incident_id: UUID,
    body: CloseRequest,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> IncidentResponse:
    """
    Close an incident after reviewing the effectiveness of its measures.

    All linked measures must be DONE first.
    """
    repo = ctx.repo(Incident)
    if repo.get_or_404(incident_id).status == IncidentStatus.CLOSED:
        raise ConflictError("Incident is already closed")

    open_measures = [
        m for m in ctx.repo(Measure).list(incident_id=incident_id)
        if m.status != MeasureStatus.DONE
    ]
    if open_measures:
        raise ConflictError(
            f"All measures must be completed before closing ({len(open_measures)} still open)"
        )

    incident = repo.update(
        incident_id,
        effectiveness_review=body.effectiveness_review,
        lessons_learned=body.lessons_learned,
        closed_by=ctx.user.id,
        closed_at=datetime.utcnow(),
        status=IncidentStatus.CLOSED,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "INCIDENT_CLOSED",
        resource_ref("Incident", incident.id),
    )
    notify_users_by_role(
        ctx.db,
        ctx.tenant_id,
        Role.HMS,
        title="Incident closed",
        message=incident.title,
        link=_incident_link(incident.id),
        notification_type="INCIDENT_CLOSED",
        exclude_user_id=ctx.user.id,
    )
    return _to_response(incident)


@router.delete(
    "/{incident_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(Action.DELETE, Subject.INCIDENT))],
)
def delete_incident(
    incident_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Response:
    if not ctx.repo(Incident).delete(incident_id):
        raise NotFoundError("Incident", str(incident_id))
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "INCIDENT_DELETED",
        resource_ref("Incident", incident_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
