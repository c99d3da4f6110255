"""Risk assessment endpoints."""
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator

from ehs.auth.ability import Action, Subject
from ehs.db.models import Risk, RiskStatus
from ehs.dependencies import TenantContext, get_tenant_context, require_ability
from ehs.exceptions import NotFoundError
from ehs.services.audit_log import record_audit_event, resource_ref

router = APIRouter(prefix="/api/risks", tags=["risks"])


def calculate_risk_score(likelihood: int, consequence: int) -> int:
    """Likelihood (1-5) x consequence (1-5) gives a score of 1-25."""
    return likelihood * consequence


def risk_level(score: int) -> str:
    if score >= 20:
        return "CRITICAL"
    if score >= 12:
        return "HIGH"
    if score >= 6:
        return "MEDIUM"
    return "LOW"


class RiskCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    context: str = Field(..., min_length=10)
    description: Optional[str] = Field(None, max_length=2000)
    likelihood: int = Field(..., ge=1, le=5)
    consequence: int = Field(..., ge=1, le=5)
    status: RiskStatus = RiskStatus.OPEN
    owner_id: Optional[UUID] = None


class RiskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    context: Optional[str] = Field(None, min_length=10)
    description: Optional[str] = Field(None, max_length=2000)
    likelihood: Optional[int] = Field(None, ge=1, le=5)
    consequence: Optional[int] = Field(None, ge=1, le=5)
    status: Optional[RiskStatus] = None
    owner_id: Optional[UUID] = None

    @field_validator("title", "context", "likelihood", "consequence", "status", mode="before")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        """Required columns may be omitted but not cleared."""
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class RiskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    title: str
    context: str
    description: Optional[str]
    likelihood: int
    consequence: int
    score: int
    status: RiskStatus
    owner_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def level(self) -> str:
        return risk_level(self.score)


@router.get(
    "",
    response_model=list[RiskResponse],
    dependencies=[Depends(require_ability(Action.READ, Subject.RISK))],
)
def list_risks(ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> list[Risk]:
    return ctx.repo(Risk).list(order_by=Risk.score.desc())


@router.get(
    "/{risk_id}",
    response_model=RiskResponse,
    dependencies=[Depends(require_ability(Action.READ, Subject.RISK))],
)
def get_risk(risk_id: UUID, ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> Risk:
    return ctx.repo(Risk).get_or_404(risk_id)


@router.post(
    "",
    response_model=RiskResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ability(Action.CREATE, Subject.RISK))],
)
def create_risk(body: RiskCreate, ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> Risk:
    values = body.model_dump()
    if values["owner_id"] is None:
        values["owner_id"] = ctx.user.id
    risk = ctx.repo(Risk).create(
        **values,
        score=calculate_risk_score(body.likelihood, body.consequence),
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "RISK_CREATED",
        resource_ref("Risk", risk.id),
        {"title": risk.title, "score": risk.score},
    )
    return risk


@router.patch(
    "/{risk_id}",
    response_model=RiskResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.RISK))],
)
def update_risk(
    risk_id: UUID,
    body: RiskUpdate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Risk:
    """Update a risk; the score follows likelihood and consequence."""
    repo = ctx.repo(Risk)
    current = repo.get_or_404(risk_id)
    changes = body.model_dump(exclude_unset=True)

    likelihood = changes.get("likelihood", current.likelihood)
    consequence = changes.get("consequence", current.consequence)
    changes["score"] = calculate_risk_score(likelihood, consequence)

    risk = repo.update(risk_id, **changes)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "RISK_UPDATED",
        resource_ref("Risk", risk.id),
        {"fields": sorted(changes), "score": risk.score},
    )
    return risk


@router.delete(
    "/{risk_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(Action.DELETE, Subject.RISK))],
)
def delete_risk(risk_id: UUID, ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> Response:
    if not ctx.repo(Risk).delete(risk_id):
        raise NotFoundError("Risk", str(risk_id))
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "RISK_DELETED",
        resource_ref("Risk", risk_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
