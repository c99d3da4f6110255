"""Document control endpoints."""
from datetime import datetime, timedelta
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ehs.auth.ability import Action, Subject
from ehs.db.models import Document, DocumentKind, DocumentStatus
from ehs.dependencies import TenantContext, get_tenant_context, require_ability
from ehs.exceptions import ConflictError
from ehs.services.audit_log import record_audit_event, resource_ref

router = APIRouter(prefix="/api/documents", tags=["documents"])

REVIEW_INTERVAL = timedelta(days=365)


class DocumentCreate(BaseModel):
    """Request model for creating a document."""

    title: str = Field(..., min_length=3, max_length=255)
    kind: DocumentKind = DocumentKind.OTHER
    version: str = Field("1.0", max_length=32)
    content: Optional[str] = None
    next_review_date: Optional[datetime] = None


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    kind: Optional[DocumentKind] = None
    version: Optional[str] = Field(None, max_length=32)
    content: Optional[str] = None
    next_review_date: Optional[datetime] = None

    @field_validator("title", "kind", "version", mode="before")
    @classmethod
    def reject_null(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    title: str
    kind: DocumentKind
    status: DocumentStatus
    version: str
    content: Optional[str]
    owner_id: Optional[UUID]
    approved_by: Optional[UUID]
    approved_at: Optional[datetime]
    next_review_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@router.get(
    "",
    response_model=list[DocumentResponse],
    dependencies=[Depends(require_ability(Action.READ, Subject.DOCUMENT))],
)
def list_documents(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    status_filter: Annotated[Optional[DocumentStatus], Query(alias="status")] = None,
) -> list[Document]:
    repo = ctx.repo(Document)
    if status_filter is not None:
        return repo.list(status=status_filter)
    return repo.list()


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    dependencies=[Depends(require_ability(Action.READ, Subject.DOCUMENT))],
)
def get_document(
    document_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Document:
    return ctx.repo(Document).get_or_404(document_id)


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ability(Action.CREATE, Subject.DOCUMENT))],
)
def create_document(
    body: DocumentCreate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Document:
    document = ctx.repo(Document).create(
        **body.model_dump(),
        status=DocumentStatus.DRAFT,
        owner_id=ctx.user.id,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "DOCUMENT_CREATED",
        resource_ref("Document", document.id),
        {"title": document.title, "kind": document.kind.value},
    )
    return document


@router.patch(
    "/{document_id}",
    response_model=DocumentResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.DOCUMENT))],
)
def update_document(
    document_id: UUID,
    body: DocumentUpdate,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Document:
    changes = body.model_dump(exclude_unset=True)
    document = ctx.repo(Document).update(document_id, **changes)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "DOCUMENT_UPDATED",
        resource_ref("Document", document.id),
        {"fields": sorted(changes)},
    )
    return document


@router.post(
    "/{document_id}/approve",
    response_model=DocumentResponse,
    dependencies=[Depends(require_ability(Action.UPDATE, Subject.DOCUMENT))],
)
def approve_document(
    document_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Document:
    """Approve a document and schedule its next review one year out."""
    repo = ctx.repo(Document)
    document = repo.get_or_404(document_id)
    if document.status == DocumentStatus.ARCHIVED:
        raise ConflictError("Archived documents cannot be approved")

    now = datetime.utcnow()
    document = repo.update(
        document_id,
        status=DocumentStatus.APPROVED,
        approved_by=ctx.user.id,
        approved_at=now,
        next_review_date=now + REVIEW_INTERVAL,
    )
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "DOCUMENT_APPROVED",
        resource_ref("Document", document.id),
        {"version": document.version},
    )
    return document


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(Action.DELETE, Subject.DOCUMENT))],
)
def delete_document(
    document_id: UUID,
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
) -> Response:
    """
    Delete a document.

    Tenant roles never hold document delete (records are retained), so in
    practice only platform superadmins reach this handler. Legal references
    are never deleted.
    """
    repo = ctx.repo(Document)
    document = repo.get_or_404(document_id)
    if document.kind == DocumentKind.LAW:
        raise ConflictError("Legal references cannot be deleted")

    repo.delete(document_id)
    record_audit_event(
        ctx.db,
        ctx.tenant_id,
        ctx.user.id,
        "DOCUMENT_DELETED",
        resource_ref("Document", document_id),
        {"title": document.title},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
