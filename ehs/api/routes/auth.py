"""Credential login, logout and tenant selection."""
import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ehs.auth.models import SessionUser, TenantMembership
from ehs.auth.tokens import issue_session_token
from ehs.config import Settings
from ehs.dependencies import get_app_settings, get_current_user, get_db
from ehs.services.auth_service import (
    authenticate,
    build_session_user,
    list_memberships,
    switch_tenant,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    """Credential login payload."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class SelectTenantRequest(BaseModel):
    tenant_id: UUID


class SessionResponse(BaseModel):
    """Issued session: the token is also set as an HttpOnly cookie."""

    user: SessionUser
    token: str
    expires_in: int
    needs_tenant_selection: bool


def _issue(response: Response, user: SessionUser, settings: Settings) -> SessionResponse:
    token = issue_session_token(user, settings)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    return SessionResponse(
        user=user,
        token=token,
        expires_in=settings.session_max_age_seconds,
        needs_tenant_selection=user.needs_tenant_selection,
    )


@router.post("/login", response_model=SessionResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SessionResponse:
    """
    Authenticate with email and password.

    Returns 401 for bad credentials, 429 when the account is locked and
    403 when the user's organization is suspended.
    """
    user = authenticate(db, body.email, body.password, settings)
    session_user = build_session_user(db, user)
    return _issue(response, session_user, settings)


@router.post("/logout")
def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict[str, str]:
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"status": "logged_out"}


@router.get("/session", response_model=SessionUser)
def get_session(user: Annotated[SessionUser, Depends(get_current_user)]) -> SessionUser:
    return user


@router.get("/tenants", response_model=list[TenantMembership])
def get_tenants(
    user: Annotated[SessionUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[TenantMembership]:
    """Organizations the current user can switch to."""
    return list_memberships(db, user.id)


@router.post("/select-tenant", response_model=SessionResponse)
def select_tenant(
    body: SelectTenantRequest,
    response: Response,
    user: Annotated[SessionUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SessionResponse:
    """Switch the session to another organization and re-issue the token."""
    session_user = switch_tenant(db, user.id, body.tenant_id)
    return _issue(response, session_user, settings)
