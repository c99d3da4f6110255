"""FastAPI dependencies for sessions, abilities and tenant context."""
import logging
from dataclasses import dataclass
from typing import Iterator, Union
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ehs.auth.ability import Ability, Action, Subject, define_abilities
from ehs.auth.audit import log_permission_denial, log_permission_granted
from ehs.auth.models import SessionUser
from ehs.auth.tokens import decode_session_token, extract_token
from ehs.config import Settings, get_settings
from ehs.db.connection import DatabaseConnectionManager, get_connection_manager
from ehs.exceptions import AuthenticationError, ErrorCodes, PermissionDeniedError
from ehs.services.tenant_scope import ModelT, TenantScopedRepository

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings bound to the running app, falling back to the environment."""
    settings = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def get_db_manager(request: Request) -> DatabaseConnectionManager:
    manager = getattr(request.app.state, "db", None)
    return manager or get_connection_manager()


def get_db(manager: DatabaseConnectionManager = Depends(get_db_manager)) -> Iterator[Session]:
    """Request-scoped session; commits on success, rolls back on error."""
    with manager.get_session() as session:
        yield session


def get_current_user(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> SessionUser:
    """
    Resolve the session user from the session cookie or Bearer token.

    Raises:
        AuthenticationError: If no valid session token is present
    """
    token = extract_token(request, settings.session_cookie_name)
    if not token:
        raise AuthenticationError("Authentication required")

    user = decode_session_token(token, settings)
    request.state.session_user = user
    return user


def get_ability(request: Request, user: SessionUser = Depends(get_current_user)) -> Ability:
    """Ability for the current user, built once per request."""
    ability = getattr(request.state, "ability", None)
    if ability is None:
        ability = define_abilities(user)
        request.state.ability = ability
    return ability


def require_tenant(user: SessionUser = Depends(get_current_user)) -> UUID:
    """Tenant id of the current session; 403 when no tenant is selected."""
    if user.tenant_id is None:
        raise PermissionDeniedError(
            "No organization selected",
            code=ErrorCodes.TENANT_NOT_SELECTED.value,
        )
    return user.tenant_id


def require_ability(action: Union[Action, str], subject: Union[Subject, str]):
    """Create a dependency that requires ``can(action, subject)``.

    Usage:
        @router.post("/documents", dependencies=[Depends(require_ability(Action.CREATE, Subject.DOCUMENT))])
        async def create_document(...):
            ...

    Results are cached per request on ``request.state.ability_cache``.
    """
    action_enum = Action(action)
    subject_enum = Subject(subject)
    cache_key = f"{action_enum.value}:{subject_enum.value}"

    def ability_checker(
        request: Request,
        user: SessionUser = Depends(get_current_user),
        ability: Ability = Depends(get_ability),
    ) -> SessionUser:
        cache = getattr(request.state, "ability_cache", None)
        if cache is None:
            cache = {}
            request.state.ability_cache = cache

        if cache_key not in cache:
            cache[cache_key] = ability.can(action_enum, subject_enum)

        if not cache[cache_key]:
            log_permission_denial(
                user=user,
                action=action_enum.value,
                subject=subject_enum.value,
                endpoint=str(request.url.path),
                reason="No rule grants this action",
            )
            raise PermissionDeniedError(
                f"Not allowed to {action_enum.value} {subject_enum.value}"
            )

        log_permission_granted(
            user=user,
            action=action_enum.value,
            subject=subject_enum.value,
            endpoint=str(request.url.path),
        )
        return user

    return ability_checker


def require_operator(request: Request, user: SessionUser = Depends(get_current_user)) -> SessionUser:
    """Allow only superadmin and support staff."""
    if not user.is_operator:
        log_permission_denial(
            user=user,
            action="access",
            subject="admin",
            endpoint=str(request.url.path),
            reason="User is not a platform operator",
        )
        raise PermissionDeniedError("Platform operator access required")
    return user


@dataclass
class TenantContext:
    """Everything a tenant-scoped handler needs."""

    user: SessionUser
    tenant_id: UUID
    db: Session

    def repo(self, model: type[ModelT]) -> TenantScopedRepository[ModelT]:
        return TenantScopedRepository(self.db, model, self.tenant_id)


def get_tenant_context(
    user: SessionUser = Depends(get_current_user),
    tenant_id: UUID = Depends(require_tenant),
    db: Session = Depends(get_db),
) -> TenantContext:
    return TenantContext(user=user, tenant_id=tenant_id, db=db)
