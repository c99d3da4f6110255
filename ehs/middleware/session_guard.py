"""Session guard for page routes.

Runs on every request except static assets and the auth API:

1. Pages under /dashboard, /admin and /ansatt require a valid session token;
   without one the request is redirected to /login?callbackUrl=<path>.
2. A user with several tenants and none selected is sent to /select-tenant
   (API routes and /select-tenant itself are exempt).
3. /admin is reserved for superadmin and support staff; others are sent to
   /dashboard.

Every response passing through the guard carries the security headers.
Failures are always redirects, never error bodies.
"""
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from ehs.auth.models import SessionUser
from ehs.auth.tokens import decode_session_token, extract_token
from ehs.config import Settings, get_settings
from ehs.exceptions import AuthenticationError

from .security_headers import apply_security_headers

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/dashboard", "/admin", "/ansatt")
OPERATOR_PREFIX = "/admin"
LOGIN_PATH = "/login"
SELECT_TENANT_PATH = "/select-tenant"
DASHBOARD_PATH = "/dashboard"

EXCLUDED_PREFIXES = ("/static/", "/_next/static/", "/_next/image", "/api/auth/")
EXCLUDED_PATHS = frozenset({"/favicon.ico", "/api/auth"})
STATIC_EXTENSIONS = (
    ".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico",
    ".css", ".js", ".map", ".woff", ".woff2", ".ttf",
)


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_guarded_path(path: str) -> bool:
    """Route matcher: False for static assets and the auth API."""
    if path in EXCLUDED_PATHS:
        return False
    if path.startswith(EXCLUDED_PREFIXES):
        return False
    if path.lower().endswith(STATIC_EXTENSIONS):
        return False
    return True


def is_protected_path(path: str) -> bool:
    return any(_under(path, prefix) for prefix in PROTECTED_PREFIXES)


def login_redirect_url(request: Request) -> str:
    callback = request.url.path
    if request.url.query:
        callback = f"{callback}?{request.url.query}"
    return f"{LOGIN_PATH}?{urlencode({'callbackUrl': callback})}"


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """Redirect-based access gate for page routes."""

    def __init__(self, app: ASGIApp, settings: Optional[Settings] = None):
        super().__init__(app)
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def _load_session(self, request: Request) -> Optional[SessionUser]:
        """Decode the session token; invalid or expired tokens count as absent."""
        token = extract_token(request, self.settings.session_cookie_name)
        if not token:
            return None
        try:
            return decode_session_token(token, self.settings)
        except AuthenticationError as e:
            logger.debug(f"Ignoring session token on {request.url.path}: {e.message}")
            return None

    def _redirect_for(self, request: Request, user: Optional[SessionUser]) -> Optional[str]:
        """Return the redirect target for this request, or None to let it through."""
        path = request.url.path

        if is_protected_path(path) and user is None:
            return login_redirect_url(request)

        if (
            user is not None
            and user.needs_tenant_selection
            and not user.is_operator
            and not _under(path, "/api")
            and not _under(path, SELECT_TENANT_PATH)
        ):
            return SELECT_TENANT_PATH

        if _under(path, OPERATOR_PREFIX) and user is not None and not user.is_operator:
            logger.info(
                f"Non-operator redirected away from admin area: user_id={user.id}, path={path}"
            )
            return DASHBOARD_PATH

        return None

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not is_guarded_path(request.url.path):
            return await call_next(request)

        user = self._load_session(request)
        request.state.session_user = user

        target = self._redirect_for(request, user)
        if target is not None:
            response: Response = RedirectResponse(url=target, status_code=307)
        else:
            response = await call_next(request)

        return apply_security_headers(response)
