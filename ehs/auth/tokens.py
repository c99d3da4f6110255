"""Session token issuance and validation (HS256 JWT)."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Request
from pydantic import ValidationError as PydanticValidationError

from ehs.config import Settings
from ehs.exceptions import AuthenticationError

from .models import SessionUser

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "exp", "iat"]


def issue_session_token(
    user: SessionUser,
    settings: Settings,
    now: Optional[datetime] = None,
) -> str:
    """Sign a session token carrying the session user's claims.

    Args:
        user: Session user to encode.
        settings: Application settings (secret, algorithm, lifetime).
        now: Issue time, defaults to the current UTC time.

    Returns:
        Encoded JWT string.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "tenant_id": str(user.tenant_id) if user.tenant_id else None,
        "tenant_name": user.tenant_name,
        "role": user.role.value if user.role else None,
        "department": user.department,
        "is_superadmin": user.is_superadmin,
        "is_support": user.is_support,
        "has_multiple_tenants": user.has_multiple_tenants,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=settings.session_max_age_seconds)).timestamp()),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str, settings: Settings) -> SessionUser:
    """Validate a session token and return the session user.

    Raises:
        AuthenticationError: If the token is expired, malformed, badly signed
            or missing required claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session has expired")
    except jwt.MissingRequiredClaimError as e:
        raise AuthenticationError(f"Session token missing required claim: {e.claim}")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Session token rejected: {e}")
        raise AuthenticationError("Invalid session token")

    try:
        return SessionUser(
            id=payload["sub"],
            email=payload.get("email") or "",
            name=payload.get("name"),
            tenant_id=payload.get("tenant_id"),
            tenant_name=payload.get("tenant_name"),
            role=payload.get("role"),
            department=payload.get("department"),
            is_superadmin=bool(payload.get("is_superadmin", False)),
            is_support=bool(payload.get("is_support", False)),
            has_multiple_tenants=bool(payload.get("has_multiple_tenants", False)),
        )
    except PydanticValidationError:
        raise AuthenticationError("Invalid session token claims")


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    """Read the session token from the cookie or a Bearer Authorization header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()
