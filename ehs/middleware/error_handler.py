"""Error handling for consistent error responses."""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from ehs.exceptions import (
    AuthenticationError,
    ConflictError,
    EHSException,
    ErrorCodes,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Resolved through the exception's MRO, so subclasses inherit their
# parent's status (TenantSuspendedError -> 403, AccountLockedError -> 429).
STATUS_CODE_MAP: dict[type, int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    RateLimitError: status.HTTP_429_TOO_MANY_REQUESTS,
}

_HTTP_STATUS_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ErrorCodes.VALIDATION_ERROR.value,
    status.HTTP_401_UNAUTHORIZED: ErrorCodes.UNAUTHORIZED.value,
    status.HTTP_403_FORBIDDEN: ErrorCodes.FORBIDDEN.value,
    status.HTTP_404_NOT_FOUND: ErrorCodes.NOT_FOUND.value,
    status.HTTP_409_CONFLICT: ErrorCodes.CONFLICT.value,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCodes.RATE_LIMIT_EXCEEDED.value,
}


def status_code_for(exc: EHSException) -> int:
    """Map an EHS exception to its HTTP status; unknown types are 500."""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODE_MAP:
            return STATUS_CODE_MAP[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(
    code: str,
    message: str,
    details: list[Dict[str, str]],
    request_id: Optional[str],
) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        }
    }


def handle_validation_error(exc: RequestValidationError, request_id: Optional[str]) -> JSONResponse:
    """Handle FastAPI request validation errors."""
    details = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", []))
        issue = error.get("msg", "Invalid value")
        details.append({"field": field, "issue": issue})

    logger.warning(
        f"Validation error [request_id={request_id}]: {details}",
        extra={"request_id": request_id},
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            ErrorCodes.VALIDATION_ERROR.value,
            "Request validation failed",
            details,
            request_id,
        ),
    )


def handle_http_exception(exc: StarletteHTTPException, request_id: Optional[str]) -> JSONResponse:
    """Convert an HTTPException to the standard format, keeping its status code."""
    detail = exc.detail
    status_code = exc.status_code
    details: list[Dict[str, str]] = []

    if isinstance(detail, dict):
        code = detail.get("code", _HTTP_STATUS_CODES.get(status_code, "HTTP_ERROR"))
        message = detail.get("message", str(detail))
        details = cast(list[Dict[str, str]], detail.get("details", []))
    else:
        code = _HTTP_STATUS_CODES.get(status_code, "HTTP_ERROR")
        message = str(detail) if detail else "An error occurred"

    log_level = logging.WARNING if 400 <= status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"{code} [request_id={request_id}]: {message} (status={status_code})",
        extra={"request_id": request_id, "error_code": code, "status_code": status_code},
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(code, message, details, request_id),
        headers=getattr(exc, "headers", None),
    )


def handle_ehs_exception(exc: EHSException, request_id: Optional[str]) -> JSONResponse:
    """Handle EHS Platform exceptions."""
    status_code = status_code_for(exc)
    body = _error_body(exc.code, exc.message, exc.details, request_id)
    headers: Optional[dict[str, str]] = None

    if isinstance(exc, RateLimitError):
        body["error"]["retry_after"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}

    log_level = logging.WARNING if status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"{exc.code} [request_id={request_id}]: {exc.message}",
        extra={"request_id": request_id, "error_code": exc.code},
    )

    return JSONResponse(status_code=status_code, content=body, headers=headers)


def handle_unhandled_exception(exc: Exception, request_id: Optional[str]) -> JSONResponse:
    """Handle unhandled exceptions (500 errors) without exposing internals."""
    logger.error(
        f"Unhandled exception [request_id={request_id}]: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={"request_id": request_id},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            ErrorCodes.INTERNAL_ERROR.value,
            "An unexpected error occurred",
            [],
            request_id,
        ),
    )


def error_response_for(request: Request, exc: Exception) -> JSONResponse:
    """Build the standardized error response for any exception."""
    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc, RequestValidationError):
        return handle_validation_error(exc, request_id)
    if isinstance(exc, StarletteHTTPException):
        return handle_http_exception(exc, request_id)
    if isinstance(exc, EHSException):
        return handle_ehs_exception(exc, request_id)
    return handle_unhandled_exception(exc, request_id)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware to catch exceptions escaping the app and return consistent errors.

    Maps exceptions to HTTP status codes:
    - ValidationError → 400
    - AuthenticationError → 401
    - PermissionDeniedError → 403
    - NotFoundError → 404
    - ConflictError → 409
    - RateLimitError → 429
    - Unhandled → 500 (logs full trace, returns generic message)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response_for(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Register app-level handlers so route and dependency errors share the format."""

    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        return error_response_for(request, exc)

    app.add_exception_handler(EHSException, _handler)
    app.add_exception_handler(RequestValidationError, _handler)
    app.add_exception_handler(StarletteHTTPException, _handler)
