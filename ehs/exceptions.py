"""Custom exceptions for consistent error handling."""
from enum import Enum


class ErrorCodes(str, Enum):
    """Machine-readable error codes returned in error responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    TENANT_SUSPENDED = "TENANT_SUSPENDED"
    TENANT_NOT_SELECTED = "TENANT_NOT_SELECTED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class EHSException(Exception):
    """Base exception for all EHS Platform errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict[str, str]] | None = None,
    ):
        """
        Initialize EHS exception.

        Args:
            code: Error code (e.g., "VALIDATION_ERROR")
            message: Human-readable error message
            details: Optional list of field-specific error details
        """
        self.code = code
        self.message = message
        self.details = details or []
        super().__init__(self.message)


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing or invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid environment configuration: " + "; ".join(errors))


class ValidationError(EHSException):
    """Raised when request validation fails (400)."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: list[dict[str, str]] | None = None,
    ):
        super().__init__(
            code=ErrorCodes.VALIDATION_ERROR.value,
            message=message,
            details=details,
        )


class AuthenticationError(EHSException):
    """Raised when authentication fails (401)."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            code=ErrorCodes.UNAUTHORIZED.value,
            message=message,
        )


class PermissionDeniedError(EHSException):
    """Raised when user lacks required permissions (403)."""

    def __init__(self, message: str = "Insufficient permissions", code: str = ErrorCodes.FORBIDDEN.value):
        super().__init__(
            code=code,
            message=message,
        )


class TenantSuspendedError(PermissionDeniedError):
    """Raised when the user's tenant is suspended (403)."""

    def __init__(self, message: str = "The organization account is suspended"):
        super().__init__(message=message, code=ErrorCodes.TENANT_SUSPENDED.value)


class NotFoundError(EHSException):
    """Raised when a resource is not found (404)."""

    def __init__(self, resource_type: str = "Resource", resource_id: str | None = None):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        super().__init__(
            code=ErrorCodes.NOT_FOUND.value,
            message=message,
        )


class ConflictError(EHSException):
    """Raised when an operation conflicts with the resource's state (409)."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCodes.CONFLICT.value,
            message=message,
        )


class RateLimitError(EHSException):
    """Raised when rate limit is exceeded (429)."""

    def __init__(self, retry_after: int, message: str | None = None, code: str = ErrorCodes.RATE_LIMIT_EXCEEDED.value):
        if message is None:
            message = f"Rate limit exceeded. Retry after {retry_after} seconds"

        super().__init__(
            code=code,
            message=message,
        )
        self.retry_after = retry_after


class AccountLockedError(RateLimitError):
    """Raised when a login is attempted on a locked account (429)."""

    def __init__(self, retry_after: int):
        minutes = max(1, -(-retry_after // 60))
        super().__init__(
            retry_after=retry_after,
            message=f"Account is locked due to too many failed login attempts. Try again in {minutes} minutes",
            code=ErrorCodes.ACCOUNT_LOCKED.value,
        )
