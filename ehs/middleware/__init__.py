"""HTTP middleware for the EHS Platform."""
from .error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .request_id import RequestIDMiddleware
from .session_guard import SessionGuardMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestIDMiddleware",
    "SessionGuardMiddleware",
    "register_exception_handlers",
]
