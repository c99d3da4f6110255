"""Request ID middleware for request tracking."""
import re
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs are echoed into logs and headers, so keep them tame.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to generate and track request IDs.

    - Stores the ID in request.state.request_id
    - Adds the X-Request-ID header to every response
    - Accepts a well-formed client-provided X-Request-ID, otherwise
      generates a UUID4
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        client_request_id = request.headers.get(REQUEST_ID_HEADER)

        if client_request_id and _VALID_REQUEST_ID.match(client_request_id):
            request_id = client_request_id
        else:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        return response
