"""
Request correlation IDs

Every request gets an id: the caller's X-Request-ID when it looks like a
token, a fresh one otherwise. The id is bound into structlog contextvars
while the request is served and echoed back on the response.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"

# Letters, digits and a few separators; anything else is replaced
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _choose_request_id(supplied: str) -> str:
    if supplied and _CLIENT_ID_PATTERN.match(supplied):
        return supplied
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request (and its log lines) with a correlation id"""

    async def dispatch(self, request: Request, call_next):
        request_id = _choose_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_id(request: Request) -> str:
    """Correlation id of a request that went through RequestIDMiddleware"""
    return getattr(request.state, "request_id", "unknown")
