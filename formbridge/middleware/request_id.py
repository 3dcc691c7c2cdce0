"""
FormBridge Backend — Request ID Middleware
============================================

What:  Gives every submission and listing request a correlation ID, echoed in
       X-Request-ID and stamped onto each log record emitted while it runs.
How:   A caller-supplied X-Request-ID is reused when it is a short token of
       safe characters; anything else is replaced by a fresh UUID hex. The ID
       lives in a ContextVar read by RequestIDLogFilter, so service-level log
       lines ("Form submitted ...") carry it without being passed around.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Caller IDs end up in log lines and a response header
_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(header_value: Optional[str]) -> str:
    """Return the caller's ID when it is safe to log, otherwise a new one."""
    if header_value and _SAFE_REQUEST_ID.fullmatch(header_value):
        return header_value
    return uuid.uuid4().hex


class RequestIDLogFilter(logging.Filter):
    """Adds `record.request_id` ("-" outside a request) for the log format."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the request context and the response headers."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        # Left set after call_next: the catch-all 500 handler runs outside
        # this middleware and reads it there
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
