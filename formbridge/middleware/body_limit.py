"""
FormBridge Backend — Body Size Limit Middleware
=================================================

What:  Rejects requests whose declared Content-Length exceeds max_body_size.
How:   Compares the header before the body is read and answers 413 with the
       standard error envelope. Bodies without a Content-Length (chunked) are
       checked again by the route after reading.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Answer 413 for oversized Content-Length without reading the body."""

    def __init__(self, app, max_body_size: int, **kwargs):
        super().__init__(app, **kwargs)
        self.max_body_size = max_body_size

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                size = int(declared)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"success": False, "error": "Invalid Content-Length header"},
                )

            if size > self.max_body_size:
                logger.warning(
                    "Rejected %s %s: body of %d bytes exceeds %d",
                    request.method,
                    request.url.path,
                    size,
                    self.max_body_size,
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "success": False,
                        "error": f"Request body exceeds {self.max_body_size} bytes",
                    },
                )

        return await call_next(request)
