"""Request context middleware — request IDs and access logging.

Learn: A caller can pass X-Request-ID to trace a call through the queue;
otherwise one is generated. The ID is bound to structlog's contextvars,
so every log line emitted while serving the request (call.received,
http.request) carries it; dispatcher lines carry the submission id
instead. One access line is logged per request with its duration, which
for /api/call includes the time spent waiting in the queue.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID, echo it back, log the request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.monotonic()
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return response
