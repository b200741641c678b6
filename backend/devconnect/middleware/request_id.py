"""
DevConnect Backend: Request ID Middleware
===========================================

What:  Tags every request with an id and echoes it as `X-Request-ID`.
How:   Reuses a client-supplied X-Request-ID when present (trimmed to
       MAX_REQUEST_ID_LENGTH), otherwise generates a short one. The id is
       kept in a ContextVar; RequestIDLogFilter stamps it on every log
       record emitted while the request is being served.
When:  Outermost application middleware, so every response (errors
       included) carries the header.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDLogFilter(logging.Filter):
    """Adds `record.request_id` ("-" outside a request) for the log format."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
        rid = supplied[:MAX_REQUEST_ID_LENGTH] if supplied else uuid.uuid4().hex[:12]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
