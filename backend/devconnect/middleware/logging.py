"""
DevConnect Backend: Request Logging Middleware
================================================

What:  One access-log line per request: method, path, status, duration,
       request id and client address.
How:   Level follows the status class; a successful request slower than
       SLOW_REQUEST_MS is promoted to WARNING so slow store or auth API calls
       stand out. Bodies, query strings and the Authorization header are
       never logged.

Example:
    2024-01-15T12:00:00 [WARNING] devconnect.access: POST /api/comments/project/... 401 3.2ms [a1b2c3d4e5f6] from 10.0.0.7
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("devconnect.access")

# Health checks hit these every few seconds
QUIET_PATHS = frozenset({"/health"})
SLOW_REQUEST_MS = 1000.0


def access_level(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400 or duration_ms >= SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": getattr(request.state, "request_id", ""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            access_level(response.status_code, duration_ms),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
