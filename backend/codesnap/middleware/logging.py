"""
CodeSnap Backend — Request Logging Middleware
===============================================

What:  One access-log line per request on the `codesnap.access` logger.
Why:   Gives every request a status, a duration and a request id in one
       place, which uvicorn's own access log lacks.
How:   Measures wall time around the downstream call and logs method, path,
       status, duration, request id and client address. The level follows
       the status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
Who:   Applied to every request except QUIET_PATHS.
When:  Inside RequestIDMiddleware, so the id is already set.

Log record:
    message  "GET /api/pastes/Ab3dE_9z 200 4.2ms [1a2b3c4d] from 10.0.0.7"
    extra    request_id, method, path, status, duration_ms, client_ip

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, client address, request id
    ❌ Don't log: request or response bodies (paste content, admin
       passwords), the X-Admin-Token header, query strings
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from codesnap.middleware.request_id import request_id_var

logger = logging.getLogger("codesnap.access")

# Liveness probes hit /health every few seconds; logging them buries real traffic
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Structured access logging with request-id correlation.

    Performance tracking:
        Duration runs from middleware entry to response return, so it covers
        validation, database queries and serialization. Typical values:
        - GET /api/pastes/{id}: a few ms (one select, one update)
        - GET /api/pastes: grows with the number of live pastes returned
        - POST /api/pastes/upload: dominated by reading the multipart body
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        # perf_counter: monotonic and higher resolution than time.time()
        start_time = time.perf_counter()
        # request.client is None under some test transports
        client_ip = request.client.host if request.client else "unknown"
        method = request.method

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")

        # Severity-based alerting: 5xx is ours to fix, 4xx is the client's
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
