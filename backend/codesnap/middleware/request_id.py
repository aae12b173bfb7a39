"""
CodeSnap Backend — Request ID Middleware
==========================================

What:  Assigns a short correlation id to each request and echoes it back.
Why:   Ties together the access log line, any service-level warnings and the
       `requestId` in an error body for one request.
How:   Reuses an incoming X-Request-ID header when present, otherwise takes
       the first 8 characters of a UUID4. The id is stored in a ContextVar
       (for loggers and exception handlers) and on request.state.
Who:   Applied to every request; error bodies carry it as `requestId`.
When:  Inside the rate limiter, outside the access logger.

Client-provided ids:
    Accepted so a frontend can tag a user action before the call and look it
    up in server logs later. Anything empty or longer than
    MAX_CLIENT_ID_LENGTH is replaced with a generated id, since the value is
    written verbatim into every log line and response header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on one event loop each see their own id.
# threading.local would leak ids between requests sharing the loop thread.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Upper bound for a client-supplied id; longer values would bloat every log line
MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a correlation id to each request.

    Behavior:
        1. Use the client's X-Request-ID if it is present and short enough
        2. Otherwise generate a new one
        3. Store it in request_id_var and request.state.request_id
        4. Add it to the X-Request-ID response header

    Why both ContextVar and request.state:
        Loggers and exception handlers have no request object at hand and
        read the ContextVar; route handlers can read request.state.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > MAX_CLIENT_ID_LENGTH:
            # 8 hex chars are enough to correlate and stay readable in logs
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        # Returned so a client can quote it when reporting an error
        response.headers["X-Request-ID"] = rid
        return response
