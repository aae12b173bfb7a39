"""
CodeSnap Backend — Rate Limiting Middleware
=============================================

What:  Per-client sliding-window rate limiter.
How:   Keeps the timestamps of each client's requests inside the current
       window. A client that already has `limit` requests in the window is
       answered with 429 and a Retry-After header until its oldest request
       ages out.
Who:   First middleware in the chain; limits come from Settings
       (rate_limit_requests per rate_limit_window seconds).

Scope:
    State lives in process memory, so each worker enforces its own limit.
    /health and the API docs are never limited.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from codesnap.exceptions import RateLimitExceededError
from codesnap.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        limit: Maximum requests per client inside one window
        window_seconds: Window length
        timer: Monotonic-ish time source (seconds); injectable for tests
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        limit: int = 300,
        window_seconds: int = 3600,
        timer: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.limit = limit
        self.window_seconds = window_seconds
        self._timer = timer
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        try:
            self.check(client_ip)
        except RateLimitExceededError as exc:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "requestId": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)

    def check(self, client: str) -> None:
        """
        Record one request for `client`.

        Raises:
            RateLimitExceededError: the client is over its limit; the
                request is not recorded.
        """
        now = self._timer()
        window_start = now - self.window_seconds

        timestamps = [ts for ts in self._requests[client] if ts > window_start]
        self._requests[client] = timestamps

        if len(timestamps) >= self.limit:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                client,
                len(timestamps),
                self.window_seconds,
            )
            raise RateLimitExceededError(retry_after=retry_after)

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive(window_start)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Drop clients with no requests left inside the window."""
        inactive = [
            client for client, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for client in inactive:
            del self._requests[client]

        if inactive:
            logger.debug("Cleaned up %d inactive client entries", len(inactive))
