"""
CodeSnap Backend — Middleware Tests
=====================================

What we test:
    ✅ Sliding window: limit reached → RateLimitExceededError with Retry-After
    ✅ Window slides: old requests stop counting
    ✅ Clients are limited independently
    ✅ 429 response shape through a real app; /health exempt
    ✅ X-Request-ID generated, echoed, or replaced when too long
    ✅ Access log: one record per request, quiet paths skipped
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from codesnap.exceptions import RateLimitExceededError
from codesnap.middleware.logging import QUIET_PATHS
from codesnap.middleware.rate_limit import RateLimitMiddleware
from codesnap.middleware.request_id import MAX_CLIENT_ID_LENGTH


class FakeTimer:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimitWindow:

    def setup_method(self):
        self.timer = FakeTimer()
        self.limiter = RateLimitMiddleware(FastAPI(), limit=3, window_seconds=60, timer=self.timer)

    def test_allows_up_to_limit(self):
        for _ in range(3):
            self.limiter.check("10.0.0.1")

    def test_rejects_over_limit_with_retry_after(self):
        for _ in range(3):
            self.limiter.check("10.0.0.1")
            self.timer.now += 10

        with pytest.raises(RateLimitExceededError) as exc_info:
            self.limiter.check("10.0.0.1")

        # oldest request (t=1000) leaves the window at t=1060; now is t=1030
        assert exc_info.value.retry_after == 31

    def test_window_slides(self):
        for _ in range(3):
            self.limiter.check("10.0.0.1")

        self.timer.now += 61

        self.limiter.check("10.0.0.1")

    def test_clients_are_independent(self):
        for _ in range(3):
            self.limiter.check("10.0.0.1")

        self.limiter.check("10.0.0.2")


def _limited_app(limit: int) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(RateLimitMiddleware, limit=limit, window_seconds=3600)
    return app


class TestRateLimitResponses:

    @pytest.mark.asyncio
    async def test_429_body_and_header(self):
        transport = ASGITransport(app=_limited_app(limit=2))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            response = await client.get("/ping")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_health_is_exempt(self):
        transport = ASGITransport(app=_limited_app(limit=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for _ in range(5):
                assert (await client.get("/health")).status_code == 200


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_missing(self, test_client):
        response = await test_client.get("/api/languages")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_echoed(self, test_client):
        response = await test_client.get("/api/languages", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get("/api/pastes/missing0", headers={"X-Request-ID": "trace-404"})

        assert response.status_code == 404
        assert response.json()["requestId"] == "trace-404"

    @pytest.mark.asyncio
    async def test_overlong_client_id_replaced(self, test_client):
        long_id = "x" * (MAX_CLIENT_ID_LENGTH + 1)

        response = await test_client.get("/api/languages", headers={"X-Request-ID": long_id})

        assert len(response.headers["X-Request-ID"]) == 8


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_request_logged_with_id_and_status(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="codesnap.access")

        await test_client.get("/api/languages", headers={"X-Request-ID": "trace-log"})

        records = [r for r in caplog.records if r.name == "codesnap.access"]
        assert len(records) == 1
        assert records[0].path == "/api/languages"
        assert records[0].status == 200
        assert records[0].request_id == "trace-log"

    @pytest.mark.asyncio
    async def test_quiet_paths_not_logged(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="codesnap.access")

        for path in QUIET_PATHS:
            await test_client.get(path)

        assert not [r for r in caplog.records if r.name == "codesnap.access"]

    @pytest.mark.asyncio
    async def test_client_error_logged_as_warning(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="codesnap.access")

        await test_client.get("/api/pastes/missing0")

        records = [r for r in caplog.records if r.name == "codesnap.access"]
        assert records[0].levelno == logging.WARNING
