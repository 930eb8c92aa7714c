"""Tests for the sliding window rate limiter."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from accessgate.config import settings
from accessgate.main import app


def _redis_with_count(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, count, 1, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    redis.zrem = AsyncMock()
    return redis


@pytest.mark.asyncio
class TestRateLimiter:
    async def test_limited_path_over_limit(self):
        redis = _redis_with_count(settings.RATE_LIMIT_REQUESTS)
        with patch("accessgate.db.redis.get_redis", return_value=redis):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.post("/api/v1/invitations/reject", json={"invitation_id": "x"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == str(settings.RATE_LIMIT_WINDOW)
        redis.zrem.assert_awaited_once()

    async def test_unlimited_path_skips_redis(self):
        redis = _redis_with_count(settings.RATE_LIMIT_REQUESTS)
        with patch("accessgate.db.redis.get_redis", return_value=redis):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get("/health")

        assert response.status_code == 200
        redis.pipeline.assert_not_called()

    async def test_fails_open_without_redis(self, client):
        response = await client.post("/api/v1/requests/MPProject:1", json={"role": "Writer"})

        # Unauthenticated, but not rate limited
        assert response.status_code in (401, 403)
        assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_REQUESTS)
