"""Unit tests for health check endpoints.

Tests:
- health_check() basic response
- redis_health_check() success and failure
- reactions_health_check() reactions waiting in open batches
- root() welcome message
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from flick.routers.health import (
    health_check,
    reactions_health_check,
    redis_health_check,
    root,
)


class TestHealthCheck:
    """Tests for the GET /health endpoint."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_returns_healthy_status(self) -> None:
        result = await health_check()
        assert result == {"status": "healthy", "service": "flick-api"}


class TestRedisHealthCheck:
    """Tests for the GET /health/redis endpoint."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    @patch("flick.routers.health.get_redis")
    async def test_returns_healthy_when_redis_responds(self, mock_get_redis) -> None:
        mock_redis = MagicMock()
        mock_redis.ping = AsyncMock(return_value=True)
        mock_get_redis.return_value = mock_redis

        result = await redis_health_check()

        assert result == {"status": "healthy", "service": "redis"}

    @pytest.mark.asyncio
    @pytest.mark.unit
    @patch("flick.routers.health.get_redis")
    async def test_returns_unhealthy_when_ping_fails(self, mock_get_redis) -> None:
        mock_redis = MagicMock()
        mock_redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
        mock_get_redis.return_value = mock_redis

        result = await redis_health_check()

        assert result["status"] == "unhealthy"
        assert "refused" in result["error"]

    @pytest.mark.asyncio
    @pytest.mark.unit
    @patch("flick.routers.health.get_redis")
    async def test_returns_unhealthy_when_not_initialized(self, mock_get_redis) -> None:
        mock_get_redis.side_effect = RuntimeError("Redis not initialized")

        result = await redis_health_check()

        assert result["status"] == "unhealthy"


class TestRoot:
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_welcome_message(self) -> None:
        result = await root()
        assert result == {"message": "Welcome to Flick API", "docs": "/docs"}


class TestReactionsHealthCheck:
    """Tests for the GET /health/reactions endpoint."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_reports_pending_reactions(self, mock_request) -> None:
        service = MagicMock()
        service.notifier.scheduler.get_pending_count.return_value = 3
        mock_request.app.state.reaction_service = service

        result = await reactions_health_check(mock_request)

        assert result == {"status": "healthy", "service": "reactions", "pending_reactions": 3}

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_reports_starting_before_lifespan(self, mock_request) -> None:
        mock_request.app.state = MagicMock(spec=[])

        result = await reactions_health_check(mock_request)

        assert result["status"] == "starting"
