"""Unit tests for Redis client singleton and the bounded-timeout helper."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shared.errors import DependencyUnavailableError
from shared.redis_client import (
    close_redis_client,
    escape_pattern,
    get_redis_client,
    scan_keys,
    with_timeout,
)


class TestRedisClient:
    """Tests for Redis client singleton."""

    def test_get_redis_client_returns_instance(self):
        """Test that get_redis_client returns a Redis instance."""
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            # Clear lru_cache before test
            get_redis_client.cache_clear()

            result = get_redis_client()

            assert result == mock_client
            mock_from_url.assert_called_once()

        get_redis_client.cache_clear()

    def test_get_redis_client_is_singleton(self):
        """Test that get_redis_client returns the same instance (cached)."""
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            mock_from_url.return_value = MagicMock()

            get_redis_client.cache_clear()

            result1 = get_redis_client()
            result2 = get_redis_client()

            assert result1 is result2
            assert mock_from_url.call_count == 1

        get_redis_client.cache_clear()

    def test_redis_client_configured_with_pool_and_timeouts(self):
        """Test that Redis client is configured with pool and operation timeouts."""
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            with patch("shared.redis_client.get_settings") as mock_settings:
                mock_settings.return_value.REDIS_URL = "redis://test:6379/0"
                mock_settings.return_value.REDIS_OPERATION_TIMEOUT_SECONDS = 0.5

                get_redis_client.cache_clear()
                get_redis_client()

                mock_from_url.assert_called_once_with(
                    "redis://test:6379/0",
                    max_connections=20,
                    decode_responses=True,
                    retry_on_timeout=True,
                    health_check_interval=30,
                    socket_timeout=0.5,
                    socket_connect_timeout=0.5,
                )

        get_redis_client.cache_clear()


class TestWithTimeout:
    """Tests for the with_timeout helper."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def call():
            return "value"

        assert await with_timeout("get", call()) == "value"

    @pytest.mark.asyncio
    async def test_timeout_raises_dependency_unavailable(self):
        """A call slower than the timeout surfaces as DependencyUnavailableError."""

        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await with_timeout("get", slow(), timeout=0.01)

        assert exc_info.value.dependency == "redis"
        assert exc_info.value.operation == "get"
        assert exc_info.value.reason == "timeout"

    @pytest.mark.asyncio
    async def test_redis_error_raises_dependency_unavailable(self):
        async def broken():
            raise RedisConnectionError("Connection refused")

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await with_timeout("set", broken())

        assert "Connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        async def buggy():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await with_timeout("get", buggy())


class TestKeyScanning:
    """Tests for literal id matching in SCAN patterns."""

    def test_escape_pattern(self):
        assert escape_pattern("a*b?c[d]e\\f") == "a\\*b\\?c\\[d\\]e\\\\f"

    def test_plain_ids_unchanged(self):
        assert escape_pattern("salon-1") == "salon-1"

    @pytest.mark.asyncio
    async def test_scan_keys_collects_matches(self):
        async def scan_iter(match=None):
            for key in ("session:c1:s1", "session:c2:s1"):
                yield key

        client = MagicMock()
        client.scan_iter = MagicMock(side_effect=scan_iter)

        keys = await scan_keys(client, "session:*")

        assert keys == ["session:c1:s1", "session:c2:s1"]
        client.scan_iter.assert_called_once_with(match="session:*")


class TestCloseRedisClient:
    """Tests for graceful shutdown."""

    @pytest.mark.asyncio
    async def test_close_calls_aclose(self):
        mock_client = MagicMock()
        mock_client.aclose = AsyncMock()

        with patch("shared.redis_client.get_redis_client", return_value=mock_client):
            await close_redis_client()

        mock_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_logged_not_raised(self):
        mock_client = MagicMock()
        mock_client.aclose = AsyncMock(side_effect=RedisConnectionError("gone"))

        with patch("shared.redis_client.get_redis_client", return_value=mock_client):
            await close_redis_client()
