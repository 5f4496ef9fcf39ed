"""
Redis client singleton for session state and popularity caching.

This module provides a singleton Redis client configured for production reliability
with connection pooling, retry logic, and health checks, plus a helper that
bounds every call with a sub-second timeout.

Key patterns:
    - Session context: session:{customer_id}:{salon_id} (TTL <= 3600s)
    - Popular times cache: popular:{salon_id}:{service_id|all} (TTL 3600s)
"""

import asyncio
import logging
import re
from collections.abc import Awaitable
from functools import lru_cache
from typing import TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.config import get_settings
from shared.errors import DependencyUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@lru_cache
def get_redis_client() -> "redis.Redis":
    """
    Get cached Redis client instance with production-ready configuration.

    This function creates a singleton Redis client with:
    - Connection pooling (max 20 connections)
    - Automatic retry on timeout for transient failures
    - Health check pings every 30 seconds
    - Socket timeouts aligned with REDIS_OPERATION_TIMEOUT_SECONDS

    Returns:
        Redis async client configured with connection pool and retry logic
    """
    settings = get_settings()

    client = redis.from_url(
        settings.REDIS_URL,
        max_connections=20,
        decode_responses=True,
        retry_on_timeout=True,
        health_check_interval=30,
        socket_timeout=settings.REDIS_OPERATION_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_OPERATION_TIMEOUT_SECONDS,
    )

    logger.info(
        f"Redis client initialized: {settings.REDIS_URL} "
        f"(max_connections=20, retry_on_timeout=True, health_check_interval=30s, "
        f"timeout={settings.REDIS_OPERATION_TIMEOUT_SECONDS}s)"
    )
    return client


async def with_timeout(
    operation: str,
    awaitable: Awaitable[T],
    timeout: float | None = None,
) -> T:
    """
    Await a Redis call with a bounded timeout.

    Args:
        operation: Short name of the operation (used in logs and errors)
        awaitable: The pending Redis call
        timeout: Seconds to wait (default: REDIS_OPERATION_TIMEOUT_SECONDS)

    Returns:
        Result of the Redis call

    Raises:
        DependencyUnavailableError: On timeout or any Redis error
    """
    if timeout is None:
        timeout = get_settings().REDIS_OPERATION_TIMEOUT_SECONDS

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)

    except TimeoutError as e:
        logger.warning(f"Redis timeout during {operation} (>{timeout}s)")
        raise DependencyUnavailableError("redis", operation, "timeout") from e

    except RedisError as e:
        logger.error(f"Redis error during {operation}: {e}")
        raise DependencyUnavailableError("redis", operation, str(e)) from e



def escape_pattern(value: str) -> str:
    """Escape MATCH metacharacters (*, ?, [, ], \\) so an id is matched literally."""
    return re.sub(r"([*?\[\]\\])", r"\\\1", value)


async def scan_keys(client: "redis.Redis", pattern: str) -> list[str]:
    """Collect all keys matching pattern via SCAN (never KEYS)."""
    return [key async for key in client.scan_iter(match=pattern)]


async def close_redis_client() -> None:
    """
    Close Redis connection gracefully.

    Note:
        Should be called during application shutdown.
    """
    try:
        client = get_redis_client()
        await client.aclose()
        logger.info("Redis client closed")
    except Exception as e:
        logger.warning(f"Error closing Redis client: {e}")
