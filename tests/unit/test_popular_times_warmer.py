"""
Tests for the popular times warmer worker.

Coverage:
- One warm cycle warms the cache and runs session cleanup
- Cleanup failures do not fail the cycle
- The loop survives failing cycles and stops on cancellation
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from agent.workers.popular_times_warmer import run_cache_warmer, run_warm_cycle


class TestRunWarmCycle:
    """Test a single warm-up cycle."""

    @pytest.mark.asyncio
    async def test_warms_and_cleans(self):
        analyzer = AsyncMock()
        analyzer.warm_cache.return_value = 2
        store = AsyncMock()
        store.cleanup.return_value = 1

        warmed = await run_warm_cycle(analyzer, ["salon-1", "salon-2"], store)

        assert warmed == 2
        analyzer.warm_cache.assert_awaited_once_with(["salon-1", "salon-2"])
        store.cleanup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_store(self):
        analyzer = AsyncMock()
        analyzer.warm_cache.return_value = 0

        assert await run_warm_cycle(analyzer, []) == 0

    @pytest.mark.asyncio
    async def test_cleanup_failure_is_logged(self):
        analyzer = AsyncMock()
        analyzer.warm_cache.return_value = 1
        store = AsyncMock()
        store.cleanup.side_effect = RuntimeError("redis gone")

        assert await run_warm_cycle(analyzer, ["salon-1"], store) == 1


class TestRunCacheWarmer:
    """Test the worker loop."""

    @pytest.mark.asyncio
    async def test_loop_survives_errors_and_stops_on_cancel(self):
        analyzer = AsyncMock()
        analyzer.warm_cache.side_effect = [RuntimeError("boom"), 1, 1]
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) >= 3:
                raise asyncio.CancelledError()

        with patch("agent.workers.popular_times_warmer.asyncio.sleep", side_effect=fake_sleep):
            with pytest.raises(asyncio.CancelledError):
                await run_cache_warmer(analyzer, ["salon-1"], interval_seconds=60)

        assert analyzer.warm_cache.await_count == 3
        assert sleeps == [60, 60, 60]

    @pytest.mark.asyncio
    async def test_uses_configured_salons(self):
        analyzer = AsyncMock()
        analyzer.warm_cache.return_value = 0

        with patch("agent.workers.popular_times_warmer.get_settings") as mock_settings:
            mock_settings.return_value.warm_salon_ids = ["salon-9"]
            mock_settings.return_value.POPULAR_TIMES_WARM_INTERVAL_SECONDS = 1800
            with patch(
                "agent.workers.popular_times_warmer.asyncio.sleep",
                side_effect=asyncio.CancelledError(),
            ):
                with pytest.raises(asyncio.CancelledError):
                    await run_cache_warmer(analyzer)

        analyzer.warm_cache.assert_awaited_once_with(["salon-9"])
