"""
Popular Times Warmer - keeps the popularity cache fresh out of band.

Runs periodically (every 30 minutes by default) and, per cycle:
1. Recomputes popular:{salon_id}:all for every configured salon
2. Runs the advisory session cleanup (sessions that lost their expiry)

The worker shares nothing with the request path except Redis itself. A
failing cycle is logged and retried on the next interval.

Configuration:
- Run interval: POPULAR_TIMES_WARM_INTERVAL_SECONDS (default 1800)
- Salons: POPULAR_TIMES_WARM_SALON_IDS (comma-separated)
"""

import asyncio
import logging

from agent.services.popular_times import PopularTimesAnalyzer
from agent.state.session_store import SessionContextStore
from shared.config import get_settings

logger = logging.getLogger(__name__)


async def run_warm_cycle(
    analyzer: PopularTimesAnalyzer,
    salon_ids: list[str],
    store: SessionContextStore | None = None,
) -> int:
    """
    Run one warm-up cycle.

    Returns:
        Number of salons whose cache was warmed
    """
    warmed = await analyzer.warm_cache(salon_ids)

    if store is not None:
        try:
            removed = await store.cleanup()
            logger.debug(f"Session cleanup completed | removed={removed}")
        except Exception as e:
            logger.warning(f"Session cleanup failed: {e}")

    return warmed


async def run_cache_warmer(
    analyzer: PopularTimesAnalyzer,
    salon_ids: list[str] | None = None,
    store: SessionContextStore | None = None,
    interval_seconds: int | None = None,
) -> None:
    """
    Main worker loop - warms the cache every interval_seconds.

    Runs until cancelled.
    """
    settings = get_settings()
    salon_ids = salon_ids if salon_ids is not None else settings.warm_salon_ids
    interval = interval_seconds or settings.POPULAR_TIMES_WARM_INTERVAL_SECONDS

    logger.info("Popular times warmer starting...")
    logger.info(f"Warm interval: {interval} seconds, salons: {len(salon_ids)}")

    try:
        while True:
            try:
                warmed = await run_warm_cycle(analyzer, salon_ids, store)
                logger.debug(f"Warm cycle completed | warmed={warmed}")

            except Exception as e:
                logger.exception(f"Error in warm cycle: {e}")

            await asyncio.sleep(interval)

    except asyncio.CancelledError:
        logger.info("Popular times warmer shutting down...")
        raise
