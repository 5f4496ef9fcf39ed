"""
Popular Times Analyzer - recency-weighted booking popularity.

Buckets historical bookings by (day_of_week, hour) in the salon timezone,
weights them by age and attaches a Wilson-score confidence. Results for the
salon-wide or per-service view are cached in Redis:

    popular:{salon_id}:{service_id|all}  (TTL: POPULAR_TIMES_CACHE_TTL_SECONDS)

Recency weights:
    0-30 days   x2.0
    31-60 days  x1.5
    61-90 days  x1.0
    older than lookback: excluded

Cache failures degrade to direct computation. Failures of the bookings
source raise DependencyUnavailableError so the caller can fall back to
get_default_times().
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter

from agent.messages.locales import get_locale, plural
from agent.services.collaborators import HistoricalBookingsSource
from agent.services.models import (
    BookingRecord,
    BookingStatus,
    PopularTimeSlot,
    PopularTimesOptions,
    SeasonalPattern,
    SeasonalPatternType,
    SlotSuggestion,
)
from shared.config import Settings, get_settings
from shared.errors import DependencyUnavailableError
from shared.redis_client import escape_pattern, get_redis_client, scan_keys, with_timeout

logger = logging.getLogger(__name__)

RECENCY_WEIGHTS: tuple[tuple[int, float], ...] = ((30, 2.0), (60, 1.5), (90, 1.0))
OLDEST_WEIGHT = 1.0

SEASONAL_THRESHOLD = 1.5
MONTH_PERIODS: tuple[tuple[str, int, int], ...] = (
    ("start", 1, 10),
    ("middle", 11, 20),
    ("end", 21, 31),
)
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# (day_of_week Monday=0, hour) typical peaks per business type
DEFAULT_TIMES: dict[str, list[tuple[int, int]]] = {
    "beauty_salon": [(4, 15), (5, 11), (5, 14), (3, 18), (1, 17)],
    "barbershop": [(5, 10), (4, 18), (5, 12), (3, 19), (0, 18)],
    "spa": [(5, 11), (6, 12), (4, 16), (5, 15), (2, 18)],
    "nail_salon": [(5, 12), (4, 16), (3, 17), (5, 15), (2, 18)],
    "generic": [(4, 15), (5, 11), (3, 17), (2, 12), (1, 16)],
}

_popular_list = TypeAdapter(list[PopularTimeSlot])


def recency_weight(age_days: int) -> float:
    """Weight of a booking by age in days (future bookings count as age 0)."""
    age = max(age_days, 0)
    for limit, weight in RECENCY_WEIGHTS:
        if age <= limit:
            return weight
    return OLDEST_WEIGHT


def calculate_confidence(
    booking_count: int,
    total_bookings: int,
    z: float | None = None,
) -> float:
    """
    Confidence that a bucket is genuinely popular.

    Centre of the Wilson score interval: (k + z^2/2) / (n + z^2). Bounded in
    [0, 1], non-decreasing in booking_count for a fixed total, and pulled
    toward 0.5 when the sample is small (0.5 when there are no bookings).

    Args:
        booking_count: Bookings in the bucket (k)
        total_bookings: Bookings considered overall (n)
        z: z value (default: POPULAR_TIMES_CONFIDENCE_Z, 1.96)
    """
    if z is None:
        z = get_settings().POPULAR_TIMES_CONFIDENCE_Z

    n = max(total_bookings, 0)
    k = min(max(booking_count, 0), n)
    z2 = z * z

    confidence = (k + z2 / 2) / (n + z2)
    return min(1.0, max(0.0, confidence))


def get_default_times(business_type: str | None = None) -> list[PopularTimeSlot]:
    """
    Typical peak times for a business type, used when history is empty.

    Unknown business types use the generic table. No I/O.
    """
    key = business_type if business_type in DEFAULT_TIMES else "generic"
    return [
        PopularTimeSlot(
            day_of_week=day,
            hour=hour,
            booking_count=0,
            weighted_score=0.0,
            confidence=0.5,
            is_default=True,
        )
        for day, hour in DEFAULT_TIMES[key]
    ]


def check_availability(
    popular_times: list[PopularTimeSlot],
    target_date: date,
    available_slots: list[SlotSuggestion],
) -> list[PopularTimeSlot]:
    """
    Mark which popular times have a free slot on target_date.

    A popular time is a (weekday, hour) bucket, so is_available is True only
    when target_date falls on that weekday and a slot starts in that hour.
    next_available_slot is that slot, or else the earliest later slot on the
    same weekday and hour. Pure: inputs are not modified.
    """
    ordered = sorted(available_slots, key=lambda s: (s.date, s.start_time))

    result: list[PopularTimeSlot] = []
    for popular in popular_times:
        matching = [
            s for s in ordered
            if s.start_time.hour == popular.hour and s.date.weekday() == popular.day_of_week
        ]
        on_date = [s for s in matching if s.date == target_date]
        later = [s for s in matching if s.date > target_date]

        next_slot = on_date[0] if on_date else (later[0] if later else None)
        result.append(popular.model_copy(update={
            "is_available": bool(on_date),
            "next_available_slot": next_slot,
        }))

    return result


def format_for_display(popular_times: list[PopularTimeSlot], language: str = "en") -> list[str]:
    """Human-readable lines, e.g. "Friday 15:00 ⭐ 23 bookings"."""
    locale = get_locale(language)
    lines = []
    for popular in popular_times:
        label = f"{locale.weekdays[popular.day_of_week]} {popular.time_label}"
        if popular.booking_count > 0:
            count = popular.booking_count
            label = f"{label} ⭐ {count} {plural(count, locale.bookings)}"
        lines.append(label)
    return lines


class PopularTimesAnalyzer:
    """
    Recency-weighted popularity statistics with a Redis cache.

    Example:
        >>> analyzer = PopularTimesAnalyzer(bookings_source)
        >>> times = await analyzer.get_popular_times("salon-1")
        >>> if not times:
        ...     times = get_default_times("beauty_salon")
    """

    def __init__(
        self,
        bookings_source: HistoricalBookingsSource,
        redis_getter: Callable = get_redis_client,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._bookings = bookings_source
        self._redis_getter = redis_getter
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._tz = ZoneInfo(self._settings.TIMEZONE)

    # =========================================================================
    # Helpers
    # =========================================================================

    def cache_key(self, salon_id: str, service_id: str | None = None) -> str:
        return f"{self._settings.POPULAR_TIMES_KEY_PREFIX}:{salon_id}:{service_id or 'all'}"

    def _local(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        return moment.astimezone(self._tz)

    def _is_cacheable(self, options: PopularTimesOptions) -> bool:
        # Cache only holds the salon-wide or per-service view over the default window
        return (
            options.master_id is None
            and not options.include_cancelled
            and options.lookback_days in (None, self._settings.POPULAR_TIMES_LOOKBACK_DAYS)
        )

    async def _fetch_bookings(self, salon_id: str, lookback_days: int) -> list[BookingRecord]:
        since = self._clock() - timedelta(days=lookback_days)
        try:
            return await self._bookings.get_bookings(salon_id, since)
        except DependencyUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Bookings source failed for salon {salon_id}: {e}", exc_info=True)
            raise DependencyUnavailableError("bookings_source", "get_bookings", str(e)) from e

    async def _read_cache(self, key: str) -> list[PopularTimeSlot] | None:
        try:
            client = self._redis_getter()
            raw = await with_timeout("popular_times.cache_get", client.get(key))
        except DependencyUnavailableError as e:
            logger.warning(f"Popular times cache read failed, computing directly: {e}")
            return None

        if raw is None:
            return None

        try:
            return _popular_list.validate_json(raw)
        except ValueError as e:
            logger.warning(f"Corrupt popular times cache entry {key}: {e}")
            return None

    async def _write_cache(self, key: str, scores: list[PopularTimeSlot]) -> None:
        client = self._redis_getter()
        await with_timeout(
            "popular_times.cache_set",
            client.set(
                key,
                _popular_list.dump_json(scores),
                ex=self._settings.POPULAR_TIMES_CACHE_TTL_SECONDS,
            ),
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def calculate_weighted_scores(
        self,
        bookings: list[BookingRecord],
        options: PopularTimesOptions | None = None,
    ) -> list[PopularTimeSlot]:
        """
        Bucket bookings by (day_of_week, hour) with recency weights.

        Cancelled bookings are excluded unless options.include_cancelled.
        Bookings older than the lookback window are excluded. Result is
        sorted by weighted score, then raw count, descending.
        """
        options = options or PopularTimesOptions()
        lookback = options.lookback_days or self._settings.POPULAR_TIMES_LOOKBACK_DAYS
        now = self._clock()

        counts: Counter[tuple[int, int]] = Counter()
        scores: defaultdict[tuple[int, int], float] = defaultdict(float)
        total = 0

        for booking in bookings:
            if booking.status == BookingStatus.CANCELLED and not options.include_cancelled:
                continue
            if options.service_id and booking.service_id != options.service_id:
                continue
            if options.master_id and booking.master_id != options.master_id:
                continue

            start = booking.start_time
            if start.tzinfo is None:
                start = start.replace(tzinfo=UTC)
            age_days = (now - start).days
            if age_days > lookback:
                continue

            local = self._local(start)
            bucket = (local.weekday(), local.hour)
            counts[bucket] += 1
            scores[bucket] += recency_weight(age_days)
            total += 1

        result = [
            PopularTimeSlot(
                day_of_week=day,
                hour=hour,
                booking_count=counts[(day, hour)],
                weighted_score=round(scores[(day, hour)], 4),
                confidence=calculate_confidence(
                    counts[(day, hour)], total, self._settings.POPULAR_TIMES_CONFIDENCE_Z
                ),
            )
            for day, hour in counts
        ]
        result.sort(key=lambda p: (-p.weighted_score, -p.booking_count, p.day_of_week, p.hour))
        return result

    async def get_popular_times(
        self,
        salon_id: str,
        options: PopularTimesOptions | None = None,
    ) -> list[PopularTimeSlot]:
        """
        Popular (day_of_week, hour) buckets for a salon.

        Filters by min_confidence and min_bookings, then applies limit.
        Returns [] when nothing qualifies; never substitutes default times.

        Raises:
            DependencyUnavailableError: Bookings source unreachable
        """
        options = options or PopularTimesOptions()
        settings = self._settings
        lookback = options.lookback_days or settings.POPULAR_TIMES_LOOKBACK_DAYS
        min_bookings = (
            options.min_bookings if options.min_bookings is not None
            else settings.POPULAR_TIMES_MIN_BOOKINGS
        )
        min_confidence = (
            options.min_confidence if options.min_confidence is not None
            else settings.POPULAR_TIMES_MIN_CONFIDENCE
        )
        limit = options.limit or settings.POPULAR_TIMES_LIMIT

        scores: list[PopularTimeSlot] | None = None
        key = self.cache_key(salon_id, options.service_id)
        cacheable = self._is_cacheable(options)

        if cacheable:
            scores = await self._read_cache(key)
            if scores is not None:
                logger.debug(f"Popular times cache hit: {key}")

        if scores is None:
            bookings = await self._fetch_bookings(salon_id, lookback)
            scores = self.calculate_weighted_scores(bookings, options)
            if cacheable:
                try:
                    await self._write_cache(key, scores)
                except DependencyUnavailableError as e:
                    logger.warning(f"Popular times cache write failed for {key}: {e}")

        qualifying = [
            p for p in scores
            if p.confidence >= min_confidence and p.booking_count >= min_bookings
        ]

        logger.info(
            f"Popular times for salon {salon_id}: {len(qualifying)} of {len(scores)} "
            f"buckets qualify (min_bookings={min_bookings}, min_confidence={min_confidence})",
            extra={"salon_id": salon_id},
        )
        return qualifying[:limit]

    async def invalidate_cache(self, salon_id: str, service_id: str | None = None) -> int:
        """
        Drop cached popularity for a salon.

        With service_id, deletes that service's entry and the salon-wide entry.
        Without it, deletes every popular:{salon_id}:* entry.

        Returns:
            Number of keys deleted
        """
        client = self._redis_getter()

        if service_id is not None:
            keys = [self.cache_key(salon_id, service_id), self.cache_key(salon_id)]
        else:
            pattern = f"{self._settings.POPULAR_TIMES_KEY_PREFIX}:{escape_pattern(salon_id)}:*"
            keys = await with_timeout("popular_times.scan", scan_keys(client, pattern))

        if not keys:
            return 0

        deleted = await with_timeout("popular_times.invalidate", client.delete(*keys))
        logger.info(f"Invalidated {deleted} popular times cache entries for salon {salon_id}")
        return int(deleted)

    async def warm_cache(self, salon_ids: list[str]) -> int:
        """
        Recompute and cache the salon-wide view for each salon.

        A failure for one salon is logged and does not stop the others.

        Returns:
            Number of salons warmed successfully
        """
        warmed = 0
        lookback = self._settings.POPULAR_TIMES_LOOKBACK_DAYS

        for salon_id in salon_ids:
            try:
                bookings = await self._fetch_bookings(salon_id, lookback)
                scores = self.calculate_weighted_scores(bookings)
                await self._write_cache(self.cache_key(salon_id), scores)
                warmed += 1
            except Exception as e:
                logger.error(
                    f"Failed to warm popular times cache for salon {salon_id}: {e}",
                    extra={"salon_id": salon_id},
                )

        logger.info(f"Popular times cache warmed for {warmed}/{len(salon_ids)} salons")
        return warmed

    async def detect_seasonal_patterns(
        self,
        salon_id: str,
        options: PopularTimesOptions | None = None,
        min_occurrences: int = 5,
    ) -> list[SeasonalPattern]:
        """
        Detect weekly and monthly demand peaks.

        A weekday (or start/middle/end of month) is a pattern when its booking
        share is at least 1.5x the mean share and it has min_occurrences
        bookings. Holiday patterns are not detected.
        """
        options = options or PopularTimesOptions()
        lookback = options.lookback_days or self._settings.POPULAR_TIMES_LOOKBACK_DAYS
        bookings = [
            b for b in await self._fetch_bookings(salon_id, lookback)
            if options.include_cancelled or b.status != BookingStatus.CANCELLED
        ]
        total = len(bookings)
        if total == 0:
            return []

        weekly: Counter[int] = Counter()
        monthly: Counter[str] = Counter()
        for booking in bookings:
            local = self._local(booking.start_time)
            weekly[local.weekday()] += 1
            for name, first, last in MONTH_PERIODS:
                if first <= local.day <= last:
                    monthly[name] += 1
                    break

        patterns: list[SeasonalPattern] = []
        patterns.extend(self._peaks(
            SeasonalPatternType.WEEKLY,
            {WEEKDAY_NAMES[day]: count for day, count in weekly.items()},
            buckets=7,
            total=total,
            min_occurrences=min_occurrences,
        ))
        patterns.extend(self._peaks(
            SeasonalPatternType.MONTHLY,
            dict(monthly),
            buckets=len(MONTH_PERIODS),
            total=total,
            min_occurrences=min_occurrences,
        ))

        logger.debug(f"Holiday pattern detection is not supported (salon {salon_id})")
        logger.info(f"Detected {len(patterns)} seasonal patterns for salon {salon_id}")
        return patterns

    @staticmethod
    def _peaks(
        pattern_type: SeasonalPatternType,
        counts: dict[str, int],
        buckets: int,
        total: int,
        min_occurrences: int,
    ) -> list[SeasonalPattern]:
        mean = total / buckets
        peaks = []
        for period, count in counts.items():
            if count < min_occurrences or count < SEASONAL_THRESHOLD * mean:
                continue
            peaks.append(SeasonalPattern(
                type=pattern_type,
                period=period,
                occurrences=count,
                share=count / total,
                strength=round(count / mean, 4),
            ))
        peaks.sort(key=lambda p: -p.strength)
        return peaks

    # Pure helpers
    get_default_times = staticmethod(get_default_times)
    check_availability = staticmethod(check_availability)
    calculate_confidence = staticmethod(calculate_confidence)
    format_for_display = staticmethod(format_for_display)
