"""
Alternative Suggester - proximity ranking of candidate slots.

Pure functions: no I/O, input slots are never mutated, results are
deterministic. Ranking never raises on an empty slot list; malformed targets
raise InvalidTargetError.

Scoring tiers:
    Time distance:  <=60 min +500, <=120 min +300, <=180 min +100, beyond 0
    Date distance:  same day +300, +/-1 day +200, <=7 days +100, beyond 0
    Staff match:    +1000, always on and unweighted

Ties are broken by absolute distance, then by input order (stable sort).

Only slots in the top time tier (or, for date-only rankings, within a day)
are eligible for a star.
"""

import datetime as dt
import logging

from agent.messages.locales import get_locale
from agent.services.models import (
    Highlight,
    ProximityScore,
    RankedSlot,
    RankingPreferences,
    SlotIndicators,
    SlotSuggestion,
)
from shared.errors import InvalidTargetError

logger = logging.getLogger(__name__)

TIME_TIERS: tuple[tuple[int, int], ...] = ((60, 500), (120, 300), (180, 100))
TIME_TIER_MAX = 500
DATE_TIERS: tuple[tuple[int, int], ...] = ((0, 300), (1, 200), (7, 100))
DATE_TIER_MAX = 300
MASTER_MATCH_BONUS = 1000
STAR = "⭐"

HIGHLIGHTS = (Highlight.GOLD, Highlight.SILVER, Highlight.BRONZE)

STAR_TIME_WINDOW = 60
STAR_DATE_WINDOW = 1
PROXIMITY_TIME_WINDOW = 180
PROXIMITY_DATE_WINDOW = 7


# =============================================================================
# Target parsing
# =============================================================================


def parse_target_time(value: dt.time | str) -> dt.time:
    """Parse "HH:MM" into a time. Raises InvalidTargetError on malformed input."""
    if isinstance(value, dt.time):
        return value
    try:
        return dt.datetime.strptime(value.strip(), "%H:%M").time()
    except (ValueError, AttributeError) as e:
        raise InvalidTargetError(str(value), "HH:MM") from e


def parse_target_date(value: dt.date | str) -> dt.date:
    """Parse "YYYY-MM-DD" into a date. Raises InvalidTargetError on malformed input."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(value.strip())
    except (ValueError, AttributeError) as e:
        raise InvalidTargetError(str(value), "YYYY-MM-DD") from e


def _minutes(value: dt.time) -> int:
    return value.hour * 60 + value.minute


def time_tier(distance_minutes: int) -> int:
    for threshold, bonus in TIME_TIERS:
        if distance_minutes <= threshold:
            return bonus
    return 0


def date_tier(distance_days: int) -> int:
    for threshold, bonus in DATE_TIERS:
        if distance_days <= threshold:
            return bonus
    return 0


# =============================================================================
# Ranking
# =============================================================================


def _to_ranked(scored: list[tuple[SlotSuggestion, ProximityScore]]) -> list[RankedSlot]:
    return [
        RankedSlot(
            slot=slot,
            score=score,
            rank=position,
            display_text=slot.start_time.strftime("%H:%M"),
        )
        for position, (slot, score) in enumerate(scored, start=1)
    ]


def rank_by_time_proximity(
    slots: list[SlotSuggestion],
    target_time: dt.time | str,
) -> list[RankedSlot]:
    """
    Rank slots by distance between their start time and target_time.

    Args:
        slots: Candidate slots (not mutated)
        target_time: Requested time ("HH:MM" or time)

    Returns:
        RankedSlot list sorted by score descending, then absolute minute
        distance, then input order
    """
    if not slots:
        return []

    target = parse_target_time(target_time)
    target_minutes = _minutes(target)

    scored: list[tuple[SlotSuggestion, ProximityScore]] = []
    for slot in slots:
        delta = _minutes(slot.start_time) - target_minutes
        distance = abs(delta)
        bonus = time_tier(distance)
        scored.append((
            slot,
            ProximityScore(
                total=bonus,
                time_score=bonus,
                time_distance_minutes=distance,
                time_delta_minutes=delta,
            ),
        ))

    scored.sort(key=lambda item: (-item[1].total, item[1].time_distance_minutes))
    return _to_ranked(scored)


def rank_by_date_proximity(
    slots: list[SlotSuggestion],
    target_date: dt.date | str,
) -> list[RankedSlot]:
    """
    Rank slots by day distance from target_date.

    Returns:
        RankedSlot list sorted by score descending, then absolute day
        distance, then input order
    """
    if not slots:
        return []

    target = parse_target_date(target_date)

    scored: list[tuple[SlotSuggestion, ProximityScore]] = []
    for slot in slots:
        delta = (slot.date - target).days
        distance = abs(delta)
        bonus = date_tier(distance)
        scored.append((
            slot,
            ProximityScore(
                total=bonus,
                date_score=bonus,
                date_distance_days=distance,
                date_delta_days=delta,
            ),
        ))

    scored.sort(key=lambda item: (-item[1].total, item[1].date_distance_days))
    return _to_ranked(scored)


def calculate_proximity_score(
    slot: SlotSuggestion,
    target: RankingPreferences,
) -> ProximityScore:
    """
    Multi-factor score of one slot against the customer's preferences.

    Time and date components are weight x normalized tier x tier max, so a
    zero weight zeroes its component. An exact staff match adds a flat +1000
    regardless of the master weight.
    """
    weights = target.weights
    score = ProximityScore()

    if target.target_time is not None:
        wanted = parse_target_time(target.target_time)
        delta = _minutes(slot.start_time) - _minutes(wanted)
        normalized = time_tier(abs(delta)) / TIME_TIER_MAX
        score.time_score = weights.time * normalized * TIME_TIER_MAX
        score.time_distance_minutes = abs(delta)
        score.time_delta_minutes = delta

    if target.target_date is not None:
        wanted_date = parse_target_date(target.target_date)
        delta_days = (slot.date - wanted_date).days
        normalized = date_tier(abs(delta_days)) / DATE_TIER_MAX
        score.date_score = weights.date * normalized * DATE_TIER_MAX
        score.date_distance_days = abs(delta_days)
        score.date_delta_days = delta_days

    if target.master_id is not None and slot.master_id == target.master_id:
        score.master_score = MASTER_MATCH_BONUS

    score.total = score.time_score + score.date_score + score.master_score
    return score


def rank_by_multiple_factors(
    slots: list[SlotSuggestion],
    preferences: RankingPreferences,
) -> list[RankedSlot]:
    """
    Rank slots by staff match, time proximity and date proximity combined.

    Ties are broken by day distance, then minute distance, then input order.
    preferences.limit truncates the result after ranking.
    """
    if not slots:
        return []

    scored = [(slot, calculate_proximity_score(slot, preferences)) for slot in slots]
    scored.sort(key=lambda item: (
        -item[1].total,
        item[1].date_distance_days or 0,
        item[1].time_distance_minutes or 0,
    ))

    if preferences.limit is not None:
        scored = scored[:preferences.limit]

    logger.debug(
        f"Ranked {len(slots)} slots by multiple factors "
        f"(master={preferences.master_id}, returned={len(scored)})"
    )
    return _to_ranked(scored)


# =============================================================================
# Display decorations
# =============================================================================


def _proximity_text(score: ProximityScore, language: str) -> str | None:
    locale = get_locale(language)
    if score.date_delta_days:
        if score.date_distance_days > PROXIMITY_DATE_WINDOW:
            return None
        return locale.date_proximity(score.date_delta_days)
    if score.time_delta_minutes is not None:
        if score.time_distance_minutes > PROXIMITY_TIME_WINDOW:
            return None
        return locale.time_proximity(score.time_delta_minutes)
    return None


def _star_eligible(score: ProximityScore) -> bool:
    # Time targets need the top time tier; date-only rankings need the same or an adjacent day
    if score.time_distance_minutes is not None:
        return score.time_distance_minutes <= STAR_TIME_WINDOW
    if score.date_distance_days is not None:
        return score.date_distance_days <= STAR_DATE_WINDOW
    return False


def add_visual_indicators(
    ranked: list[RankedSlot],
    limit: int = 3,
    language: str = "en",
) -> list[RankedSlot]:
    """
    Decorate ranked slots for display.

    Among the top `limit` entries by rank:
    - entries within an hour of the requested time (or, without a time, on
      the requested day or the next/previous one) get a star and a highlight
      tier (gold, silver, bronze in star order)
    - a localized proximity phrase ("30 minutes earlier", "Tomorrow") is
      attached while the slot is within 3 hours or 7 days of the target

    Entries past `limit` keep plain display text.

    Returns:
        New RankedSlot list in the same order; input is not modified
    """
    decorated: list[RankedSlot] = []
    stars = 0
    for entry in ranked:
        display = entry.slot.start_time.strftime("%H:%M")
        indicators = SlotIndicators()

        if entry.rank <= limit:
            starred = _star_eligible(entry.score)
            highlight = None
            if starred:
                highlight = HIGHLIGHTS[stars] if stars < len(HIGHLIGHTS) else None
                stars += 1
                display = f"{STAR} {display}"

            proximity = _proximity_text(entry.score, language)
            if proximity:
                display = f"{display} ({proximity})"
            indicators = SlotIndicators(
                starred=starred,
                proximity_text=proximity,
                highlight=highlight,
            )

        decorated.append(entry.model_copy(update={
            "indicators": indicators,
            "display_text": display,
        }))

    return decorated


def find_nearby_alternatives(
    slots: list[SlotSuggestion],
    target_date: dt.date | str,
    target_time: dt.time | str,
    max_alternatives: int = 5,
    language: str = "en",
    master_id: str | None = None,
    starred: int = 3,
) -> list[RankedSlot]:
    """
    Rank slots around a requested date and time and decorate the best ones.

    Example output (en):
        1. ⭐ 14:30 (30 minutes later)
        2. ⭐ 13:30 (30 minutes earlier)
        3. ⭐ 14:00 (Tomorrow)
    """
    if not slots:
        return []

    preferences = RankingPreferences(
        target_date=target_date,
        target_time=target_time,
        master_id=master_id,
        limit=max_alternatives,
    )
    ranked = rank_by_multiple_factors(slots, preferences)

    logger.info(
        f"Found {len(ranked)} nearby alternatives for {target_date} {target_time} "
        f"from {len(slots)} candidates"
    )
    return add_visual_indicators(ranked, limit=starred, language=language)
