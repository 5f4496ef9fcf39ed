"""
Agent services module.

Provides the ranking and statistics services of the booking dialog.

Services:
- alternative_suggester: proximity ranking of candidate slots (pure functions)
- popular_times: recency-weighted popularity with a Redis cache
- collaborators: protocols of the external sources the services consume
"""

from agent.services.alternative_suggester import (
    add_visual_indicators,
    calculate_proximity_score,
    find_nearby_alternatives,
    rank_by_date_proximity,
    rank_by_multiple_factors,
    rank_by_time_proximity,
)
from agent.services.models import (
    BookingRecord,
    BookingStatus,
    Highlight,
    PopularTimeSlot,
    PopularTimesOptions,
    ProximityScore,
    RankedSlot,
    RankingPreferences,
    RankingWeights,
    SeasonalPattern,
    SlotSuggestion,
)
from agent.services.popular_times import (
    PopularTimesAnalyzer,
    calculate_confidence,
    check_availability,
    format_for_display,
    get_default_times,
)

__all__ = [
    # Alternative suggester
    "add_visual_indicators",
    "calculate_proximity_score",
    "find_nearby_alternatives",
    "rank_by_date_proximity",
    "rank_by_multiple_factors",
    "rank_by_time_proximity",
    # Popular times
    "PopularTimesAnalyzer",
    "calculate_confidence",
    "check_availability",
    "format_for_display",
    "get_default_times",
    # Models
    "BookingRecord",
    "BookingStatus",
    "Highlight",
    "PopularTimeSlot",
    "PopularTimesOptions",
    "ProximityScore",
    "RankedSlot",
    "RankingPreferences",
    "RankingWeights",
    "SeasonalPattern",
    "SlotSuggestion",
]
