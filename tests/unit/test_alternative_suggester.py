"""
Tests for alternative_suggester.py - proximity ranking of candidate slots.

Coverage:
- Time proximity tiers and tie-breaking by absolute distance
- Date proximity tiers
- Multi-factor scoring (weights, always-on staff match bonus)
- Visual indicators (stars, proximity phrases, highlight tiers)
- Empty input and malformed targets
"""

from datetime import date, time

import pytest

from agent.services.alternative_suggester import (
    MASTER_MATCH_BONUS,
    add_visual_indicators,
    calculate_proximity_score,
    date_tier,
    find_nearby_alternatives,
    parse_target_date,
    parse_target_time,
    rank_by_date_proximity,
    rank_by_multiple_factors,
    rank_by_time_proximity,
    time_tier,
)
from agent.services.models import Highlight, RankingPreferences, RankingWeights
from shared.errors import InvalidTargetError, ValidationError

FRIDAY = date(2025, 10, 24)
SATURDAY = date(2025, 10, 25)


# ============================================================================
# Tiers and target parsing
# ============================================================================


class TestTiers:
    """Test the step-function bonuses."""

    @pytest.mark.parametrize(
        "distance,expected",
        [(0, 500), (60, 500), (61, 300), (120, 300), (150, 100), (180, 100), (181, 0), (600, 0)],
    )
    def test_time_tier(self, distance, expected):
        assert time_tier(distance) == expected

    @pytest.mark.parametrize(
        "distance,expected",
        [(0, 300), (1, 200), (2, 100), (7, 100), (8, 0)],
    )
    def test_date_tier(self, distance, expected):
        assert date_tier(distance) == expected


class TestTargetParsing:
    """Test parsing of requested date and time."""

    def test_parse_time_string(self):
        assert parse_target_time("15:00") == time(15, 0)

    def test_parse_time_passthrough(self):
        assert parse_target_time(time(9, 30)) == time(9, 30)

    def test_parse_date_string(self):
        assert parse_target_date("2025-10-24") == FRIDAY

    @pytest.mark.parametrize("value", ["25:99", "3pm", "", "15-00"])
    def test_malformed_time_raises(self, value):
        with pytest.raises(InvalidTargetError) as exc_info:
            parse_target_time(value)
        assert exc_info.value.expected == "HH:MM"

    def test_malformed_date_raises_validation_error(self):
        """InvalidTargetError belongs to the validation family."""
        with pytest.raises(ValidationError):
            parse_target_date("24/10/2025")


# ============================================================================
# Single-factor ranking
# ============================================================================


class TestRankByTimeProximity:
    """Test ranking by distance from the requested time."""

    def test_tighter_distance_wins_within_adjacent_tiers(self, slot_factory):
        """14:00 (60 min away) outranks 16:10 (70 min away) for a 15:00 request."""
        slots = [
            slot_factory(FRIDAY, "10:00"),
            slot_factory(FRIDAY, "16:10"),
            slot_factory(FRIDAY, "14:00"),
            slot_factory(FRIDAY, "18:30"),
            slot_factory(FRIDAY, "20:00"),
        ]

        ranked = rank_by_time_proximity(slots, "15:00")

        assert [r.display_text for r in ranked] == ["14:00", "16:10", "18:30", "10:00", "20:00"]
        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5]
        assert ranked[0].score.time_distance_minutes == 60
        assert ranked[1].score.time_distance_minutes == 70

    def test_equal_scores_keep_input_order(self, slot_factory):
        """Slots equally far from the target keep their input order."""
        slots = [
            slot_factory(FRIDAY, "16:00", master_id="m2"),
            slot_factory(FRIDAY, "14:00", master_id="m1"),
        ]

        ranked = rank_by_time_proximity(slots, "15:00")

        assert [r.slot.master_id for r in ranked] == ["m2", "m1"]

    def test_signed_delta_recorded(self, slot_factory):
        ranked = rank_by_time_proximity([slot_factory(FRIDAY, "14:30")], "15:00")
        assert ranked[0].score.time_delta_minutes == -30

    def test_input_not_mutated(self, slot_factory):
        slots = [slot_factory(FRIDAY, "18:00"), slot_factory(FRIDAY, "15:00")]
        original = list(slots)

        rank_by_time_proximity(slots, "15:00")

        assert slots == original

    def test_empty_input_returns_empty_list(self):
        assert rank_by_time_proximity([], "15:00") == []

    def test_malformed_target_raises(self, slot_factory):
        with pytest.raises(InvalidTargetError):
            rank_by_time_proximity([slot_factory(FRIDAY, "15:00")], "not-a-time")


class TestRankByDateProximity:
    """Test ranking by distance from the requested day."""

    def test_closest_day_first(self, slot_factory):
        slots = [
            slot_factory(date(2025, 11, 5), "15:00"),
            slot_factory(date(2025, 10, 27), "15:00"),
            slot_factory(SATURDAY, "15:00"),
            slot_factory(FRIDAY, "15:00"),
        ]

        ranked = rank_by_date_proximity(slots, FRIDAY)

        assert [r.slot.date for r in ranked] == [
            FRIDAY,
            SATURDAY,
            date(2025, 10, 27),
            date(2025, 11, 5),
        ]
        assert [r.score.total for r in ranked] == [300, 200, 100, 0]

    def test_days_before_target_count_as_distance(self, slot_factory):
        ranked = rank_by_date_proximity([slot_factory(date(2025, 10, 23), "15:00")], "2025-10-24")
        assert ranked[0].score.date_delta_days == -1
        assert ranked[0].score.date_score == 200

    def test_empty_input_returns_empty_list(self):
        assert rank_by_date_proximity([], FRIDAY) == []


# ============================================================================
# Multi-factor ranking
# ============================================================================


class TestMultiFactorRanking:
    """Test combined staff, time and date scoring."""

    def test_weighted_components(self, slot_factory):
        preferences = RankingPreferences(target_date=FRIDAY, target_time="15:00")

        score = calculate_proximity_score(slot_factory(FRIDAY, "14:00"), preferences)

        assert score.time_score == pytest.approx(250)
        assert score.date_score == pytest.approx(90)
        assert score.master_score == 0
        assert score.total == pytest.approx(340)

    def test_zero_weight_zeroes_component(self, slot_factory):
        preferences = RankingPreferences(
            target_date=FRIDAY,
            target_time="15:00",
            weights=RankingWeights(date=0.0, time=1.0),
        )

        score = calculate_proximity_score(slot_factory(FRIDAY, "15:00"), preferences)

        assert score.date_score == 0
        assert score.time_score == pytest.approx(500)

    def test_master_bonus_ignores_master_weight(self, slot_factory):
        """The staff-match bonus is flat even when the master weight is zero."""
        preferences = RankingPreferences(
            target_time="15:00",
            master_id="m2",
            weights=RankingWeights(master=0.0),
        )

        score = calculate_proximity_score(slot_factory(FRIDAY, "15:00", master_id="m2"), preferences)

        assert score.master_score == MASTER_MATCH_BONUS

    def test_master_match_dominates_proximity(self, slot_factory):
        slots = [
            slot_factory(FRIDAY, "15:00", master_id="m1"),
            slot_factory(SATURDAY, "18:00", master_id="m2"),
        ]
        preferences = RankingPreferences(target_date=FRIDAY, target_time="15:00", master_id="m2")

        ranked = rank_by_multiple_factors(slots, preferences)

        assert ranked[0].slot.master_id == "m2"

    def test_ties_broken_by_date_then_time_distance(self, slot_factory):
        """Equal totals prefer the closer day, then the closer time."""
        preferences = RankingPreferences(
            target_date=FRIDAY,
            target_time="15:00",
            weights=RankingWeights(date=0.0, time=0.0),
        )
        slots = [
            slot_factory(SATURDAY, "15:00"),
            slot_factory(FRIDAY, "17:00"),
            slot_factory(FRIDAY, "15:30"),
        ]

        ranked = rank_by_multiple_factors(slots, preferences)

        assert [(r.slot.date, r.display_text) for r in ranked] == [
            (FRIDAY, "15:30"),
            (FRIDAY, "17:00"),
            (SATURDAY, "15:00"),
        ]

    def test_limit_applied_after_ranking(self, slot_factory):
        slots = [slot_factory(FRIDAY, f"{hour}:00") for hour in range(9, 19)]
        preferences = RankingPreferences(target_date=FRIDAY, target_time="15:00", limit=3)

        ranked = rank_by_multiple_factors(slots, preferences)

        assert len(ranked) == 3
        assert ranked[0].display_text == "15:00"

    def test_empty_input_returns_empty_list(self):
        assert rank_by_multiple_factors([], RankingPreferences(target_time="15:00")) == []


# ============================================================================
# Visual indicators
# ============================================================================


class TestVisualIndicators:
    """Test stars, proximity phrases and highlight tiers."""

    @pytest.fixture
    def alternatives(self, slot_factory):
        slots = [
            slot_factory(FRIDAY, "14:30"),
            slot_factory(FRIDAY, "15:30"),
            slot_factory(SATURDAY, "15:00"),
            slot_factory(FRIDAY, "18:00"),
        ]
        return find_nearby_alternatives(slots, FRIDAY, "15:00")

    def test_top_three_starred_with_proximity(self, alternatives):
        assert [a.display_text for a in alternatives] == [
            "⭐ 14:30 (30 minutes earlier)",
            "⭐ 15:30 (30 minutes later)",
            "⭐ 15:00 (Tomorrow)",
            "18:00",
        ]

    def test_highlight_tiers(self, alternatives):
        assert [a.indicators.highlight for a in alternatives] == [
            Highlight.GOLD,
            Highlight.SILVER,
            Highlight.BRONZE,
            None,
        ]
        assert alternatives[3].indicators.starred is False

    def test_localized_phrases(self, slot_factory):
        result = find_nearby_alternatives(
            [slot_factory(FRIDAY, "17:00")], FRIDAY, "15:00", language="ru"
        )
        assert result[0].indicators.proximity_text == "2 часа позже"

    def test_exact_time_phrase(self, slot_factory):
        result = find_nearby_alternatives([slot_factory(FRIDAY, "15:00")], FRIDAY, "15:00")
        assert result[0].display_text == "⭐ 15:00 (exact time)"

    def test_does_not_modify_input(self, slot_factory):
        ranked = rank_by_time_proximity([slot_factory(FRIDAY, "16:00")], "15:00")

        decorated = add_visual_indicators(ranked)

        assert ranked[0].indicators.starred is False
        assert ranked[0].display_text == "16:00"
        assert decorated[0].indicators.starred is True

    def test_custom_star_limit(self, slot_factory):
        slots = [slot_factory(FRIDAY, "15:00"), slot_factory(FRIDAY, "16:00")]
        result = find_nearby_alternatives(slots, FRIDAY, "15:00", starred=1)
        assert [a.indicators.starred for a in result] == [True, False]

    def test_max_alternatives(self, slot_factory):
        slots = [slot_factory(FRIDAY, f"{hour}:00") for hour in range(9, 19)]
        assert len(find_nearby_alternatives(slots, FRIDAY, "15:00", max_alternatives=2)) == 2

    def test_no_slots(self):
        assert find_nearby_alternatives([], FRIDAY, "15:00") == []

    def test_far_slot_gets_no_star_even_at_rank_one(self, slot_factory):
        """A slot six hours away is the best available but not worth a star."""
        decorated = add_visual_indicators(rank_by_time_proximity([slot_factory(FRIDAY, "09:00")], "15:00"))

        assert decorated[0].rank == 1
        assert decorated[0].indicators.starred is False
        assert decorated[0].indicators.highlight is None
        assert decorated[0].indicators.proximity_text is None
        assert decorated[0].display_text == "09:00"

    def test_proximity_without_star_within_three_hours(self, slot_factory):
        decorated = add_visual_indicators(rank_by_time_proximity([slot_factory(FRIDAY, "17:00")], "15:00"))

        assert decorated[0].indicators.starred is False
        assert decorated[0].display_text == "17:00 (2 hours later)"

    def test_highlights_follow_star_order(self, slot_factory):
        """The preferred master ranks first but is too far from the time for a star."""
        slots = [
            slot_factory(FRIDAY, "15:00", master_id="m1"),
            slot_factory(FRIDAY, "10:00", master_id="m2"),
        ]
        ranked = rank_by_multiple_factors(
            slots, RankingPreferences(target_date=FRIDAY, target_time="15:00", master_id="m2")
        )

        decorated = add_visual_indicators(ranked)

        assert [d.slot.master_id for d in decorated] == ["m2", "m1"]
        assert [d.indicators.starred for d in decorated] == [False, True]
        assert decorated[1].indicators.highlight == Highlight.GOLD

    def test_date_only_ranking_stars_same_and_adjacent_days(self, slot_factory):
        slots = [
            slot_factory(FRIDAY, "15:00"),
            slot_factory(SATURDAY, "15:00"),
            slot_factory(date(2025, 10, 27), "15:00"),
        ]

        decorated = add_visual_indicators(rank_by_date_proximity(slots, FRIDAY))

        assert [d.indicators.starred for d in decorated] == [True, True, False]
