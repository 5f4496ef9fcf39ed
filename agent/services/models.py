"""
Data models shared by the ranking and popularity services.

SlotSuggestion and BookingRecord come from external collaborators and are
immutable. RankedSlot, ProximityScore and PopularTimeSlot are derived values
that are never persisted (except PopularTimeSlot in the popularity cache).
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SlotSuggestion(BaseModel):
    """A candidate bookable appointment (service + staff + time window)."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    master_id: str
    master_name: str
    service_id: str
    service_name: str | None = None
    duration: int = Field(ge=0, description="Duration in minutes")
    price: int = Field(ge=0, description="Price in minor currency units")

    @property
    def slot_key(self) -> str:
        """Composite identity "{YYYY-MM-DD}_{HH:MM}_{master_id}" used in button ids."""
        return f"{self.date.isoformat()}_{self.start_time.strftime('%H:%M')}_{self.master_id}"


class Highlight(str, Enum):
    """Visual tier for the top three alternatives."""

    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


class ProximityScore(BaseModel):
    """Per-factor score breakdown for one slot."""

    total: float = 0.0
    time_score: float = 0.0
    date_score: float = 0.0
    master_score: float = 0.0
    time_distance_minutes: int | None = None
    date_distance_days: int | None = None
    # Signed offsets (slot minus target), used for proximity text
    time_delta_minutes: int | None = None
    date_delta_days: int | None = None


class SlotIndicators(BaseModel):
    starred: bool = False
    proximity_text: str | None = None
    highlight: Highlight | None = None


class RankedSlot(BaseModel):
    """A SlotSuggestion with its score, 1-based rank and display decorations."""

    slot: SlotSuggestion
    score: ProximityScore
    rank: int = Field(ge=1)
    indicators: SlotIndicators = Field(default_factory=SlotIndicators)
    display_text: str = ""


class RankingWeights(BaseModel):
    """Weights applied to the proximity components (each in [0, 1])."""

    date: float = Field(default=0.3, ge=0.0, le=1.0)
    time: float = Field(default=0.5, ge=0.0, le=1.0)
    master: float = Field(default=0.2, ge=0.0, le=1.0)


class RankingPreferences(BaseModel):
    """What the customer asked for, used by multi-factor ranking."""

    target_date: dt.date | str | None = None
    target_time: dt.time | str | None = None
    master_id: str | None = None
    weights: RankingWeights = Field(default_factory=RankingWeights)
    limit: int | None = Field(default=None, ge=1)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class BookingRecord(BaseModel):
    """Historical booking returned by the bookings source."""

    model_config = ConfigDict(frozen=True)

    id: str
    start_time: dt.datetime
    service_id: str | None = None
    master_id: str | None = None
    status: BookingStatus = BookingStatus.CONFIRMED


class PopularTimeSlot(BaseModel):
    """A (day_of_week, hour) bucket with popularity statistics.

    day_of_week follows Python's convention: Monday=0 ... Sunday=6.
    """

    day_of_week: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)
    booking_count: int = Field(default=0, ge=0)
    weighted_score: float = Field(default=0.0, ge=0.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_default: bool = False
    is_available: bool | None = None
    next_available_slot: SlotSuggestion | None = None

    @property
    def time_label(self) -> str:
        return f"{self.hour:02d}:00"


class PopularTimesOptions(BaseModel):
    """Filters for popular-times analysis. Unset fields use configured defaults."""

    service_id: str | None = None
    master_id: str | None = None
    lookback_days: int | None = Field(default=None, ge=1)
    min_bookings: int | None = Field(default=None, ge=0)
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    limit: int | None = Field(default=None, ge=1)
    include_cancelled: bool = False


class SeasonalPatternType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SeasonalPattern(BaseModel):
    """A recurring demand peak detected in booking history."""

    type: SeasonalPatternType
    period: str
    occurrences: int
    share: float = Field(ge=0.0, le=1.0)
    strength: float = Field(ge=0.0, description="Share relative to the mean share")
