"""
BookingContext schema - durable record of one in-progress booking conversation.

Stored as JSON in Redis under session:{customer_id}:{salon_id}. The context is
created on the first inbound message, mutated on every event and removed by
TTL expiry or explicitly on a terminal state (confirmed, abandoned).

Invariants:
- original_intent and language are set once and never change
- choice_history keeps the newest SESSION_MAX_CHOICES entries (FIFO)
- created_at anchors the 60-minute hard TTL cap
"""

import datetime as dt
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ConversationState(str, Enum):
    """Booking dialog state."""

    STARTED = "started"
    SLOTS_SHOWN = "slots_shown"
    CHOICE_PRESENTED = "choice_presented"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (ConversationState.CONFIRMED, ConversationState.ABANDONED)


class OriginalIntent(BaseModel):
    """What the customer first asked for. Immutable once set."""

    model_config = ConfigDict(frozen=True)

    service_id: str | None = None
    service_name: str | None = None
    date: dt.date | None = None
    time: dt.time | None = None
    master_id: str | None = None
    raw_text: str | None = None

    @property
    def is_complete(self) -> bool:
        """A service is required before slots can be searched."""
        return self.service_id is not None

    @property
    def has_time_preference(self) -> bool:
        return self.time is not None


class ChoiceRecord(BaseModel):
    """One tap or selection made by the customer."""

    choice_id: str
    selected_at: dt.datetime
    result_shown: list[str] = Field(default_factory=list)
    result_metadata: dict[str, Any] = Field(default_factory=dict)


class BookingContext(BaseModel):
    """
    Session context for a customer/salon pair.

    Fields:
        session_id: "{customer_id}:{salon_id}"
        original_intent: First parsed request (service, date, time, staff)
        language: Conversation language, detected once
        state: Current ConversationState
        choice_history: Newest-last list of ChoiceRecord (max 10)
        last_shown_options: Button/row ids of the last card sent
        awaiting_confirmation: A confirmation card is pending
        pending_slot_id: Slot key shown on the pending confirmation card
        created_at: Creation time (anchors the hard TTL cap)
        last_interaction_at: Time of the latest inbound event
        message_count: Inbound events handled in this session
    """

    session_id: str
    customer_id: str
    salon_id: str
    original_intent: OriginalIntent = Field(default_factory=OriginalIntent)
    language: str = "en"
    state: ConversationState = ConversationState.STARTED
    choice_history: list[ChoiceRecord] = Field(default_factory=list)
    last_shown_options: list[str] = Field(default_factory=list)
    awaiting_confirmation: bool = False
    pending_slot_id: str | None = None
    created_at: dt.datetime
    last_interaction_at: dt.datetime
    message_count: int = 0


class SessionMetadata(BaseModel):
    """Lightweight view of a stored session (no full context)."""

    exists: bool
    ttl: int | None = None
    state: ConversationState | None = None
    created_at: dt.datetime | None = None
    last_interaction_at: dt.datetime | None = None
    message_count: int = 0
    choice_count: int = 0


class SessionStatistics(BaseModel):
    total_active: int = 0
    average_ttl_seconds: float = 0.0


class MessageType(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    LIST = "list"
    INTERACTIVE = "interactive"


class TransportMessage(BaseModel):
    """A message as recorded by the messaging channel."""

    id: str
    type: MessageType = MessageType.TEXT
    text: str | None = None
    button_id: str | None = None
    timestamp: dt.datetime
    direction: Literal["inbound", "outbound"]
    # Ids of buttons/rows carried by an outbound interactive message
    option_ids: list[str] = Field(default_factory=list)


def make_session_id(customer_id: str, salon_id: str) -> str:
    """Session id derived from the customer/salon pair."""
    return f"{customer_id}:{salon_id}"
