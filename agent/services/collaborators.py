"""
Interfaces of the external collaborators consumed by the booking core.

Implementations live outside this package (database repositories, the
messaging channel client). The core depends only on these protocols.
"""

from datetime import date, datetime
from typing import Any, Protocol

from agent.services.models import BookingRecord, SlotSuggestion
from agent.state.schemas import TransportMessage


class AvailabilitySource(Protocol):
    """Returns bookable slots for a salon/service within a date range."""

    async def get_available_slots(
        self,
        salon_id: str,
        service_id: str,
        date_from: date,
        date_to: date,
    ) -> list[SlotSuggestion]:
        ...


class HistoricalBookingsSource(Protocol):
    """Returns historical bookings for popularity analysis."""

    async def get_bookings(self, salon_id: str, since: datetime) -> list[BookingRecord]:
        ...


class MessageHistoryReader(Protocol):
    """Returns recent transport messages for a customer, oldest first."""

    async def get_recent_messages(
        self, customer_id: str, limit: int = 50
    ) -> list[TransportMessage]:
        ...


class OutboundSender(Protocol):
    """Delivers payloads built by InteractiveCardBuilder. Retries are its concern."""

    async def send(self, customer_id: str, payload: dict[str, Any]) -> None:
        ...
