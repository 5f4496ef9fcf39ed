"""
BookingOrchestrator - glue for one inbound booking event.

Flow per event:
1. Resume the session (store) or rebuild it from message history when the
   store is unavailable; otherwise start a new one
2. Text request:
   - no service in the intent: clarification choice card
   - no preferred time: popular times (defaults when empty or degraded)
   - otherwise: exact matches, or ranked nearby alternatives
3. Button tap: slot -> confirmation card, confirm -> booked,
   change -> slots again, cancel -> abandoned, choice -> scenario-specific slots
4. Save the session (or delete it on a terminal state)

Rendering failures (ValidationError) degrade to the localized apology text.
Unavailable dependencies set degraded=True on the result.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from agent.interactive.button_ids import (
    CANCEL_ACTIONS,
    CHANGE_SLOT_ACTION,
    ButtonKind,
    ParsedButton,
    parse_button_id,
)
from agent.interactive.card_builder import InteractiveCardBuilder
from agent.messages.builder import MessageBuilder, get_message_builder
from agent.messages.locales import normalize_language
from agent.messages.templates import MessageKey
from agent.services import alternative_suggester
from agent.services.collaborators import AvailabilitySource, MessageHistoryReader
from agent.services.models import (
    PopularTimeSlot,
    PopularTimesOptions,
    RankingPreferences,
    SlotSuggestion,
)
from agent.services.popular_times import (
    PopularTimesAnalyzer,
    check_availability,
    get_default_times,
)
from agent.state.helpers import add_choice, transition
from agent.state.schemas import (
    BookingContext,
    ChoiceRecord,
    ConversationState,
    OriginalIntent,
)
from agent.state.session_store import SessionContextStore
from shared.config import Settings, get_settings
from shared.errors import (
    DependencyUnavailableError,
    SessionExpiredError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Choices handled outside the core (service catalog, phone handoff)
HANDOFF_CHOICES = {"show_services", "call_salon"}


class InboundEvent(BaseModel):
    """One inbound message: free text (with upstream-parsed intent) or a tap."""

    customer_id: str
    salon_id: str
    text: str | None = None
    button_id: str | None = None
    intent: OriginalIntent | None = None
    language: str | None = None
    business_type: str | None = None


@dataclass
class _Turn:
    """Per-event scratch state (never shared between events)."""

    business_type: str
    degraded: bool = False
    handoff: str | None = None


class OrchestratorResult(BaseModel):
    """Outbound payloads plus the resulting session context."""

    payloads: list[dict[str, Any]] = Field(default_factory=list)
    context: BookingContext | None = None
    degraded: bool = False
    handoff: str | None = None


class BookingOrchestrator:
    """
    Coordinates store, ranking, popularity and rendering for one event.

    Example:
        >>> orchestrator = BookingOrchestrator(store, analyzer, availability, history)
        >>> result = await orchestrator.handle_event(InboundEvent(
        ...     customer_id="c1", salon_id="s1", text="haircut friday 15:00",
        ...     intent=OriginalIntent(service_id="svc-1", date=..., time=...),
        ... ))
        >>> result.payloads[0]["type"]
        'button'
    """

    def __init__(
        self,
        store: SessionContextStore,
        analyzer: PopularTimesAnalyzer,
        availability: AvailabilitySource,
        history_reader: MessageHistoryReader | None = None,
        message_builder: MessageBuilder | None = None,
        card_builder: InteractiveCardBuilder | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._analyzer = analyzer
        self._availability = availability
        self._history = history_reader
        self._messages = message_builder or get_message_builder()
        self._settings = settings or get_settings()
        self._cards = card_builder or InteractiveCardBuilder(self._settings)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._tz = ZoneInfo(self._settings.TIMEZONE)

    # =========================================================================
    # Entry point
    # =========================================================================

    async def handle_event(self, event: InboundEvent) -> OrchestratorResult:
        """
        Handle one inbound event and return the payloads to send.

        Never raises for customer-facing failures: rendering problems become
        the localized apology, unavailable dependencies set degraded=True.
        """
        degraded = False
        log_extra = {"customer_id": event.customer_id, "salon_id": event.salon_id}

        try:
            context = await self._store.get(event.customer_id, event.salon_id)
        except DependencyUnavailableError as e:
            logger.warning(f"Session store unavailable, recovering from history: {e}", extra=log_extra)
            degraded = True
            context = await self._recover(event)

        context = self._prepare_context(context, event)
        turn = _Turn(business_type=event.business_type or self._settings.DEFAULT_BUSINESS_TYPE)

        try:
            if event.button_id:
                parsed = parse_button_id(event.button_id)
                payloads, context = await self._handle_tap(context, parsed, event.button_id, turn)
            else:
                payloads, context = await self._handle_request(context, turn)
        except ValidationError as e:
            logger.warning(f"Rendering failed, sending apology: {e}", extra=log_extra)
            payloads = [self._cards.build_text_message(self._messages.get_apology(context.language))]
        except DependencyUnavailableError as e:
            logger.error(f"Dependency unavailable while handling event: {e}", extra=log_extra)
            degraded = True
            payloads = [self._cards.build_text_message(self._messages.get_apology(context.language))]

        degraded = degraded or turn.degraded

        result_context: BookingContext | None = context
        try:
            if context.state.is_terminal:
                await self._store.delete(context.customer_id, context.salon_id)
            else:
                result_context = await self._store.save(context)
        except DependencyUnavailableError as e:
            logger.warning(f"Session not persisted: {e}", extra=log_extra)
            degraded = True
        except SessionExpiredError as e:
            logger.info(f"Session expired on save: {e}", extra=log_extra)
            payloads = [self._cards.build_text_message(
                self._messages.get_message(MessageKey.SESSION_EXPIRED, context.language)
            )]
            result_context = None

        logger.info(
            f"Event handled: {len(payloads)} payload(s), state={context.state.value}",
            extra={
                **log_extra,
                "session_id": context.session_id,
                "state": context.state.value,
                "language": context.language,
                "degraded": degraded,
            },
        )
        return OrchestratorResult(
            payloads=payloads,
            context=result_context,
            degraded=degraded,
            handoff=turn.handoff,
        )

    # =========================================================================
    # Session helpers
    # =========================================================================

    async def _recover(self, event: InboundEvent) -> BookingContext | None:
        if self._history is None:
            return None
        try:
            messages = await self._history.get_recent_messages(
                event.customer_id, self._settings.MESSAGE_HISTORY_LIMIT
            )
        except Exception as e:
            logger.error(f"Message history unavailable for {event.customer_id}: {e}")
            return None
        return self._store.recover_from_history(event.customer_id, event.salon_id, messages)

    def _prepare_context(self, context: BookingContext | None, event: InboundEvent) -> BookingContext:
        now = self._clock()
        if context is None:
            context = self._store.new_context(
                event.customer_id,
                event.salon_id,
                normalize_language(event.language),
                event.intent,
            )
        elif event.intent is not None and context.original_intent == OriginalIntent():
            context = context.model_copy(update={"original_intent": event.intent})

        return context.model_copy(update={
            "message_count": context.message_count + 1,
            "last_interaction_at": now,
        })

    def _today(self) -> date:
        return self._clock().astimezone(self._tz).date()

    def _shown(
        self,
        context: BookingContext,
        payload: dict[str, Any],
        state: ConversationState,
        awaiting_confirmation: bool = False,
        pending_slot_id: str | None = None,
    ) -> BookingContext:
        context = transition(context, state, self._clock())
        return context.model_copy(update={
            "last_shown_options": self._cards.extract_option_ids(payload),
            "awaiting_confirmation": awaiting_confirmation,
            "pending_slot_id": pending_slot_id,
        })

    async def _fetch_slots(self, context: BookingContext, date_from: date, date_to: date) -> list[SlotSuggestion]:
        intent = context.original_intent
        try:
            return await self._availability.get_available_slots(
                context.salon_id, intent.service_id, date_from, date_to
            )
        except DependencyUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Availability source failed for salon {context.salon_id}: {e}", exc_info=True)
            raise DependencyUnavailableError("availability_source", "get_available_slots", str(e)) from e

    def _window(self, target: date) -> tuple[date, date]:
        days = self._settings.AVAILABILITY_WINDOW_DAYS
        return max(self._today(), target - timedelta(days=days)), target + timedelta(days=days)

    # =========================================================================
    # Text requests
    # =========================================================================

    async def _handle_request(self, context: BookingContext, turn: _Turn) -> tuple[list[dict], BookingContext]:
        intent = context.original_intent
        language = context.language

        if not intent.is_complete:
            card = self._messages.get_choice_card("incomplete_request", language)
            payload = self._cards.build_choice_card(card)
            return [payload], self._shown(context, payload, ConversationState.CHOICE_PRESENTED)

        if not intent.has_time_preference:
            return await self._show_popular_times(context, turn)

        target_date = intent.date or self._today()
        date_from, date_to = self._window(target_date)
        slots = await self._fetch_slots(context, date_from, date_to)

        if not slots:
            card = self._messages.get_choice_card("week_full", language)
            payload = self._cards.build_choice_card(card)
            return [payload], self._shown(context, payload, ConversationState.CHOICE_PRESENTED)

        params = {
            "day": self._messages.format_day(target_date, language),
            "time": intent.time.strftime("%H:%M"),
        }

        exact = [
            s for s in slots
            if s.date == target_date and s.start_time == intent.time
            and (intent.master_id is None or s.master_id == intent.master_id)
        ][: self._settings.MAX_SLOT_OPTIONS]
        if exact:
            message = self._messages.get_message(MessageKey.SLOT_AVAILABLE, language, params)
            payload = self._cards.build_slot_selection_card(exact, language, message)
            return [payload], self._shown(context, payload, ConversationState.SLOTS_SHOWN)

        alternatives = alternative_suggester.find_nearby_alternatives(
            slots,
            target_date,
            intent.time,
            max_alternatives=self._settings.MAX_SLOT_OPTIONS,
            language=language,
            master_id=intent.master_id,
            starred=self._settings.STARRED_SLOTS,
        )
        message = self._messages.get_message(MessageKey.SLOT_TAKEN, language, params)
        payload = self._cards.build_alternative_slots_card(alternatives, language, message)
        return [payload], self._shown(context, payload, ConversationState.SLOTS_SHOWN)

    async def _popular_times(self, context: BookingContext, turn: _Turn) -> list[PopularTimeSlot]:
        options = PopularTimesOptions(service_id=context.original_intent.service_id)
        try:
            popular = await self._analyzer.get_popular_times(context.salon_id, options)
        except DependencyUnavailableError as e:
            logger.warning(f"Popular times unavailable, using defaults: {e}")
            turn.degraded = True
            popular = []

        if not popular:
            popular = get_default_times(turn.business_type)
        return popular

    async def _show_popular_times(self, context: BookingContext, turn: _Turn) -> tuple[list[dict], BookingContext]:
        language = context.language
        popular = await self._popular_times(context, turn)

        target_date = context.original_intent.date or self._today()
        date_from, date_to = self._window(target_date)
        slots = await self._fetch_slots(context, date_from, date_to)

        picked: list[SlotSuggestion] = []
        for entry in check_availability(popular, target_date, slots):
            slot = entry.next_available_slot
            if slot is not None and slot not in picked:
                picked.append(slot)
        picked = picked[: self._settings.MAX_SLOT_OPTIONS]

        if not picked:
            text = self._messages.get_message(MessageKey.NO_ALTERNATIVES, language)
            return [self._cards.build_text_message(text)], transition(
                context, ConversationState.STARTED, self._clock()
            )

        message = self._messages.get_message(MessageKey.POPULAR_TIMES, language)
        payload = self._cards.build_slot_selection_card(picked, language, message)
        return [payload], self._shown(context, payload, ConversationState.SLOTS_SHOWN)

    # =========================================================================
    # Button taps
    # =========================================================================

    async def _find_slot(self, context: BookingContext, parsed: ParsedButton) -> tuple[SlotSuggestion | None, list[SlotSuggestion]]:
        date_from, date_to = self._window(parsed.slot_date)
        slots = await self._fetch_slots(context, date_from, date_to)
        match = next(
            (
                s for s in slots
                if s.date == parsed.slot_date
                and s.start_time == parsed.slot_time
                and s.master_id == parsed.master_id
            ),
            None,
        )
        return match, slots

    async def _handle_tap(
        self,
        context: BookingContext,
        parsed: ParsedButton,
        button_id: str,
        turn: _Turn,
    ) -> tuple[list[dict], BookingContext]:
        language = context.language
        shown_before = list(context.last_shown_options)

        if parsed.kind in (ButtonKind.SLOT, ButtonKind.CONFIRM):
            slot, slots = await self._find_slot(context, parsed)
            if slot is None:
                payloads, context = await self._slot_gone(context, parsed, slots)
            elif parsed.kind == ButtonKind.SLOT:
                payload = self._cards.build_confirmation_card(slot, language)
                payloads = [payload]
                context = self._shown(
                    context, payload, ConversationState.SLOTS_SHOWN,
                    awaiting_confirmation=True, pending_slot_id=slot.slot_key,
                )
            else:
                text = self._messages.get_message(MessageKey.BOOKING_CONFIRMED, language, {
                    "service": slot.service_name or slot.service_id,
                    "day": self._messages.format_day(slot.date, language),
                    "time": slot.start_time.strftime("%H:%M"),
                    "master": slot.master_name,
                })
                payloads = [self._cards.build_text_message(text)]
                context = transition(context, ConversationState.CONFIRMED, self._clock())

        elif parsed.kind == ButtonKind.ACTION and parsed.value in CANCEL_ACTIONS:
            payloads = []
            context = transition(context, ConversationState.ABANDONED, self._clock())

        elif parsed.kind == ButtonKind.ACTION:
            if parsed.value != CHANGE_SLOT_ACTION:
                logger.info(f"Unhandled action {parsed.value}, showing slots again")
            payloads, context = await self._handle_request(context, turn)

        else:
            payloads, context = await self._handle_choice(context, parsed.value, turn)

        choice = ChoiceRecord(
            choice_id=button_id,
            selected_at=self._clock(),
            result_shown=context.last_shown_options,
            result_metadata={"kind": parsed.kind.value, "previous_options": shown_before},
        )
        context = add_choice(context, choice, self._settings.SESSION_MAX_CHOICES)
        return payloads, context

    async def _slot_gone(
        self,
        context: BookingContext,
        parsed: ParsedButton,
        slots: list[SlotSuggestion],
    ) -> tuple[list[dict], BookingContext]:
        language = context.language
        alternatives = alternative_suggester.find_nearby_alternatives(
            slots,
            parsed.slot_date,
            parsed.slot_time,
            max_alternatives=self._settings.MAX_SLOT_OPTIONS,
            language=language,
            master_id=parsed.master_id,
            starred=self._settings.STARRED_SLOTS,
        )
        if not alternatives:
            text = self._messages.build_alternative_slots_message([], language)
            return [self._cards.build_text_message(text)], transition(
                context, ConversationState.STARTED, self._clock()
            )

        header = self._messages.build_alternative_slots_message(alternatives, language)
        payload = self._cards.build_alternative_slots_card(alternatives, language, header)
        return [payload], self._shown(context, payload, ConversationState.SLOTS_SHOWN)

    async def _handle_choice(self, context: BookingContext, choice_id: str, turn: _Turn) -> tuple[list[dict], BookingContext]:
        language = context.language
        intent = context.original_intent

        if choice_id in HANDOFF_CHOICES:
            turn.handoff = choice_id
            return [], transition(context, ConversationState.CHOICE_PRESENTED, self._clock())

        if not intent.is_complete:
            return await self._handle_request(context, turn)
        if choice_id == "popular_times":
            return await self._show_popular_times(context, turn)

        target_date = intent.date or self._today()
        target_time = intent.time or time(12, 0)
        limit = self._settings.MAX_SLOT_OPTIONS
        time_label = target_time.strftime("%H:%M")

        if choice_id == "next_week":
            start = target_date + timedelta(days=7)
            slots = await self._fetch_slots(context, start, start + timedelta(days=6))
            ranked = alternative_suggester.rank_by_date_proximity(slots, start)[:limit]
            message = self._messages.get_message(MessageKey.DIFF_DAY_OPTIONS, language, {"time": time_label})
        else:
            date_from, date_to = self._window(target_date)
            slots = await self._fetch_slots(context, date_from, date_to)

            if choice_id == "same_day_diff_time":
                same_day = [s for s in slots if s.date == target_date]
                ranked = alternative_suggester.rank_by_time_proximity(same_day, target_time)[:limit]
                message = self._messages.get_message(MessageKey.SAME_DAY_OPTIONS, language, {
                    "day": self._messages.format_day(target_date, language),
                    "time": time_label,
                })
            elif choice_id == "diff_day_same_time":
                same_time = [s for s in slots if s.start_time == target_time and s.date != target_date]
                ranked = alternative_suggester.rank_by_date_proximity(same_time, target_date)[:limit]
                message = self._messages.get_message(MessageKey.DIFF_DAY_OPTIONS, language, {"time": time_label})
            elif choice_id == "next_available_day":
                later = sorted({s.date for s in slots if s.date > target_date})
                next_day = later[0] if later else target_date + timedelta(days=1)
                day_slots = [s for s in slots if s.date == next_day]
                ranked = alternative_suggester.rank_by_time_proximity(day_slots, target_time)[:limit]
                message = self._messages.get_message(MessageKey.SAME_DAY_OPTIONS, language, {
                    "day": self._messages.format_day(next_day, language),
                    "time": time_label,
                })
            else:
                # show_best_matches, see_more, pick_another_time
                preferences = RankingPreferences(
                    target_date=target_date,
                    target_time=target_time,
                    master_id=intent.master_id,
                    limit=limit,
                )
                ranked = alternative_suggester.rank_by_multiple_factors(slots, preferences)
                message = self._messages.build_alternative_slots_message(ranked, language)

        if not ranked:
            text = self._messages.get_message(MessageKey.NO_ALTERNATIVES, language)
            return [self._cards.build_text_message(text)], transition(
                context, ConversationState.CHOICE_PRESENTED, self._clock()
            )

        decorated = alternative_suggester.add_visual_indicators(
            ranked, limit=self._settings.STARRED_SLOTS, language=language
        )
        payload = self._cards.build_alternative_slots_card(decorated, language, message)
        return [payload], self._shown(context, payload, ConversationState.SLOTS_SHOWN)
