"""
Tests for session recovery from message history.

Coverage:
- Replay of cards and taps into a BookingContext
- Segmentation after the last confirmed or cancelled booking
- Ambiguous histories (more than one distinct free-text request)
- Language detection from fixed UI strings
- SessionContextStore.recover_from_history wrapper
"""

from datetime import UTC, datetime, timedelta

import pytest

from agent.state.recovery import detect_language, replay_history
from agent.state.schemas import ConversationState, MessageType, TransportMessage
from agent.state.session_store import SessionContextStore
from shared.errors import AmbiguousRecoveryError

NOW = datetime(2025, 10, 20, 9, 0, tzinfo=UTC)


def _inbound(minutes_ago: int, text: str | None = None, button_id: str | None = None) -> TransportMessage:
    return TransportMessage(
        id=f"in-{minutes_ago}-{button_id or text}",
        type=MessageType.BUTTON if button_id else MessageType.TEXT,
        text=text,
        button_id=button_id,
        timestamp=NOW - timedelta(minutes=minutes_ago),
        direction="inbound",
    )


def _outbound(minutes_ago: int, text: str, option_ids: list[str] | None = None) -> TransportMessage:
    return TransportMessage(
        id=f"out-{minutes_ago}",
        type=MessageType.INTERACTIVE if option_ids else MessageType.TEXT,
        text=text,
        timestamp=NOW - timedelta(minutes=minutes_ago),
        direction="outbound",
        option_ids=option_ids or [],
    )


def _replay(messages, max_age_seconds: int = 3600):
    return replay_history(
        "cust-1",
        "salon-1",
        messages,
        default_language="en",
        now=NOW,
        max_age_seconds=max_age_seconds,
    )


@pytest.fixture
def pending_confirmation():
    """Request, slot card, slot tap and a confirmation card awaiting an answer."""
    return [
        _inbound(10, text="Haircut friday 3pm"),
        _outbound(9, "Available Times\nChoose a time for Haircut:", [
            "slot_2025-10-24_15:00_m1",
            "slot_2025-10-24_16:00_m2",
        ]),
        _inbound(8, button_id="slot_2025-10-24_15:00_m1"),
        _outbound(7, "Confirm booking:\n\nHaircut\nFriday, Oct 24 at 15:00\nwith Anna", [
            "confirm_2025-10-24_15:00_m1",
            "action_change_slot",
        ]),
    ]


class TestReplayHistory:
    """Test rebuilding a context from transport messages."""

    def test_pending_confirmation_recovered(self, pending_confirmation):
        context = _replay(pending_confirmation)

        assert context.session_id == "cust-1:salon-1"
        assert context.original_intent.raw_text == "Haircut friday 3pm"
        assert context.state == ConversationState.SLOTS_SHOWN
        assert context.awaiting_confirmation is True
        assert context.pending_slot_id == "2025-10-24_15:00_m1"
        assert context.last_shown_options == ["confirm_2025-10-24_15:00_m1", "action_change_slot"]
        assert [c.choice_id for c in context.choice_history] == ["slot_2025-10-24_15:00_m1"]
        assert context.message_count == 2
        assert context.created_at == NOW - timedelta(minutes=10)
        assert context.last_interaction_at == NOW - timedelta(minutes=7)

    def test_order_independent(self, pending_confirmation):
        assert _replay(list(reversed(pending_confirmation))) == _replay(pending_confirmation)

    def test_choice_card_sets_choice_presented(self):
        context = _replay([
            _inbound(5, text="haircut"),
            _outbound(4, "This week is fully booked", ["choice_next_week", "choice_call_salon"]),
        ])

        assert context.state == ConversationState.CHOICE_PRESENTED
        assert context.awaiting_confirmation is False

    def test_change_action_clears_pending_slot(self, pending_confirmation):
        context = _replay(pending_confirmation + [_inbound(6, button_id="action_change_slot")])

        assert context.awaiting_confirmation is False
        assert context.pending_slot_id is None
        assert len(context.choice_history) == 2

    def test_only_segment_after_confirmed_booking(self, pending_confirmation):
        history = [
            _inbound(50, text="nails tomorrow"),
            _inbound(45, button_id="confirm_2025-10-21_10:00_m3"),
            *pending_confirmation,
        ]

        context = _replay(history)

        assert context.original_intent.raw_text == "Haircut friday 3pm"

    def test_nothing_after_terminal_event(self):
        history = [
            _inbound(20, text="haircut"),
            _inbound(15, button_id="confirm_2025-10-24_15:00_m1"),
            _outbound(14, "All set!"),
        ]

        assert _replay(history) is None

    def test_cancel_action_is_terminal(self):
        history = [_inbound(20, text="haircut"), _inbound(15, button_id="action_cancel")]
        assert _replay(history) is None

    def test_empty_history(self):
        assert _replay([]) is None

    def test_segment_older_than_cap(self, pending_confirmation):
        assert _replay(pending_confirmation, max_age_seconds=300) is None

    def test_ambiguous_free_text(self):
        history = [_inbound(10, text="haircut friday"), _inbound(5, text="actually nails")]

        with pytest.raises(AmbiguousRecoveryError) as exc_info:
            _replay(history)

        assert exc_info.value.candidates == 2

    def test_repeated_text_not_ambiguous(self):
        context = _replay([_inbound(10, text="Haircut  Friday"), _inbound(5, text="haircut friday")])

        assert context.original_intent.raw_text == "Haircut  Friday"

    def test_unknown_button_ids_ignored(self):
        context = _replay([_inbound(10, text="haircut"), _inbound(5, button_id="legacy-button")])

        assert context.choice_history == []


class TestDetectLanguage:
    """Test language detection from outbound UI strings."""

    def test_spanish(self):
        assert detect_language([_outbound(1, "Horarios Disponibles\nElige un horario:")]) == "es"

    def test_longest_match_wins(self):
        assert detect_language([_outbound(1, "Подтвердите бронирование:\n\nСтрижка")]) == "ru"

    def test_inbound_ignored(self):
        assert detect_language([_inbound(1, text="Available Times")]) is None

    def test_recovered_context_uses_detected_language(self):
        context = _replay([
            _inbound(5, text="corte viernes"),
            _outbound(4, "Horarios Disponibles", ["slot_2025-10-24_15:00_m1"]),
        ])

        assert context.language == "es"

    def test_default_language_when_undetected(self):
        assert _replay([_inbound(5, text="hola")]).language == "en"


class TestStoreRecovery:
    """Test the SessionContextStore wrapper."""

    def test_recover(self, fake_redis, settings, pending_confirmation):
        store = SessionContextStore(lambda: fake_redis, settings, clock=lambda: NOW)

        context = store.recover_from_history("cust-1", "salon-1", pending_confirmation)

        assert context.pending_slot_id == "2025-10-24_15:00_m1"
        assert fake_redis.data == {}

    def test_ambiguous_returns_none(self, fake_redis, settings):
        store = SessionContextStore(lambda: fake_redis, settings, clock=lambda: NOW)

        result = store.recover_from_history(
            "cust-1", "salon-1", [_inbound(10, text="haircut"), _inbound(5, text="nails")]
        )

        assert result is None
