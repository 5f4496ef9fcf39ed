"""
Session recovery from message history.

When the session store is unreachable (or the session expired), the recent
transport messages of a customer are replayed to rebuild a best-effort
BookingContext. Only the segment after the last terminal event (a confirm
tap or a cancel action) is considered.

Replay rules:
- Outbound interactive messages set last_shown_options (and the state:
  slots_shown for slot ids, choice_presented for choice ids, a confirm id
  means a confirmation is pending)
- Inbound taps are appended to the choice history
- The single distinct inbound free-text message is the original ask; more
  than one distinct text is ambiguous
- Language is detected from fixed UI strings in outbound messages
"""

import logging
from datetime import datetime, timedelta

from agent.interactive.button_ids import CANCEL_ACTIONS, ButtonKind, parse_button_id
from agent.messages.locales import LOCALES, LocaleProfile
from agent.state.helpers import MAX_CHOICES, add_choice
from agent.state.schemas import (
    BookingContext,
    ChoiceRecord,
    ConversationState,
    OriginalIntent,
    TransportMessage,
    make_session_id,
)
from shared.errors import AmbiguousRecoveryError, ButtonIdError

logger = logging.getLogger(__name__)


def _ui_strings(locale: LocaleProfile) -> tuple[str, ...]:
    return (
        locale.card_header,
        locale.card_footer,
        locale.list_button,
        locale.alternatives_header,
        locale.card_body_generic,
        locale.confirm_body.split("\n", 1)[0],
    )


def detect_language(messages: list[TransportMessage]) -> str | None:
    """
    Language whose fixed UI strings appear in the latest outbound message.

    The longest matching string wins, so "Confirmar reserva:" is not
    mistaken for a shorter English string it happens to contain.
    """
    for message in reversed(messages):
        if message.direction != "outbound" or not message.text:
            continue
        best_code, best_length = None, 0
        for code, locale in LOCALES.items():
            for candidate in _ui_strings(locale):
                if candidate in message.text and len(candidate) > best_length:
                    best_code, best_length = code, len(candidate)
        if best_code is not None:
            return best_code
    return None


def _is_terminal(message: TransportMessage) -> bool:
    if message.direction != "inbound" or not message.button_id:
        return False
    try:
        parsed = parse_button_id(message.button_id)
    except ButtonIdError:
        return False
    if parsed.kind == ButtonKind.CONFIRM:
        return True
    return parsed.kind == ButtonKind.ACTION and parsed.value in CANCEL_ACTIONS


def replay_history(
    customer_id: str,
    salon_id: str,
    messages: list[TransportMessage],
    default_language: str,
    now: datetime,
    max_age_seconds: int,
    max_choices: int = MAX_CHOICES,
) -> BookingContext | None:
    """
    Rebuild a booking context from ordered transport messages.

    Returns:
        Recovered context, or None when there is nothing to recover, the
        conversation already ended, or the segment is older than the hard cap

    Raises:
        AmbiguousRecoveryError: More than one distinct inbound free-text request
    """
    if not messages:
        return None

    ordered = sorted(messages, key=lambda m: m.timestamp)

    last_terminal = -1
    for index, message in enumerate(ordered):
        if _is_terminal(message):
            last_terminal = index
    segment = ordered[last_terminal + 1:]

    inbound = [m for m in segment if m.direction == "inbound"]
    if not inbound:
        return None

    if now - segment[0].timestamp >= timedelta(seconds=max_age_seconds):
        logger.debug(f"History segment for {customer_id} is past the session cap")
        return None

    texts: list[str] = []
    for message in inbound:
        if message.button_id or not message.text:
            continue
        normalized = " ".join(message.text.split()).lower()
        if normalized and normalized not in texts:
            texts.append(normalized)
    if len(texts) > 1:
        raise AmbiguousRecoveryError(customer_id, len(texts))

    raw_text = next(
        (m.text.strip() for m in inbound if not m.button_id and m.text), None
    )

    context = BookingContext(
        session_id=make_session_id(customer_id, salon_id),
        customer_id=customer_id,
        salon_id=salon_id,
        original_intent=OriginalIntent(raw_text=raw_text),
        language=detect_language(segment) or default_language,
        created_at=segment[0].timestamp,
        last_interaction_at=segment[-1].timestamp,
        message_count=len(inbound),
    )

    for message in segment:
        if message.direction == "outbound" and message.option_ids:
            context = _apply_outbound(context, message)
        elif message.direction == "inbound" and message.button_id:
            context = _apply_tap(context, message, max_choices)

    logger.info(
        f"Recovered session {context.session_id} from {len(segment)} messages "
        f"(state={context.state.value}, choices={len(context.choice_history)})",
        extra={"session_id": context.session_id, "customer_id": customer_id},
    )
    return context


def _apply_outbound(context: BookingContext, message: TransportMessage) -> BookingContext:
    kinds = set()
    confirm_key = None
    for option_id in message.option_ids:
        try:
            parsed = parse_button_id(option_id)
        except ButtonIdError:
            continue
        kinds.add(parsed.kind)
        if parsed.kind == ButtonKind.CONFIRM:
            confirm_key = parsed.slot_key

    update: dict = {"last_shown_options": list(message.option_ids)}
    if confirm_key is not None:
        update["awaiting_confirmation"] = True
        update["pending_slot_id"] = confirm_key
        update["state"] = ConversationState.SLOTS_SHOWN
    elif ButtonKind.SLOT in kinds:
        update["awaiting_confirmation"] = False
        update["state"] = ConversationState.SLOTS_SHOWN
    elif ButtonKind.CHOICE in kinds:
        update["awaiting_confirmation"] = False
        update["state"] = ConversationState.CHOICE_PRESENTED
    return context.model_copy(update=update)


def _apply_tap(context: BookingContext, message: TransportMessage, max_choices: int) -> BookingContext:
    try:
        parsed = parse_button_id(message.button_id)
    except ButtonIdError:
        logger.debug(f"Ignoring unknown button id in history: {message.button_id}")
        return context

    choice = ChoiceRecord(
        choice_id=message.button_id,
        selected_at=message.timestamp,
        result_metadata={"kind": parsed.kind.value},
    )
    context = add_choice(context, choice, max_choices)

    if parsed.kind == ButtonKind.SLOT:
        return context.model_copy(update={"pending_slot_id": parsed.slot_key})
    if parsed.kind == ButtonKind.ACTION:
        return context.model_copy(update={
            "awaiting_confirmation": False,
            "pending_slot_id": None,
        })
    return context
