"""
InteractiveCardBuilder - channel payloads for the zero-typing dialog.

Builds WhatsApp-style interactive payloads:

- 1-3 slots: reply-button card (button title <= 20 chars, "Fri 15:00")
- 4-10 slots: list card, rows grouped by date in first-seen order
  (row title <= 24 chars, description "1h • $45.00")
- Choice card: 1-3 reply buttons with choice_{id} ids
- Confirmation card: exactly two buttons, confirm and change
- Plain text message

The builder renders what it is given: it never re-ranks, drops or pads slots.
Callers must truncate candidate lists to MAX_SLOT_OPTIONS first.
"""

import logging
from typing import Any

from agent.interactive.button_ids import (
    CHANGE_SLOT_ACTION,
    action_button_id,
    choice_button_id,
    confirm_button_id,
    slot_button_id,
)
from agent.messages.builder import ChoiceCard
from agent.messages.locales import LocaleProfile, get_locale
from agent.services.models import RankedSlot, SlotSuggestion
from shared.config import Settings, get_settings
from shared.errors import CardValidationError

logger = logging.getLogger(__name__)

# Channel limits (WhatsApp Cloud API interactive messages)
MAX_BUTTONS = 3
BUTTON_TITLE_MAX = 20
ROW_TITLE_MAX = 24
ROW_DESCRIPTION_MAX = 72
SECTION_TITLE_MAX = 24
HEADER_MAX = 60
BODY_MAX = 1024
FOOTER_MAX = 60
STAR = "⭐"


def truncate(text: str, limit: int) -> str:
    """Cut text to limit characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


class InteractiveCardBuilder:
    """
    Builds interactive message payloads.

    Example:
        >>> builder = InteractiveCardBuilder()
        >>> card = builder.build_slot_selection_card(slots[:3], "en")
        >>> card["type"]
        'button'
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    # =========================================================================
    # Slot selection
    # =========================================================================

    def build_slot_selection_card(
        self,
        slots: list[SlotSuggestion],
        language: str = "en",
        message: str | None = None,
    ) -> dict[str, Any]:
        """
        Build a slot picker: buttons for 1-3 slots, a grouped list for 4-10.

        Args:
            slots: Slots in display order
            language: Language tag for localization
            message: Optional body text replacing the default prompt

        Raises:
            CardValidationError: No slots, or more than MAX_SLOT_OPTIONS
        """
        return self._build_slot_card(slots, language, message, decorations={})

    def build_alternative_slots_card(
        self,
        alternatives: list[RankedSlot],
        language: str = "en",
        header_message: str | None = None,
    ) -> dict[str, Any]:
        """
        Slot picker for ranked alternatives, keeping star and proximity text.

        Raises:
            CardValidationError: No alternatives, or more than MAX_SLOT_OPTIONS
        """
        if not alternatives:
            raise CardValidationError("No alternatives provided for card building")

        decorations = {ranked.slot.id: ranked for ranked in alternatives}
        slots = [ranked.slot for ranked in alternatives]
        return self._build_slot_card(slots, language, header_message, decorations)

    def _build_slot_card(
        self,
        slots: list[SlotSuggestion],
        language: str,
        message: str | None,
        decorations: dict[str, RankedSlot],
    ) -> dict[str, Any]:
        max_options = self._settings.MAX_SLOT_OPTIONS
        if not slots:
            raise CardValidationError("Cannot build a slot card without slots")
        if len(slots) > max_options:
            raise CardValidationError(
                f"Too many slots for one card: {len(slots)} (max {max_options})"
            )

        locale = get_locale(language)
        if len(slots) <= MAX_BUTTONS:
            card = self._button_card(slots, locale, message, decorations)
        else:
            card = self._list_card(slots, locale, message, decorations)

        logger.debug(
            f"Built {card['type']} slot card with {len(slots)} slots (language={locale.code})"
        )
        return card

    def _frame(self, locale: LocaleProfile, service_name: str | None, message: str | None) -> dict:
        if message:
            body = message
        elif service_name:
            body = locale.card_body.format(service=service_name)
        else:
            body = locale.card_body_generic
        return {
            "header": {"type": "text", "text": truncate(locale.card_header, HEADER_MAX)},
            "body": {"text": truncate(body, BODY_MAX)},
            "footer": {"text": truncate(locale.card_footer, FOOTER_MAX)},
        }

    def _button_card(
        self,
        slots: list[SlotSuggestion],
        locale: LocaleProfile,
        message: str | None,
        decorations: dict[str, RankedSlot],
    ) -> dict[str, Any]:
        buttons = []
        for slot in slots:
            title = f"{locale.weekday_short(slot.date)} {slot.start_time.strftime('%H:%M')}"
            ranked = decorations.get(slot.id)
            if ranked is not None and ranked.indicators.starred:
                title = f"{STAR} {title}"
            buttons.append({
                "type": "reply",
                "reply": {
                    "id": slot_button_id(slot),
                    "title": truncate(title, BUTTON_TITLE_MAX),
                },
            })

        return {
            "type": "button",
            **self._frame(locale, slots[0].service_name, message),
            "action": {"buttons": buttons},
        }

    def _list_card(
        self,
        slots: list[SlotSuggestion],
        locale: LocaleProfile,
        message: str | None,
        decorations: dict[str, RankedSlot],
    ) -> dict[str, Any]:
        # dicts keep insertion order: sections follow first appearance of each date
        grouped: dict = {}
        for slot in slots:
            grouped.setdefault(slot.date, []).append(slot)

        sections = []
        for slot_date, date_slots in grouped.items():
            rows = []
            for slot in date_slots:
                title = f"{slot.start_time.strftime('%H:%M')} - {slot.master_name}"
                description = (
                    f"{locale.format_duration(slot.duration)} • {locale.format_price(slot.price)}"
                )
                ranked = decorations.get(slot.id)
                if ranked is not None and ranked.indicators.starred:
                    title = f"{STAR} {title}"
                if ranked is not None and ranked.indicators.proximity_text:
                    description = f"{ranked.indicators.proximity_text} • {description}"
                rows.append({
                    "id": slot_button_id(slot),
                    "title": truncate(title, ROW_TITLE_MAX),
                    "description": truncate(description, ROW_DESCRIPTION_MAX),
                })
            sections.append({
                "title": truncate(locale.format_long_date(slot_date), SECTION_TITLE_MAX),
                "rows": rows,
            })

        return {
            "type": "list",
            **self._frame(locale, slots[0].service_name, message),
            "action": {
                "button": truncate(locale.list_button, BUTTON_TITLE_MAX),
                "sections": sections,
            },
        }

    # =========================================================================
    # Choice, confirmation and text
    # =========================================================================

    def build_choice_card(self, options: ChoiceCard) -> dict[str, Any]:
        """
        Reply-button card for a dialog scenario (choice_{id} ids).

        Raises:
            CardValidationError: Fewer than 1 or more than 3 choices
        """
        if not 1 <= len(options.choices) <= MAX_BUTTONS:
            raise CardValidationError(
                f"Choice card needs 1-{MAX_BUTTONS} choices, got {len(options.choices)}"
            )

        logger.debug(f"Building choice card with {len(options.choices)} choices")

        return {
            "type": "button",
            "body": {"text": truncate(options.message, BODY_MAX)},
            "action": {
                "buttons": [
                    {
                        "type": "reply",
                        "reply": {
                            "id": choice_button_id(choice.id),
                            "title": truncate(choice.label, BUTTON_TITLE_MAX),
                        },
                    }
                    for choice in options.choices
                ],
            },
        }

    def build_confirmation_card(self, slot: SlotSuggestion, language: str = "en") -> dict[str, Any]:
        """Booking confirmation with exactly two actions: confirm and change."""
        locale = get_locale(language)
        body = locale.confirm_body.format(
            service=slot.service_name or slot.service_id,
            date=locale.format_long_date(slot.date),
            time=slot.start_time.strftime("%H:%M"),
            master=slot.master_name,
        )

        logger.debug(f"Building confirmation card for slot {slot.id}")

        return {
            "type": "button",
            "body": {"text": truncate(body, BODY_MAX)},
            "footer": {"text": truncate(locale.card_footer, FOOTER_MAX)},
            "action": {
                "buttons": [
                    {
                        "type": "reply",
                        "reply": {
                            "id": confirm_button_id(slot),
                            "title": truncate(locale.confirm_button, BUTTON_TITLE_MAX),
                        },
                    },
                    {
                        "type": "reply",
                        "reply": {
                            "id": action_button_id(CHANGE_SLOT_ACTION),
                            "title": truncate(locale.change_button, BUTTON_TITLE_MAX),
                        },
                    },
                ],
            },
        }

    @staticmethod
    def build_text_message(text: str) -> dict[str, Any]:
        return {"type": "text", "text": {"body": text}}

    @staticmethod
    def extract_option_ids(payload: dict[str, Any]) -> list[str]:
        """Ids of every button or list row in a payload, in display order."""
        action = payload.get("action", {})
        if "buttons" in action:
            return [button["reply"]["id"] for button in action["buttons"]]
        return [
            row["id"]
            for section in action.get("sections", [])
            for row in section["rows"]
        ]
