"""
Composite ids for interactive buttons and list rows.

Every id carries enough information to resolve a tap without a lookup:

    slot_{YYYY-MM-DD}_{HH:MM}_{master_id}     slot selection
    confirm_{YYYY-MM-DD}_{HH:MM}_{master_id}  booking confirmation
    choice_{choice_id}                        choice card option
    action_{name}                             fixed actions (e.g. action_change_slot)

master_id may itself contain underscores; it is always the last component.
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel

from agent.services.models import SlotSuggestion
from shared.errors import ButtonIdError

CHANGE_SLOT_ACTION = "change_slot"
CANCEL_ACTIONS = frozenset({"cancel", "cancel_booking"})


class ButtonKind(str, Enum):
    SLOT = "slot"
    CONFIRM = "confirm"
    CHOICE = "choice"
    ACTION = "action"


class ParsedButton(BaseModel):
    """Structured form of a composite button id."""

    kind: ButtonKind
    slot_date: dt.date | None = None
    slot_time: dt.time | None = None
    master_id: str | None = None
    value: str | None = None

    @property
    def slot_key(self) -> str | None:
        if self.slot_date is None or self.slot_time is None:
            return None
        return f"{self.slot_date.isoformat()}_{self.slot_time.strftime('%H:%M')}_{self.master_id}"


def slot_button_id(slot: SlotSuggestion) -> str:
    return f"{ButtonKind.SLOT.value}_{slot.slot_key}"


def confirm_button_id(slot: SlotSuggestion | str) -> str:
    """Confirmation id for a slot or an existing slot key."""
    key = slot if isinstance(slot, str) else slot.slot_key
    return f"{ButtonKind.CONFIRM.value}_{key}"


def choice_button_id(choice_id: str) -> str:
    return f"{ButtonKind.CHOICE.value}_{choice_id}"


def action_button_id(name: str) -> str:
    return f"{ButtonKind.ACTION.value}_{name}"


def parse_button_id(button_id: str) -> ParsedButton:
    """
    Parse a composite button id.

    Raises:
        ButtonIdError: Unknown prefix or malformed slot identity
    """
    prefix, sep, rest = (button_id or "").partition("_")
    if not sep or not rest:
        raise ButtonIdError(button_id)

    try:
        kind = ButtonKind(prefix)
    except ValueError as e:
        raise ButtonIdError(button_id) from e

    if kind in (ButtonKind.CHOICE, ButtonKind.ACTION):
        return ParsedButton(kind=kind, value=rest)

    parts = rest.split("_", 2)
    if len(parts) != 3 or not parts[2]:
        raise ButtonIdError(button_id)

    raw_date, raw_time, master_id = parts
    try:
        slot_date = dt.date.fromisoformat(raw_date)
        slot_time = dt.datetime.strptime(raw_time, "%H:%M").time()
    except ValueError as e:
        raise ButtonIdError(button_id) from e

    return ParsedButton(
        kind=kind,
        slot_date=slot_date,
        slot_time=slot_time,
        master_id=master_id,
        value=rest,
    )


def is_button_id(value: str | None) -> bool:
    """True when value looks like one of the composite ids (prefix check only)."""
    if not value:
        return False
    prefix = value.partition("_")[0]
    return prefix in {kind.value for kind in ButtonKind}
