"""
Interactive payloads (buttons, lists) and their composite ids.
"""

from agent.interactive.button_ids import (
    ButtonKind,
    ParsedButton,
    action_button_id,
    choice_button_id,
    confirm_button_id,
    is_button_id,
    parse_button_id,
    slot_button_id,
)
from agent.interactive.card_builder import InteractiveCardBuilder

__all__ = [
    "ButtonKind",
    "InteractiveCardBuilder",
    "ParsedButton",
    "action_button_id",
    "choice_button_id",
    "confirm_button_id",
    "is_button_id",
    "parse_button_id",
    "slot_button_id",
]
