"""
Choice history helpers for BookingContext.

This module provides utilities for managing the choice history of a booking
context, implementing FIFO (First In First Out) windowing to keep at most
the 10 most recent choices.
"""

import logging
from datetime import UTC, datetime

from agent.state.schemas import BookingContext, ChoiceRecord, ConversationState

logger = logging.getLogger(__name__)

# Maximum number of choices retained in the context
MAX_CHOICES = 10


def add_choice(
    context: BookingContext,
    choice: ChoiceRecord,
    max_choices: int = MAX_CHOICES,
) -> BookingContext:
    """
    Append a choice to the context with FIFO windowing.

    Identical choices are not deduplicated: each call appends one entry, and
    the oldest entries are evicted once the window is full.

    Args:
        context: Current booking context (not mutated)
        choice: Choice to append
        max_choices: Window size

    Returns:
        New BookingContext with the updated choice history

    Example:
        >>> ctx = add_choice(ctx, ChoiceRecord(choice_id="popular_times", selected_at=now))
        >>> ctx.choice_history[-1].choice_id
        'popular_times'
    """
    history = list(context.choice_history)
    history.append(choice)

    if len(history) > max_choices:
        removed = len(history) - max_choices
        history = history[-max_choices:]
        logger.debug(
            f"Choice window exceeded for session {context.session_id}: "
            f"removed {removed} oldest choices"
        )

    return context.model_copy(update={"choice_history": history})


def transition(
    context: BookingContext,
    new_state: ConversationState,
    now: datetime | None = None,
) -> BookingContext:
    """Return a copy of the context in new_state with last_interaction_at refreshed."""
    if context.state != new_state:
        logger.info(
            f"Session {context.session_id}: {context.state.value} -> {new_state.value}",
            extra={"session_id": context.session_id, "state": new_state.value},
        )
    return context.model_copy(update={
        "state": new_state,
        "last_interaction_at": now or datetime.now(UTC),
    })
