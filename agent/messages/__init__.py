"""
Localized message rendering.

- locales: per-language formatting data (weekdays, currency, proximity text)
- templates: static message templates and choice labels
- builder: MessageBuilder, the rendering entry point
"""

from agent.messages.builder import (
    BusinessContext,
    ChoiceCard,
    ChoiceOption,
    MessageBuilder,
    ParameterValidation,
    get_message_builder,
)
from agent.messages.locales import (
    LOCALES,
    SUPPORTED_LANGUAGES,
    LocaleProfile,
    get_locale,
    normalize_language,
)
from agent.messages.templates import Emotion, MessageKey

__all__ = [
    "BusinessContext",
    "ChoiceCard",
    "ChoiceOption",
    "Emotion",
    "LOCALES",
    "LocaleProfile",
    "MessageBuilder",
    "MessageKey",
    "ParameterValidation",
    "SUPPORTED_LANGUAGES",
    "get_locale",
    "get_message_builder",
    "normalize_language",
]
