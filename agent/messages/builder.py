"""
MessageBuilder - multi-language empathetic message rendering.

Renders static templates (agent.messages.templates) with Jinja2. Templates are
compiled once at construction; rendering never returns partially interpolated
text: missing parameters raise MissingTemplateParameterError instead.

Lookup chains:
- Language: requested -> primary subtag -> default language
- Contextual variations: (business_type, tone) -> (business_type) -> generic
"""

import logging
from datetime import date
from functools import lru_cache
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, UndefinedError
from pydantic import BaseModel, Field

from agent.messages.locales import SUPPORTED_LANGUAGES, get_locale, normalize_language
from agent.messages.templates import (
    CHOICE_LABELS,
    CHOICE_SCENARIOS,
    MESSAGE_TEMPLATES,
    Emotion,
    MessageKey,
    MessageTemplate,
    VariationKey,
)
from shared.errors import MissingTemplateParameterError, UnknownMessageError

logger = logging.getLogger(__name__)


class ParameterValidation(BaseModel):
    """Result of checking template parameters."""

    valid: bool
    missing: list[str] = Field(default_factory=list)


class BusinessContext(BaseModel):
    """Business type and tone used to select a template variation."""

    business_type: str | None = None
    tone: str | None = None


class ChoiceOption(BaseModel):
    """One tappable choice on a choice card."""

    id: str
    label: str


class ChoiceCard(BaseModel):
    """Message plus the fixed set of choices for a dialog scenario."""

    scenario: str
    message: str
    emotion: Emotion
    choices: list[ChoiceOption]


class MessageBuilder:
    """
    Localized message renderer.

    Example:
        >>> builder = MessageBuilder()
        >>> builder.get_message("SLOT_TAKEN", "en", {"time": "15:00", "day": "Friday"})
        "Unfortunately, 15:00 on Friday is already booked 😔..."
    """

    def __init__(self, templates: dict[MessageKey, MessageTemplate] | None = None) -> None:
        self._templates = templates if templates is not None else MESSAGE_TEMPLATES
        self._env = Environment(undefined=StrictUndefined, autoescape=False)
        # (key, variation or None, language) -> compiled template
        self._compiled: dict[tuple[MessageKey, VariationKey | None, str], Template] = {}
        self._labels: dict[tuple[str, str], str] = {}
        self._compile()

    def _compile(self) -> None:
        for key, template in self._templates.items():
            for language, text in template.texts.items():
                self._compiled[(key, None, language)] = self._env.from_string(text)
            for variation, texts in template.variations.items():
                for language, text in texts.items():
                    self._compiled[(key, variation, language)] = self._env.from_string(text)

        for choice_id, labels in CHOICE_LABELS.items():
            for language, label in labels.items():
                self._labels[(choice_id, language)] = label

        logger.info(
            f"MessageBuilder compiled {len(self._compiled)} templates "
            f"for {len(self._templates)} message keys"
        )

    # =========================================================================
    # Lookup helpers
    # =========================================================================

    def _resolve_key(self, key: MessageKey | str) -> MessageKey:
        try:
            resolved = MessageKey(key)
        except ValueError as e:
            raise UnknownMessageError(str(key)) from e
        if resolved not in self._templates:
            raise UnknownMessageError(resolved.value)
        return resolved

    def _select(
        self,
        key: MessageKey,
        language: str,
        chain: list[VariationKey | None],
    ) -> Template:
        default = normalize_language(None)
        for lang in (language, default):
            for variation in chain:
                compiled = self._compiled.get((key, variation, lang))
                if compiled is not None:
                    return compiled
        # Every template defines English text
        return self._compiled[(key, None, "en")]

    def _render(self, key: MessageKey, compiled: Template, params: dict[str, Any]) -> str:
        try:
            text = compiled.render(**params)
        except UndefinedError as e:
            # Placeholder present in text but not declared as required
            raise MissingTemplateParameterError(key.value, [str(e)]) from e
        return self.format_with_limits(text, self._templates[key].max_lines)

    # =========================================================================
    # Public API
    # =========================================================================

    def validate_parameters(
        self, key: MessageKey | str, params: dict[str, Any] | None
    ) -> ParameterValidation:
        """
        Check that every required parameter of a template is supplied.

        None and empty-string values count as missing.
        """
        template = self._templates[self._resolve_key(key)]
        params = params or {}
        missing = [
            name for name in template.required_params
            if params.get(name) is None or params.get(name) == ""
        ]
        return ParameterValidation(valid=not missing, missing=missing)

    def get_message(
        self,
        key: MessageKey | str,
        language: str = "en",
        params: dict[str, Any] | None = None,
    ) -> str:
        """
        Render a message in the requested language.

        Args:
            key: Message template key
            language: Language tag (unsupported tags fall back to the default)
            params: Template parameters

        Returns:
            Fully interpolated message, truncated to the template's line limit

        Raises:
            UnknownMessageError: Key is not registered
            MissingTemplateParameterError: Required parameters are missing
        """
        resolved = self._resolve_key(key)
        params = params or {}

        validation = self.validate_parameters(resolved, params)
        if not validation.valid:
            logger.warning(
                f"Missing parameters for {resolved.value}: {validation.missing}"
            )
            raise MissingTemplateParameterError(resolved.value, validation.missing)

        compiled = self._select(resolved, normalize_language(language), [None])
        return self._render(resolved, compiled, params)

    def get_contextual_message(
        self,
        key: MessageKey | str,
        language: str = "en",
        business_context: BusinessContext | None = None,
        params: dict[str, Any] | None = None,
    ) -> str:
        """
        Render a message using the most specific business variation available.

        Lookup order: (business_type, tone) -> (business_type) -> generic text.
        Unknown business types or tones fall back silently.
        """
        resolved = self._resolve_key(key)
        params = params or {}

        validation = self.validate_parameters(resolved, params)
        if not validation.valid:
            raise MissingTemplateParameterError(resolved.value, validation.missing)

        chain: list[VariationKey | None] = []
        if business_context is not None and business_context.business_type:
            if business_context.tone:
                chain.append((business_context.business_type, business_context.tone))
            chain.append((business_context.business_type, None))
        chain.append(None)

        compiled = self._select(resolved, normalize_language(language), chain)
        return self._render(resolved, compiled, params)

    def get_choice_label(self, choice_id: str, language: str = "en") -> str:
        """Return the short button label for a choice id."""
        lang = normalize_language(language)
        label = self._labels.get((choice_id, lang)) or self._labels.get((choice_id, "en"))
        if label is None:
            raise UnknownMessageError(choice_id)
        return label

    def get_choice_card(
        self,
        scenario: str,
        language: str = "en",
        context: dict[str, Any] | None = None,
    ) -> ChoiceCard:
        """
        Build the message and fixed choice set for a dialog scenario.

        Scenarios: time_unavailable, day_full, week_full, incomplete_request,
        multiple_options, popular_times.

        Raises:
            UnknownMessageError: Scenario is not registered
            MissingTemplateParameterError: Scenario message lacks parameters
        """
        if scenario not in CHOICE_SCENARIOS:
            raise UnknownMessageError(scenario)

        key, choice_ids = CHOICE_SCENARIOS[scenario]
        message = self.get_message(key, language, context)
        choices = [
            ChoiceOption(id=choice_id, label=self.get_choice_label(choice_id, language))
            for choice_id in choice_ids
        ]

        logger.debug(f"Choice card built: scenario={scenario}, choices={list(choice_ids)}")

        return ChoiceCard(
            scenario=scenario,
            message=message,
            emotion=self.get_emotion(key),
            choices=choices,
        )

    def get_emotion(self, key: MessageKey | str) -> Emotion:
        """Return the emotion tag of a message."""
        return self._templates[self._resolve_key(key)].emotion

    @staticmethod
    def format_with_limits(message: str, max_lines: int) -> str:
        """
        Truncate a message to at most max_lines whole lines.

        Never cuts inside a line and always keeps the first line. Trailing
        blank lines left by truncation are dropped.
        """
        lines = message.split("\n")
        limit = max(1, max_lines)
        if len(lines) <= limit:
            return message

        kept = lines[:limit]
        while len(kept) > 1 and not kept[-1].strip():
            kept.pop()
        return "\n".join(kept)

    def get_available_messages(self) -> list[str]:
        """List registered message keys."""
        return [key.value for key in self._templates]

    def get_supported_languages(self) -> list[str]:
        return list(SUPPORTED_LANGUAGES)

    def get_proximity_text(self, delta_minutes: int, language: str = "en") -> str:
        """Localized time offset text, e.g. -60 -> "1 hour earlier"."""
        return get_locale(language).time_proximity(delta_minutes)

    def format_day(self, value: date, language: str = "en") -> str:
        """Localized weekday name used as the {{ day }} parameter."""
        return get_locale(language).weekday(value)

    def build_alternative_slots_message(
        self, alternatives: list[Any], language: str = "en"
    ) -> str:
        """Header shown above alternative slots, or NO_ALTERNATIVES when empty."""
        if not alternatives:
            return self.get_message(MessageKey.NO_ALTERNATIVES, language)
        return get_locale(language).alternatives_header

    def get_apology(self, language: str = "en") -> str:
        """Generic localized apology shown instead of any failed render."""
        return self.get_message(MessageKey.ERROR, language)


@lru_cache
def get_message_builder() -> MessageBuilder:
    """Shared MessageBuilder instance (templates compiled once per process)."""
    return MessageBuilder()
