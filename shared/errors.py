"""
Error taxonomy for the booking dialog core.

Every error raised by the core derives from BookingDialogError so callers can
catch the whole family at the orchestration boundary. Subclasses map to the
reaction the orchestrator takes:

- A missing session is not an error: lookups return None and the conversation restarts
- SessionExpiredError: TTL hard cap reached, recovery or restart
- DependencyUnavailableError: store/cache unreachable, degraded mode
- ValidationError (and subclasses): never render partial text, apologize instead
- AmbiguousRecoveryError: history replay produced no single context
"""


class BookingDialogError(Exception):
    """Base class for all booking dialog errors."""


class SessionExpiredError(BookingDialogError):
    """Session reached its hard TTL cap and cannot be refreshed."""

    def __init__(self, session_id: str, age_seconds: int):
        self.session_id = session_id
        self.age_seconds = age_seconds
        super().__init__(
            f"Session {session_id} expired (age={age_seconds}s exceeds hard cap)"
        )


class DependencyUnavailableError(BookingDialogError):
    """Key-value store, cache or upstream source is unreachable or timed out."""

    def __init__(self, dependency: str, operation: str, reason: str = ""):
        self.dependency = dependency
        self.operation = operation
        self.reason = reason
        message = f"{dependency} unavailable during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ValidationError(BookingDialogError):
    """Input that would produce malformed customer-facing output."""


class MissingTemplateParameterError(ValidationError):
    """Required template parameters were not supplied."""

    def __init__(self, key: str, missing: list[str]):
        self.key = key
        self.missing = missing
        super().__init__(
            f"Missing required parameters for message '{key}': {', '.join(missing)}"
        )


class UnknownMessageError(ValidationError):
    """Message key or choice scenario is not registered."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown message key: {key}")


class InvalidTargetError(ValidationError):
    """Target date or time for ranking is malformed."""

    def __init__(self, value: str, expected: str):
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid target '{value}' (expected {expected})")


class CardValidationError(ValidationError):
    """Interactive card cannot be built from the given input."""


class ButtonIdError(ValidationError):
    """Button or list row id is not a recognised composite id."""

    def __init__(self, button_id: str):
        self.button_id = button_id
        super().__init__(f"Malformed button id: {button_id!r}")


class AmbiguousRecoveryError(BookingDialogError):
    """Message history did not yield one unambiguous booking context."""

    def __init__(self, customer_id: str, candidates: int):
        self.customer_id = customer_id
        self.candidates = candidates
        super().__init__(
            f"Ambiguous recovery for customer {customer_id}: {candidates} candidate intents"
        )
