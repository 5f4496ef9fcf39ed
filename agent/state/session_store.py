"""
SessionContextStore - TTL-backed booking context persistence in Redis.

Key pattern: session:{customer_id}:{salon_id}

TTL rules:
- Every save applies SESSION_DEFAULT_TTL_SECONDS (30 min)
- No save or extend may push expiry past SESSION_MAX_TTL_SECONDS (60 min)
  measured from the context's created_at
- get never refreshes the TTL and never returns a context past its hard cap

Every Redis call is bounded by REDIS_OPERATION_TIMEOUT_SECONDS. An unreachable
or slow store raises DependencyUnavailableError, which is distinct from
"not found" (None). Writes are last-write-wins.
"""

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from agent.state import recovery
from agent.state.helpers import add_choice as append_choice
from agent.state.helpers import transition
from agent.state.schemas import (
    BookingContext,
    ChoiceRecord,
    ConversationState,
    OriginalIntent,
    SessionMetadata,
    SessionStatistics,
    TransportMessage,
    make_session_id,
)
from shared.config import Settings, get_settings
from shared.errors import AmbiguousRecoveryError, SessionExpiredError
from shared.redis_client import escape_pattern, get_redis_client, scan_keys, with_timeout

logger = logging.getLogger(__name__)


class SessionContextStore:
    """
    Resumable booking session state.

    Example:
        >>> store = SessionContextStore()
        >>> ctx = await store.get("cust-1", "salon-1")
        >>> if ctx is None:
        ...     ctx = await store.save(store.new_context("cust-1", "salon-1", "en"))
    """

    def __init__(
        self,
        redis_getter: Callable = get_redis_client,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._redis_getter = redis_getter
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Helpers
    # =========================================================================

    def key(self, customer_id: str, salon_id: str) -> str:
        return f"{self._settings.SESSION_KEY_PREFIX}:{make_session_id(customer_id, salon_id)}"

    def _remaining_cap(self, created_at: datetime, now: datetime) -> int:
        """Seconds left before the hard cap (may be <= 0)."""
        age = (now - created_at).total_seconds()
        return math.floor(self._settings.SESSION_MAX_TTL_SECONDS - age)

    async def _read(self, key: str) -> BookingContext | None:
        client = self._redis_getter()
        raw = await with_timeout("session.get", client.get(key))
        if raw is None:
            return None
        try:
            return BookingContext.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(f"Discarding unreadable session {key}: {e}")
            await with_timeout("session.delete", client.delete(key))
            return None

    def new_context(
        self,
        customer_id: str,
        salon_id: str,
        language: str,
        original_intent: OriginalIntent | None = None,
    ) -> BookingContext:
        """Fresh context in the started state (not yet persisted)."""
        now = self._clock()
        return BookingContext(
            session_id=make_session_id(customer_id, salon_id),
            customer_id=customer_id,
            salon_id=salon_id,
            original_intent=original_intent or OriginalIntent(),
            language=language,
            created_at=now,
            last_interaction_at=now,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    async def save(self, context: BookingContext) -> BookingContext:
        """
        Upsert a context with TTL min(default, time left before the hard cap).

        created_at, language and a non-empty original_intent of an already
        stored context win over the values passed in.

        Returns:
            The context as stored

        Raises:
            SessionExpiredError: Hard cap already reached (key is removed)
            DependencyUnavailableError: Redis unreachable or slow
        """
        key = self.key(context.customer_id, context.salon_id)
        now = self._clock()

        existing = await self._read(key)
        if existing is not None:
            update = {}
            if existing.created_at != context.created_at:
                update["created_at"] = existing.created_at
            if existing.language != context.language:
                update["language"] = existing.language
            if (
                existing.original_intent != OriginalIntent()
                and existing.original_intent != context.original_intent
            ):
                logger.warning(
                    f"Ignoring original intent change for session {context.session_id}",
                    extra={"session_id": context.session_id},
                )
                update["original_intent"] = existing.original_intent
            if update:
                context = context.model_copy(update=update)

        remaining = self._remaining_cap(context.created_at, now)
        client = self._redis_getter()
        if remaining <= 0:
            await with_timeout("session.delete", client.delete(key))
            raise SessionExpiredError(
                context.session_id, int((now - context.created_at).total_seconds())
            )

        ttl = min(self._settings.SESSION_DEFAULT_TTL_SECONDS, remaining)
        await with_timeout(
            "session.set",
            client.set(key, context.model_dump_json(), ex=ttl),
        )

        logger.debug(
            f"Session saved: {key} (state={context.state.value}, ttl={ttl}s)",
            extra={"session_id": context.session_id, "state": context.state.value},
        )
        return context

    async def get(self, customer_id: str, salon_id: str) -> BookingContext | None:
        """
        Fetch a context without touching its TTL.

        Returns:
            The stored context, or None when missing, expired or past the hard cap

        Raises:
            DependencyUnavailableError: Redis unreachable or slow
        """
        key = self.key(customer_id, salon_id)
        context = await self._read(key)
        if context is None:
            logger.debug(f"Session not found: {key}")
            return None
        return await self._unless_capped(key, context)

    async def _unless_capped(self, key: str, context: BookingContext) -> BookingContext | None:
        if self._remaining_cap(context.created_at, self._clock()) <= 0:
            logger.info(f"Session past hard cap, removing: {key}")
            await with_timeout("session.delete", self._redis_getter().delete(key))
            return None
        return context

    async def get_by_customer(
        self, customer_id: str, salon_id: str | None = None
    ) -> BookingContext | None:
        """
        Most recently active context of a customer (optionally for one salon).
        """
        if salon_id is not None:
            return await self.get(customer_id, salon_id)

        client = self._redis_getter()
        pattern = f"{self._settings.SESSION_KEY_PREFIX}:{escape_pattern(customer_id)}:*"
        keys = await with_timeout("session.scan", scan_keys(client, pattern))

        latest: BookingContext | None = None
        for key in keys:
            context = await self._read(key)
            # ids may contain ":", so customer "cust" also matches keys of "cust:1"
            if context is None or context.customer_id != customer_id:
                continue
            context = await self._unless_capped(key, context)
            if context is not None and (
                latest is None or context.last_interaction_at > latest.last_interaction_at
            ):
                latest = context
        return latest

    async def exists(self, customer_id: str, salon_id: str) -> bool:
        client = self._redis_getter()
        return bool(await with_timeout("session.exists", client.exists(self.key(customer_id, salon_id))))

    async def extend(
        self,
        customer_id: str,
        salon_id: str,
        seconds: int | None = None,
    ) -> int | None:
        """
        Add time to a session, never past the hard cap.

        Args:
            seconds: Extra seconds (default: SESSION_EXTENSION_SECONDS, 15 min)

        Returns:
            New TTL in seconds, or None if the session does not exist

        Raises:
            SessionExpiredError: Hard cap already reached (key is removed)
        """
        if seconds is None:
            seconds = self._settings.SESSION_EXTENSION_SECONDS

        key = self.key(customer_id, salon_id)
        context = await self._read(key)
        if context is None:
            return None

        client = self._redis_getter()
        now = self._clock()
        remaining = self._remaining_cap(context.created_at, now)
        if remaining <= 0:
            await with_timeout("session.delete", client.delete(key))
            raise SessionExpiredError(
                context.session_id, int((now - context.created_at).total_seconds())
            )

        current = await with_timeout("session.ttl", client.ttl(key))
        if current == -2:
            return None
        base = current if current > 0 else 0
        new_ttl = min(base + seconds, remaining)

        await with_timeout("session.expire", client.expire(key, new_ttl))
        logger.debug(f"Session extended: {key} ({current}s -> {new_ttl}s)")
        return new_ttl

    async def update_state(
        self,
        customer_id: str,
        salon_id: str,
        state: ConversationState,
    ) -> BookingContext | None:
        """
        Move a session to a new state.

        Terminal states (confirmed, abandoned) delete the session and return
        the final context.

        Returns:
            Updated context, or None if the session does not exist
        """
        context = await self.get(customer_id, salon_id)
        if context is None:
            return None

        updated = transition(context, state, self._clock())
        if state.is_terminal:
            await self.delete(customer_id, salon_id)
            return updated
        return await self.save(updated)

    async def add_choice(
        self,
        customer_id: str,
        salon_id: str,
        choice: ChoiceRecord,
    ) -> BookingContext | None:
        """
        Append a choice (FIFO, newest SESSION_MAX_CHOICES kept) and save.

        Returns:
            Updated context, or None if the session no longer exists
        """
        context = await self.get(customer_id, salon_id)
        if context is None:
            return None

        updated = append_choice(context, choice, self._settings.SESSION_MAX_CHOICES)
        updated = updated.model_copy(update={"last_interaction_at": self._clock()})
        return await self.save(updated)

    async def delete(self, customer_id: str, salon_id: str) -> bool:
        client = self._redis_getter()
        deleted = await with_timeout("session.delete", client.delete(self.key(customer_id, salon_id)))
        return bool(deleted)

    async def get_metadata(self, customer_id: str, salon_id: str) -> SessionMetadata:
        """TTL and summary fields of a session, without returning the full context."""
        key = self.key(customer_id, salon_id)
        context = await self._read(key)
        if context is None:
            return SessionMetadata(exists=False)

        ttl = await with_timeout("session.ttl", self._redis_getter().ttl(key))
        return SessionMetadata(
            exists=True,
            ttl=ttl if ttl >= 0 else None,
            state=context.state,
            created_at=context.created_at,
            last_interaction_at=context.last_interaction_at,
            message_count=context.message_count,
            choice_count=len(context.choice_history),
        )

    def recover_from_history(
        self,
        customer_id: str,
        salon_id: str,
        messages: list[TransportMessage],
    ) -> BookingContext | None:
        """
        Rebuild a context from message history. The result is not persisted.

        Returns:
            Recovered context, or None when nothing can be recovered or the
            history is ambiguous
        """
        try:
            return recovery.replay_history(
                customer_id,
                salon_id,
                messages,
                default_language=self._settings.DEFAULT_LANGUAGE,
                now=self._clock(),
                max_age_seconds=self._settings.SESSION_MAX_TTL_SECONDS,
                max_choices=self._settings.SESSION_MAX_CHOICES,
            )
        except AmbiguousRecoveryError as e:
            logger.info(f"Recovery skipped: {e}", extra={"customer_id": customer_id})
            return None

    async def cleanup(self) -> int:
        """
        Remove sessions that lost their expiry and are past the hard cap.

        Keys with a remaining TTL are never touched; keys without an expiry
        but still inside the cap get their TTL re-armed. Safe to run
        concurrently.

        Returns:
            Number of sessions removed
        """
        client = self._redis_getter()
        keys = await with_timeout(
            "session.scan", scan_keys(client, f"{self._settings.SESSION_KEY_PREFIX}:*")
        )
        now = self._clock()
        removed = 0

        for key in keys:
            ttl = await with_timeout("session.ttl", client.ttl(key))
            if ttl != -1:
                continue

            context = await self._read(key)
            if context is None:
                continue

            remaining = self._remaining_cap(context.created_at, now)
            if remaining <= 0:
                removed += await with_timeout("session.delete", client.delete(key))
            else:
                ttl = min(self._settings.SESSION_DEFAULT_TTL_SECONDS, remaining)
                await with_timeout("session.expire", client.expire(key, ttl))

        if removed:
            logger.info(f"Session cleanup removed {removed} stale sessions")
        return removed

    async def get_active_count(self, salon_id: str | None = None) -> int:
        """Number of live sessions, optionally for one salon."""
        prefix = self._settings.SESSION_KEY_PREFIX
        pattern = f"{prefix}:*:{escape_pattern(salon_id)}" if salon_id else f"{prefix}:*"
        keys = await with_timeout("session.scan", scan_keys(self._redis_getter(), pattern))
        return len(keys)

    async def get_statistics(self) -> SessionStatistics:
        """Active session count and average remaining TTL."""
        client = self._redis_getter()
        keys = await with_timeout(
            "session.scan", scan_keys(client, f"{self._settings.SESSION_KEY_PREFIX}:*")
        )
        ttls = []
        for key in keys:
            ttl = await with_timeout("session.ttl", client.ttl(key))
            if ttl > 0:
                ttls.append(ttl)

        return SessionStatistics(
            total_active=len(keys),
            average_ttl_seconds=round(sum(ttls) / len(ttls), 2) if ttls else 0.0,
        )
