"""
Test configuration and fixtures.

This module sets up test environment and provides shared fixtures for all tests:
an in-memory Redis replacement with TTL support driven by a controllable clock.
"""

import math
import os
import re
from datetime import UTC, date, datetime, time, timedelta

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Must be set BEFORE any imports of shared.config
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["TIMEZONE"] = "UTC"
os.environ["DEFAULT_LANGUAGE"] = "en"

from agent.services.models import SlotSuggestion  # noqa: E402
from shared.config import Settings, get_settings  # noqa: E402

get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock (timezone-aware UTC)."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 10, 20, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


def _redis_match(key: str, pattern: str) -> bool:
    """Redis MATCH semantics: *, ? and [...] with backslash escapes."""
    regex = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            i += 1
            regex.append(re.escape(pattern[i]))
        elif char == "*":
            regex.append(".*")
        elif char == "?":
            regex.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                regex.append(re.escape(char))
            else:
                body = pattern[i + 1:end].replace("\\", "\\\\")
                regex.append(f"[{body}]")
                i = end
        else:
            regex.append(re.escape(char))
        i += 1
    return re.fullmatch("".join(regex), key, re.DOTALL) is not None


class FakeRedis:
    """
    Minimal async Redis replacement covering the commands used by the core.

    Expiry is evaluated lazily against the shared FakeClock.
    """

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.data: dict[str, str] = {}
        self.expiry: dict[str, datetime] = {}

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self.data.pop(key, None)
            self.expiry.pop(key, None)

    async def get(self, key):
        self._purge(key)
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = self._clock() + timedelta(seconds=ex)
        else:
            self.expiry.pop(key, None)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            self._purge(key)
            if key in self.data:
                del self.data[key]
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def exists(self, *keys):
        count = 0
        for key in keys:
            self._purge(key)
            count += key in self.data
        return count

    async def expire(self, key, seconds):
        self._purge(key)
        if key not in self.data:
            return False
        self.expiry[key] = self._clock() + timedelta(seconds=seconds)
        return True

    async def ttl(self, key):
        self._purge(key)
        if key not in self.data:
            return -2
        deadline = self.expiry.get(key)
        if deadline is None:
            return -1
        return math.ceil((deadline - self._clock()).total_seconds())

    async def scan_iter(self, match=None):
        for key in list(self.data):
            self._purge(key)
            if key in self.data and (match is None or _redis_match(key, match)):
                yield key


class UnavailableRedis:
    """Redis replacement whose every command fails with a connection error."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")

        return fail

    async def scan_iter(self, match=None):
        raise RedisConnectionError("Connection refused")
        yield  # pragma: no cover


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def settings():
    return Settings()


def make_slot(
    slot_date: date,
    start: str,
    master_id: str = "m1",
    master_name: str = "Anna",
    duration: int = 60,
    price: int = 4500,
    service_id: str = "svc-1",
    service_name: str | None = "Haircut",
    slot_id: str | None = None,
) -> SlotSuggestion:
    """Build a SlotSuggestion starting at "HH:MM" on slot_date."""
    hour, minute = (int(part) for part in start.split(":"))
    start_time = time(hour, minute)
    end = datetime.combine(slot_date, start_time) + timedelta(minutes=duration)
    return SlotSuggestion(
        id=slot_id or f"{slot_date.isoformat()}-{start}-{master_id}",
        date=slot_date,
        start_time=start_time,
        end_time=end.time(),
        master_id=master_id,
        master_name=master_name,
        service_id=service_id,
        service_name=service_name,
        duration=duration,
        price=price,
    )


@pytest.fixture
def slot_factory():
    return make_slot


@pytest.fixture
def unavailable_redis():
    return UnavailableRedis()
