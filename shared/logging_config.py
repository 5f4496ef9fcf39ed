"""
Structured JSON logging for the booking dialog core.

Every record becomes one JSON object per line on stderr. Session context is
attached by passing it through ``extra``:

    logger.info("Session saved", extra={"session_id": sid, "state": "slots_shown"})
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from shared.config import get_settings

# Attributes lifted from ``extra`` into the payload
CONTEXT_FIELDS = (
    "session_id",
    "customer_id",
    "salon_id",
    "language",
    "state",
    "degraded",
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class JSONFormatter(logging.Formatter):
    """
    Render a log record as a single JSON line.

    Fields: timestamp (ISO 8601, UTC), level, logger, message, any of
    CONTEXT_FIELDS present on the record, and exception when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {
                name: _jsonable(getattr(record, name))
                for name in CONTEXT_FIELDS
                if hasattr(record, name)
            }
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    """
    Install the JSON handler on the root logger.

    Args:
        level: Overrides LOG_LEVEL from settings when given

    Calling it again replaces the previous handler instead of stacking a
    second one.
    """
    level_name = (level or get_settings().LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(f"JSON logging enabled at {level_name}")
