"""Timestamp helpers.

LiveChat expects Istanbul wall-clock time (UTC+3, no DST) written as if it
were UTC, so outbound dates are shifted by a fixed three hours instead of being
converted with a real timezone database.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

logger = logging.getLogger(__name__)

ISTANBUL_OFFSET = timedelta(hours=3)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: Any) -> datetime | None:
    """
    Parse an ISO8601 string into an aware UTC datetime. Naive values are read as UTC.

    Anything that is not a parseable string gives None and a warning.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        logger.warning(f"Ignoring non-string timestamp: {value!r}")
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring malformed timestamp: {value!r}")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_db(value: datetime | None) -> datetime | None:
    """Naive UTC form used for storage (SQLite keeps no tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_livechat_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    shifted = value.astimezone(timezone.utc) + ISTANBUL_OFFSET
    return shifted.strftime("%Y-%m-%dT%H:%M:%S.") + f"{shifted.microsecond // 1000:03d}Z"


def format_istanbul(value: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value.astimezone(timezone.utc) + ISTANBUL_OFFSET).strftime(fmt)
