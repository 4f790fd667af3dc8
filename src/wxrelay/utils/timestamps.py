"""Timestamp coercion shared by adapters and the normalizer."""

from datetime import datetime, timezone
from typing import Any

# Epoch values below this are seconds, at or above are milliseconds
_MILLIS_THRESHOLD = 10_000_000_000


def to_utc_datetime(value: Any) -> datetime | None:
    """Coerce unix seconds/millis, digit strings, ISO strings or datetimes.

    Naive values are taken as UTC. Anything unparseable returns None.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
            number = float(value)
            if number >= _MILLIS_THRESHOLD:
                number /= 1000
            return datetime.fromtimestamp(number, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Any) -> str | None:
    """ISO-8601 UTC string with millisecond precision, or None."""
    parsed = to_utc_datetime(value)
    if parsed is None:
        return None
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")
