"""
Timestamp helpers.

All persisted timestamps are integer epoch milliseconds. Older records written
by clients that stored ISO-8601 text are converted on read by 'to_timestamp'.
"""

import time
from datetime import datetime, timezone
from typing import Any


def get_current_timestamp() -> int:
    """Current time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def to_timestamp(value: Any) -> int | None:
    """Coerce a stored timestamp (int, float, digit string or ISO-8601 text) to epoch ms."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    raise ValueError(f"Not a timestamp: {value!r}")
