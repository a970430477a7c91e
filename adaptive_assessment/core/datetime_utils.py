"""
Timezone helpers. Every timestamp the engine stores is UTC-aware.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Current time as an aware UTC datetime.

    Patch this function in tests to freeze the clock for sessions and reports.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Normalize a caller-supplied datetime to aware UTC.

    Naive values are taken to be UTC already; aware values in another zone are
    converted.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
