"""Timestamp helpers."""

from datetime import datetime, timezone

def now_utc() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
