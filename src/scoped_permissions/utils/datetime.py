"""
DateTime utilities for consistent timezone handling.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get the current UTC time with timezone awareness.

    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC. Naive values are taken as UTC.

    Args:
        dt: Datetime to normalize, or None

    Returns:
        Aware UTC datetime, or None when dt is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_expired(expiry_time: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check if an expiry time has been reached.

    Args:
        expiry_time: The expiry datetime to check; None never expires
        now: Reference time, defaults to the current UTC time

    Returns:
        bool: True if expired, False otherwise
    """
    if expiry_time is None:
        return False
    current_time = ensure_utc(now) if now is not None else utc_now()
    return current_time >= ensure_utc(expiry_time)
