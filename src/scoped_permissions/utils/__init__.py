"""Utilities module for scoped-permissions."""

from .datetime import utc_now, ensure_utc, is_expired

__all__ = [
    "utc_now",
    "ensure_utc",
    "is_expired",
]
