"""
Storefront - Shared Helpers
============================
Pure utility functions with NO database or module dependencies.
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC. Naive values are assumed to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_idr(value) -> str:
    """Format a whole-rupiah amount with dot thousands separators, e.g. 'Rp 90.000'."""
    if value is None:
        return "Rp 0"
    try:
        v = int(value)
    except (ValueError, TypeError):
        return str(value)
    sign = "-" if v < 0 else ""
    return f"{sign}Rp {abs(v):,}".replace(",", ".")


def percent_of(part: int, whole: int) -> int:
    """Integer percentage of part in whole, halves rounded up (0 when whole is 0)."""
    if not whole:
        return 0
    return (part * 200 + whole) // (2 * whole)
