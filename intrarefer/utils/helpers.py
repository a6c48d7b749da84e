"""
Helper utilities
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60

def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)

def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def days_until(moment: Optional[datetime], now: datetime) -> int:
    """
    Whole days left until a moment, rounded up

    Returns 0 once the moment has passed
    """
    if moment is None:
        return 0
    seconds = (ensure_aware(moment) - now).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def calculate_pages(total: int, size: int) -> int:
    """Calculate total pages"""
    return (total + size - 1) // size if size else 0
