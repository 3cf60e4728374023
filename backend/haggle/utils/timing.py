"""
Duration helpers for analytics.

WHAT: Timestamp differences and averages expressed in seconds
WHY: Insight and report code shares the same duration arithmetic
HOW: Plain functions over timezone-aware datetimes
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

SECONDS_PER_HOUR = 3600.0


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def seconds_between(start: datetime, end: datetime) -> float:
    return (ensure_aware(end) - ensure_aware(start)).total_seconds()


def mean(values: Iterable[float]) -> Optional[float]:
    """Arithmetic mean, or None for an empty input."""
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def duration_seconds(
    start: datetime,
    end: Optional[datetime] = None,
    *,
    now: Optional[datetime] = None
) -> float:
    """Elapsed seconds from start to end, or to now when the span is still open."""
    finish = end or now or utcnow()
    return seconds_between(start, finish)
