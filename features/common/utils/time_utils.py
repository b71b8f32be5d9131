from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)

def to_millis(dt: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(round(dt.timestamp() * 1000))

def from_millis(millis: int, tz: tzinfo = timezone.utc) -> datetime:
    """Convert epoch milliseconds to an aware datetime in ``tz``."""
    return datetime.fromtimestamp(millis / 1000, tz=tz)

def station_timezone(offset_seconds: Optional[int]) -> timezone:
    """Fixed-offset zone for a station clock. Defaults to UTC."""
    if not offset_seconds:
        return timezone.utc
    return timezone(timedelta(seconds=offset_seconds))

def date_span(first: date, last: date) -> List[date]:
    """All calendar dates from ``first`` to ``last`` inclusive."""
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]
