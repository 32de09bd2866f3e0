from __future__ import annotations
import time
from datetime import date, datetime, time as dtime, timedelta, tzinfo


def now_ts() -> int:
    return int(time.time())

def now_local(tz: tzinfo | None = None) -> datetime:
    """Current time in `tz`, or in the server's local zone when tz is None."""
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz=tz)

def today(tz: tzinfo | None = None) -> date:
    return now_local(tz).date()

def day_start_ts(day: date, tz: tzinfo | None = None) -> int:
    """Unix timestamp of local midnight at the start of `day`."""
    # A naive datetime's timestamp() is interpreted in the server's local zone.
    return int(datetime.combine(day, dtime.min, tzinfo=tz).timestamp())

def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[int, int]:
    """Half-open [start, end) timestamps of a calendar day; 23h or 25h on DST changes."""
    return day_start_ts(day, tz), day_start_ts(day + timedelta(days=1), tz)
