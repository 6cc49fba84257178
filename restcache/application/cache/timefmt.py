"""Human-readable rendering of cache expiry times."""

import math
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from ...constants import (
    DAY_IN_SECONDS,
    DEFAULT_CACHE_TIMEZONE,
    EXPIRY_MONTH_NAMES,
    HOUR_IN_SECONDS,
    MINUTE_IN_SECONDS,
    MONTH_IN_SECONDS,
    WEEK_IN_SECONDS,
    YEAR_IN_SECONDS,
)


@lru_cache(maxsize=32)
def _zone(tz_name: str) -> ZoneInfo:
    return ZoneInfo(tz_name)


def format_expiry(expires_at: float, tz_name: str = DEFAULT_CACHE_TIMEZONE) -> str:
    """Render an epoch timestamp as ``"October 17, 2026, 3:05 PM"``."""
    moment = datetime.fromtimestamp(expires_at, timezone.utc).astimezone(_zone(tz_name))
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{EXPIRY_MONTH_NAMES[moment.month - 1]} {moment.day}, {moment.year}, "
        f"{hour}:{moment.minute:02d} {meridiem}"
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def human_time_diff(from_ts: float, to_ts: float) -> str:
    """Describe the distance between two timestamps in the largest sensible unit.

    The result is always at least one unit (``"1 second"``), and each unit is
    rounded half up before being pluralised.
    """
    diff = int(abs(to_ts - from_ts))

    if diff < MINUTE_IN_SECONDS:
        return _plural(max(diff, 1), "second", "seconds")
    if diff < HOUR_IN_SECONDS:
        return _plural(max(_round_half_up(diff / MINUTE_IN_SECONDS), 1), "min", "mins")
    if diff < DAY_IN_SECONDS:
        return _plural(max(_round_half_up(diff / HOUR_IN_SECONDS), 1), "hour", "hours")
    if diff < WEEK_IN_SECONDS:
        return _plural(max(_round_half_up(diff / DAY_IN_SECONDS), 1), "day", "days")
    if diff < MONTH_IN_SECONDS:
        return _plural(max(_round_half_up(diff / WEEK_IN_SECONDS), 1), "week", "weeks")
    if diff < YEAR_IN_SECONDS:
        return _plural(max(_round_half_up(diff / MONTH_IN_SECONDS), 1), "month", "months")
    return _plural(max(_round_half_up(diff / YEAR_IN_SECONDS), 1), "year", "years")
