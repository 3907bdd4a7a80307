"""Quiet-hours parsing and window arithmetic.

Windows are half-open ``[start, end)`` in minutes since local midnight. A window
whose start is after its end wraps midnight (22:00-08:00 covers 22:00..23:59 and
00:00..07:59). A window whose start equals its end is empty.
"""

import re
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from herald.errors.exceptions import ValidationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str, field: str = "time") -> int:
    """Parse ``HH:mm`` (00:00-23:59) into minutes since midnight."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValidationError(
            f"{field} must be a 24h time in HH:mm format",
            details={"field": field, "value": value},
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(
            f"Unknown timezone '{name}'", details={"field": "timezone", "value": name}
        ) from exc


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def in_window(minute: int, start: int, end: int) -> bool:
    if start == end:
        return False
    if start < end:
        return start <= minute < end
    return minute >= start or minute < end


def window_end(local_now: datetime, start: int, end: int) -> datetime:
    """Next local datetime at which the window containing ``local_now`` closes."""
    end_today = datetime.combine(
        local_now.date(), time(end // 60, end % 60), tzinfo=local_now.tzinfo
    )
    if end_today <= local_now:
        end_today += timedelta(days=1)
    return end_today
