"""
Opening-hours evaluation for provider schedules.

Every function here is pure in (schedule, now) and returns None instead of
raising when a schedule cannot be interpreted. An unknown open/closed state
is a normal outcome, not an error.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from domain.models import OpeningHours

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY
# Provider day indices start on Sunday.
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def sunday_based_weekday(now: datetime) -> int:
    return (now.weekday() + 1) % 7


def local_time(now: datetime, utc_offset_minutes: Optional[int]) -> datetime:
    """Shift `now` to the place's wall clock when the provider gives an offset."""
    if utc_offset_minutes is None:
        return now
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now + timedelta(minutes=utc_offset_minutes)


def _hhmm_to_minutes(value: str) -> int:
    digits = value.replace(":", "").strip()
    if len(digits) != 4 or not digits.isdigit():
        raise ValueError(f"bad time {value!r}")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 24 or minutes > 59:
        raise ValueError(f"bad time {value!r}")
    return hours * 60 + minutes


def _week_minute(point: dict) -> int:
    day = int(point["day"])
    if not 0 <= day <= 6:
        raise ValueError(f"bad day {day!r}")
    return day * MINUTES_PER_DAY + _hhmm_to_minutes(str(point["time"]))


def google_open_now(periods: Any, now: datetime) -> Optional[bool]:
    """
    Evaluate Google `periods` ({open: {day, time}, close: {day, time}}).

    A single period that opens Sunday 0000 with no close means open 24/7.
    """
    if not isinstance(periods, list) or not periods:
        return None
    current = sunday_based_weekday(now) * MINUTES_PER_DAY + now.hour * 60 + now.minute
    try:
        for period in periods:
            start = _week_minute(period["open"])
            close = period.get("close")
            if close is None:
                if len(periods) == 1 and start == 0:
                    return True
                return None
            end = _week_minute(close)
            if end <= start:
                end += MINUTES_PER_WEEK
            if start <= current < end or start <= current + MINUTES_PER_WEEK < end:
                return True
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.debug("Unparseable Google periods: %s", exc)
        return None
    return False


def evaluate_google_hours(
    opening_hours: Any,
    now: datetime,
    utc_offset_minutes: Optional[int] = None,
) -> Optional[OpeningHours]:
    if not isinstance(opening_hours, dict):
        return None
    open_now = google_open_now(opening_hours.get("periods"), local_time(now, utc_offset_minutes))
    if open_now is None and isinstance(opening_hours.get("open_now"), bool):
        open_now = opening_hours["open_now"]
    weekday_text = opening_hours.get("weekday_text")
    if not isinstance(weekday_text, list):
        weekday_text = []
    return OpeningHours(open_now=open_now, weekday_text=[str(t) for t in weekday_text])


def _radar_ranges(day_hours: Any) -> List[tuple]:
    if not isinstance(day_hours, list):
        raise ValueError("day hours must be a list")
    return [(_hhmm_to_minutes(p["start"]), _hhmm_to_minutes(p["end"])) for p in day_hours]


def radar_open_now(hours: Any, now: datetime) -> Optional[bool]:
    """Evaluate a 7-day list (index 0 = Sunday) of {start, end} "HH:MM" periods."""
    if not isinstance(hours, list) or len(hours) != 7:
        return None
    today = sunday_based_weekday(now)
    yesterday = (today - 1) % 7
    current = now.hour * 60 + now.minute
    try:
        for start, end in _radar_ranges(hours[today]):
            if end <= start:
                if current >= start:
                    return True
            elif start <= current < end:
                return True
        # Ranges past midnight from the previous day still count.
        for start, end in _radar_ranges(hours[yesterday]):
            if end <= start and current < end:
                return True
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug("Unparseable Radar hours: %s", exc)
        return None
    return False


def radar_weekday_text(hours: Any) -> List[str]:
    """Monday-first lines such as "Monday: 09:00-17:00" or "Sunday: Closed"."""
    if not isinstance(hours, list) or len(hours) != 7:
        return []
    lines = []
    for index in list(range(1, 7)) + [0]:
        day_hours = hours[index] if isinstance(hours[index], list) else []
        ranges = ", ".join(
            f"{p.get('start')}-{p.get('end')}" for p in day_hours if isinstance(p, dict)
        )
        lines.append(f"{DAY_NAMES[index]}: {ranges or 'Closed'}")
    return lines


def evaluate_radar_hours(hours: Any, now: datetime) -> Optional[OpeningHours]:
    if not hours:
        return None
    return OpeningHours(open_now=radar_open_now(hours, now), weekday_text=radar_weekday_text(hours))
