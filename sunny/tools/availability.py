"""
Business-hours validation against the published schedule.

There is no calendar integration: a booking request is acceptable when the
requested day is open and the requested time falls inside that day's
open/close window. Scheduling conflicts are resolved by staff later.
"""

import logging
import re
from datetime import date
from typing import Iterable, Optional

from sunny.schemas.knowledge_schema import BusinessHoursEntry

logger = logging.getLogger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

MONTHS = [
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
]

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?$")
_LONG_DATE = re.compile(r"^([a-z]+)\s+(\d{1,2})(?:,?\s*(\d{4}))?$")


def get_hours_for_day(
    day: str, schedule: Iterable[BusinessHoursEntry]
) -> Optional[BusinessHoursEntry]:
    """Return the schedule entry for a weekday name (case-insensitive)."""
    wanted = (day or "").strip().lower()
    for entry in schedule:
        if entry.day.strip().lower() == wanted:
            return entry
    return None


def is_within_hours(day: str, time: str, schedule: Iterable[BusinessHoursEntry]) -> bool:
    """Check a zero-padded ``HH:MM`` time against the day's open/close bounds.

    String comparison is valid because both sides are zero-padded 24-hour
    values. A day missing from the schedule, or without both bounds, is
    treated as closed.
    """
    entry = get_hours_for_day(day, schedule)
    if entry is None or not entry.open or not entry.close:
        return False
    return entry.open <= time <= entry.close


def _next_occurrence(month: int, day: int, year: Optional[int], today: date) -> Optional[date]:
    if year is not None:
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            return None
    for candidate_year in (today.year, today.year + 1):
        try:
            candidate = date(candidate_year, month, day)
        except ValueError:
            continue
        if candidate >= today:
            return candidate
    return None


def resolve_weekday(requested_date: str, today: date) -> Optional[str]:
    """Map a requested date to a weekday name.

    Accepts a bare weekday ("monday"), a slash date ("3/14", "3/14/2027")
    or a long date ("March 14", "March 14, 2027"). Dates without a year
    resolve to their next occurrence on or after ``today``.
    """
    value = (requested_date or "").strip().lower()
    if not value:
        return None

    for weekday in WEEKDAYS:
        if value == weekday.lower():
            return weekday

    resolved: Optional[date] = None
    slash = _SLASH_DATE.match(value)
    if slash:
        month, day = int(slash.group(1)), int(slash.group(2))
        year = int(slash.group(3)) if slash.group(3) else None
        resolved = _next_occurrence(month, day, year, today)
    else:
        long_date = _LONG_DATE.match(value)
        if long_date and long_date.group(1) in MONTHS:
            month = MONTHS.index(long_date.group(1)) + 1
            year = int(long_date.group(3)) if long_date.group(3) else None
            resolved = _next_occurrence(month, int(long_date.group(2)), year, today)

    if resolved is None:
        logger.debug("Could not resolve a weekday from %r", requested_date)
        return None
    return WEEKDAYS[resolved.weekday()]


def next_open_day(day: str, schedule: Iterable[BusinessHoursEntry]) -> Optional[str]:
    """Return the first open weekday after ``day``, wrapping around the week."""
    entries = list(schedule)
    try:
        start = [d.lower() for d in WEEKDAYS].index(day.lower())
    except ValueError:
        return None
    for offset in range(1, len(WEEKDAYS) + 1):
        candidate = WEEKDAYS[(start + offset) % len(WEEKDAYS)]
        entry = get_hours_for_day(candidate, entries)
        if entry is not None and entry.open and entry.close:
            return candidate
    return None


