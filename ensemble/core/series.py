"""Event series rules — pure business logic.

One "create event on N dates" request expands into N occurrences sharing a
start/end time-of-day. Later edits either touch one occurrence (its date and
time may both move) or the whole series (only the time-of-day moves, each
occurrence keeps its own calendar date).

No I/O: this module only transforms data.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ensemble.config import settings
from ensemble.core.errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    """Start/end of one concrete event row."""

    start: datetime
    end: datetime


def _household_day(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(ZoneInfo(settings.TIMEZONE))
    return moment.date()


def parse_calendar_date(raw: object) -> date | None:
    """Return the calendar date of an ISO date/datetime value, or None.

    Aware datetimes are read in the household timezone, so a UTC instant
    late in the evening may land on the next day.
    """
    if isinstance(raw, datetime):
        return _household_day(raw)
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _household_day(datetime.fromisoformat(text))
    except ValueError:
        pass
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_time_of_day(hhmm: str) -> time:
    """Parse "H:MM"/"HH:MM" into a time. Raises ValueError on malformed input."""
    hour, _, minute = hhmm.strip().partition(":")
    return time(int(hour), int(minute))


def at(day: date, hhmm: str | time) -> datetime:
    """Combine a calendar date with a time-of-day."""
    tod = hhmm if isinstance(hhmm, time) else parse_time_of_day(hhmm)
    return datetime.combine(day, tod.replace(second=0, microsecond=0))


def plan_occurrences(dates: list[date], start_time: str, end_time: str) -> list[Occurrence]:
    """Expand a date set into one occurrence per date, in the given order."""
    return [Occurrence(start=at(d, start_time), end=at(d, end_time)) for d in dates]


def needs_series(dates: list[date]) -> bool:
    """A series anchor only exists for multi-date requests."""
    return len(dates) > 1


def resolve_edit_date(raw: str | None, current: date, strict: bool = False) -> date:
    """Resolve the date field of an edit against the event's current date.

    Accepts a JSON-encoded array of date strings (first element wins) or a
    bare date string. When nothing usable comes out, lenient mode keeps
    ``current``; strict mode raises InvalidInputError.
    """
    if raw is None or not raw.strip():
        return current

    candidate: object = raw
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        decoded = None
    if isinstance(decoded, list):
        candidate = decoded[0] if decoded else None
    elif isinstance(decoded, str):
        candidate = decoded

    parsed = parse_calendar_date(candidate)
    if parsed is None and candidate is not raw:
        parsed = parse_calendar_date(raw)
    if parsed is not None:
        return parsed

    if strict:
        raise InvalidInputError(f"Invalid date: {raw!r}")
    logger.warning("Ignoring unparseable event date %r, keeping %s", raw, current)
    return current


def reschedule_single(
    current: Occurrence,
    raw_date: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    strict: bool = False,
) -> Occurrence:
    """New start/end for a one-occurrence edit.

    Time-of-day survives a date change unless it is explicitly overridden.
    Both ends move to the new date.
    """
    if raw_date is None:
        return reschedule_in_series(current, start_time, end_time)
    new_day = resolve_edit_date(raw_date, current.start.date(), strict=strict)
    start = at(new_day, start_time or current.start.time())
    end = at(new_day, end_time or current.end.time())
    return Occurrence(start=start, end=end)


def reschedule_in_series(
    current: Occurrence, start_time: str | None = None, end_time: str | None = None,
) -> Occurrence:
    """New start/end for one sibling of a series-wide edit; dates never move."""
    start = at(current.start.date(), start_time) if start_time else current.start
    end = at(current.end.date(), end_time) if end_time else current.end
    return Occurrence(start=start, end=end)


def check_order(occurrence: Occurrence) -> None:
    if occurrence.end <= occurrence.start:
        raise InvalidInputError("End time must be after start time")


def format_when(moment: datetime) -> str:
    """Human summary used in notification messages, e.g. "02/03/2026 at 17:00"."""
    return moment.strftime("%d/%m/%Y at %H:%M")
