"""Find a due date phrase in free text ("buy milk tomorrow")."""

from __future__ import annotations

import datetime as dt
import re

from flow_tasks.models import Due


_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

_PHRASE_RE = re.compile(
    r"\b(?:(?P<iso>\d{4}-\d{2}-\d{2})"
    r"|(?P<today>today)"
    r"|(?P<tomorrow>tomorrow|tmrw)"
    r"|(?P<next_week>next week)"
    r"|(?P<weekday>" + "|".join(_WEEKDAYS) + r"))\b",
    re.IGNORECASE,
)


def _resolve(match: re.Match[str], today: dt.date) -> dt.date | None:
    if match.group("iso"):
        try:
            return dt.date.fromisoformat(match.group("iso"))
        except ValueError:
            return None
    if match.group("today"):
        return today
    if match.group("tomorrow"):
        return today + dt.timedelta(days=1)
    if match.group("next_week"):
        return today + dt.timedelta(days=7)
    weekday = _WEEKDAYS[match.group("weekday").lower()]
    # Always the next such day; "monday" said on a Monday means a week out.
    days_ahead = (weekday - today.weekday() - 1) % 7 + 1
    return today + dt.timedelta(days=days_ahead)


def find_due(text: str, today: dt.date) -> tuple[Due, tuple[int, int]] | None:
    """Return the first date phrase in ``text`` as a Due plus its (start, end) span."""
    for match in _PHRASE_RE.finditer(text):
        day = _resolve(match, today)
        if day is None:
            continue
        due = Due.on(day)
        due.string = match.group(0)
        return due, match.span()
    return None


def split_due(text: str, today: dt.date) -> tuple[str, Due | None]:
    """Strip the first date phrase from ``text``; collapse the leftover whitespace."""
    found = find_due(text, today)
    if found is None:
        return text.strip(), None
    due, (start, end) = found
    content = " ".join((text[:start] + text[end:]).split())
    return content, due
