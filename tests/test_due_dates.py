from __future__ import annotations

import datetime as dt

import pytest

from flow_tasks.due_dates import find_due, split_due
from flow_tasks.models import Due

# A Monday.
TODAY = dt.date(2026, 10, 19)


@pytest.mark.parametrize(
    ("text", "content", "date"),
    [
        ("buy milk today", "buy milk", "2026-10-19"),
        ("buy milk tomorrow", "buy milk", "2026-10-20"),
        ("call mom tmrw please", "call mom please", "2026-10-20"),
        ("Review next week", "Review", "2026-10-26"),
        ("pay rent Friday", "pay rent", "2026-10-23"),
        ("standup monday", "standup", "2026-10-26"),
        ("file taxes 2027-04-15", "file taxes", "2027-04-15"),
    ],
    ids=["today", "tomorrow", "tmrw-mid-sentence", "next-week", "weekday", "same-weekday", "iso"],
)
def test_split_due(text: str, content: str, date: str) -> None:
    got_content, due = split_due(text, TODAY)
    assert got_content == content
    assert due is not None
    assert due.date == date
    assert due.is_all_day()


@pytest.mark.parametrize(
    "text",
    ["buy milk", "todays news", "sundays are slow", "bad date 2026-13-45"],
    ids=["plain", "prefix-word", "plural-weekday", "invalid-iso"],
)
def test_no_due_phrase(text: str) -> None:
    assert find_due(text, TODAY) is None
    assert split_due(text, TODAY) == (text, None)


def test_find_due_reports_span_and_phrase() -> None:
    found = find_due("ship it Tomorrow now", TODAY)
    assert found is not None
    due, span = found
    assert span == (8, 16)
    assert due.string == "Tomorrow"


def test_due_helpers() -> None:
    assert Due.on(TODAY).parsed() == TODAY
    aware = Due.at(dt.datetime(2026, 10, 19, 9, 30, tzinfo=dt.timezone.utc))
    assert aware.date == "2026-10-19T09:30:00Z"
    assert aware.is_all_day() is False
    assert str(aware) == "2026-10-19T09:30:00Z"
    floating = Due.at(dt.datetime(2026, 10, 19, 9, 30))
    assert floating.date == "2026-10-19T09:30:00"
